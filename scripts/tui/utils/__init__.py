"""
Utility modules for the Xcode Cloud TUI.
"""

from .formatting import (
    Column,
    COLUMN_GAP,
    format_header,
    format_row,
    pad_string,
)

from .timefmt import (
    LOCAL_TIME_FORMAT,
    iso_utc_to_local,
    parse_iso8601,
)

__all__ = [
    # Formatting utilities
    'Column',
    'COLUMN_GAP',
    'format_header',
    'format_row',
    'pad_string',
    # Time utilities
    'LOCAL_TIME_FORMAT',
    'iso_utc_to_local',
    'parse_iso8601',
]

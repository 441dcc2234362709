"""
Formatting utilities for the Xcode Cloud TUI.

Provides pure functions for laying out fixed-width table rows.
These functions don't depend on Textual or any UI framework.
"""

from dataclasses import dataclass


# Separator placed between adjacent columns
COLUMN_GAP = "  "


@dataclass(frozen=True)
class Column:
    """A fixed-width table column."""
    title: str
    width: int
    align: str = "left"  # "left" or "right"


def pad_string(s: str, width: int, align: str = "left") -> str:
    """
    Pad a string to a specific width, clipping anything longer.

    Args:
        s: String to pad
        width: Target width
        align: "left" or "right"

    Returns:
        String of exactly width characters
    """
    if len(s) >= width:
        return s[:width]

    if align == "right":
        return s.rjust(width)
    return s.ljust(width)


def format_row(columns: list[Column] | tuple[Column, ...], cells: list[str] | tuple[str, ...]) -> str:
    """
    Lay out cells under the given columns.

    Each cell is clipped or padded to its column width; columns are joined by
    two spaces. Missing trailing cells render as blanks.

    Args:
        columns: Column declarations
        cells: Cell values, one per column

    Returns:
        The formatted line (no trailing newline)
    """
    parts = []
    for idx, column in enumerate(columns):
        value = cells[idx] if idx < len(cells) else ""
        parts.append(pad_string(value, column.width, column.align))
    return COLUMN_GAP.join(parts)


def format_header(columns: list[Column] | tuple[Column, ...]) -> str:
    """Header line made of the column titles."""
    return format_row(columns, [column.title for column in columns])

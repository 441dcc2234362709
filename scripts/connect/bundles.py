"""
bundles.py - Turn downloaded artifact bytes into text for the log viewer.

LOG_BUNDLE artifacts are ZIP archives. The archive is written to a scratch
file, its listing is read, one entry is chosen (preferring log-like
extensions) and only that entry is extracted, up to MAX_EXTRACT_BYTES.
The scratch file is always removed.

Anything that cannot be shown as text degrades to a placeholder telling the
user to download the raw artifact instead.
"""

import logging
import lzma
import tempfile
import zipfile
import zlib
from pathlib import Path


MAX_EXTRACT_BYTES = 32 * 1024 * 1024

PREFERRED_LOG_EXTENSIONS = (".log", ".txt", ".json", ".xml", ".md", ".xcactivitylog")

ZIP_SIGNATURES = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")

BINARY_PLACEHOLDER = "Artifact content is binary/non-UTF8. Use d:Download."
LIST_FAILED_PLACEHOLDER = "LOG_BUNDLE list failed. Use d:Download."
NO_ENTRY_PLACEHOLDER = "LOG_BUNDLE had no extractable files. Use d:Download."
EXTRACT_FAILED_PLACEHOLDER = "LOG_BUNDLE extraction failed. Use d:Download."

_log = logging.getLogger("xcodecloud.connect.bundles")


def is_zip_data(data: bytes) -> bool:
    """True if data starts with a ZIP local-file, central-directory or empty-archive marker."""
    return data[:4] in ZIP_SIGNATURES


def is_preferred_log_file(name: str) -> bool:
    return name.lower().endswith(PREFERRED_LOG_EXTENSIONS)


def select_log_bundle_entry(names: list[str]) -> str | None:
    """
    Pick the archive entry to show.

    The first entry with a preferred extension wins; otherwise the first
    file. Directory entries (ending in "/") are never chosen.

    Returns:
        Entry name, or None if the archive holds no files
    """
    first_file = None
    for name in names:
        if not name or name.endswith("/"):
            continue
        if first_file is None:
            first_file = name
        if is_preferred_log_file(name):
            return name
    return first_file


def normalize_viewer_text(data: bytes, truncated: bool = False) -> str:
    """
    Decode bytes as UTF-8, or return the binary placeholder.

    Args:
        data: Raw bytes
        truncated: data was cut at a size bound; a partial trailing
            character is dropped instead of failing the whole decode
    """
    if truncated:
        # A UTF-8 sequence is at most 4 bytes long
        for cut in range(4):
            try:
                return data[:len(data) - cut].decode("utf-8")
            except UnicodeDecodeError:
                continue
        return BINARY_PLACEHOLDER
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return BINARY_PLACEHOLDER


def decode_log_bundle(data: bytes, scratch_dir: Path | None = None) -> str:
    """
    Extract the most log-like file from a ZIP bundle.

    Args:
        data: Archive bytes
        scratch_dir: Directory for the temporary archive (default: system temp)

    Returns:
        Extracted text or a placeholder message
    """
    try:
        zip_path = _write_scratch_archive(data, scratch_dir)
    except OSError as e:
        _log.warning(f"Could not write log bundle scratch file: {e}")
        return EXTRACT_FAILED_PLACEHOLDER

    try:
        return _extract_from_archive(zip_path)
    finally:
        zip_path.unlink(missing_ok=True)


def _write_scratch_archive(data: bytes, scratch_dir: Path | None) -> Path:
    """Write data to a new temporary .zip file; nothing is left behind on failure."""
    if scratch_dir is not None:
        scratch_dir.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        prefix="log_bundle_", suffix=".zip", dir=scratch_dir, delete=False
    ) as handle:
        zip_path = Path(handle.name)
        try:
            handle.write(data)
            handle.flush()
        except OSError:
            handle.close()
            zip_path.unlink(missing_ok=True)
            raise
    return zip_path


def _extract_from_archive(zip_path: Path) -> str:
    try:
        archive = zipfile.ZipFile(zip_path)
    except (zipfile.BadZipFile, OSError) as e:
        _log.debug(f"Log bundle listing failed: {e}")
        return LIST_FAILED_PLACEHOLDER

    with archive:
        entry = select_log_bundle_entry(archive.namelist())
        if entry is None:
            return NO_ENTRY_PLACEHOLDER

        _log.debug(f"Extracting log bundle entry {entry}")
        try:
            with archive.open(entry) as member:
                extracted = member.read(MAX_EXTRACT_BYTES + 1)
        except (
            zipfile.BadZipFile,
            RuntimeError,
            NotImplementedError,
            OSError,
            EOFError,
            zlib.error,
            lzma.LZMAError,
        ) as e:
            _log.debug(f"Log bundle extraction failed for {entry}: {e}")
            return EXTRACT_FAILED_PLACEHOLDER

    truncated = len(extracted) > MAX_EXTRACT_BYTES
    return normalize_viewer_text(extracted[:MAX_EXTRACT_BYTES], truncated=truncated)

"""
Registry of supported source formats and content-based identification.
"""

from __future__ import annotations

import zipfile
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Union

from spreadsheet_seeder.errors import UnreadableFileError


class SourceFormat(str, Enum):
    """Closed set of source formats the readers understand."""
    CSV = "Csv"
    XLSX = "Xlsx"
    XLS = "Xls"
    ODS = "Ods"


EXTENSION_MAP = {
    ".csv": SourceFormat.CSV,
    ".tsv": SourceFormat.CSV,
    ".txt": SourceFormat.CSV,
    ".xlsx": SourceFormat.XLSX,
    ".xlsm": SourceFormat.XLSX,
    ".xls": SourceFormat.XLS,
    ".ods": SourceFormat.ODS,
}

OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
ZIP_MAGIC = b"PK\x03\x04"
ODS_MIMETYPE = b"application/vnd.oasis.opendocument.spreadsheet"

# Leading bytes read for the magic-number and binary-content checks.
TEXT_SNIFF_BYTES = 4096


def normalize_extension(ext: Any) -> str:
    if not isinstance(ext, str):
        return ""
    v = ext.strip().lower()
    if not v:
        return ""
    if not v.startswith("."):
        v = "." + v
    if v == ".":
        return ""
    return v


def format_for_extension(extension: str) -> Optional[SourceFormat]:
    """Format implied by a file extension, or None if unknown."""
    return EXTENSION_MAP.get(normalize_extension(extension))


def supported_extensions() -> List[str]:
    return list(EXTENSION_MAP.keys())


def _identify_zip(path: Path) -> Optional[SourceFormat]:
    with zipfile.ZipFile(path, "r") as zf:
        names = set(zf.namelist())
        if "mimetype" in names and zf.read("mimetype").strip() == ODS_MIMETYPE:
            return SourceFormat.ODS
        if "xl/workbook.xml" in names:
            return SourceFormat.XLSX
    return None


def identify(file_path: Union[str, Path]) -> SourceFormat:
    """
    Detect the format of ``file_path`` from its content, using the
    extension only to accept plain-text (CSV) sources.

    Raises:
        UnreadableFileError: the file cannot be opened or its content does
            not match any supported format.
    """
    path = Path(file_path)
    try:
        with open(path, "rb") as fh:
            head = fh.read(TEXT_SNIFF_BYTES)
    except OSError as e:
        raise UnreadableFileError(str(path), f"{type(e).__name__}: {e}") from e

    if head.startswith(OLE2_MAGIC):
        return SourceFormat.XLS
    if head.startswith(ZIP_MAGIC):
        try:
            detected = _identify_zip(path)
        except (zipfile.BadZipFile, OSError) as e:
            raise UnreadableFileError(str(path), f"corrupt archive: {e}") from e
        if detected is None:
            raise UnreadableFileError(str(path), "zip archive is neither an XLSX nor an ODS workbook")
        return detected

    by_extension = format_for_extension(path.suffix)
    if by_extension is SourceFormat.CSV:
        if b"\x00" in head:
            raise UnreadableFileError(str(path), "binary content in a delimited text file")
        return SourceFormat.CSV
    if by_extension is not None:
        raise UnreadableFileError(
            str(path), f"content does not match the {by_extension.value} format implied by '{path.suffix}'"
        )
    raise UnreadableFileError(str(path), f"unsupported file format '{path.suffix or '(none)'}'")

"""
Error taxonomy for source ingestion.

Skip rules are policy, not errors: nothing here is raised for a skipped
file or sheet.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class SeederError(Exception):
    """Base class for every error raised by spreadsheet_seeder."""


@dataclass(eq=False)
class UnreadableFileError(SeederError):
    """
    Format detection or workbook load failed for one source file.

    Fatal for that file; the collection walker decides whether the run
    continues with the remaining files.
    """

    path: str
    reason: str

    def __post_init__(self) -> None:
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"Cannot read source file '{self.path}': {self.reason}"


@dataclass(eq=False)
class AmbiguousDateError(SeederError, ValueError):
    """
    A cell classified as a date matched none of the known representations.

    ``sheet``, ``row`` and ``column`` are filled in once the error is
    attributed to a cell of a worksheet.
    """

    value: Any
    number_format: Optional[str] = None
    sheet: Optional[str] = None
    row: Optional[int] = None
    column: Any = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(str(self))

    def at(self, sheet: str, row: int, column: Any) -> "AmbiguousDateError":
        """Attach the cell location and return self."""
        self.sheet = sheet
        self.row = row
        self.column = column
        self.args = (str(self),)
        return self

    def __str__(self) -> str:
        where = ""
        if self.sheet is not None:
            where = f" at sheet={self.sheet!r}, row={self.row}, column={self.column!r}"
        return f"Value {self.value!r} (format {self.number_format!r}) is not a recognised date{where}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "number_format": self.number_format,
            "sheet": self.sheet,
            "row": self.row,
            "column": self.column,
        }


__all__ = ["SeederError", "UnreadableFileError", "AmbiguousDateError"]

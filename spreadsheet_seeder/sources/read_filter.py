"""
Read filter restricting which cells a reader materializes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from spreadsheet_seeder.config import Settings


@dataclass(frozen=True)
class ReadFilter:
    """
    Cell-level gate consulted by every reader while loading.

    Rows and columns are 1-based. Worksheets whose title starts with
    ``skipper`` load no cells at all; they stay listed in the workbook so
    that sheet counts and iteration order are unaffected.
    """

    max_rows: Optional[int] = None
    max_columns: Optional[int] = None
    skipper: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReadFilter":
        return cls(max_rows=settings.max_rows, max_columns=settings.max_columns, skipper=settings.skipper)

    def read_sheet(self, sheet_title: str) -> bool:
        if self.skipper and str(sheet_title).startswith(self.skipper):
            return False
        return True

    def read_cell(self, column: int, row: int, sheet_title: str) -> bool:
        if not self.read_sheet(sheet_title):
            return False
        if self.max_rows is not None and row > self.max_rows:
            return False
        if self.max_columns is not None and column > self.max_columns:
            return False
        return True

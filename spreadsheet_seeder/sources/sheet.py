"""
SourceSheet: one worksheet, its destination table name and its rows.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from openpyxl.utils.datetime import WINDOWS_EPOCH

from spreadsheet_seeder.config import Settings, get_settings
from spreadsheet_seeder.errors import AmbiguousDateError
from spreadsheet_seeder.logger import get_logger
from spreadsheet_seeder.sources.formats import SourceFormat
from spreadsheet_seeder.sources.readers import Cell, Worksheet
from spreadsheet_seeder.temporal import NOT_A_DATE, TemporalNormalizer

logger = get_logger(__name__)

Row = Dict[Any, Any]


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


class SourceSheet:
    """
    Descriptor for one worksheet of a source file.

    ``table_name`` starts as the sheet title; ``SourceFile`` overrides it
    with the file's base name for single-sheet workbooks whose title is
    not a table marker (see ``title_is_table``).
    """

    def __init__(
        self,
        pathname: str,
        file_format: Optional[SourceFormat],
        title: str,
        worksheet: Optional[Worksheet] = None,
        epoch: datetime = WINDOWS_EPOCH,
        settings: Optional[Settings] = None,
        normalizer: Optional[TemporalNormalizer] = None,
    ):
        self.pathname = pathname
        self.file_format = file_format
        self.title = title
        self._table_name = title
        self._worksheet = worksheet or Worksheet(title=title)
        self._epoch = epoch
        self._settings = settings or get_settings()
        self._normalizer = normalizer or TemporalNormalizer(self._settings.infer_string_dates)
        self.errors: List[AmbiguousDateError] = []

    def __repr__(self) -> str:
        return f"SourceSheet(table={self._table_name!r}, title={self.title!r}, file={self.pathname!r})"

    # ------------------------------------------------------------------
    # Table name
    # ------------------------------------------------------------------

    @property
    def table_name(self) -> str:
        return self._table_name

    def get_table_name(self) -> str:
        return self._table_name

    def set_table_name(self, table_name: str) -> None:
        self._table_name = table_name

    def title_is_table(self) -> bool:
        """
        True when the title explicitly names the destination table.

        A title qualifies when it is listed in ``known_tables`` or fully
        matches ``table_marker_pattern`` (default: a lower-case snake_case
        identifier, so reader defaults such as ``Sheet1`` never qualify).
        """
        if self.title in self._settings.known_tables:
            return True
        return re.fullmatch(self._settings.table_marker_pattern, self.title) is not None

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def header_row(self) -> List[Any]:
        """Output keys of the kept columns, in column order."""
        return [key for _, key, _ in self._columns()]

    def rows(self) -> Iterator[Row]:
        """
        Yield each data row as ``{column key: normalized value}``.

        Cell-level date errors either raise (``date_errors="raise"``) or
        are collected in ``self.errors`` with the raw value kept.
        """
        self.errors = []
        columns = self._columns()
        for row_number, row in self._data_rows():
            if self._settings.header:
                yield {
                    key: self._convert(self._cell_at(row, pos), hint, row_number, key)
                    for pos, key, hint in columns
                }
            else:
                yield {
                    pos: self._convert(cell, None, row_number, pos)
                    for pos, cell in enumerate(row)
                }

    def row_count(self) -> int:
        return sum(1 for _ in self._data_rows())

    def _non_blank_rows(self) -> Iterator[Tuple[int, List[Cell]]]:
        for row_number, row in enumerate(self._worksheet.rows, start=1):
            if all(_is_blank(cell.value) for cell in row):
                continue
            yield row_number, row

    def _header_cells(self) -> Optional[List[Cell]]:
        if not self._settings.header:
            return None
        for _, row in self._non_blank_rows():
            return row
        return None

    def _data_rows(self) -> Iterator[Tuple[int, List[Cell]]]:
        rows = self._non_blank_rows()
        if self._settings.header:
            next(rows, None)
        limit = self._settings.limit
        emitted = 0
        for index, item in enumerate(rows):
            if index < self._settings.offset:
                continue
            if limit is not None and emitted >= limit:
                return
            emitted += 1
            yield item

    def _columns(self) -> List[Tuple[int, Any, Optional[str]]]:
        """``(position, output key, date-format override)`` per kept column."""
        header = self._header_cells()
        if header is None:
            return []
        columns = []
        seen = set()
        skipper = self._settings.skipper
        for pos, cell in enumerate(header):
            if _is_blank(cell.value):
                name: Any = pos
            else:
                name = str(cell.value).strip()
                if name.startswith(skipper):
                    continue
            key = self._settings.aliases.get(name, name) if isinstance(name, str) else name
            hint = self._settings.date_formats.get(name)
            if hint is None and isinstance(key, str):
                hint = self._settings.date_formats.get(key)
            if key in seen:
                # later duplicates get their position appended: orderDate, orderDate_3
                unique = f"{key}_{pos}"
                logger.warning(
                    "Duplicate column %r in sheet %r of %s; renamed to %r",
                    key, self.title, self.pathname, unique,
                )
                key = unique
            seen.add(key)
            columns.append((pos, key, hint))
        return columns

    @staticmethod
    def _cell_at(row: List[Cell], pos: int) -> Cell:
        if pos < len(row):
            return row[pos]
        return Cell(None)

    def _convert(self, cell: Cell, hint: Optional[str], row_number: int, column: Any) -> Any:
        number_format = hint if hint is not None else cell.number_format
        try:
            result = self._normalizer.normalize(cell.value, number_format, self._epoch)
        except AmbiguousDateError as e:
            e.at(self.title, row_number, column)
            if self._settings.date_errors == "raise":
                raise
            logger.warning("Keeping raw value: %s (file=%s)", e, self.pathname)
            self.errors.append(e)
            return cell.value
        if result is NOT_A_DATE:
            return None if _is_blank(cell.value) else cell.value
        return result

"""
Format-specific readers producing the in-memory ``Workbook``.

Every reader materializes the (filtered) cells into plain ``Cell``
objects and closes its native handle before ``load`` returns, on
success and on failure alike:

- XLSX  -> openpyxl (read-only, cached values)
- XLS   -> xlrd (with formatting info, for number formats)
- ODS   -> pandas ``read_excel`` with the odf engine
- CSV   -> csv module, delimiter sniffed unless overridden
"""

from __future__ import annotations

import csv
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, Union

import numpy as np
import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils.datetime import WINDOWS_EPOCH

from spreadsheet_seeder.logger import get_logger
from spreadsheet_seeder.sources.formats import SourceFormat
from spreadsheet_seeder.sources.read_filter import ReadFilter
from spreadsheet_seeder.temporal import RE_NUMERIC, epoch_for_datemode

logger = get_logger(__name__)

# Title of the single worksheet a delimited text source becomes.
DEFAULT_CSV_SHEET_TITLE = "Worksheet"
DEFAULT_CSV_DELIMITER = ","
CSV_SNIFF_DELIMITERS = ",;\t|"
CSV_SNIFF_BYTES = 4096


@dataclass
class Cell:
    """Raw cell value plus the number format the source stored with it."""
    value: Any
    number_format: Optional[str] = None


@dataclass
class Worksheet:
    title: str
    rows: List[List[Cell]] = field(default_factory=list)


@dataclass
class Workbook:
    """In-memory workbook; ``epoch`` is the origin of its serial dates."""
    worksheets: List[Worksheet] = field(default_factory=list)
    epoch: datetime = WINDOWS_EPOCH

    def get_sheet_names(self) -> List[str]:
        return [ws.title for ws in self.worksheets]

    def get_sheet_count(self) -> int:
        return len(self.worksheets)


def _to_python(value: Any) -> Any:
    # numpy scalars leak out of DataFrames
    if isinstance(value, np.generic):
        return value.item()
    return value


def _csv_value(text: str) -> Any:
    """
    Type a delimited-text field the way a spreadsheet would on entry:
    plain decimal numbers become int or float, anything else stays text.
    Numbers with a leading zero (ids such as ``007``) stay text.
    """
    if not RE_NUMERIC.match(text):
        return text
    digits = text.lstrip("+-")
    if len(digits) > 1 and digits[0] == "0" and digits[1] != ".":
        return text
    if "." in text:
        return float(text)
    return int(text)


class BaseReader(ABC):
    """Common read-filter handling for the format readers."""

    def __init__(self) -> None:
        self._read_filter = ReadFilter()

    def set_read_filter(self, read_filter: ReadFilter) -> None:
        self._read_filter = read_filter

    def get_read_filter(self) -> ReadFilter:
        return self._read_filter

    def get_delimiter(self) -> Optional[str]:
        return None

    @abstractmethod
    def load(self, file_path: Union[str, Path]) -> Workbook:
        """Read ``file_path`` into a ``Workbook``."""

    def _filter_row(self, row: List[Cell], row_number: int, title: str) -> List[Cell]:
        return [
            cell for col, cell in enumerate(row, start=1)
            if self._read_filter.read_cell(col, row_number, title)
        ]


class XlsxReader(BaseReader):

    def load(self, file_path: Union[str, Path]) -> Workbook:
        wb = load_workbook(str(file_path), read_only=True, data_only=True)
        try:
            workbook = Workbook(epoch=getattr(wb, "epoch", WINDOWS_EPOCH))
            for ws in wb.worksheets:
                sheet = Worksheet(title=ws.title)
                workbook.worksheets.append(sheet)
                if not self._read_filter.read_sheet(ws.title):
                    continue
                rows = ws.iter_rows(
                    max_row=self._read_filter.max_rows,
                    max_col=self._read_filter.max_columns,
                )
                for row_number, row in enumerate(rows, start=1):
                    cells = [Cell(c.value, getattr(c, "number_format", None)) for c in row]
                    sheet.rows.append(self._filter_row(cells, row_number, ws.title))
            return workbook
        finally:
            wb.close()


class XlsReader(BaseReader):

    def load(self, file_path: Union[str, Path]) -> Workbook:
        import xlrd

        book = xlrd.open_workbook(str(file_path), formatting_info=True, on_demand=True)
        try:
            workbook = Workbook(epoch=epoch_for_datemode(book.datemode))
            for index, title in enumerate(book.sheet_names()):
                sheet = Worksheet(title=title)
                workbook.worksheets.append(sheet)
                if not self._read_filter.read_sheet(title):
                    continue
                sh = book.sheet_by_index(index)
                nrows = sh.nrows
                if self._read_filter.max_rows is not None:
                    nrows = min(nrows, self._read_filter.max_rows)
                ncols = sh.ncols
                if self._read_filter.max_columns is not None:
                    ncols = min(ncols, self._read_filter.max_columns)
                for ri in range(nrows):
                    cells = [self._cell(book, sh.cell(ri, ci), xlrd) for ci in range(min(ncols, sh.row_len(ri)))]
                    sheet.rows.append(self._filter_row(cells, ri + 1, title))
                book.unload_sheet(index)
            return workbook
        finally:
            book.release_resources()

    @staticmethod
    def _number_format(book: Any, xf_index: Optional[int]) -> Optional[str]:
        if xf_index is None:
            return None
        try:
            fmt = book.format_map.get(book.xf_list[xf_index].format_key)
        except (IndexError, AttributeError):
            return None
        return fmt.format_str if fmt is not None else None

    def _cell(self, book: Any, cell: Any, xlrd: Any) -> Cell:
        ctype = cell.ctype
        value = cell.value
        if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
            value = None
        elif ctype == xlrd.XL_CELL_BOOLEAN:
            value = bool(value)
        elif ctype == xlrd.XL_CELL_NUMBER and float(value).is_integer():
            value = int(value)
        return Cell(value, self._number_format(book, cell.xf_index))


class OdsReader(BaseReader):

    def load(self, file_path: Union[str, Path]) -> Workbook:
        workbook = Workbook()
        with pd.ExcelFile(str(file_path), engine="odf") as xf:
            for title in xf.sheet_names:
                title = str(title)
                sheet = Worksheet(title=title)
                workbook.worksheets.append(sheet)
                if not self._read_filter.read_sheet(title):
                    continue
                df = xf.parse(
                    title,
                    header=None,
                    keep_default_na=False,
                    nrows=self._read_filter.max_rows,
                )
                if self._read_filter.max_columns is not None:
                    df = df.iloc[:, : self._read_filter.max_columns]
                for row_number, values in enumerate(df.itertuples(index=False, name=None), start=1):
                    cells = [Cell(_to_python(v)) for v in values]
                    sheet.rows.append(self._filter_row(cells, row_number, title))
        return workbook


class CsvReader(BaseReader):
    """Delimited text reader; the file becomes a single worksheet."""

    def __init__(self, encoding: str = "utf-8-sig") -> None:
        super().__init__()
        self._encoding = encoding
        self._delimiter: Optional[str] = None
        self._detected_delimiter: Optional[str] = None

    def set_delimiter(self, delimiter: Optional[str]) -> None:
        self._delimiter = delimiter or None

    def get_delimiter(self) -> Optional[str]:
        return self._delimiter or self._detected_delimiter

    @staticmethod
    def sniff_delimiter(sample: str) -> str:
        if not sample.strip():
            return DEFAULT_CSV_DELIMITER
        try:
            return csv.Sniffer().sniff(sample, delimiters=CSV_SNIFF_DELIMITERS).delimiter
        except csv.Error:
            return DEFAULT_CSV_DELIMITER

    def load(self, file_path: Union[str, Path]) -> Workbook:
        sheet = Worksheet(title=DEFAULT_CSV_SHEET_TITLE)
        with open(file_path, "r", encoding=self._encoding, newline="") as fh:
            delimiter = self._delimiter
            if delimiter is None:
                delimiter = self.sniff_delimiter(fh.read(CSV_SNIFF_BYTES))
                fh.seek(0)
                self._detected_delimiter = delimiter
                logger.debug("Sniffed delimiter %r for %s", delimiter, file_path)
            for row_number, values in enumerate(csv.reader(fh, delimiter=delimiter), start=1):
                if self._read_filter.max_rows is not None and row_number > self._read_filter.max_rows:
                    break
                cells = [Cell(_csv_value(v)) for v in values]
                sheet.rows.append(self._filter_row(cells, row_number, sheet.title))
        return Workbook(worksheets=[sheet])


READERS: Dict[SourceFormat, Type[BaseReader]] = {
    SourceFormat.CSV: CsvReader,
    SourceFormat.XLSX: XlsxReader,
    SourceFormat.XLS: XlsReader,
    SourceFormat.ODS: OdsReader,
}


def create_reader(file_format: SourceFormat, encoding: str = "utf-8-sig") -> BaseReader:
    """Build the reader for ``file_format``."""
    if file_format is SourceFormat.CSV:
        return CsvReader(encoding=encoding)
    try:
        return READERS[file_format]()
    except KeyError:
        raise ValueError(f"No reader registered for format: {file_format}")

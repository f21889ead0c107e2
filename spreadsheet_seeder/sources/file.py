"""
SourceFile: cursor over the worksheets of one source file.

The cursor follows the classic forward-iterator contract
(``current/next/key/valid/rewind``); ``__iter__`` is built on top of it.
Skip rules are applied lazily while moving the cursor, so a workbook is
never pre-scanned before consumption begins.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, List, Optional, Union

from spreadsheet_seeder.config import Settings, get_settings
from spreadsheet_seeder.errors import UnreadableFileError
from spreadsheet_seeder.logger import get_logger
from spreadsheet_seeder.sources.formats import SourceFormat, identify
from spreadsheet_seeder.sources.read_filter import ReadFilter
from spreadsheet_seeder.sources.readers import BaseReader, CsvReader, Workbook, Worksheet, create_reader
from spreadsheet_seeder.sources.sheet import SourceSheet
from spreadsheet_seeder.temporal import TemporalNormalizer

logger = get_logger(__name__)


def starts_with_marker(name: str, marker: Optional[str]) -> bool:
    """Prefix test shared by the file-level and sheet-level skip rules."""
    if not marker:
        return False
    return str(name)[: len(marker)] == marker


def should_skip_file(file_path: Union[str, Path], marker: str = "~") -> bool:
    """
    True for office lock/temporary files, i.e. names starting with ``marker``.
    """
    return starts_with_marker(Path(file_path).name, marker)


class SourceFile:
    """
    Worksheets of one file, as a stream of ``SourceSheet`` descriptors.

    The reader and workbook are created on first access and owned by this
    object until ``close()``.
    """

    def __init__(
        self,
        file: Union[str, Path],
        settings: Optional[Settings] = None,
        normalizer: Optional[TemporalNormalizer] = None,
    ):
        self._file = Path(file)
        self._settings = settings or get_settings()
        self._normalizer = normalizer or TemporalNormalizer(self._settings.infer_string_dates)
        self._file_type: Optional[SourceFormat] = None
        self._reader: Optional[BaseReader] = None
        self._workbook: Optional[Workbook] = None
        self._cursor = 0

    def __repr__(self) -> str:
        return f"SourceFile({str(self._file)!r})"

    # ------------------------------------------------------------------
    # Skip rules
    # ------------------------------------------------------------------

    def should_skip(self) -> bool:
        """True if the file is an office temporary file and must be ignored."""
        return should_skip_file(self._file, self._settings.temp_file_marker)

    def should_skip_sheet(self, worksheet: Worksheet) -> bool:
        return starts_with_marker(worksheet.title, self._settings.skipper)

    # ------------------------------------------------------------------
    # Lazy open / close
    # ------------------------------------------------------------------

    def open(self) -> Optional[Workbook]:
        """
        Identify the format, build the reader and load the workbook.

        Idempotent. Returns None for skipped files, which never open a
        reader.

        Raises:
            UnreadableFileError: detection or load failed.
        """
        if self._workbook is not None:
            return self._workbook
        if self.should_skip():
            logger.debug("Skipping temporary file %s", self._file)
            return None

        filename = str(self._file)
        try:
            file_type = identify(filename)
            reader = create_reader(file_type, encoding=self._settings.input_encoding)
            if file_type is SourceFormat.CSV and self._settings.delimiter:
                reader.set_delimiter(self._settings.delimiter)
            reader.set_read_filter(ReadFilter.from_settings(self._settings))
            workbook = reader.load(filename)
        except UnreadableFileError:
            raise
        except Exception as e:
            raise UnreadableFileError(filename, f"{type(e).__name__}: {e}") from e

        self._file_type = file_type
        self._reader = reader
        self._workbook = workbook
        self._cursor = 0
        self._skip_forward()
        logger.info(
            "Loaded %s (%s, %d sheet(s)%s)",
            self._file.name,
            file_type.value,
            workbook.get_sheet_count(),
            f", delimiter={reader.get_delimiter()!r}" if isinstance(reader, CsvReader) else "",
        )
        return workbook

    def close(self) -> None:
        """Release the reader and the in-memory workbook."""
        self._reader = None
        self._workbook = None
        self._cursor = 0

    def __enter__(self) -> "SourceFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    def _worksheets(self) -> List[Worksheet]:
        workbook = self.open()
        return workbook.worksheets if workbook is not None else []

    def _skip_forward(self) -> None:
        # loop, not recursion: a workbook of only skip-marked sheets just ends
        sheets = self._workbook.worksheets if self._workbook is not None else []
        while self._cursor < len(sheets) and self.should_skip_sheet(sheets[self._cursor]):
            logger.debug("Skipping sheet %r in %s", sheets[self._cursor].title, self._file.name)
            self._cursor += 1

    def current(self) -> Optional[SourceSheet]:
        """
        Descriptor for the worksheet at the cursor, or None past the end.

        Skip-marked sheets under the cursor are stepped over first.
        """
        sheets = self._worksheets()
        self._skip_forward()
        if self._cursor >= len(sheets):
            return None
        worksheet = sheets[self._cursor]
        source_sheet = SourceSheet(
            str(self._file),
            self._file_type,
            worksheet.title,
            worksheet=worksheet,
            epoch=self._workbook.epoch,
            settings=self._settings,
            normalizer=self._normalizer,
        )
        if len(sheets) == 1 and not source_sheet.title_is_table():
            source_sheet.set_table_name(self._file.stem)
        return source_sheet

    def next(self) -> None:
        """Advance to the next worksheet that is not skip-marked."""
        sheets = self._worksheets()
        if self._cursor < len(sheets):
            self._cursor += 1
        self._skip_forward()

    def key(self) -> int:
        """Workbook index of the worksheet under the cursor."""
        self._worksheets()
        return self._cursor

    def valid(self) -> bool:
        sheets = self._worksheets()
        self._skip_forward()
        return self._cursor < len(sheets)

    def rewind(self) -> None:
        self._worksheets()
        self._cursor = 0
        self._skip_forward()

    def __iter__(self) -> Iterator[SourceSheet]:
        self.rewind()
        while self.valid():
            yield self.current()
            self.next()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def filename(self) -> str:
        return self._file.name

    @property
    def pathname(self) -> str:
        return str(self._file)

    @property
    def file_format(self) -> Optional[SourceFormat]:
        self.open()
        return self._file_type

    def sheet_names(self) -> List[str]:
        """Titles of every worksheet, skip-marked ones included."""
        return [ws.title for ws in self._worksheets()]

    def get_delimiter(self) -> Optional[str]:
        """Delimiter the CSV reader actually used; None for other formats."""
        self.open()
        if self._reader is None:
            return None
        return self._reader.get_delimiter()

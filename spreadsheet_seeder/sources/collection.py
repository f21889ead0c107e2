"""
SourceCollection: one ordered stream of sheets over many source files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple, Union

from spreadsheet_seeder.config import Settings, get_settings
from spreadsheet_seeder.errors import UnreadableFileError
from spreadsheet_seeder.logger import get_logger
from spreadsheet_seeder.sources.file import SourceFile, should_skip_file
from spreadsheet_seeder.sources.sheet import Row, SourceSheet
from spreadsheet_seeder.temporal import TemporalNormalizer

logger = get_logger(__name__)

PathLike = Union[str, Path]
# Called with (path, error); return True to continue with the next file.
ErrorHandler = Callable[[Path, UnreadableFileError], bool]


class SourceCollection:
    """
    Walk directories and explicit files, yielding ``SourceSheet``s.

    Directory entries are taken in sorted name order and filtered by the
    ``extensions`` setting; explicit files keep the order they were given
    in. Temporary files are dropped before any reader is opened.

    File-level errors go to ``on_error``. Without a handler, or when the
    handler returns False, the error propagates and the walk stops.
    """

    def __init__(
        self,
        paths: Union[PathLike, Iterable[PathLike]],
        settings: Optional[Settings] = None,
        on_error: Optional[ErrorHandler] = None,
    ):
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self._paths = [Path(p) for p in paths]
        self._settings = settings or get_settings()
        self._normalizer = TemporalNormalizer(self._settings.infer_string_dates)
        self._on_error = on_error
        self.failures: List[Tuple[Path, UnreadableFileError]] = []

    def _list_directory(self, directory: Path) -> List[Path]:
        pattern = "**/*" if self._settings.recursive else "*"
        extensions = set(self._settings.extensions)
        return sorted(
            p for p in directory.glob(pattern)
            if p.is_file() and p.suffix.lower() in extensions
        )

    def files(self) -> List[Path]:
        """Accepted files in walk order, skip rules already applied."""
        result: List[Path] = []
        for path in self._paths:
            candidates = self._list_directory(path) if path.is_dir() else [path]
            for candidate in candidates:
                if should_skip_file(candidate, self._settings.temp_file_marker):
                    logger.debug("Skipping temporary file %s", candidate)
                    continue
                result.append(candidate)
        return result

    def source_files(self) -> Iterator[SourceFile]:
        for path in self.files():
            yield SourceFile(path, settings=self._settings, normalizer=self._normalizer)

    def _handle_error(self, path: Path, error: UnreadableFileError) -> bool:
        if self._on_error is None:
            return False
        if not self._on_error(path, error):
            return False
        logger.warning("Continuing after unreadable file: %s", error)
        self.failures.append((path, error))
        return True

    def __iter__(self) -> Iterator[SourceSheet]:
        self.failures = []
        for source in self.source_files():
            try:
                source.open()
            except UnreadableFileError as e:
                if self._handle_error(Path(source.pathname), e):
                    continue
                raise
            try:
                for sheet in source:
                    yield sheet
            finally:
                source.close()

    def tables(self) -> Iterator[Tuple[str, Iterator[Row]]]:
        """``(table_name, rows)`` pairs for the persistence collaborator."""
        for sheet in self:
            yield sheet.table_name, sheet.rows()

    def table_names(self) -> List[str]:
        return [sheet.table_name for sheet in self]


def iter_sources(paths: Any, settings: Optional[Settings] = None) -> Iterator[SourceSheet]:
    """Shortcut for ``iter(SourceCollection(paths, settings))``."""
    return iter(SourceCollection(paths, settings=settings))

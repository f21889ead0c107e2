"""
Source iteration subpackage.

Public API:
  - SourceCollection   (directory / file-list walker)
  - SourceFile         (worksheet cursor over one file)
  - SourceSheet        (worksheet descriptor: table name + rows)
  - SourceFormat       (supported formats, content identification)
  - ReadFilter         (cell materialization gate)
"""

from spreadsheet_seeder.sources.collection import SourceCollection, iter_sources
from spreadsheet_seeder.sources.file import SourceFile, should_skip_file
from spreadsheet_seeder.sources.formats import SourceFormat, identify
from spreadsheet_seeder.sources.read_filter import ReadFilter
from spreadsheet_seeder.sources.readers import Cell, Workbook, Worksheet, create_reader
from spreadsheet_seeder.sources.sheet import SourceSheet

__all__ = [
    "SourceCollection",
    "iter_sources",
    "SourceFile",
    "should_skip_file",
    "SourceSheet",
    "SourceFormat",
    "identify",
    "ReadFilter",
    "Cell",
    "Workbook",
    "Worksheet",
    "create_reader",
]

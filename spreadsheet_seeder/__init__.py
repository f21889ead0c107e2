"""
spreadsheet_seeder: turn spreadsheet workbooks into named tables of
normalized rows for a database seeding process.
"""

from spreadsheet_seeder.config import Settings, get_settings
from spreadsheet_seeder.errors import AmbiguousDateError, SeederError, UnreadableFileError
from spreadsheet_seeder.sources import SourceCollection, SourceFile, SourceFormat, SourceSheet
from spreadsheet_seeder.temporal import NOT_A_DATE, DateKind, TemporalNormalizer

__all__ = [
    "Settings",
    "get_settings",
    "SeederError",
    "UnreadableFileError",
    "AmbiguousDateError",
    "SourceCollection",
    "SourceFile",
    "SourceFormat",
    "SourceSheet",
    "NOT_A_DATE",
    "DateKind",
    "TemporalNormalizer",
]

"""
Configuration Module
====================

Loads ingestion settings from environment variables (prefix ``SEEDER_``)
and the ``.env`` file. The ingestion core only reads these values; the
host seeding process owns them and may inject its own ``Settings``.
"""

import re
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

DATE_ERROR_POLICIES = ("raise", "keep")


class Settings(BaseSettings):
    """
    Ingestion settings, read-only for the iterator and the normalizer.

    Attributes:
        delimiter: CSV column separator override; sniffed when unset
        skipper: prefix excluding a worksheet (by title) or a column (by header)
        temp_file_marker: leading file-name character of office lock files
        extensions: file suffixes picked up when walking a directory
        recursive: walk sub-directories too
        header: treat the first non-empty row as the header row
        offset / limit: data-row window applied after the header
        max_rows / max_columns: read filter caps on materialized rows and columns
        aliases: header -> output column rename
        date_formats: header -> number-format hint overriding the cell's own
        infer_string_dates: parse date-grammar strings found under non-date formats
        date_errors: "raise" to fail fast on an unparseable date cell, "keep" to
            record the error and pass the raw value through
        known_tables: sheet titles always treated as table markers
        table_marker_pattern: regex a sheet title must fully match to be a
            table marker
        input_encoding: text encoding of CSV sources
    """

    model_config = SettingsConfigDict(
        env_prefix="SEEDER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    delimiter: Optional[str] = None
    skipper: str = "~"
    temp_file_marker: str = "~"
    extensions: List[str] = [".xlsx", ".xlsm", ".xls", ".csv", ".ods"]
    recursive: bool = False
    header: bool = True
    offset: int = 0
    limit: Optional[int] = None
    max_rows: Optional[int] = None
    max_columns: Optional[int] = None
    aliases: Dict[str, str] = {}
    date_formats: Dict[str, str] = {}
    infer_string_dates: bool = True
    date_errors: str = "raise"
    known_tables: List[str] = []
    table_marker_pattern: str = r"^[a-z][a-z0-9_]*$"
    input_encoding: str = "utf-8-sig"

    @field_validator("skipper", "temp_file_marker")
    @classmethod
    def validate_marker(cls, v: str) -> str:
        """An empty marker would match (and skip) everything."""
        if v is None or v == "":
            raise ValueError("skip markers must be non-empty strings")
        return v

    @field_validator("delimiter")
    @classmethod
    def validate_delimiter(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if v == "\\t":
            v = "\t"
        if len(v) != 1:
            raise ValueError(f"delimiter must be a single character, got {v!r}")
        return v

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        exts = []
        for ext in v:
            e = str(ext).strip().lower()
            if not e:
                continue
            if not e.startswith("."):
                e = "." + e
            exts.append(e)
        return exts

    @field_validator("offset")
    @classmethod
    def validate_offset(cls, v: int) -> int:
        if v < 0:
            raise ValueError("offset must be >= 0")
        return v

    @field_validator("limit", "max_rows", "max_columns")
    @classmethod
    def validate_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("limit, max_rows and max_columns must be >= 1 when set")
        return v

    @field_validator("date_errors")
    @classmethod
    def validate_date_errors(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in DATE_ERROR_POLICIES:
            raise ValueError(f"date_errors must be one of {DATE_ERROR_POLICIES}, got {v!r}")
        return v

    @field_validator("table_marker_pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"table_marker_pattern is not a valid regex: {e}")
        return v


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Return the process-wide settings, creating them on first call.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings_instance
    _settings_instance = None

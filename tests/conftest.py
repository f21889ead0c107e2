"""
Pytest configuration and shared fixtures.
"""
import os
import sys
from pathlib import Path
from typing import Dict, List, Sequence

import pytest
from openpyxl import Workbook

# Add project root to path for imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from spreadsheet_seeder.config import Settings, reset_settings


def make_settings(**overrides) -> Settings:
    """Settings isolated from the process environment and any .env file."""
    return Settings(_env_file=None, **overrides)


def write_xlsx(path: Path, sheets: Dict[str, Sequence[Sequence]]) -> Path:
    """Create an .xlsx with one worksheet per ``sheets`` entry, in order."""
    wb = Workbook()
    first = True
    for title, rows in sheets.items():
        if first:
            ws = wb.active
            ws.title = title
            first = False
        else:
            ws = wb.create_sheet(title)
        for row in rows:
            ws.append(list(row))
    wb.save(path)
    return path


@pytest.fixture(autouse=True)
def _reset_settings_singleton():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def settings_factory():
    """``settings_factory(skipper="#", header=False)`` -> isolated Settings."""
    return make_settings


@pytest.fixture
def xlsx_factory(tmp_path):
    """Build workbooks under tmp_path: ``xlsx_factory("orders.xlsx", {"Sheet1": rows})``."""
    def _make(name: str, sheets: Dict[str, List[List]]) -> Path:
        return write_xlsx(tmp_path / name, sheets)
    return _make


@pytest.fixture
def sample_date_strings():
    """Date strings in the supported grammars, plus invalid ones."""
    return {
        "month_name_minutes": "October 15 2020 23:37",
        "month_name_fraction": "October 04 2020 05:31:02.44",
        "month_name_date_only": "October 15 2020",
        "month_abbrev_comma": "Oct 15, 2020",
        "iso_date": "2020-10-15",
        "iso_datetime": "2020-10-15T23:37:00",
        "slash_datetime": "2020/10/16 04:37:09",
        "invalid": "not_a_date",
        "invalid_day": "February 30 2020",
    }

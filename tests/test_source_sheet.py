"""
Tests for SourceSheet: header handling, column rules, row window and
date conversion of cell values.
"""
from datetime import datetime

import pytest

from spreadsheet_seeder.errors import AmbiguousDateError
from spreadsheet_seeder.sources.formats import SourceFormat
from spreadsheet_seeder.sources.readers import Cell, Worksheet
from spreadsheet_seeder.sources.sheet import SourceSheet


def _sheet(rows, settings, title="orders"):
    worksheet = Worksheet(
        title=title,
        rows=[[c if isinstance(c, Cell) else Cell(c) for c in row] for row in rows],
    )
    return SourceSheet("orders.xlsx", SourceFormat.XLSX, title, worksheet=worksheet, settings=settings)


class TestTableName:

    def test_defaults_to_title(self, settings):
        sheet = _sheet([], settings, title="Customers")
        assert sheet.table_name == "Customers"
        assert sheet.get_table_name() == "Customers"

    def test_set_table_name(self, settings):
        sheet = _sheet([], settings, title="Sheet1")
        sheet.set_table_name("orders")
        assert sheet.table_name == "orders"
        assert sheet.title == "Sheet1"

    @pytest.mark.parametrize("title,expected", [
        ("orders", True),
        ("order_lines", True),
        ("Sheet1", False),
        ("Products", False),
        ("my table", False),
    ])
    def test_title_is_table(self, settings, title, expected):
        assert _sheet([], settings, title=title).title_is_table() is expected

    def test_custom_marker_pattern(self, settings_factory):
        settings = settings_factory(table_marker_pattern=r"tbl_\w+")
        assert _sheet([], settings, title="tbl_orders").title_is_table() is True
        assert _sheet([], settings, title="orders").title_is_table() is False


class TestRows:

    def test_header_keys_rows(self, settings):
        sheet = _sheet([["id", "name"], [1, "Alice"], [2, "Bob"]], settings)
        assert sheet.header_row() == ["id", "name"]
        assert list(sheet.rows()) == [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]
        assert sheet.row_count() == 2

    def test_blank_rows_are_ignored(self, settings):
        sheet = _sheet([[None, None], ["id", "name"], [None, " "], [1, "Alice"]], settings)
        assert list(sheet.rows()) == [{"id": 1, "name": "Alice"}]

    def test_short_rows_are_padded_and_blanks_become_none(self, settings):
        sheet = _sheet([["id", "name", "city"], [1, ""], [2]], settings)
        assert list(sheet.rows()) == [
            {"id": 1, "name": None, "city": None},
            {"id": 2, "name": None, "city": None},
        ]

    def test_skip_marked_columns_are_dropped(self, settings):
        sheet = _sheet([["id", "~notes", "name"], [1, "internal", "Alice"]], settings)
        assert sheet.header_row() == ["id", "name"]
        assert list(sheet.rows()) == [{"id": 1, "name": "Alice"}]

    def test_blank_header_uses_position(self, settings):
        sheet = _sheet([["id", None, "name"], [1, "x", "Alice"]], settings)
        assert list(sheet.rows()) == [{"id": 1, 1: "x", "name": "Alice"}]

    def test_duplicate_headers_keep_both_columns(self, settings):
        sheet = _sheet([["id", "name", "name"], [1, "Alice", "Al"]], settings)
        assert sheet.header_row() == ["id", "name", "name_2"]
        assert list(sheet.rows()) == [{"id": 1, "name": "Alice", "name_2": "Al"}]

    def test_alias_colliding_with_header_keeps_both_columns(self, settings_factory):
        settings = settings_factory(aliases={"customerName": "name"})
        sheet = _sheet([["name", "customerName"], ["Alice", "Atelier"]], settings)
        assert list(sheet.rows()) == [{"name": "Alice", "name_1": "Atelier"}]

    def test_aliases(self, settings_factory):
        settings = settings_factory(aliases={"customerNumber": "customer_id"})
        sheet = _sheet([["customerNumber", "name"], [103, "Atelier"]], settings)
        assert sheet.header_row() == ["customer_id", "name"]
        assert list(sheet.rows()) == [{"customer_id": 103, "name": "Atelier"}]

    def test_offset_and_limit(self, settings_factory):
        rows = [["id"]] + [[i] for i in range(1, 6)]
        sheet = _sheet(rows, settings_factory(offset=1, limit=2))
        assert [r["id"] for r in sheet.rows()] == [2, 3]
        assert sheet.row_count() == 2

    def test_offset_past_end(self, settings_factory):
        sheet = _sheet([["id"], [1]], settings_factory(offset=5))
        assert list(sheet.rows()) == []

    def test_without_header(self, settings_factory):
        sheet = _sheet([["id", "name"], [1, "Alice"]], settings_factory(header=False))
        assert sheet.header_row() == []
        assert list(sheet.rows()) == [{0: "id", 1: "name"}, {0: 1, 1: "Alice"}]

    def test_empty_sheet(self, settings):
        sheet = _sheet([], settings)
        assert sheet.header_row() == []
        assert list(sheet.rows()) == []
        assert sheet.row_count() == 0


class TestDateConversion:

    def test_serial_formatted_cells(self, settings):
        sheet = _sheet(
            [["orderDate"], [Cell(44119, "yyyy-mm-dd")], [Cell(44119 + (23 * 60 + 37) / 1440, "yyyy-mm-dd h:mm")]],
            settings,
        )
        assert [r["orderDate"] for r in sheet.rows()] == [
            datetime(2020, 10, 15),
            datetime(2020, 10, 15, 23, 37),
        ]

    def test_general_numbers_stay_numbers(self, settings):
        sheet = _sheet([["quantity"], [Cell(44119, "General")]], settings)
        assert list(sheet.rows()) == [{"quantity": 44119}]

    def test_date_strings_are_parsed(self, settings):
        sheet = _sheet([["shippedDate"], ["October 15 2020 23:37"]], settings)
        assert list(sheet.rows()) == [{"shippedDate": datetime(2020, 10, 15, 23, 37)}]

    def test_unix_hint_per_column(self, settings_factory):
        settings = settings_factory(date_formats={"created": "U"})
        sheet = _sheet([["id", "created"], [1, 1602823029]], settings)
        assert list(sheet.rows()) == [{"id": 1, "created": datetime(2020, 10, 16, 4, 37, 9)}]

    def test_hint_matched_by_alias(self, settings_factory):
        settings = settings_factory(aliases={"ts": "created_at"}, date_formats={"created_at": "unix"})
        sheet = _sheet([["ts"], [1602823029]], settings)
        assert list(sheet.rows()) == [{"created_at": datetime(2020, 10, 16, 4, 37, 9)}]

    def test_ambiguous_date_raises_with_location(self, settings):
        sheet = _sheet([["id", "orderDate"], [1, Cell("next tuesday", "yyyy-mm-dd")]], settings)
        with pytest.raises(AmbiguousDateError) as exc_info:
            list(sheet.rows())
        error = exc_info.value
        assert error.sheet == "orders"
        assert error.row == 2
        assert error.column == "orderDate"
        assert "next tuesday" in str(error)

    def test_ambiguous_date_kept_when_configured(self, settings_factory):
        settings = settings_factory(date_errors="keep")
        sheet = _sheet(
            [["id", "orderDate"], [1, Cell("next tuesday", "yyyy-mm-dd")], [2, Cell(44119, "yyyy-mm-dd")]],
            settings,
        )
        rows = list(sheet.rows())
        assert rows == [
            {"id": 1, "orderDate": "next tuesday"},
            {"id": 2, "orderDate": datetime(2020, 10, 15)},
        ]
        assert len(sheet.errors) == 1
        assert sheet.errors[0].to_dict()["row"] == 2

    def test_errors_reset_on_each_pass(self, settings_factory):
        settings = settings_factory(date_errors="keep")
        sheet = _sheet([["d"], [Cell("soon", "yyyy-mm-dd")]], settings)
        list(sheet.rows())
        list(sheet.rows())
        assert len(sheet.errors) == 1

    def test_string_inference_disabled(self, settings_factory):
        settings = settings_factory(infer_string_dates=False)
        sheet = _sheet([["shippedDate"], ["October 15 2020"]], settings)
        assert list(sheet.rows()) == [{"shippedDate": "October 15 2020"}]

"""ExportService CSV and XLSX tests."""

import csv
import io
from decimal import Decimal
from uuid import uuid4

import openpyxl
import pytest

from stock_kernel.domain.dtos import CountEntry
from stock_kernel.exceptions import CountNotFoundError
from stock_services.export_service import (
    INVENTORY_COLUMNS,
    PART_COLUMNS,
    ExportService,
)


@pytest.fixture
def exporter(session):
    return ExportService(session)


def _rows(buffer: io.StringIO) -> list[dict]:
    return list(csv.DictReader(io.StringIO(buffer.getvalue())))


class TestExport:
    def test_parts_sheet(self, exporter, create_part):
        create_part("B-2", "Bracket", width="40.5")
        create_part("A-1", "Angle")

        out = io.StringIO()
        written = exporter.write_parts(out)

        rows = _rows(out)
        assert written == 2
        assert tuple(rows[0]) == PART_COLUMNS
        assert [r["Part_ID"] for r in rows] == ["A-1", "B-2"]
        assert rows[0]["Size_W"] == ""
        assert Decimal(rows[1]["Size_W"]) == Decimal("40.5")

    def test_locations_sheet(self, exporter, location_a, location_b):
        out = io.StringIO()
        exporter.write_locations(out)

        assert [(r["Location_ID"], r["Type"], r["Zone"]) for r in _rows(out)] == [
            ("A1", "Rack", "North"),
            ("B2", "Rack", "South"),
        ]

    def test_inventory_sheet_includes_zero_rows(
        self, exporter, move_service, part, location_a, location_b, stock, test_actor_id
    ):
        stock(part, location_a, 4)
        stock(part, location_b, 2)
        move_service.apply_move(test_actor_id, part.id, location_b.id, -2)

        out = io.StringIO()
        exporter.write_inventory(out)
        rows = _rows(out)

        assert tuple(rows[0]) == INVENTORY_COLUMNS
        assert [(r["Location_ID"], r["Part_ID"], r["Quantity"]) for r in rows] == [
            ("A1", "ACM-001", "4"),
            ("B2", "ACM-001", "0"),
        ]
        assert rows[0]["Location_Zone"] == "North"

    def test_count_records_sheet(
        self, exporter, count_service, count_selector, part, location_a, stock, test_actor_id
    ):
        stock(part, location_a, 6)
        count = count_service.create("Q4", None, test_actor_id)
        record = count_selector.records(count.id)[0]
        count_service.record_counts(
            count.id, [CountEntry(record.id, 5, notes="one damaged")], test_actor_id
        )

        out = io.StringIO()
        assert exporter.write_count_records(out, count.id) == 1

        row = _rows(out)[0]
        assert (row["Expected_Quantity"], row["Counted_Quantity"], row["Variance"]) == ("6", "5", "-1")
        assert row["Status"] == "counted"
        assert row["Notes"] == "one damaged"

    def test_unknown_count(self, exporter):
        with pytest.raises(CountNotFoundError):
            exporter.write_count_records(io.StringIO(), uuid4())

    def test_export_all_writes_three_files(self, exporter, part, location_a, stock, tmp_path):
        stock(part, location_a, 1)

        paths = exporter.export_all(tmp_path / "out")

        assert set(paths) == {"parts", "locations", "inventory"}
        with open(paths["inventory"], newline="", encoding="utf-8") as f:
            assert len(list(csv.DictReader(f))) == 1


class TestWorkbook:
    def test_workbook_has_three_sheets(self, exporter, part, location_a, stock, tmp_path):
        stock(part, location_a, 3)
        path = tmp_path / "inventory.xlsx"

        counts = exporter.write_workbook(path)

        assert counts == {"Parts": 1, "Locations": 1, "Inventory": 1}
        wb = openpyxl.load_workbook(path, read_only=True)
        try:
            assert wb.sheetnames == ["Parts", "Locations", "Inventory"]
            rows = list(wb["Inventory"].iter_rows(values_only=True))
        finally:
            wb.close()
        assert rows[0] == INVENTORY_COLUMNS
        data = dict(zip(INVENTORY_COLUMNS, rows[1]))
        assert (data["Part_ID"], data["Location_ID"], data["Quantity"]) == ("ACM-001", "A1", 3)
        assert data["Brand"] is None

    def test_count_workbook(self, exporter, count_service, part, location_a, stock, tmp_path, test_actor_id):
        stock(part, location_a, 2)
        count = count_service.create("Q1", None, test_actor_id)
        path = tmp_path / "count.xlsx"

        assert exporter.write_count_workbook(path, count.id) == 1

        wb = openpyxl.load_workbook(path, read_only=True)
        try:
            rows = list(wb["Count"].iter_rows(values_only=True))
        finally:
            wb.close()
        data = dict(zip(rows[0], rows[1]))
        assert data["Status"] == "pending"
        assert data["Counted_Quantity"] is None

    def test_unknown_count_writes_nothing(self, exporter, tmp_path):
        path = tmp_path / "missing.xlsx"
        with pytest.raises(CountNotFoundError):
            exporter.write_count_workbook(path, uuid4())
        assert not path.exists()

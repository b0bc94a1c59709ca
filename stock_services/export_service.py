"""
ExportService -- flat-file export of the catalog, the store and counts.

Responsibility:
    Writes Parts, Locations, Inventory and per-count record tables as CSV
    files or as XLSX workbooks (openpyxl).
    Column headers match the spreadsheet layout used by the import and
    receiving sheets, so an export can be edited and fed back in.

Architecture position:
    Services -- read-only; built on the selector base class and never
    flushes or commits.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import IO, Any
from uuid import UUID

import openpyxl
from sqlalchemy import select

from stock_kernel.exceptions import CountNotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.catalog import Location, Part
from stock_kernel.models.inventory import InventoryRecord
from stock_kernel.models.quarterly_count import QuarterlyCount, QuarterlyCountRecord
from stock_kernel.selectors.base import BaseSelector

logger = get_logger("services.export")

PART_COLUMNS = (
    "Part_ID",
    "Part_Name",
    "Color",
    "Category",
    "Job_Number",
    "Size_W",
    "Size_L",
    "Thickness_mm",
    "Brand",
    "Pallet",
    "Unit",
)
LOCATION_COLUMNS = ("Location_ID", "Type", "Zone")
INVENTORY_COLUMNS = PART_COLUMNS + (
    "Location_ID",
    "Location_Type",
    "Location_Zone",
    "Quantity",
)
COUNT_RECORD_COLUMNS = PART_COLUMNS + (
    "Location_ID",
    "Expected_Quantity",
    "Counted_Quantity",
    "Variance",
    "Status",
    "Notes",
)


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


def _part_row(part: Part) -> dict[str, Any]:
    return {
        "Part_ID": part.part_code,
        "Part_Name": part.name,
        "Color": part.color,
        "Category": part.category,
        "Job_Number": part.job_number,
        "Size_W": part.width,
        "Size_L": part.length,
        "Thickness_mm": part.thickness,
        "Brand": part.brand,
        "Pallet": part.pallet,
        "Unit": part.unit,
    }


def _write_csv(out: IO[str], columns: tuple[str, ...], rows: Iterable[dict[str, Any]]) -> int:
    writer = csv.DictWriter(out, fieldnames=columns)
    writer.writeheader()
    written = 0
    for row in rows:
        writer.writerow({k: "" if v is None else _plain(v) for k, v in row.items()})
        written += 1
    return written


def _write_workbook(
    path: Path,
    sheets: dict[str, tuple[tuple[str, ...], Iterable[dict[str, Any]]]],
) -> dict[str, int]:
    """One worksheet per entry; blank cells for missing values."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    counts: dict[str, int] = {}
    for title, (columns, rows) in sheets.items():
        sheet = wb.create_sheet(title)
        sheet.append(list(columns))
        written = 0
        for row in rows:
            sheet.append([_plain(row[c]) for c in columns])
            written += 1
        counts[title] = written
    wb.save(path)
    return counts


class ExportService(BaseSelector):
    """CSV and XLSX writers over the current database state."""

    # -------------------------------------------------------------------------
    # Row producers
    # -------------------------------------------------------------------------

    def part_rows(self) -> Iterator[dict[str, Any]]:
        for part in self.session.execute(select(Part).order_by(Part.part_code)).scalars():
            yield _part_row(part)

    def location_rows(self) -> Iterator[dict[str, Any]]:
        locations = self.session.execute(
            select(Location).order_by(Location.location_code)
        ).scalars()
        for loc in locations:
            yield {
                "Location_ID": loc.location_code,
                "Type": loc.location_type,
                "Zone": loc.zone,
            }

    def inventory_rows(self) -> Iterator[dict[str, Any]]:
        """One row per (part, location) store entry, zero quantities included."""
        rows = self.session.execute(
            select(InventoryRecord.qty, Part, Location)
            .join(Part, Part.id == InventoryRecord.part_id)
            .join(Location, Location.id == InventoryRecord.location_id)
            .order_by(Location.location_code, Part.part_code)
        ).all()
        for qty, part, location in rows:
            yield {
                **_part_row(part),
                "Location_ID": location.location_code,
                "Location_Type": location.location_type,
                "Location_Zone": location.zone,
                "Quantity": qty,
            }

    def count_record_rows(self, count_id: UUID) -> list[dict[str, Any]]:
        """
        Records of one quarterly count in sheet order.

        Raises:
            CountNotFoundError: unknown count.
        """
        if self.session.get(QuarterlyCount, count_id) is None:
            raise CountNotFoundError(str(count_id))

        rows = self.session.execute(
            select(QuarterlyCountRecord, Part, Location)
            .join(Part, Part.id == QuarterlyCountRecord.part_id)
            .join(Location, Location.id == QuarterlyCountRecord.location_id)
            .where(QuarterlyCountRecord.count_id == count_id)
            .order_by(Location.location_code, Part.part_code)
        ).all()
        return [
            {
                **_part_row(part),
                "Location_ID": location.location_code,
                "Expected_Quantity": record.expected_qty,
                "Counted_Quantity": record.counted_qty,
                "Variance": record.variance,
                "Status": record.status,
                "Notes": record.notes,
            }
            for record, part, location in rows
        ]

    # -------------------------------------------------------------------------
    # CSV
    # -------------------------------------------------------------------------

    def write_parts(self, out: IO[str]) -> int:
        """Write every part; returns the number of data rows."""
        return _write_csv(out, PART_COLUMNS, self.part_rows())

    def write_locations(self, out: IO[str]) -> int:
        return _write_csv(out, LOCATION_COLUMNS, self.location_rows())

    def write_inventory(self, out: IO[str]) -> int:
        return _write_csv(out, INVENTORY_COLUMNS, self.inventory_rows())

    def write_count_records(self, out: IO[str], count_id: UUID) -> int:
        """Raises CountNotFoundError for an unknown count."""
        return _write_csv(out, COUNT_RECORD_COLUMNS, self.count_record_rows(count_id))

    def export_all(self, directory: Path | str) -> dict[str, Path]:
        """
        Write parts.csv, locations.csv and inventory.csv into ``directory``.

        Returns:
            Table name -> written path.
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        writers = {
            "parts": self.write_parts,
            "locations": self.write_locations,
            "inventory": self.write_inventory,
        }
        paths: dict[str, Path] = {}
        counts: dict[str, int] = {}
        for name, write in writers.items():
            path = directory / f"{name}.csv"
            with open(path, "w", newline="", encoding="utf-8") as f:
                counts[name] = write(f)
            paths[name] = path

        logger.info("export_written", extra={"directory": str(directory), "rows": counts})
        return paths

    # -------------------------------------------------------------------------
    # XLSX
    # -------------------------------------------------------------------------

    def write_workbook(self, path: Path | str) -> dict[str, int]:
        """
        Write one workbook with Parts, Locations and Inventory sheets.

        The layout is the one the bulk import reads, so an edited export can
        be loaded back.

        Returns:
            Sheet title -> number of data rows.
        """
        path = Path(path)
        counts = _write_workbook(
            path,
            {
                "Parts": (PART_COLUMNS, self.part_rows()),
                "Locations": (LOCATION_COLUMNS, self.location_rows()),
                "Inventory": (INVENTORY_COLUMNS, self.inventory_rows()),
            },
        )
        logger.info("workbook_written", extra={"path": str(path), "rows": counts})
        return counts

    def write_count_workbook(self, path: Path | str, count_id: UUID) -> int:
        """Raises CountNotFoundError for an unknown count."""
        rows = self.count_record_rows(count_id)
        counts = _write_workbook(Path(path), {"Count": (COUNT_RECORD_COLUMNS, rows)})
        logger.info(
            "workbook_written",
            extra={"path": str(path), "count_id": str(count_id), "rows": counts},
        )
        return counts["Count"]

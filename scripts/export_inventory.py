#!/usr/bin/env python3
"""
Export parts, locations and inventory as CSV files or one XLSX workbook.

Usage:
    python3 scripts/export_inventory.py OUTPUT_DIR [--config FILE] [--count COUNT_ID] [--xlsx]

With --count the records of that quarterly count are also written to
count-<COUNT_ID>.csv (or .xlsx).
"""

import argparse
import sys
from pathlib import Path
from uuid import UUID

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from stock_config import get_active_config
from stock_kernel.db.engine import session_scope
from stock_services.bootstrap import bootstrap
from stock_services.export_service import ExportService


def main() -> int:
    parser = argparse.ArgumentParser(description="Export the stock ledger")
    parser.add_argument("output_dir", type=Path, help="Directory to write into")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--count", type=UUID, default=None, help="Quarterly count id")
    parser.add_argument("--xlsx", action="store_true", help="Write XLSX workbooks instead of CSV")
    args = parser.parse_args()

    bootstrap(get_active_config(args.config))
    with session_scope() as session:
        exporter = ExportService(session)
        if args.xlsx:
            args.output_dir.mkdir(parents=True, exist_ok=True)
            paths = {"workbook": args.output_dir / "inventory.xlsx"}
            exporter.write_workbook(paths["workbook"])
        else:
            paths = exporter.export_all(args.output_dir)

        if args.count is not None:
            suffix = "xlsx" if args.xlsx else "csv"
            path = args.output_dir / f"count-{args.count}.{suffix}"
            if args.xlsx:
                exporter.write_count_workbook(path, args.count)
            else:
                with open(path, "w", newline="", encoding="utf-8") as f:
                    exporter.write_count_records(f, args.count)
            paths["count"] = path

    for name, path in paths.items():
        print(f"{name:<10} {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Check that every stored quantity equals the sum of its move ledger.

Usage:
    python3 scripts/verify_ledger.py [--config path/to/config.yaml]

Exit status is 0 when the store and the ledger agree and 1 when at least
one (part, location) pair differs.  STOCK_DATABASE_URL overrides the
configured database.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from stock_config import get_active_config
from stock_kernel.db.engine import session_scope
from stock_kernel.selectors.move_selector import MoveSelector
from stock_services.bootstrap import bootstrap


def verify(config_path: Path | None) -> int:
    bootstrap(get_active_config(config_path))
    with session_scope() as session:
        discrepancies = MoveSelector(session).ledger_discrepancies()

    if not discrepancies:
        print("Ledger OK: every stored quantity equals its ledger sum.")
        return 0

    print(f"{len(discrepancies)} pair(s) differ from the ledger:")
    for d in discrepancies:
        print(
            f"  part={d.part_id} location={d.location_id} "
            f"store={d.store_qty} ledger={d.ledger_sum}"
        )
    return 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Verify store quantities against the move ledger")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: packaged defaults)",
    )
    args = parser.parse_args()
    return verify(args.config)


if __name__ == "__main__":
    sys.exit(main())

"""Seed the demo roster and create the initial accounts.

Prints the credentials of every account it created or refreshed.
"""

from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path
from typing import Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.level_two.level_two.database.bootstrap import apply_seed_sql, ensure_initial_users


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--accounts-only", action="store_true", help="skip the demo roster, only create accounts")
    args = parser.parse_args(argv)

    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    if not args.accounts_only:
        apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
        print("OK: demo roster seeded")

    accounts = ensure_initial_users(db_config)
    print("Accounts:")
    for acc in accounts:
        print(f"  {acc.role:<8} {acc.name:<10} {acc.email:<22} {acc.password}")


if __name__ == "__main__":
    main()

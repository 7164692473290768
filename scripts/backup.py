"""Back up the Level Two database (students, attendance, visits, assignments, users).

Runs `mysqldump` against the target of the active settings module and writes
`<out-dir>/<database>_<timestamp>.sql`. The password is handed over through
MYSQL_PWD so it never shows up in the process list.
"""

from __future__ import annotations

import argparse
import importlib
import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.level_two.level_two.database.connection import CHARSET, DBConfig


def dump_command(target: DBConfig) -> list[str]:
    return [
        "mysqldump",
        f"-h{target.host}",
        f"-P{target.port}",
        f"-u{target.user}",
        f"--default-character-set={CHARSET}",
        "--single-transaction",
        target.database,
    ]


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--out-dir", type=Path, default=REPO_ROOT / "backups", help="where dumps are written")
    args = parser.parse_args(argv)

    settings = importlib.import_module(get_settings_module())
    target = DBConfig.from_dict(settings.DB_CONFIG)

    args.out_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    out_file = args.out_dir / f"{target.database}_{ts}.sql"

    env = dict(os.environ, MYSQL_PWD=target.password)
    try:
        with out_file.open("wb") as f:
            subprocess.run(dump_command(target), stdout=f, stderr=subprocess.PIPE, env=env, check=True)
    except FileNotFoundError:
        out_file.unlink(missing_ok=True)
        raise SystemExit("`mysqldump` not found. Install the MySQL client tools.")
    except subprocess.CalledProcessError as e:
        out_file.unlink(missing_ok=True)
        raise SystemExit(f"backup of {target.describe()} failed: {e.stderr.decode(errors='replace').strip()}")
    print(f"OK: backup of {target.describe()} created: {out_file}")


if __name__ == "__main__":
    main()

"""
Create the goal rows and the notes row when they are missing.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend import goals
from backend.dependencies import get_db_client
from shared import constants


logger = logging.getLogger(__name__)


def seed(db, total: int = constants.TOTAL_GOALS) -> tuple[int, bool]:
    """Returns (goals created, whether the notes row was created)."""
    created = goals.ensure_goals(db, total)
    notes_created = db.get(constants.NOTES_TABLE, constants.NOTES_ROW_ID) is None
    if notes_created:
        goals.save_notes(db, "")
    return created, notes_created


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed goals and notes")
    parser.add_argument(
        "--total",
        type=int,
        default=constants.TOTAL_GOALS,
        help="Number of goals to ensure exist",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    created, notes_created = seed(get_db_client(), args.total)
    logger.info("Created %d goal(s)%s", created, " and the notes row" if notes_created else "")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

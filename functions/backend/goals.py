"""
Goals checklist and the free-text notes shown beside it.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from backend.db import DbClient
from shared import constants
from shared.errors import NotFoundError

GOALS = constants.GOALS_TABLE
NOTES = constants.NOTES_TABLE


def list_goals(db: DbClient) -> list[dict]:
    return db.select(GOALS, order_by="id")


def progress(db: DbClient, total: int = constants.TOTAL_GOALS) -> dict:
    completed = db.count(GOALS, filters={"checked": True})
    return {
        "completed": completed,
        "total": total,
        "percent": round(completed / total * 100) if total else 0,
    }


def _get_goal(db: DbClient, goal_id: int) -> dict:
    goal = db.get(GOALS, goal_id)
    if not goal:
        raise NotFoundError("Goal not found")
    return goal


def toggle_goal(db: DbClient, goal_id: int, today: Optional[date] = None) -> dict:
    """Flip checked. Checking a goal without a date stamps it with today."""
    goal = _get_goal(db, goal_id)
    checked = not goal["checked"]
    target_date = goal["target_date"]
    if checked and not target_date:
        target_date = (today or datetime.now(timezone.utc).date()).isoformat()
    return db.update(GOALS, goal_id, {"checked": checked, "target_date": target_date})


def set_goal_date(db: DbClient, goal_id: int, target_date: Optional[date]) -> dict:
    _get_goal(db, goal_id)
    return db.update(
        GOALS,
        goal_id,
        {"target_date": target_date.isoformat() if target_date else None},
    )


def ensure_goals(db: DbClient, total: int = constants.TOTAL_GOALS) -> int:
    """Create any missing goal rows 1..total. Returns how many were created."""
    existing = {goal["id"] for goal in db.select(GOALS)}
    created = 0
    for goal_id in range(1, total + 1):
        if goal_id not in existing:
            db.insert(GOALS, {"id": goal_id, "checked": False})
            created += 1
    return created


def get_notes(db: DbClient) -> str:
    note = db.get(NOTES, constants.NOTES_ROW_ID)
    return note["content"] if note else ""


def save_notes(db: DbClient, content: str) -> str:
    if db.update(NOTES, constants.NOTES_ROW_ID, {"content": content}) is None:
        db.insert(NOTES, {"id": constants.NOTES_ROW_ID, "content": content})
    return content

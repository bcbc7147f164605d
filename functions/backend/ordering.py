"""
display_order helpers shared by the gallery, music and website screens.
"""

from __future__ import annotations

import random
from typing import Optional

from backend.db import DbClient
from shared.types import MoveDirection


def next_display_order(
    db: DbClient, table: str, *, filters: Optional[dict] = None
) -> int:
    return db.max_display_order(table, filters=filters) + 1


def swap_display_order(
    db: DbClient,
    table: str,
    rows: list[dict],
    row_id: str,
    direction: MoveDirection | str,
) -> bool:
    """
    Swap the display_order of a row with its neighbour in rows.

    rows must already be sorted by display_order. Returns False when the
    row is unknown or already at the edge in that direction.
    """
    direction = MoveDirection(direction)
    index = next((i for i, row in enumerate(rows) if row["id"] == row_id), -1)
    if index == -1:
        return False
    swap_index = index - 1 if direction == MoveDirection.UP else index + 1
    if swap_index < 0 or swap_index >= len(rows):
        return False

    current, neighbour = rows[index], rows[swap_index]
    current_order = current.get("display_order") or 0
    neighbour_order = neighbour.get("display_order") or 0
    db.update(table, current["id"], {"display_order": neighbour_order})
    db.update(table, neighbour["id"], {"display_order": current_order})
    return True


def shuffle_display_order(
    db: DbClient,
    table: str,
    rows: list[dict],
    rng: Optional[random.Random] = None,
) -> list[str]:
    """Assign display_order 1..n in a random permutation. Returns the new id order."""
    if len(rows) < 2:
        return [row["id"] for row in rows]
    shuffled = list(rows)
    (rng or random).shuffle(shuffled)
    for position, row in enumerate(shuffled, start=1):
        db.update(table, row["id"], {"display_order": position})
    return [row["id"] for row in shuffled]

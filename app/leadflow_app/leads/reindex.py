from __future__ import annotations

import logging
from typing import Any, Iterable

from leadflow_app.core.errors import NotFoundError

LOGGER = logging.getLogger(__name__)


def plan_reindex(ordered_rows: Iterable[tuple[int, int]]) -> list[tuple[int, int]]:
    """Return ``(new_index, row_id)`` pairs for rows whose index must change.

    ``ordered_rows`` is ``(row_id, row_index)`` sorted by (row_index, id).
    """
    updates: list[tuple[int, int]] = []
    for position, (row_id, row_index) in enumerate(ordered_rows):
        if row_index != position:
            updates.append((position, row_id))
    return updates


def reindex_sheet(repo: Any, user_id: str, sheet_id: int) -> int:
    updated = repo.reindex_sheet_rows(user_id, sheet_id)
    if updated is None:
        raise NotFoundError("Lead file not found.")
    LOGGER.info(
        "Reindexed lead sheet %s (%s rows).",
        sheet_id,
        updated,
        extra={"event": "lead_sheet_reindexed", "sheet_id": sheet_id, "user_id": user_id},
    )
    return updated

from __future__ import annotations

import sys
from pathlib import Path

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from leadflow_app.core.errors import NotFoundError
from leadflow_app.leads.reindex import plan_reindex, reindex_sheet

from conftest import OTHER_USER, TEST_USER


def test_plan_reindex_only_touches_rows_out_of_place() -> None:
    ordered = [(10, 0), (11, 3), (12, 3), (13, 9)]
    assert plan_reindex(ordered) == [(1, 11), (2, 12), (3, 13)]


def test_plan_reindex_is_empty_for_contiguous_rows() -> None:
    assert plan_reindex([(5, 0), (6, 1), (7, 2)]) == []
    assert plan_reindex([]) == []


def _sheet_with_gaps(repo) -> int:
    sheet = repo.create_sheet(TEST_USER, "Gaps")
    repo.reserve_row_indexes(sheet["id"], 8)
    repo.insert_row_chunk(
        sheet["id"],
        [(7, "c@acme.io", None), (0, "a@acme.io", None), (3, "b@acme.io", None)],
    )
    return sheet["id"]


def test_reindex_closes_gaps_and_keeps_order(repo) -> None:
    sheet_id = _sheet_with_gaps(repo)

    assert reindex_sheet(repo, TEST_USER, sheet_id) == 3

    rows, _ = repo.list_rows(sheet_id)
    assert [(row["rowIndex"], row["businessEmail"]) for row in rows] == [
        (0, "a@acme.io"),
        (1, "b@acme.io"),
        (2, "c@acme.io"),
    ]


def test_reindex_is_idempotent(repo) -> None:
    sheet_id = _sheet_with_gaps(repo)
    reindex_sheet(repo, TEST_USER, sheet_id)
    before, _ = repo.list_rows(sheet_id)

    assert reindex_sheet(repo, TEST_USER, sheet_id) == 3
    after, _ = repo.list_rows(sheet_id)
    assert [(row["id"], row["rowIndex"]) for row in after] == [(row["id"], row["rowIndex"]) for row in before]


def test_reindex_resets_sequence_for_next_insert(repo) -> None:
    sheet_id = _sheet_with_gaps(repo)
    reindex_sheet(repo, TEST_USER, sheet_id)

    created = repo.add_rows(sheet_id, [("d@acme.io", None)])
    assert created[0]["rowIndex"] == 3


def test_reindex_after_delete(repo) -> None:
    sheet = repo.create_sheet(TEST_USER, "Deletes")
    created = repo.add_rows(sheet["id"], [(f"r{i}@acme.io", None) for i in range(4)])
    repo.delete_rows(sheet["id"], [created[1]["id"]])

    reindex_sheet(repo, TEST_USER, sheet["id"])

    rows, total = repo.list_rows(sheet["id"])
    assert total == 3
    assert [row["rowIndex"] for row in rows] == [0, 1, 2]
    assert [row["businessEmail"] for row in rows] == ["r0@acme.io", "r2@acme.io", "r3@acme.io"]


def test_reindex_empty_sheet(repo) -> None:
    sheet = repo.create_sheet(TEST_USER, "Empty")
    assert reindex_sheet(repo, TEST_USER, sheet["id"]) == 0


def test_reindex_requires_ownership(repo) -> None:
    sheet_id = _sheet_with_gaps(repo)
    with pytest.raises(NotFoundError):
        reindex_sheet(repo, OTHER_USER, sheet_id)
    rows, _ = repo.list_rows(sheet_id)
    assert [row["rowIndex"] for row in rows] == [0, 3, 7]

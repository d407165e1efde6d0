from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from leadflow_app.core.errors import NotFoundError, ParseError
from leadflow_app.infrastructure.db import DataExecutionError
from leadflow_app.leads.import_pipeline import (
    import_lead_file,
    parse_mapping,
    partition_rows,
    validate_sheet_name,
)
from leadflow_app.leads.parsing import ParsedSheet

from conftest import OTHER_USER, TEST_USER

SCENARIO_CSV = b"Email,Site\na@acme.io,https://acme.io\nbad,x\nb@gmail.com,https://b.com\n"
SCENARIO_MAPPING = json.dumps({"businessEmail": "Email", "websiteUrl": "Site"})


def test_validate_sheet_name_trims_and_bounds_length() -> None:
    assert validate_sheet_name("  Q3 leads ") == "Q3 leads"
    with pytest.raises(ValueError):
        validate_sheet_name("   ")
    with pytest.raises(ValueError):
        validate_sheet_name(None)
    with pytest.raises(ValueError):
        validate_sheet_name("x" * 256)


def test_parse_mapping_accepts_json_object_only() -> None:
    assert parse_mapping(None) == {}
    assert parse_mapping("") == {}
    assert parse_mapping('{"businessEmail": "Mail"}') == {"businessEmail": "Mail"}
    assert parse_mapping({"websiteUrl": "Site"}) == {"websiteUrl": "Site"}
    with pytest.raises(ValueError):
        parse_mapping("{not json")
    with pytest.raises(ValueError):
        parse_mapping('["Email"]')


def test_partition_rows_counts_every_reason() -> None:
    parsed = ParsedSheet(
        headers=["Email", "Website"],
        rows=[["a@acme.io", "https://acme.io"], [None, "https://x.io"], ["c@yahoo.com"], []],
    )
    result = partition_rows(parsed)
    assert result.accepted == [("a@acme.io", "https://acme.io")]
    assert result.rejected_by_reason == {"missing_or_invalid_email": 2, "personal_domain": 1}
    assert result.rejected == 3


def test_partition_rows_without_email_column_rejects_everything() -> None:
    parsed = ParsedSheet(headers=["Name"], rows=[["Acme"], ["Globex"]])
    result = partition_rows(parsed)
    assert result.accepted == []
    assert result.rejected_by_reason["missing_or_invalid_email"] == 2


def test_new_import_end_to_end(repo) -> None:
    summary = import_lead_file(repo, TEST_USER, SCENARIO_CSV, "leads.csv", "new", sheet_name="Acme", mapping=SCENARIO_MAPPING)

    payload = summary.to_payload()
    assert payload["sheetName"] == "Acme"
    assert payload["rowCount"] == 1
    assert payload["totalRows"] == 3
    assert payload["rejected"] == 2
    assert payload["rejectedByReason"] == {"missing_or_invalid_email": 1, "personal_domain": 1}

    rows, total = repo.list_rows(summary.id)
    assert total == 1
    assert rows[0]["rowIndex"] == 0
    assert rows[0]["businessEmail"] == "a@acme.io"
    assert rows[0]["websiteUrl"] == "https://acme.io"
    assert rows[0]["emailStatus"] == "Pending"

    sheet = repo.get_sheet(TEST_USER, summary.id)
    assert sheet["sourceFileExtension"] == "csv"
    assert sheet["rowCount"] == 1


def test_add_import_continues_row_indexes(repo) -> None:
    first = import_lead_file(repo, TEST_USER, b"Email\na@acme.io\nb@acme.io\n", "a.csv", "new", sheet_name="Acme")
    second = import_lead_file(
        repo,
        TEST_USER,
        b"Business Email\nc@acme.io\nd@acme.io\n",
        "b.csv",
        "add",
        target_sheet_id=first.id,
    )
    assert second.id == first.id
    assert second.sheet_name == "Acme"

    rows, total = repo.list_rows(first.id)
    assert total == 4
    assert [row["rowIndex"] for row in rows] == [0, 1, 2, 3]
    assert [row["businessEmail"] for row in rows] == ["a@acme.io", "b@acme.io", "c@acme.io", "d@acme.io"]


def test_import_inserts_in_chunks_with_contiguous_indexes(repo) -> None:
    lines = "\n".join(f"lead{i}@acme.io" for i in range(7))
    summary = import_lead_file(repo, TEST_USER, f"Email\n{lines}\n".encode(), "a.csv", "new", sheet_name="Big", chunk_size=3)
    rows, total = repo.list_rows(summary.id, page_size=100)
    assert total == 7
    assert [row["rowIndex"] for row in rows] == list(range(7))


def test_failed_chunk_keeps_earlier_chunks_and_surfaces_error(repo, monkeypatch) -> None:
    real_insert = repo.insert_row_chunk
    calls: list[int] = []

    def _insert_failing_on_second_chunk(sheet_id, rows):
        calls.append(len(rows))
        if len(calls) == 2:
            raise DataExecutionError("Batch execution failed.")
        return real_insert(sheet_id, rows)

    monkeypatch.setattr(repo, "insert_row_chunk", _insert_failing_on_second_chunk)
    lines = "\n".join(f"lead{i}@acme.io" for i in range(7))

    with pytest.raises(DataExecutionError):
        import_lead_file(repo, TEST_USER, f"Email\n{lines}\n".encode(), "a.csv", "new", sheet_name="Partial", chunk_size=3)

    assert calls == [3, 3]
    (sheet,) = repo.list_sheets(TEST_USER)
    rows, total = repo.list_rows(sheet["id"], page_size=100)
    assert total == 3
    assert [row["businessEmail"] for row in rows] == ["lead0@acme.io", "lead1@acme.io", "lead2@acme.io"]


def test_blank_csv_lines_count_as_rejected_rows(repo) -> None:
    raw = b"Email,Site\na@acme.io,x\n\nb@acme.io,y\n"
    summary = import_lead_file(repo, TEST_USER, raw, "a.csv", "new", sheet_name="Gaps")
    assert summary.total_rows == 3
    assert summary.row_count == 2
    assert summary.rejected == 1


def test_zero_eligible_rows_still_creates_sheet(repo) -> None:
    summary = import_lead_file(repo, TEST_USER, b"Email\nme@gmail.com\n", "a.csv", "new", sheet_name="Empty")
    assert summary.row_count == 0
    assert summary.rejected == 1
    assert repo.get_sheet(TEST_USER, summary.id) is not None


def test_parse_failure_does_not_create_sheet(repo) -> None:
    with pytest.raises(ParseError):
        import_lead_file(repo, TEST_USER, b"", "a.csv", "new", sheet_name="Broken")
    assert repo.list_sheets(TEST_USER) == []


def test_invalid_requests_are_rejected_before_parsing(repo) -> None:
    with pytest.raises(ValueError):
        import_lead_file(repo, TEST_USER, SCENARIO_CSV, "a.pdf", "new", sheet_name="X")
    with pytest.raises(ValueError):
        import_lead_file(repo, TEST_USER, SCENARIO_CSV, "a.csv", "replace", sheet_name="X")
    with pytest.raises(ValueError):
        import_lead_file(repo, TEST_USER, SCENARIO_CSV, "a.csv", "new", sheet_name=" ")
    with pytest.raises(ValueError):
        import_lead_file(repo, TEST_USER, SCENARIO_CSV, "a.csv", "add")
    with pytest.raises(ValueError):
        import_lead_file(repo, TEST_USER, SCENARIO_CSV, "a.csv", "new", sheet_name="X", mapping="{oops")
    assert repo.list_sheets(TEST_USER) == []


def test_add_to_other_users_sheet_is_not_found(repo) -> None:
    theirs = repo.create_sheet(OTHER_USER, "Theirs")
    with pytest.raises(NotFoundError):
        import_lead_file(repo, TEST_USER, SCENARIO_CSV, "a.csv", "add", target_sheet_id=theirs["id"])
    _, total = repo.list_rows(theirs["id"])
    assert total == 0


def test_signature_must_belong_to_user(repo) -> None:
    theirs = repo.create_signature(OTHER_USER, "Theirs", "<p>Bye</p>")
    with pytest.raises(ValueError):
        import_lead_file(repo, TEST_USER, SCENARIO_CSV, "a.csv", "new", sheet_name="X", signature_id=theirs["id"])


def test_import_attaches_signature(repo) -> None:
    signature = repo.create_signature(TEST_USER, "Default", "<p>Thanks</p>")
    created = import_lead_file(
        repo, TEST_USER, SCENARIO_CSV, "a.csv", "new", sheet_name="Signed", signature_id=signature["id"]
    )
    assert repo.get_sheet(TEST_USER, created.id)["signatureId"] == signature["id"]

    other = repo.create_signature(TEST_USER, "Other", "<p>Cheers</p>")
    import_lead_file(repo, TEST_USER, SCENARIO_CSV, "a.csv", "add", target_sheet_id=created.id, signature_id=other["id"])
    sheet = repo.get_sheet(TEST_USER, created.id)
    assert sheet["signatureId"] == other["id"]
    assert sheet["signatureName"] == "Other"

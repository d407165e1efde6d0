from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from typing import Any, Mapping

from leadflow_app.core.errors import NotFoundError
from leadflow_app.leads.columns import resolve_columns
from leadflow_app.leads.constants import (
    FIELD_BUSINESS_EMAIL,
    FIELD_WEBSITE_URL,
    IMPORT_OPTION_ADD,
    IMPORT_OPTION_NEW,
    IMPORT_OPTIONS,
    REJECT_REASONS,
    SHEET_NAME_MAX_LENGTH,
    SUPPORTED_FILE_EXTENSIONS,
)
from leadflow_app.leads.eligibility import classify
from leadflow_app.leads.parsing import ParsedSheet, cell_at, file_extension, parse_spreadsheet

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100


@dataclass
class ImportSummary:
    id: int
    sheet_name: str
    row_count: int
    total_rows: int
    rejected: int
    rejected_by_reason: dict[str, int] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sheetName": self.sheet_name,
            "rowCount": self.row_count,
            "totalRows": self.total_rows,
            "rejected": self.rejected,
            "rejectedByReason": dict(self.rejected_by_reason),
        }


@dataclass
class PartitionedRows:
    accepted: list[tuple[str | None, str | None]]
    rejected_by_reason: dict[str, int]

    @property
    def rejected(self) -> int:
        return sum(self.rejected_by_reason.values())


def validate_sheet_name(sheet_name: str | None) -> str:
    cleaned = str(sheet_name or "").strip()
    if not cleaned:
        raise ValueError("Sheet name is required.")
    if len(cleaned) > SHEET_NAME_MAX_LENGTH:
        raise ValueError(f"Sheet name must be at most {SHEET_NAME_MAX_LENGTH} characters.")
    return cleaned


def parse_mapping(mapping: str | Mapping[str, Any] | None) -> dict[str, Any]:
    if mapping is None:
        return {}
    if isinstance(mapping, Mapping):
        return dict(mapping)
    text = str(mapping).strip()
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError("Column mapping must be valid JSON.") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Column mapping must be a JSON object.")
    return parsed


def partition_rows(parsed: ParsedSheet, mapping: Mapping[str, Any] | None = None) -> PartitionedRows:
    columns = resolve_columns(parsed.headers, mapping)
    email_index = columns[FIELD_BUSINESS_EMAIL]
    url_index = columns[FIELD_WEBSITE_URL]

    accepted: list[tuple[str | None, str | None]] = []
    rejected_by_reason = {reason: 0 for reason in REJECT_REASONS}
    for row in parsed.rows:
        email = cell_at(row, email_index)
        url = cell_at(row, url_index)
        verdict = classify(email, url)
        if verdict.eligible:
            accepted.append((email, url))
        else:
            rejected_by_reason[verdict.reason] += 1
    return PartitionedRows(accepted=accepted, rejected_by_reason=rejected_by_reason)


def _chunks(items: list[Any], size: int):
    for start in range(0, len(items), size):
        yield start, items[start : start + size]


def import_lead_file(
    repo: Any,
    user_id: str,
    raw_bytes: bytes,
    file_name: str,
    option: str,
    sheet_name: str | None = None,
    target_sheet_id: int | None = None,
    mapping: str | Mapping[str, Any] | None = None,
    signature_id: int | None = None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ImportSummary:
    extension = file_extension(file_name)
    if extension not in SUPPORTED_FILE_EXTENSIONS:
        raise ValueError("Unsupported file type. Upload a .csv, .xls or .xlsx file.")

    option_clean = str(option or "").strip().lower()
    if option_clean not in IMPORT_OPTIONS:
        raise ValueError("option must be one of: new, add.")

    target_sheet: dict[str, Any] | None = None
    new_sheet_name = ""
    if option_clean == IMPORT_OPTION_NEW:
        new_sheet_name = validate_sheet_name(sheet_name)
    else:
        if target_sheet_id is None:
            raise ValueError("targetLeadFileId is required when option is add.")
        target_sheet = repo.get_sheet(user_id, target_sheet_id)
        if target_sheet is None:
            raise NotFoundError("Lead file not found.")

    if signature_id is not None and repo.get_signature(user_id, signature_id) is None:
        raise ValueError("Signature not found.")

    mapping_clean = parse_mapping(mapping)
    parsed = parse_spreadsheet(raw_bytes, file_name)
    partitioned = partition_rows(parsed, mapping_clean)

    # Only a successfully parsed file creates a new sheet.
    if option_clean == IMPORT_OPTION_NEW:
        target_sheet = repo.create_sheet(
            user_id,
            new_sheet_name,
            source_file_extension=extension,
            signature_id=signature_id,
        )
    elif signature_id is not None:
        target_sheet = repo.update_sheet(user_id, target_sheet["id"], {"signature_id": signature_id}) or target_sheet

    sheet_id = int(target_sheet["id"])
    accepted = partitioned.accepted
    if accepted:
        start_index = repo.reserve_row_indexes(sheet_id, len(accepted))
        size = max(1, int(chunk_size))
        for offset, chunk in _chunks(accepted, size):
            repo.insert_row_chunk(
                sheet_id,
                [
                    (start_index + offset + position, email, url)
                    for position, (email, url) in enumerate(chunk)
                ],
            )

    summary = ImportSummary(
        id=sheet_id,
        sheet_name=str(target_sheet["sheetName"]),
        row_count=len(accepted),
        total_rows=len(parsed.rows),
        rejected=partitioned.rejected,
        rejected_by_reason=partitioned.rejected_by_reason,
    )
    LOGGER.info(
        "Imported %s of %s rows into lead sheet %s.",
        summary.row_count,
        summary.total_rows,
        sheet_id,
        extra={
            "event": "lead_file_imported",
            "user_id": user_id,
            "sheet_id": sheet_id,
            "option": option_clean,
            "file_extension": extension,
            "rejected_by_reason": summary.rejected_by_reason,
        },
    )
    return summary

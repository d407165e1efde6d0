from __future__ import annotations

import logging
from typing import Any, Iterable

from leadflow_app.core.errors import NotFoundError

LOGGER = logging.getLogger(__name__)

_SHEET_UPDATE_COLUMNS = {"sheet_name", "signature_id"}


class RepositorySheetsMixin:
    def _sheet_payload(self, record: dict[str, Any]) -> dict[str, Any]:
        signature_id = record.get("signature_id")
        return {
            "id": int(record["id"]),
            "sheetName": record.get("sheet_name"),
            "uploadedAt": self._iso(record.get("uploaded_at")),
            "sourceFileExtension": record.get("source_file_extension"),
            "signatureId": int(signature_id) if signature_id is not None else None,
            "signatureName": record.get("signature_name"),
            "rowCount": int(record.get("row_count") or 0),
        }

    def list_sheets(self, user_id: str) -> list[dict[str, Any]]:
        frame = self._query_file(
            "sheets/select_sheets.sql",
            params=(user_id,),
            **self._tables("lead_sheets", "lead_rows", "signatures"),
        )
        return [self._sheet_payload(record) for record in self._records(frame)]

    def get_sheet(self, user_id: str, sheet_id: int) -> dict[str, Any] | None:
        frame = self._query_file(
            "sheets/select_sheet.sql",
            params=(int(sheet_id), user_id),
            **self._tables("lead_sheets", "lead_rows", "signatures"),
        )
        record = self._first_record(frame)
        return self._sheet_payload(record) if record else None

    def create_sheet(
        self,
        user_id: str,
        sheet_name: str,
        *,
        source_file_extension: str | None = None,
        signature_id: int | None = None,
    ) -> dict[str, Any]:
        frame = self._query_file(
            "sheets/insert_sheet.sql",
            params=(user_id, sheet_name, source_file_extension, signature_id, self._now()),
            lead_sheets=self._table("lead_sheets"),
        )
        sheet_id = int(frame.iloc[0]["id"])
        LOGGER.info(
            "Created lead sheet %s.",
            sheet_id,
            extra={"event": "lead_sheet_created", "sheet_id": sheet_id, "user_id": user_id},
        )
        sheet = self.get_sheet(user_id, sheet_id)
        if sheet is None:
            raise NotFoundError(f"Lead sheet {sheet_id} not found after insert.")
        return sheet

    def update_sheet(self, user_id: str, sheet_id: int, updates: dict[str, Any]) -> dict[str, Any] | None:
        unknown = set(updates) - _SHEET_UPDATE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported lead sheet fields: {', '.join(sorted(unknown))}.")
        if not updates:
            return self.get_sheet(user_id, sheet_id)
        columns = sorted(updates)
        set_clause = ", ".join(f"{column} = %s" for column in columns)
        params = tuple(updates[column] for column in columns) + (int(sheet_id), user_id)
        affected = self._execute_file(
            "sheets/update_sheet.sql",
            params=params,
            set_clause=set_clause,
            lead_sheets=self._table("lead_sheets"),
        )
        if affected == 0:
            return None
        return self.get_sheet(user_id, sheet_id)

    def reserve_row_indexes(self, sheet_id: int, count: int) -> int:
        """Advance the sheet sequence by ``count`` and return the first reserved index."""
        frame = self._query_file(
            "sheets/reserve_row_indexes.sql",
            params=(int(count), int(sheet_id)),
            lead_sheets=self._table("lead_sheets"),
        )
        if frame.empty:
            raise NotFoundError(f"Lead sheet {sheet_id} not found.")
        end = int(frame.iloc[0]["next_row_index"])
        return end - int(count)

    def delete_sheets(self, user_id: str, sheet_ids: Iterable[int]) -> int:
        requested = list(dict.fromkeys(int(sheet_id) for sheet_id in sheet_ids))
        if not requested:
            return 0
        owned_frame = self._query_file(
            "sheets/select_owned_sheet_ids.sql",
            params=(user_id, *requested),
            id_placeholders=self._placeholders(requested),
            lead_sheets=self._table("lead_sheets"),
        )
        owned = [int(value) for value in owned_frame["id"].tolist()] if not owned_frame.empty else []
        if not owned:
            return 0

        placeholders = self._placeholders(owned)
        tables = self._tables("lead_rows", "action_runs", "action_run_rows")
        with self.client.transaction() as session:
            session.execute(
                self._sql("sheets/delete_sheet_action_run_rows.sql", id_placeholders=placeholders, **tables),
                tuple(owned),
            )
            session.execute(
                self._sql("sheets/delete_sheet_action_runs.sql", id_placeholders=placeholders, **tables),
                tuple(owned),
            )
            session.execute(
                self._sql("sheets/delete_sheet_rows.sql", id_placeholders=placeholders, **tables),
                tuple(owned),
            )

        # Children are gone; a failure here leaves empty sheets behind.
        deleted = self._execute_file(
            "sheets/delete_sheets.sql",
            params=(user_id, *owned),
            id_placeholders=placeholders,
            lead_sheets=self._table("lead_sheets"),
        )
        LOGGER.info(
            "Deleted %s lead sheet(s).",
            deleted,
            extra={"event": "lead_sheets_deleted", "user_id": user_id, "sheet_ids": owned},
        )
        return deleted

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

import pandas as pd

from leadflow_app.leads.constants import EMAIL_STATUSES
from leadflow_app.leads.reindex import plan_reindex

LOGGER = logging.getLogger(__name__)

ROW_SORT_COLUMNS = {
    "rowIndex": "r.row_index",
    "businessEmail": "r.business_email",
    "websiteUrl": "r.website_url",
    "emailStatus": "r.email_status",
    "hasReplied": "r.has_replied",
}
ROW_PAGE_SIZE_MAX = 100
_ROW_UPDATE_COLUMNS = {"business_email", "website_url", "email_status", "has_replied"}


class RepositoryRowsMixin:
    def _row_payload(self, record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": int(record["id"]),
            "sheetId": int(record["sheet_id"]),
            "sheetName": record.get("sheet_name"),
            "rowIndex": int(record["row_index"]),
            "businessEmail": record.get("business_email"),
            "websiteUrl": record.get("website_url"),
            "emailStatus": record.get("email_status"),
            "hasReplied": self._optional_bool(record.get("has_replied")),
            "createdAt": self._iso(record.get("created_at")),
            "updatedAt": self._iso(record.get("updated_at")),
        }

    @staticmethod
    def _row_filters(
        sheet_id: int,
        *,
        search: str = "",
        has_email: bool | None = None,
        has_url: bool | None = None,
        email_status: str | None = None,
        has_replied: bool | None = None,
    ) -> tuple[str, list[Any]]:
        clauses = ["r.sheet_id = %s"]
        params: list[Any] = [int(sheet_id)]

        needle = (search or "").strip().lower()
        if needle:
            escaped = needle.replace("!", "!!").replace("%", "!%").replace("_", "!_")
            pattern = f"%{escaped}%"
            clauses.append(
                "(LOWER(COALESCE(r.business_email, '')) LIKE %s ESCAPE '!'"
                " OR LOWER(COALESCE(r.website_url, '')) LIKE %s ESCAPE '!')"
            )
            params.extend([pattern, pattern])

        for column, flag in (("r.business_email", has_email), ("r.website_url", has_url)):
            if flag is True:
                clauses.append(f"({column} IS NOT NULL AND {column} <> '')")
            elif flag is False:
                clauses.append(f"({column} IS NULL OR {column} = '')")

        if email_status:
            if email_status not in EMAIL_STATUSES:
                raise ValueError(f"emailStatus must be one of: {', '.join(EMAIL_STATUSES)}.")
            clauses.append("r.email_status = %s")
            params.append(email_status)

        if has_replied is not None:
            clauses.append("r.has_replied = %s")
            params.append(bool(has_replied))

        return " AND ".join(clauses), params

    def list_rows(
        self,
        sheet_id: int,
        *,
        page: int = 1,
        page_size: int = 50,
        search: str = "",
        sort_by: str = "rowIndex",
        sort_order: str = "asc",
        has_email: bool | None = None,
        has_url: bool | None = None,
        email_status: str | None = None,
        has_replied: bool | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        page = max(1, int(page))
        page_size = min(max(1, int(page_size)), ROW_PAGE_SIZE_MAX)
        sort_column = ROW_SORT_COLUMNS.get(sort_by, ROW_SORT_COLUMNS["rowIndex"])
        direction = "DESC" if str(sort_order or "").strip().lower() == "desc" else "ASC"

        where_clause, params = self._row_filters(
            sheet_id,
            search=search,
            has_email=has_email,
            has_url=has_url,
            email_status=email_status,
            has_replied=has_replied,
        )
        total_frame = self._query_file(
            "rows/count_rows.sql",
            params=tuple(params),
            where_clause=where_clause,
            lead_rows=self._table("lead_rows"),
        )
        total = int(total_frame.iloc[0]["total"]) if not total_frame.empty else 0

        frame = self._query_file(
            "rows/select_rows.sql",
            params=(*params, page_size, (page - 1) * page_size),
            where_clause=where_clause,
            order_clause=f"{sort_column} {direction}, r.row_index ASC, r.id ASC",
            **self._tables("lead_rows", "lead_sheets"),
        )
        return [self._row_payload(record) for record in self._records(frame)], total

    def get_row(self, sheet_id: int, row_id: int) -> dict[str, Any] | None:
        frame = self._query_file(
            "rows/select_row.sql",
            params=(int(sheet_id), int(row_id)),
            **self._tables("lead_rows", "lead_sheets"),
        )
        record = self._first_record(frame)
        return self._row_payload(record) if record else None

    def list_rows_in_index_range(self, sheet_id: int, start: int, stop: int) -> list[dict[str, Any]]:
        frame = self._query_file(
            "rows/select_rows_in_index_range.sql",
            params=(int(sheet_id), int(start), int(stop)),
            **self._tables("lead_rows", "lead_sheets"),
        )
        return [self._row_payload(record) for record in self._records(frame)]

    def insert_row_chunk(
        self,
        sheet_id: int,
        rows: Sequence[tuple[int, str | None, str | None]],
    ) -> int:
        """Insert ``(row_index, business_email, website_url)`` tuples in one transaction."""
        if not rows:
            return 0
        now = self._now()
        statement = self._sql("rows/insert_row.sql", lead_rows=self._table("lead_rows"))
        return self.client.execute_many(
            statement,
            [(int(sheet_id), int(row_index), email, url, now, now) for row_index, email, url in rows],
        )

    def add_rows(self, sheet_id: int, rows: Sequence[tuple[str | None, str | None]]) -> list[dict[str, Any]]:
        if not rows:
            return []
        start = self.reserve_row_indexes(sheet_id, len(rows))
        self.insert_row_chunk(
            sheet_id,
            [(start + offset, email, url) for offset, (email, url) in enumerate(rows)],
        )
        return self.list_rows_in_index_range(sheet_id, start, start + len(rows))

    def update_row(self, sheet_id: int, row_id: int, updates: dict[str, Any]) -> dict[str, Any] | None:
        unknown = set(updates) - _ROW_UPDATE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported lead row fields: {', '.join(sorted(unknown))}.")
        if not updates:
            raise ValueError("No fields to update.")
        columns = sorted(updates)
        affected = self._execute_file(
            "rows/update_row.sql",
            params=(*(updates[column] for column in columns), self._now(), int(sheet_id), int(row_id)),
            set_clause=", ".join(f"{column} = %s" for column in columns),
            lead_rows=self._table("lead_rows"),
        )
        if affected == 0:
            return None
        return self.get_row(sheet_id, row_id)

    def delete_rows(self, sheet_id: int, row_ids: Iterable[int]) -> int:
        ids = list(dict.fromkeys(int(row_id) for row_id in row_ids))
        if not ids:
            return 0
        return self._execute_file(
            "rows/delete_rows.sql",
            params=(int(sheet_id), *ids),
            id_placeholders=self._placeholders(ids),
            lead_rows=self._table("lead_rows"),
        )

    def reindex_sheet_rows(self, user_id: str, sheet_id: int) -> int | None:
        """Renumber a sheet's rows to 0..N-1 and reset its sequence; None if the sheet is not the user's."""
        tables = self._tables("lead_sheets", "lead_rows")
        with self.client.transaction() as session:
            locked = session.query(
                self._sql("sheets/lock_sheet.sql", lock_clause=self._lock_clause, **tables),
                (int(sheet_id), user_id),
            )
            if locked.empty:
                return None
            order = session.query(self._sql("rows/select_row_order.sql", **tables), (int(sheet_id),))
            ordered = [(int(record["id"]), int(record["row_index"])) for record in self._records(order)]
            updates = plan_reindex(ordered)
            if updates:
                session.execute_many(self._sql("rows/update_row_index.sql", **tables), updates)
            session.execute(
                self._sql("sheets/reset_row_sequence.sql", **tables),
                (len(ordered), int(sheet_id)),
            )
        LOGGER.debug("Reindex rewrote %s of %s rows on sheet %s.", len(updates), len(ordered), sheet_id)
        return len(ordered)

    def rows_for_action_by_ids(self, sheet_id: int, row_ids: Sequence[int]) -> list[dict[str, Any]]:
        """Rows of the sheet among ``row_ids``, in the order requested."""
        if not row_ids:
            return []
        frame = self._query_file(
            "rows/select_rows_by_id.sql",
            params=(int(sheet_id), *row_ids),
            id_placeholders=self._placeholders(row_ids),
            lead_rows=self._table("lead_rows"),
        )
        by_id = {int(record["id"]): record for record in self._records(frame)}
        return [by_id[row_id] for row_id in row_ids if row_id in by_id]

    def first_rows_for_action(self, sheet_id: int, limit: int) -> list[dict[str, Any]]:
        frame = self._query_file(
            "rows/select_first_rows.sql",
            params=(int(sheet_id), int(limit)),
            lead_rows=self._table("lead_rows"),
        )
        return self._records(frame)

    def set_row_email_status(self, row_id: int, email_status: str) -> int:
        return self._execute_file(
            "rows/update_email_status.sql",
            params=(email_status, self._now(), int(row_id)),
            lead_rows=self._table("lead_rows"),
        )

    def export_rows(self, sheet_id: int) -> pd.DataFrame:
        return self._query_file(
            "rows/select_export_rows.sql",
            params=(int(sheet_id),),
            lead_rows=self._table("lead_rows"),
        )

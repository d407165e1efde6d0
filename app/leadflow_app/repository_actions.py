from __future__ import annotations

import logging
from typing import Any, Sequence

LOGGER = logging.getLogger(__name__)


class RepositoryActionsMixin:
    def create_action_run(
        self,
        *,
        run_id: str,
        sheet_id: int,
        user_id: str,
        action: str,
        callback_token: str,
        row_ids: Sequence[int],
    ) -> None:
        """Persist the run and one pending status per target row atomically."""
        now = self._now()
        tables = self._tables("action_runs", "action_run_rows")
        with self.client.transaction() as session:
            session.execute(
                self._sql("actions/insert_action_run.sql", **tables),
                (run_id, int(sheet_id), user_id, action, callback_token, now, now),
            )
            session.execute_many(
                self._sql("actions/insert_action_run_row.sql", **tables),
                [(run_id, int(row_id), position, now) for position, row_id in enumerate(row_ids)],
            )

    def set_action_run_state(self, run_id: str, state: str, dispatch_error: str | None = None) -> int:
        return self._execute_file(
            "actions/update_action_run_state.sql",
            params=(state, dispatch_error, self._now(), run_id),
            action_runs=self._table("action_runs"),
        )

    def get_action_run_by_token(self, callback_token: str) -> dict[str, Any] | None:
        frame = self._query_file(
            "actions/select_action_run_by_token.sql",
            params=(callback_token,),
            action_runs=self._table("action_runs"),
        )
        return self._first_record(frame)

    def get_action_run(self, user_id: str, sheet_id: int, run_id: str) -> dict[str, Any] | None:
        frame = self._query_file(
            "actions/select_action_run.sql",
            params=(run_id, int(sheet_id), user_id),
            action_runs=self._table("action_runs"),
        )
        return self._first_record(frame)

    def list_action_run_rows(self, run_id: str) -> list[dict[str, Any]]:
        frame = self._query_file(
            "actions/select_action_run_rows.sql",
            params=(run_id,),
            action_run_rows=self._table("action_run_rows"),
        )
        return [
            {"row_id": int(record["row_id"]), "status": str(record["status"])}
            for record in self._records(frame)
        ]

    def update_action_run_row(self, run_id: str, row_id: int, status: str) -> bool:
        """Set one run-row status; completes the run once no row is pending."""
        now = self._now()
        tables = self._tables("action_runs", "action_run_rows")
        with self.client.transaction() as session:
            affected = session.execute(
                self._sql("actions/update_action_run_row.sql", **tables),
                (status, now, run_id, int(row_id)),
            )
            if affected == 0:
                return False
            completed = session.execute(
                self._sql("actions/complete_action_run.sql", **tables),
                (now, run_id, run_id),
            )
        if completed:
            LOGGER.info(
                "Action run %s completed.",
                run_id,
                extra={"event": "action_run_completed", "job_id": run_id},
            )
        return True

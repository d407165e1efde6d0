from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
import logging
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from leadflow_app.core.config import AppConfig
from leadflow_app.infrastructure.db import SQLClient
from leadflow_app.repository_actions import RepositoryActionsMixin
from leadflow_app.repository_company import RepositoryCompanyMixin
from leadflow_app.repository_rows import RepositoryRowsMixin
from leadflow_app.repository_sheets import RepositorySheetsMixin
from leadflow_app.repository_signatures import RepositorySignaturesMixin

LOGGER = logging.getLogger(__name__)


class LeadRepository(
    RepositorySheetsMixin,
    RepositoryRowsMixin,
    RepositoryActionsMixin,
    RepositorySignaturesMixin,
    RepositoryCompanyMixin,
):
    def __init__(self, config: AppConfig, client: SQLClient | None = None) -> None:
        self.config = config
        self.client = client or SQLClient(config)

    def _table(self, name: str) -> str:
        if self.config.use_local_db:
            return name
        return f"{self.config.db_schema}.{name}"

    def _tables(self, *names: str) -> dict[str, str]:
        return {name: self._table(name) for name in names}

    @staticmethod
    @lru_cache(maxsize=512)
    def _read_sql_file(path_str: str) -> str:
        path = Path(path_str)
        if not path.exists():
            raise FileNotFoundError(f"SQL file not found: {path}")
        return path.read_text(encoding="utf-8")

    def _sql(self, relative_path: str, **format_args: Any) -> str:
        sql_root = Path(__file__).resolve().parent / "sql"
        sql_path = (sql_root / relative_path).resolve()
        template = self._read_sql_file(str(sql_path))
        return template.format(**format_args) if format_args else template

    def _query_file(
        self,
        relative_path: str,
        *,
        params: tuple | None = None,
        **format_args: Any,
    ) -> pd.DataFrame:
        statement = self._sql(relative_path, **format_args)
        return self.client.query(statement, params)

    def _execute_file(
        self,
        relative_path: str,
        *,
        params: tuple | None = None,
        **format_args: Any,
    ) -> int:
        statement = self._sql(relative_path, **format_args)
        return self.client.execute(statement, params)

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    @property
    def _lock_clause(self) -> str:
        # SQLite serializes writers with BEGIN IMMEDIATE instead.
        return "" if self.config.use_local_db else "FOR UPDATE"

    @staticmethod
    def _placeholders(values: Iterable[Any]) -> str:
        return ", ".join("%s" for _ in values)

    @staticmethod
    def _records(frame: pd.DataFrame) -> list[dict[str, Any]]:
        if frame is None or frame.empty:
            return []
        return frame.to_dict("records")

    @staticmethod
    def _first_record(frame: pd.DataFrame) -> dict[str, Any] | None:
        if frame is None or frame.empty:
            return None
        return frame.iloc[0].to_dict()

    @staticmethod
    def _iso(value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value)

    @staticmethod
    def _optional_bool(value: Any) -> bool | None:
        if value is None:
            return None
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "t", "yes"}
        return bool(value)

    def ping(self) -> bool:
        frame = self.client.query("SELECT 1 AS ok")
        return not frame.empty

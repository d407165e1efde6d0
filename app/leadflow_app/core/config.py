from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from leadflow_app.core.env import (
    LEADFLOW_ACTION_MAX_ROWS,
    LEADFLOW_DATABASE_URL,
    LEADFLOW_DB_CONNECT_TIMEOUT_SEC,
    LEADFLOW_DB_SCHEMA,
    LEADFLOW_ENV,
    LEADFLOW_IMPORT_CHUNK_SIZE,
    LEADFLOW_LOCAL_DB_PATH,
    LEADFLOW_N8N_COMPANY_INFO_TIMEOUT_SEC,
    LEADFLOW_N8N_COMPANY_INFO_WEBHOOK_URL,
    LEADFLOW_N8N_SEND_MAIL_WEBHOOK_URL,
    LEADFLOW_N8N_TIMEOUT_SEC,
    LEADFLOW_PUBLIC_BASE_URL,
    LEADFLOW_USE_LOCAL_DB,
    SUPABASE_DB_URL,
    get_env,
    get_env_bool,
    get_env_float,
    get_env_int,
)

DEV_ENV_NAMES = {"dev", "development", "local", "test"}
DEFAULT_LOCAL_DB_PATH = "setup/local_db/leadflow_local.db"
DEFAULT_PUBLIC_BASE_URL = "http://localhost:8000"


def _repo_root() -> Path:
    # app/leadflow_app/core/config.py -> repo root is three levels up from core/
    return Path(__file__).resolve().parents[3]


def _resolve_repo_relative_path(raw_path: str) -> str:
    value = str(raw_path or "").strip()
    if not value:
        return value
    path = Path(value)
    if path.is_absolute():
        return str(path)
    return str((_repo_root() / path).resolve())


def _clean_base_url(raw_url: str) -> str:
    value = str(raw_url or "").strip().rstrip("/")
    return value or DEFAULT_PUBLIC_BASE_URL


@dataclass(frozen=True)
class AppConfig:
    env: str = "dev"
    use_local_db: bool = True
    local_db_path: str = DEFAULT_LOCAL_DB_PATH
    database_url: str = ""
    db_schema: str = "public"
    db_connect_timeout_sec: int = 10
    n8n_send_mail_webhook_url: str = ""
    n8n_timeout_sec: float = 15.0
    n8n_company_info_webhook_url: str = ""
    n8n_company_info_timeout_sec: float = 60.0
    public_base_url: str = DEFAULT_PUBLIC_BASE_URL
    import_chunk_size: int = 100
    action_max_rows: int = 500

    @property
    def is_dev_env(self) -> bool:
        return self.env in DEV_ENV_NAMES

    @property
    def callback_url_base(self) -> str:
        return f"{self.public_base_url}/api/n8n-callback"

    @staticmethod
    def from_env() -> "AppConfig":
        env_name = get_env(LEADFLOW_ENV, "dev").lower() or "dev"
        database_url = get_env(LEADFLOW_DATABASE_URL, "") or get_env(SUPABASE_DB_URL, "")
        default_local_db = env_name in DEV_ENV_NAMES and not database_url
        requested_local_db = get_env_bool(LEADFLOW_USE_LOCAL_DB, default=default_local_db)
        if requested_local_db and env_name not in DEV_ENV_NAMES:
            raise RuntimeError(
                "LEADFLOW_USE_LOCAL_DB=true is allowed only for dev/local environments. "
                "Set LEADFLOW_ENV=dev (or local), or disable LEADFLOW_USE_LOCAL_DB."
            )
        if not requested_local_db and not database_url:
            raise RuntimeError(
                "LEADFLOW_DATABASE_URL (or SUPABASE_DB_URL) is required when the local DB is disabled."
            )
        return AppConfig(
            env=env_name,
            use_local_db=requested_local_db,
            local_db_path=_resolve_repo_relative_path(get_env(LEADFLOW_LOCAL_DB_PATH, DEFAULT_LOCAL_DB_PATH)),
            database_url=database_url,
            db_schema=get_env(LEADFLOW_DB_SCHEMA, "public") or "public",
            db_connect_timeout_sec=get_env_int(LEADFLOW_DB_CONNECT_TIMEOUT_SEC, default=10, min_value=1),
            n8n_send_mail_webhook_url=get_env(LEADFLOW_N8N_SEND_MAIL_WEBHOOK_URL, ""),
            n8n_timeout_sec=get_env_float(LEADFLOW_N8N_TIMEOUT_SEC, default=15.0, min_value=1.0),
            n8n_company_info_webhook_url=get_env(LEADFLOW_N8N_COMPANY_INFO_WEBHOOK_URL, ""),
            n8n_company_info_timeout_sec=get_env_float(
                LEADFLOW_N8N_COMPANY_INFO_TIMEOUT_SEC, default=60.0, min_value=1.0
            ),
            public_base_url=_clean_base_url(get_env(LEADFLOW_PUBLIC_BASE_URL, DEFAULT_PUBLIC_BASE_URL)),
            import_chunk_size=get_env_int(LEADFLOW_IMPORT_CHUNK_SIZE, default=100, min_value=1),
            action_max_rows=get_env_int(LEADFLOW_ACTION_MAX_ROWS, default=500, min_value=1),
        )

from __future__ import annotations

from contextlib import suppress
from functools import lru_cache

from leadflow_app.core.config import AppConfig
from leadflow_app.core.env import LEADFLOW_TRUST_FORWARDED_IDENTITY_HEADERS, get_env_bool
from leadflow_app.integrations.n8n import WorkflowEngineClient
from leadflow_app.repository import LeadRepository


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return AppConfig.from_env()


@lru_cache(maxsize=1)
def _base_repo() -> LeadRepository:
    return LeadRepository(get_config())


def get_repo() -> LeadRepository:
    return _base_repo()


def _clear_base_repo_cache() -> None:
    if _base_repo.cache_info().currsize:
        with suppress(Exception):
            _base_repo().client.close()
    _base_repo.cache_clear()


get_repo.cache_clear = _clear_base_repo_cache  # type: ignore[attr-defined]
get_repo.cache_info = _base_repo.cache_info  # type: ignore[attr-defined]


@lru_cache(maxsize=1)
def get_engine_client() -> WorkflowEngineClient:
    config = get_config()
    return WorkflowEngineClient(
        config.n8n_send_mail_webhook_url,
        timeout_sec=config.n8n_timeout_sec,
    )


@lru_cache(maxsize=1)
def get_company_info_client() -> WorkflowEngineClient:
    config = get_config()
    return WorkflowEngineClient(
        config.n8n_company_info_webhook_url,
        timeout_sec=config.n8n_company_info_timeout_sec,
    )


def clear_runtime_caches() -> None:
    get_engine_client.cache_clear()
    get_company_info_client.cache_clear()
    get_repo.cache_clear()
    get_config.cache_clear()


def trust_forwarded_identity_headers(config: AppConfig) -> bool:
    return get_env_bool(
        LEADFLOW_TRUST_FORWARDED_IDENTITY_HEADERS,
        default=config.is_dev_env,
    )

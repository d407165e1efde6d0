from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Any

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from leadflow_app.core.errors import DispatchError
from leadflow_app.web.runtime import clear_runtime_caches

TEST_USER = "owner@example.com"
OTHER_USER = "other@example.com"


class FakeEngine:
    """Records dispatched jobs and lookups instead of calling n8n."""

    def __init__(
        self,
        *,
        fail_with: str = "",
        error_type: type[Exception] = DispatchError,
        reply: Any = None,
    ) -> None:
        self.fail_with = fail_with
        self.error_type = error_type
        self.reply = reply
        self.payloads: list[dict[str, Any]] = []

    def dispatch(self, payload: dict[str, Any]) -> None:
        self.payloads.append(payload)
        if self.fail_with:
            raise self.error_type(self.fail_with)

    def request_json(self, payload: dict[str, Any]) -> Any:
        self.dispatch(payload)
        return self.reply


@pytest.fixture()
def isolated_local_db(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    repo_root = Path(__file__).resolve().parents[1]
    db_path = tmp_path / "leadflow_local.db"
    init_script = repo_root / "setup" / "local_db" / "init_local_db.py"
    result = subprocess.run(
        [
            sys.executable,
            str(init_script),
            "--db-path",
            str(db_path),
            "--reset",
            "--skip-seed",
        ],
        capture_output=True,
        text=True,
        cwd=str(repo_root),
        check=False,
    )
    if result.returncode != 0:
        raise RuntimeError(
            "Failed to initialize isolated local DB for tests.\n"
            f"stdout:\n{result.stdout}\n"
            f"stderr:\n{result.stderr}"
        )

    for key in ("LEADFLOW_DATABASE_URL", "SUPABASE_DB_URL", "LEADFLOW_TRUST_FORWARDED_IDENTITY_HEADERS"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LEADFLOW_ENV", "dev")
    monkeypatch.setenv("LEADFLOW_USE_LOCAL_DB", "true")
    monkeypatch.setenv("LEADFLOW_LOCAL_DB_PATH", str(db_path))
    monkeypatch.setenv("LEADFLOW_LOCAL_DB_AUTO_INIT", "false")
    monkeypatch.setenv("LEADFLOW_TEST_USER", TEST_USER)
    monkeypatch.setenv("LEADFLOW_PUBLIC_BASE_URL", "https://leads.example.com")
    monkeypatch.setenv("LEADFLOW_N8N_SEND_MAIL_WEBHOOK_URL", "https://n8n.example.com/webhook/send-mail")
    monkeypatch.setenv("LEADFLOW_N8N_COMPANY_INFO_WEBHOOK_URL", "https://n8n.example.com/webhook/company-info")
    clear_runtime_caches()
    yield db_path
    clear_runtime_caches()


@pytest.fixture()
def repo(isolated_local_db: Path):
    from leadflow_app.web.runtime import get_repo

    return get_repo()


@pytest.fixture()
def client(isolated_local_db: Path):
    from fastapi.testclient import TestClient

    from leadflow_app.web.app import create_app

    return TestClient(create_app())


@pytest.fixture()
def fake_engine() -> FakeEngine:
    return FakeEngine()

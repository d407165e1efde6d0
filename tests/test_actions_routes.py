from __future__ import annotations

import sys
from pathlib import Path

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from leadflow_app.web.routers import actions as actions_routes

from conftest import OTHER_USER, FakeEngine


@pytest.fixture()
def sheet(client) -> dict:
    sheet = client.post("/api/lead-files", json={"sheetName": "Outreach"}).json()
    client.post(
        f"/api/lead-files/{sheet['id']}/rows",
        json={"rows": [{"businessEmail": "a@acme.io"}, {"businessEmail": "b@acme.io"}]},
    )
    sheet["rowIds"] = [row["id"] for row in client.get(f"/api/lead-files/{sheet['id']}/rows").json()["rows"]]
    return sheet


@pytest.fixture()
def engine(monkeypatch) -> FakeEngine:
    fake = FakeEngine()
    monkeypatch.setattr(actions_routes, "get_engine_client", lambda: fake)
    return fake


def test_run_action_and_callbacks(client, sheet: dict, engine: FakeEngine) -> None:
    response = client.post(f"/api/lead-files/{sheet['id']}/run-action", json={"rowIds": sheet["rowIds"]})
    assert response.status_code == 201
    body = response.json()
    assert body["state"] == "dispatched"
    assert body["statuses"] == {str(row_id): "pending" for row_id in sheet["rowIds"]}

    payload = engine.payloads[0]
    assert payload["callbackUrl"].startswith("https://leads.example.com/api/n8n-callback?token=")
    token = payload["callbackToken"]

    for row_id in sheet["rowIds"]:
        callback = client.post("/api/n8n-callback", params={"token": token}, json={"rowId": row_id, "status": "completed"})
        assert callback.status_code == 200
        assert callback.json() == {"ok": True}

    status = client.get(f"/api/lead-files/{sheet['id']}/run-status/{body['jobId']}")
    assert status.status_code == 200
    assert status.json()["isComplete"] is True
    assert status.json()["state"] == "completed"

    rows = client.get(f"/api/lead-files/{sheet['id']}/rows", params={"emailStatus": "Completed"}).json()
    assert rows["total"] == 2


def test_run_action_by_row_count(client, sheet: dict, engine: FakeEngine) -> None:
    response = client.post(f"/api/lead-files/{sheet['id']}/run-action", json={"action": "send_mail", "rowCount": 1})
    assert response.status_code == 201
    assert list(response.json()["statuses"]) == [str(sheet["rowIds"][0])]


def test_run_action_validation(client, sheet: dict, engine: FakeEngine) -> None:
    url = f"/api/lead-files/{sheet['id']}/run-action"
    assert client.post(url, json={}).status_code == 400
    assert client.post(url, json={"action": "call_them", "rowCount": 1}).status_code == 400
    assert client.post(url, json={"rowCount": -2}).status_code == 400
    assert client.post(url, json={"rowCount": 1}, headers={"x-forwarded-user-id": OTHER_USER}).status_code == 404
    assert engine.payloads == []


def test_dispatch_failure_returns_502_with_job_id(client, sheet: dict, monkeypatch) -> None:
    monkeypatch.setattr(actions_routes, "get_engine_client", lambda: FakeEngine(fail_with="n8n is down"))

    response = client.post(f"/api/lead-files/{sheet['id']}/run-action", json={"rowCount": 2})

    assert response.status_code == 502
    body = response.json()
    assert body["code"] == "DISPATCH_FAILED"
    assert body["jobId"]

    status = client.get(f"/api/lead-files/{sheet['id']}/run-status/{body['jobId']}").json()
    assert status["state"] == "dispatch_failed"
    assert status["isComplete"] is False


def test_callback_errors(client, sheet: dict, engine: FakeEngine) -> None:
    client.post(f"/api/lead-files/{sheet['id']}/run-action", json={"rowIds": [sheet["rowIds"][0]]})
    token = engine.payloads[0]["callbackToken"]

    missing_token = client.post("/api/n8n-callback", json={"rowId": sheet["rowIds"][0], "status": "completed"})
    assert missing_token.status_code == 400

    unknown = client.post("/api/n8n-callback", params={"token": "nope"}, json={"rowId": 1, "status": "completed"})
    assert unknown.status_code == 404

    outside = client.post(
        "/api/n8n-callback",
        params={"token": token},
        json={"rowId": sheet["rowIds"][1], "status": "completed"},
    )
    assert outside.status_code == 404

    bad_status = client.post(
        "/api/n8n-callback",
        params={"token": token},
        json={"rowId": sheet["rowIds"][0], "status": "sent"},
    )
    assert bad_status.status_code == 400

    assert client.post("/api/n8n-callback", params={"token": token}, json={"status": "failed"}).status_code == 422


def test_callback_does_not_need_user_identity(client, sheet: dict, engine: FakeEngine, monkeypatch) -> None:
    from leadflow_app.web.runtime import clear_runtime_caches

    client.post(f"/api/lead-files/{sheet['id']}/run-action", json={"rowIds": [sheet["rowIds"][0]]})
    token = engine.payloads[0]["callbackToken"]
    monkeypatch.delenv("LEADFLOW_TEST_USER", raising=False)
    clear_runtime_caches()

    response = client.post("/api/n8n-callback", params={"token": token}, json={"rowId": str(sheet["rowIds"][0]), "status": "failed"})
    assert response.status_code == 200


def test_run_status_unknown_job(client, sheet: dict) -> None:
    response = client.get(f"/api/lead-files/{sheet['id']}/run-status/does-not-exist")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_callback_ignores_extra_workflow_fields(client, sheet: dict, engine: FakeEngine) -> None:
    client.post(f"/api/lead-files/{sheet['id']}/run-action", json={"rowIds": [sheet["rowIds"][0]]})
    token = engine.payloads[0]["callbackToken"]

    response = client.post(
        "/api/n8n-callback",
        params={"token": token},
        json={"rowId": sheet["rowIds"][0], "status": "completed", "executionId": "4711", "messageId": "<m@x>"},
    )
    assert response.status_code == 200
    job_id = engine.payloads[0]["jobId"]
    status = client.get(f"/api/lead-files/{sheet['id']}/run-status/{job_id}").json()
    assert status["statuses"][str(sheet["rowIds"][0])] == "completed"

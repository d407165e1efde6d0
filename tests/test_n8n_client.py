from __future__ import annotations

import json
import sys
from pathlib import Path

import httpx
import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from leadflow_app.core.errors import DispatchError
from leadflow_app.integrations.n8n import WorkflowEngineClient

WEBHOOK_URL = "https://n8n.example.com/webhook/send-mail"


def test_dispatch_posts_json_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    client = WorkflowEngineClient(WEBHOOK_URL, transport=httpx.MockTransport(handler))
    client.dispatch({"jobId": "job-1", "leads": [{"row_id": 1}]})

    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert str(seen[0].url) == WEBHOOK_URL
    assert json.loads(seen[0].content) == {"jobId": "job-1", "leads": [{"row_id": 1}]}


def test_non_success_status_raises_dispatch_error() -> None:
    client = WorkflowEngineClient(
        WEBHOOK_URL,
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
    )
    with pytest.raises(DispatchError, match="HTTP 500"):
        client.dispatch({"jobId": "job-1"})


def test_timeout_raises_dispatch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = WorkflowEngineClient(WEBHOOK_URL, transport=httpx.MockTransport(handler))
    with pytest.raises(DispatchError, match="in time"):
        client.dispatch({"jobId": "job-1"})


def test_connection_error_raises_dispatch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = WorkflowEngineClient(WEBHOOK_URL, transport=httpx.MockTransport(handler))
    with pytest.raises(DispatchError, match="ConnectError"):
        client.dispatch({"jobId": "job-1"})


def test_missing_webhook_url_raises_dispatch_error() -> None:
    with pytest.raises(DispatchError, match="not configured"):
        WorkflowEngineClient("  ").dispatch({"jobId": "job-1"})


def test_invalid_webhook_url_raises_dispatch_error() -> None:
    client = WorkflowEngineClient("http://n8n.example.com:notaport/webhook")
    with pytest.raises(DispatchError, match="invalid"):
        client.dispatch({"jobId": "job-1"})


def test_unexpected_transport_failure_raises_dispatch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise RuntimeError("transport exploded")

    client = WorkflowEngineClient(WEBHOOK_URL, transport=httpx.MockTransport(handler))
    with pytest.raises(DispatchError, match="RuntimeError"):
        client.dispatch({"jobId": "job-1"})


def test_request_json_returns_decoded_answer() -> None:
    answer = [{"company_intelligence": {"company_name": "Acme"}}]
    client = WorkflowEngineClient(
        WEBHOOK_URL,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=answer)),
    )
    assert client.request_json({"websiteUrl": "https://acme.io"}) == answer


def test_request_json_rejects_non_json_answer() -> None:
    client = WorkflowEngineClient(
        WEBHOOK_URL,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>ok</html>")),
    )
    with pytest.raises(DispatchError, match="invalid JSON"):
        client.request_json({"websiteUrl": "https://acme.io"})

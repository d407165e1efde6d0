from __future__ import annotations

import sys
from pathlib import Path

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from leadflow_app.leads.signatures import sanitize_signature_html

from conftest import OTHER_USER


def test_sanitizer_keeps_basic_formatting() -> None:
    cleaned = sanitize_signature_html('<p>Best,<br><strong>Ana</strong> <a href="https://acme.io">acme.io</a></p>')
    assert cleaned.startswith("<p>Best,<br>")
    assert "<strong>Ana</strong>" in cleaned
    assert 'href="https://acme.io"' in cleaned


def test_sanitizer_drops_scripts_with_their_content() -> None:
    cleaned = sanitize_signature_html("<p>Hi</p><script>alert('x')</script><style>p{}</style>")
    assert cleaned == "<p>Hi</p>"


def test_sanitizer_strips_event_handlers_and_js_links() -> None:
    cleaned = sanitize_signature_html('<p onclick="steal()">Hi <a href="javascript:steal()">me</a></p>')
    assert "onclick" not in cleaned
    assert "javascript:" not in cleaned
    assert "Hi" in cleaned


def test_sanitizer_returns_empty_when_nothing_survives() -> None:
    assert sanitize_signature_html("<script>alert(1)</script>") == ""
    assert sanitize_signature_html("   ") == ""


def test_signature_crud_routes(client) -> None:
    created = client.post("/api/signatures", json={"name": " Default ", "content": "<p>Thanks</p><script>x()</script>"})
    assert created.status_code == 201
    body = created.json()
    assert body["name"] == "Default"
    assert body["content"] == "<p>Thanks</p>"

    listed = client.get("/api/signatures")
    assert listed.status_code == 200
    assert [item["id"] for item in listed.json()] == [body["id"]]

    deleted = client.delete(f"/api/signatures/{body['id']}")
    assert deleted.status_code == 200
    assert deleted.json() == {"ok": True, "deleted": body["id"]}
    assert client.get("/api/signatures").json() == []


def test_signature_validation_errors(client) -> None:
    for payload in (
        {"name": "", "content": "<p>x</p>"},
        {"name": "Sig", "content": "  "},
        {"name": "Sig", "content": "<script>alert(1)</script>"},
    ):
        response = client.post("/api/signatures", json=payload)
        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"


def test_signatures_are_private_to_their_owner(client) -> None:
    created = client.post("/api/signatures", json={"name": "Mine", "content": "<p>Hi</p>"}).json()
    other = {"x-forwarded-user-id": OTHER_USER}

    assert client.get("/api/signatures", headers=other).json() == []
    response = client.delete(f"/api/signatures/{created['id']}", headers=other)
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_deleting_signature_detaches_it_from_sheets(client) -> None:
    signature = client.post("/api/signatures", json={"name": "Mine", "content": "<p>Hi</p>"}).json()
    sheet = client.post("/api/lead-files", json={"sheetName": "Signed", "signatureId": signature["id"]}).json()
    assert sheet["signatureId"] == signature["id"]

    client.delete(f"/api/signatures/{signature['id']}")

    sheets = client.get("/api/lead-files").json()
    assert sheets[0]["id"] == sheet["id"]
    assert sheets[0]["signatureId"] is None

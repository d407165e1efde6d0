from __future__ import annotations

import logging
from typing import Any

import httpx

from leadflow_app.core.errors import DispatchError

LOGGER = logging.getLogger(__name__)

_RESPONSE_PREVIEW_CHARS = 500


class WorkflowEngineClient:
    """Posts JSON to one n8n webhook (send-mail jobs, company lookups)."""

    def __init__(
        self,
        webhook_url: str,
        *,
        timeout_sec: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.webhook_url = str(webhook_url or "").strip()
        self.timeout_sec = float(timeout_sec)
        self._transport = transport

    def _post(self, payload: dict[str, Any]) -> httpx.Response:
        if not self.webhook_url:
            raise DispatchError("Workflow engine webhook URL is not configured.")
        timeout = httpx.Timeout(self.timeout_sec, connect=self.timeout_sec)
        try:
            with httpx.Client(timeout=timeout, transport=self._transport) as client:
                response = client.post(self.webhook_url, json=payload)
        except httpx.TimeoutException as exc:
            raise DispatchError("Workflow engine did not answer in time.") from exc
        except httpx.HTTPError as exc:
            raise DispatchError(f"Workflow engine request failed ({type(exc).__name__}).") from exc
        except httpx.InvalidURL as exc:
            raise DispatchError("Workflow engine webhook URL is invalid.") from exc
        except Exception as exc:
            raise DispatchError(f"Workflow engine request failed ({type(exc).__name__}).") from exc

        if not response.is_success:
            LOGGER.warning(
                "Workflow engine rejected request: status=%s body=%s",
                response.status_code,
                response.text[:_RESPONSE_PREVIEW_CHARS],
                extra={"event": "workflow_dispatch_rejected", "status_code": response.status_code},
            )
            raise DispatchError(f"Workflow engine answered HTTP {response.status_code}.")
        return response

    def dispatch(self, payload: dict[str, Any]) -> None:
        self._post(payload)

    def request_json(self, payload: dict[str, Any]) -> Any:
        """POST ``payload`` and return the decoded JSON answer."""
        response = self._post(payload)
        try:
            return response.json()
        except ValueError as exc:
            raise DispatchError("Workflow engine answered with invalid JSON.") from exc

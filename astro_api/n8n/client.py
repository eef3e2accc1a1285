"""
n8n Workflow Client

Posts application events to the configured n8n webhook. The destination URL
is treated as a secret: it is never logged and never returned to callers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from astro_api.config import Settings
from astro_api.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    ExternalServiceTimeoutError,
    ValidationError,
)
from astro_api.logger import logger

SERVICE_NAME = "n8n"

# Stand-in for a destination that answers 2xx without a JSON body
ACKNOWLEDGED = {"success": True}


class N8nClient:
    """Client for the n8n workflow webhook."""

    def __init__(
        self,
        webhook_url: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the relay client.

        Args:
            webhook_url: Destination URL, or None when relaying is disabled
            timeout: Deadline in seconds for each outbound call
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self._webhook_url = webhook_url or None
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "N8nClient":
        return cls(settings.n8n_webhook_url, timeout=settings.n8n_timeout_seconds)

    @property
    def is_configured(self) -> bool:
        return self._webhook_url is not None

    async def forward(self, payload: Any) -> Any:
        """
        Relay an arbitrary JSON payload and return the destination's body.

        Returns:
            Parsed JSON when the destination answers with a JSON content type,
            otherwise the raw text.
        """
        response = await self._post(payload)
        if "application/json" in response.headers.get("content-type", ""):
            try:
                return response.json()
            except ValueError:
                logger.warning("n8n_forward_invalid_json", status_code=response.status_code)
        return response.text

    async def trigger_event(self, event: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send ``{event, timestamp, data}`` to the workflow.

        Raises:
            ValidationError: event name is empty
            ConfigurationError: no destination configured
            ExternalServiceError: transport failure or non-2xx answer
            ExternalServiceTimeoutError: no answer before the deadline
        """
        if not event:
            raise ValidationError("event is required", field="event")

        envelope = {
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": data or {},
        }
        response = await self._post(envelope)
        try:
            remote = response.json()
        except ValueError:
            remote = dict(ACKNOWLEDGED)

        logger.info("n8n_event_triggered", webhook_event=event, status_code=response.status_code)
        return {
            "success": True,
            "message": f"Event '{event}' triggered successfully",
            "remote_response": remote,
        }

    async def _post(self, body: Any) -> httpx.Response:
        if not self.is_configured:
            raise ConfigurationError("N8N_WEBHOOK_URL not configured", setting="N8N_WEBHOOK_URL")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self._webhook_url, json=body)
        except httpx.TimeoutException as exc:
            logger.error("n8n_request_timeout", timeout_seconds=self.timeout)
            raise ExternalServiceTimeoutError(SERVICE_NAME, self.timeout) from exc
        except httpx.HTTPError as exc:
            logger.error("n8n_request_failed", error_type=type(exc).__name__)
            raise ExternalServiceError(
                SERVICE_NAME, "request failed", original_error=self._redact(str(exc))
            ) from exc

        if not response.is_success:
            logger.error("n8n_error_status", status_code=response.status_code)
            raise ExternalServiceError(
                SERVICE_NAME,
                "relay failed",
                original_error=f"n8n responded with status: {response.status_code}",
                upstream_status=response.status_code,
            )
        return response

    def _redact(self, message: str) -> str:
        return message.replace(self._webhook_url, "<N8N_WEBHOOK_URL>")

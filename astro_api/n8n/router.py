"""
n8n Relay Handlers

Outbound: ``/api/n8n`` and ``/api/n8n/trigger`` post to the configured
workflow webhook. Inbound: ``/api/n8n/webhook`` records callbacks from the
workflow, which clients poll through ``/api/n8n/events``.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from astro_api.dependencies import get_event_log, get_n8n_client
from astro_api.logger import logger
from astro_api.n8n.client import N8nClient
from astro_api.n8n.events import EventLog, receive_webhook
from astro_api.n8n.models import (
    ClearEventsResponse,
    EventListResponse,
    LatestEventResponse,
    RelayStatus,
    TriggerRequest,
    TriggerResponse,
    WebhookReceipt,
)

router = APIRouter(prefix="/api/n8n", tags=["n8n"])


@router.post("", summary="Relay a payload to n8n")
async def relay(
    payload: Any = Body(None),
    client: N8nClient = Depends(get_n8n_client),
) -> JSONResponse:
    """Forward the body as-is and return whatever n8n answered."""
    result = await client.forward(payload)
    return JSONResponse(content=result)


@router.get("/status", response_model=RelayStatus)
async def relay_status(
    client: N8nClient = Depends(get_n8n_client),
    log: EventLog = Depends(get_event_log),
) -> RelayStatus:
    configured = client.is_configured
    return RelayStatus(
        configured=configured,
        status="ready" if configured else "not configured",
        destination="set" if configured else "not set",
        queue_size=await log.size(),
    )


@router.post("/trigger", response_model=TriggerResponse)
async def trigger(
    request: TriggerRequest,
    client: N8nClient = Depends(get_n8n_client),
) -> TriggerResponse:
    result = await client.trigger_event(request.event, request.data)
    return TriggerResponse(**result)


@router.post("/webhook", response_model=WebhookReceipt)
async def webhook(
    payload: Any = Body(None),
    log: EventLog = Depends(get_event_log),
) -> WebhookReceipt:
    """Callback target for n8n workflows. Any JSON body is accepted."""
    event = await receive_webhook(log, payload)
    return WebhookReceipt(received_at=event.timestamp)


@router.get("/events", response_model=EventListResponse)
async def list_events(log: EventLog = Depends(get_event_log)) -> EventListResponse:
    events = await log.items()
    return EventListResponse(events=events, count=len(events))


@router.get("/events/latest", response_model=LatestEventResponse)
async def latest_event(log: EventLog = Depends(get_event_log)) -> LatestEventResponse:
    return LatestEventResponse(event=await log.latest())


@router.delete("/events", response_model=ClearEventsResponse)
async def clear_events(log: EventLog = Depends(get_event_log)) -> ClearEventsResponse:
    await log.clear()
    logger.info("n8n_events_cleared")
    return ClearEventsResponse()

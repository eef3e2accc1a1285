from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN_EVENT = "unknown"


class WebhookEvent(BaseModel):
    """One inbound callback from the workflow system."""

    event: str = UNKNOWN_EVENT
    timestamp: datetime
    data: Any = None


class TriggerRequest(BaseModel):
    event: str = Field(..., min_length=1, description="Event name sent to the workflow")
    data: Optional[Dict[str, Any]] = None


class _CamelResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TriggerResponse(_CamelResponse):
    success: bool
    message: str
    remote_response: Any = None


class WebhookReceipt(_CamelResponse):
    success: bool = True
    message: str = "Webhook received"
    received_at: datetime


class EventListResponse(BaseModel):
    events: List[WebhookEvent]
    count: int


class LatestEventResponse(BaseModel):
    event: Optional[WebhookEvent] = None


class ClearEventsResponse(BaseModel):
    success: bool = True
    message: str = "Events cleared"


class RelayStatus(_CamelResponse):
    configured: bool
    status: str
    destination: str
    queue_size: int

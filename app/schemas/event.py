# app/schemas/event.py

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class WorkflowEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    entity_type: str
    entity_id: UUID
    from_status: Optional[str] = None
    to_status: str
    actor_role: str
    operation: str
    correlation_id: UUID
    payload: Optional[Dict[str, Any]] = None
    occurred_at: datetime
    delivered_at: Optional[datetime] = None

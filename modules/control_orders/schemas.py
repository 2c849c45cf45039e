from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ControlOrderRead(BaseModel):
    id: int
    order_number: str
    category: str
    source_production_order_id: int
    assigned_workstation_id: int
    status: str
    priority: str
    item_type: str
    tasks: List[Dict[str, Any]] = Field(default_factory=list)
    instructions: Optional[str] = None
    quality_checkpoints: Optional[str] = None
    target_start_time: Optional[datetime] = None
    target_completion_time: Optional[datetime] = None
    actual_start_time: Optional[datetime] = None
    actual_finish_time: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HaltRequest(BaseModel):
    reason: str = Field(..., min_length=1)

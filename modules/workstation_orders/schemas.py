from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class WorkstationOrderRead(BaseModel):
    id: int
    order_number: str
    kind: str
    workstation_id: int
    status: str
    priority: str
    control_order_id: Optional[int] = None
    production_order_id: Optional[int] = None
    warehouse_order_id: Optional[int] = None
    customer_order_id: Optional[int] = None
    supply_order_id: Optional[int] = None
    output_item_type: str
    output_item_id: int
    output_item_name: Optional[str] = None
    quantity: int
    required_inputs: List[Dict[str, Any]] = Field(default_factory=list)
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


class WaitingForPartsRequest(BaseModel):
    supply_order_id: int


class AbandonRequest(BaseModel):
    reason: str = Field(..., min_length=1)

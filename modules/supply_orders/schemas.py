from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SupplyOrderItemCreate(BaseModel):
    part_id: int
    quantity: int = Field(..., gt=0)


class SupplyOrderItemRead(BaseModel):
    id: int
    part_id: int
    quantity_requested: int
    quantity_supplied: int
    unit: str
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class SupplyOrderCreate(BaseModel):
    requesting_workstation_id: int
    items: List[SupplyOrderItemCreate] = Field(..., min_length=1)
    priority: str = "NORMAL"
    required_by: Optional[datetime] = None
    notes: Optional[str] = None


class SupplyOrderRead(BaseModel):
    id: int
    order_number: str
    source_control_order_id: Optional[int] = None
    source_control_category: Optional[str] = None
    requesting_workstation_id: int
    supply_workstation_id: int
    status: str
    priority: str
    required_by: Optional[datetime] = None
    fulfilled_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[SupplyOrderItemRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReasonRequest(BaseModel):
    reason: str = Field(..., min_length=1)

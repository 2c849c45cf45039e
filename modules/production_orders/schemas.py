from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from modules.production_orders.types import Priority


class ProductionOrderItemRead(BaseModel):
    id: int
    item_type: str
    item_id: int
    item_name: Optional[str] = None
    quantity: int
    workstation_type: str
    estimated_minutes: Optional[int] = None

    class Config:
        from_attributes = True


class ProductionOrderRead(BaseModel):
    id: int
    order_number: str
    source_warehouse_order_id: Optional[int] = None
    source_customer_order_id: Optional[int] = None
    status: str
    priority: str
    due_date: Optional[datetime] = None
    schedule_id: Optional[str] = None
    schedule_tasks: Optional[List[Dict[str, Any]]] = None
    completion_submitted_at: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[ProductionOrderItemRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductionRequest(BaseModel):
    priority: Priority = Priority.NORMAL
    due_date: Optional[datetime] = None
    notes: Optional[str] = None

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from modules.warehouse_orders.types import WarehouseOrderStatus


class WarehouseOrderItemRead(BaseModel):
    id: int
    item_type: str
    item_id: int
    item_name: Optional[str] = None
    quantity: int
    fulfilled_quantity: int = 0
    product_id: Optional[int] = None
    product_quantity: Optional[int] = None

    class Config:
        from_attributes = True


class WarehouseOrderRead(BaseModel):
    id: int
    order_number: str
    customer_order_id: int
    workstation_id: int
    status: str
    trigger_scenario: Optional[str] = None
    production_order_id: Optional[int] = None
    notes: Optional[str] = None
    items: List[WarehouseOrderItemRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WarehouseStatusOverride(BaseModel):
    status: WarehouseOrderStatus
    reason: str = Field(..., min_length=1)

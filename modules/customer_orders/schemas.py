from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from modules.integrations.inventory import ItemType


class OrderItemCreate(BaseModel):
    item_type: ItemType = ItemType.PRODUCT
    item_id: int
    quantity: int = Field(..., gt=0)


class OrderItemRead(BaseModel):
    id: int
    item_type: str
    item_id: int
    quantity: int
    fulfilled_quantity: int = 0

    class Config:
        from_attributes = True


class CustomerOrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(default_factory=list)
    workstation_id: Optional[int] = None
    notes: Optional[str] = None


class CustomerOrderRead(BaseModel):
    id: int
    order_number: str
    status: str
    workstation_id: int
    trigger_scenario: Optional[str] = None
    notes: Optional[str] = None
    items: List[OrderItemRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

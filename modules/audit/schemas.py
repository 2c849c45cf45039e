from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AuditEventRead(BaseModel):
    id: int
    order_type: str
    order_id: int
    event_type: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

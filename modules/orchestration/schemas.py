from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ProgressRead(BaseModel):
    total: int
    completed: int
    percent: float
    is_complete: bool
    degraded: bool = False


class NotificationFailureRead(BaseModel):
    target: str
    error: Optional[str] = None


class SideEffectReportRead(BaseModel):
    ok: bool
    succeeded: List[str] = Field(default_factory=list)
    failures: List[NotificationFailureRead] = Field(default_factory=list)


class PropagationRead(BaseModel):
    workstation_order_id: Optional[int] = None
    control_order_completed: bool
    production_order_completed: bool
    warehouse_order_completed: bool
    submission: Optional[SideEffectReportRead] = None
    credit: Optional[SideEffectReportRead] = None


class ScenarioRead(BaseModel):
    order_id: int
    scenario: str


class DispatchRead(BaseModel):
    production_order_id: int
    control_orders: Dict[int, int]


class ScheduledTaskIn(BaseModel):
    workstation_id: int
    item_id: int
    item_name: str = ""
    quantity: int = Field(..., gt=0)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: int = 0


class ScheduleIn(BaseModel):
    schedule_id: str
    tasks: List[ScheduledTaskIn] = Field(default_factory=list)


class HierarchyProgressRead(BaseModel):
    order_type: str
    order_id: int
    progress: ProgressRead

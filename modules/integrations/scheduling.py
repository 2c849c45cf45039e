"""HTTP client for the production scheduling service."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from core.settings import Settings

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    pass


def _parse_time(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass
class ScheduledTask:
    workstation_id: int
    item_id: int
    item_name: str
    quantity: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduledTask":
        return cls(
            workstation_id=int(data.get("workstationId", data.get("workstation_id"))),
            item_id=int(data.get("itemId", data.get("item_id"))),
            item_name=data.get("itemName", data.get("item_name")) or "",
            quantity=int(data.get("quantity") or 0),
            start_time=_parse_time(data.get("startTime", data.get("start_time"))),
            end_time=_parse_time(data.get("endTime", data.get("end_time"))),
            duration=int(data.get("duration") or 0),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "workstation_id": self.workstation_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration": self.duration,
        }


@dataclass
class ScheduledPlan:
    schedule_id: str
    tasks: List[ScheduledTask] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduledPlan":
        return cls(
            schedule_id=str(data.get("scheduleId", data.get("schedule_id"))),
            tasks=[ScheduledTask.from_dict(task) for task in data.get("tasks") or []],
        )


class SchedulingClient:
    def __init__(self, base_url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SchedulingClient":
        return cls(settings.scheduling_service_url, timeout=settings.scheduling_timeout)

    def submit(
        self,
        order_number: str,
        priority: str,
        due_date: Optional[datetime],
        line_items: List[Dict[str, Any]],
    ) -> ScheduledPlan:
        payload = {
            "orderNumber": order_number,
            "priority": priority,
            "dueDate": due_date.date().isoformat() if due_date else None,
            "lineItems": line_items,
        }
        try:
            response = self.session.post(
                f"{self.base_url}/simal/production-order", json=payload, timeout=self.timeout
            )
            response.raise_for_status()
            plan = ScheduledPlan.from_dict(response.json() or {})
        except (requests.RequestException, ValueError, TypeError) as exc:
            raise SchedulingError(f"Scheduling submission failed for {order_number}") from exc
        logger.info("Scheduled %s as %s with %d task(s)", order_number, plan.schedule_id, len(plan.tasks))
        return plan

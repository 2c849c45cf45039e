import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.errors import InvalidStateTransitionException, NotFoundException, require_status
from core.models import next_order_number, utcnow
from modules.audit import service as audit
from modules.control_orders import models
from modules.control_orders.types import (
    NUMBER_PREFIXES,
    OUTPUT_ITEM_TYPES,
    TERMINAL_STATUSES,
    ControlCategory,
    ControlOrderStatus,
)

logger = logging.getLogger(__name__)


def create_order(
    db: Session,
    category: ControlCategory,
    production_order_id: int,
    workstation_id: int,
    tasks: List[Dict[str, Any]],
    priority: str = "NORMAL",
    instructions: Optional[str] = None,
    quality_checkpoints: Optional[str] = None,
    target_start_time: Optional[datetime] = None,
    target_completion_time: Optional[datetime] = None,
) -> models.ControlOrder:
    prefix = NUMBER_PREFIXES[category.value]
    order = models.ControlOrder(
        order_number=next_order_number(db, models.ControlOrder.order_number, prefix),
        category=category.value,
        source_production_order_id=production_order_id,
        assigned_workstation_id=workstation_id,
        status=ControlOrderStatus.ASSIGNED.value,
        priority=priority,
        item_type=OUTPUT_ITEM_TYPES[category.value],
        tasks=tasks,
        instructions=instructions,
        quality_checkpoints=quality_checkpoints,
        target_start_time=target_start_time,
        target_completion_time=target_completion_time,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info(
        "Created %s control order %s for workstation %s (%d task(s))",
        category.value.lower(),
        order.order_number,
        workstation_id,
        len(tasks),
    )
    audit.record_event(db, audit.CONTROL, order.id, "CREATED", f"Assigned to workstation {workstation_id}")
    return order


def get_order(db: Session, order_id: int) -> models.ControlOrder:
    order = db.query(models.ControlOrder).filter(models.ControlOrder.id == order_id).first()
    if not order:
        raise NotFoundException(f"Control order {order_id} not found")
    return order


def list_orders(
    db: Session,
    status: Optional[str] = None,
    category: Optional[str] = None,
    production_order_id: Optional[int] = None,
    workstation_id: Optional[int] = None,
) -> List[models.ControlOrder]:
    query = db.query(models.ControlOrder)
    if status:
        query = query.filter(models.ControlOrder.status == status)
    if category:
        query = query.filter(models.ControlOrder.category == category)
    if production_order_id is not None:
        query = query.filter(models.ControlOrder.source_production_order_id == production_order_id)
    if workstation_id is not None:
        query = query.filter(models.ControlOrder.assigned_workstation_id == workstation_id)
    return query.order_by(models.ControlOrder.id).all()


def count_by_production_order(
    db: Session, production_order_id: int, category: Optional[str] = None, status: Optional[str] = None
) -> int:
    query = db.query(models.ControlOrder).filter(models.ControlOrder.source_production_order_id == production_order_id)
    if category:
        query = query.filter(models.ControlOrder.category == category)
    if status:
        query = query.filter(models.ControlOrder.status == status)
    return query.count()


def mark_in_progress(db: Session, order: models.ControlOrder) -> None:
    require_status(order, [ControlOrderStatus.ASSIGNED], "dispatch")
    order.status = ControlOrderStatus.IN_PROGRESS.value
    order.actual_start_time = utcnow()
    db.commit()
    db.refresh(order)
    logger.info("Control order %s dispatched to workstation %s", order.order_number, order.assigned_workstation_id)
    audit.record_event(db, audit.CONTROL, order.id, "IN_PROGRESS", "Dispatched to workstation")


def mark_completed(db: Session, order: models.ControlOrder) -> bool:
    if order.status == ControlOrderStatus.COMPLETED.value:
        logger.info("Control order %s already completed, skipping", order.order_number)
        return False
    now = utcnow()
    order.status = ControlOrderStatus.COMPLETED.value
    order.actual_finish_time = now
    order.completed_at = now
    db.commit()
    db.refresh(order)
    logger.info("Control order %s completed", order.order_number)
    audit.record_event(db, audit.CONTROL, order.id, "COMPLETED", "All workstation orders completed")
    return True


def halt_order(db: Session, order_id: int, reason: str) -> models.ControlOrder:
    order = get_order(db, order_id)
    require_status(order, [ControlOrderStatus.IN_PROGRESS], "halt")
    order.status = ControlOrderStatus.HALTED.value
    order.notes = _append_note(order.notes, f"Halted: {reason}")
    db.commit()
    db.refresh(order)
    logger.info("Control order %s halted: %s", order.order_number, reason)
    audit.record_event(db, audit.CONTROL, order.id, "HALTED", reason)
    return order


def resume_order(db: Session, order_id: int) -> models.ControlOrder:
    order = get_order(db, order_id)
    require_status(order, [ControlOrderStatus.HALTED], "resume")
    order.status = ControlOrderStatus.IN_PROGRESS.value
    db.commit()
    db.refresh(order)
    audit.record_event(db, audit.CONTROL, order.id, "RESUMED", "Control order resumed")
    return order


def cancel_order(db: Session, order_id: int) -> models.ControlOrder:
    order = get_order(db, order_id)
    if order.status in TERMINAL_STATUSES:
        raise InvalidStateTransitionException(f"Cannot cancel {order.order_number}: status is {order.status}")
    order.status = ControlOrderStatus.CANCELLED.value
    db.commit()
    db.refresh(order)
    audit.record_event(db, audit.CONTROL, order.id, "CANCELLED", "Control order cancelled")
    return order


def _append_note(existing: Optional[str], note: str) -> str:
    return f"{existing}\n{note}" if existing else note

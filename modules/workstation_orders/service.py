import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.errors import InvalidStateTransitionException, NotFoundException, require_status
from core.models import next_order_number, utcnow
from core.settings import Settings
from modules.audit import service as audit
from modules.workstation_orders import models
from modules.workstation_orders.types import (
    STARTABLE_STATUSES,
    TERMINAL_STATUSES,
    WorkstationOrderKind,
    WorkstationOrderStatus,
)

logger = logging.getLogger(__name__)


def create_order(
    db: Session,
    settings: Settings,
    kind: WorkstationOrderKind,
    output_item_type: str,
    output_item_id: int,
    quantity: int,
    status: WorkstationOrderStatus = WorkstationOrderStatus.PENDING,
    output_item_name: Optional[str] = None,
    required_inputs: Optional[List[Dict[str, Any]]] = None,
    control_order_id: Optional[int] = None,
    production_order_id: Optional[int] = None,
    warehouse_order_id: Optional[int] = None,
    customer_order_id: Optional[int] = None,
    priority: str = "NORMAL",
    target_start_time: Optional[datetime] = None,
    target_completion_time: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> models.WorkstationOrder:
    order = models.WorkstationOrder(
        order_number=next_order_number(db, models.WorkstationOrder.order_number, kind.number_prefix),
        kind=kind.value,
        workstation_id=settings.workstation_id_for(kind.value),
        status=status.value,
        priority=priority,
        control_order_id=control_order_id,
        production_order_id=production_order_id,
        warehouse_order_id=warehouse_order_id,
        customer_order_id=customer_order_id,
        output_item_type=output_item_type,
        output_item_id=output_item_id,
        output_item_name=output_item_name,
        quantity=quantity,
        required_inputs=required_inputs or [],
        target_start_time=target_start_time,
        target_completion_time=target_completion_time,
        notes=notes,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info(
        "Created %s order %s at workstation %s (%s)", kind.value, order.order_number, order.workstation_id, order.status
    )
    audit.record_event(db, audit.WORKSTATION, order.id, "CREATED", f"{kind.value} order created as {order.status}")
    return order


def get_order(db: Session, order_id: int) -> models.WorkstationOrder:
    order = db.query(models.WorkstationOrder).filter(models.WorkstationOrder.id == order_id).first()
    if not order:
        raise NotFoundException(f"Workstation order {order_id} not found")
    return order


def list_orders(
    db: Session,
    status: Optional[str] = None,
    kind: Optional[str] = None,
    workstation_id: Optional[int] = None,
    control_order_id: Optional[int] = None,
    warehouse_order_id: Optional[int] = None,
    customer_order_id: Optional[int] = None,
    production_order_id: Optional[int] = None,
) -> List[models.WorkstationOrder]:
    query = db.query(models.WorkstationOrder)
    filters = {
        models.WorkstationOrder.status: status,
        models.WorkstationOrder.kind: kind,
        models.WorkstationOrder.workstation_id: workstation_id,
        models.WorkstationOrder.control_order_id: control_order_id,
        models.WorkstationOrder.warehouse_order_id: warehouse_order_id,
        models.WorkstationOrder.customer_order_id: customer_order_id,
        models.WorkstationOrder.production_order_id: production_order_id,
    }
    for column, value in filters.items():
        if value is not None:
            query = query.filter(column == value)
    return query.order_by(models.WorkstationOrder.id).all()


def count_by_parent(
    db: Session,
    parent_column,
    parent_id: int,
    kind: WorkstationOrderKind,
    status: Optional[str] = None,
) -> int:
    query = db.query(models.WorkstationOrder).filter(
        parent_column == parent_id,
        models.WorkstationOrder.kind == kind.value,
    )
    if status:
        query = query.filter(models.WorkstationOrder.status == status)
    return query.count()


def start_order(db: Session, order_id: int) -> models.WorkstationOrder:
    order = get_order(db, order_id)
    require_status(order, STARTABLE_STATUSES, "start")
    order.status = WorkstationOrderStatus.IN_PROGRESS.value
    order.actual_start_time = utcnow()
    db.commit()
    db.refresh(order)
    logger.info("Started %s order %s at workstation %s", order.kind, order.order_number, order.workstation_id)
    audit.record_event(db, audit.WORKSTATION, order.id, "IN_PROGRESS", "Work started")
    return order


def complete_order(db: Session, order_id: int) -> models.WorkstationOrder:
    """Mark the order COMPLETED. Upward propagation is the caller's job."""
    order = get_order(db, order_id)
    require_status(order, [WorkstationOrderStatus.IN_PROGRESS], "complete")
    now = utcnow()
    order.status = WorkstationOrderStatus.COMPLETED.value
    order.actual_finish_time = now
    order.completed_at = now
    db.commit()
    db.refresh(order)
    logger.info(
        "Completed %s order %s: %s x %s",
        order.kind,
        order.order_number,
        order.quantity,
        order.output_item_name or order.output_item_id,
    )
    audit.record_event(db, audit.WORKSTATION, order.id, "COMPLETED", "Work completed")
    return order


def halt_order(db: Session, order_id: int) -> models.WorkstationOrder:
    order = get_order(db, order_id)
    require_status(order, [WorkstationOrderStatus.IN_PROGRESS], "halt")
    order.status = WorkstationOrderStatus.HALTED.value
    db.commit()
    db.refresh(order)
    logger.info("Halted %s order %s", order.kind, order.order_number)
    audit.record_event(db, audit.WORKSTATION, order.id, "HALTED", "Work halted by operator")
    return order


def resume_order(db: Session, order_id: int) -> models.WorkstationOrder:
    order = get_order(db, order_id)
    require_status(order, [WorkstationOrderStatus.HALTED], "resume")
    order.status = WorkstationOrderStatus.IN_PROGRESS.value
    db.commit()
    db.refresh(order)
    logger.info("Resumed %s order %s", order.kind, order.order_number)
    audit.record_event(db, audit.WORKSTATION, order.id, "RESUMED", "Work resumed")
    return order


def abandon_order(db: Session, order_id: int, reason: str) -> models.WorkstationOrder:
    order = get_order(db, order_id)
    if order.status in TERMINAL_STATUSES:
        raise InvalidStateTransitionException(f"Cannot abandon {order.order_number}: status is {order.status}")
    order.status = WorkstationOrderStatus.ABANDONED.value
    order.notes = f"{order.notes}\nAbandoned: {reason}" if order.notes else f"Abandoned: {reason}"
    db.commit()
    db.refresh(order)
    logger.info("Abandoned %s order %s: %s", order.kind, order.order_number, reason)
    audit.record_event(db, audit.WORKSTATION, order.id, "ABANDONED", reason)
    return order


def mark_waiting_for_parts(db: Session, order_id: int, supply_order_id: int) -> models.WorkstationOrder:
    order = get_order(db, order_id)
    require_status(order, STARTABLE_STATUSES, "mark waiting for parts")
    order.status = WorkstationOrderStatus.WAITING_FOR_PARTS.value
    order.supply_order_id = supply_order_id
    db.commit()
    db.refresh(order)
    logger.info("%s order %s waiting for parts (supply order #%s)", order.kind, order.order_number, supply_order_id)
    audit.record_event(db, audit.WORKSTATION, order.id, "WAITING_FOR_PARTS", f"Supply order #{supply_order_id}")
    return order

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from core.errors import (
    ConfigurationInvariantViolation,
    InvalidStateTransitionException,
    NotFoundException,
    require_status,
)
from core.models import next_order_number, utcnow
from modules.audit import service as audit
from modules.production_orders import models
from modules.production_orders.types import (
    TERMINAL_STATUSES,
    Priority,
    ProductionOrderStatus,
    ProductionSource,
)

logger = logging.getLogger(__name__)


def create_order(
    db: Session,
    items: Iterable[Dict[str, Any]],
    source_warehouse_order_id: Optional[int] = None,
    source_customer_order_id: Optional[int] = None,
    priority: Priority = Priority.NORMAL,
    due_date: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> models.ProductionOrder:
    if (source_warehouse_order_id is None) == (source_customer_order_id is None):
        raise ConfigurationInvariantViolation(
            "A production order needs exactly one of source warehouse order or source customer order"
        )
    order = models.ProductionOrder(
        order_number=next_order_number(db, models.ProductionOrder.order_number, "PO-", width=5),
        source_warehouse_order_id=source_warehouse_order_id,
        source_customer_order_id=source_customer_order_id,
        status=ProductionOrderStatus.CREATED.value,
        priority=priority.value,
        due_date=due_date,
        notes=notes,
        items=[models.ProductionOrderItem(**item) for item in items],
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info(
        "Created production order %s (%s-sourced, %d item(s))",
        order.order_number,
        source_of(order).value.lower(),
        len(order.items),
    )
    audit.record_event(db, audit.PRODUCTION, order.id, "CREATED", notes or "")
    return order


def get_order(db: Session, order_id: int) -> models.ProductionOrder:
    order = db.query(models.ProductionOrder).filter(models.ProductionOrder.id == order_id).first()
    if not order:
        raise NotFoundException(f"Production order {order_id} not found")
    return order


def list_orders(
    db: Session,
    status: Optional[str] = None,
    source_warehouse_order_id: Optional[int] = None,
    source_customer_order_id: Optional[int] = None,
) -> List[models.ProductionOrder]:
    query = db.query(models.ProductionOrder)
    if status:
        query = query.filter(models.ProductionOrder.status == status)
    if source_warehouse_order_id is not None:
        query = query.filter(models.ProductionOrder.source_warehouse_order_id == source_warehouse_order_id)
    if source_customer_order_id is not None:
        query = query.filter(models.ProductionOrder.source_customer_order_id == source_customer_order_id)
    return query.order_by(models.ProductionOrder.id).all()


def source_of(order: models.ProductionOrder) -> ProductionSource:
    if order.source_warehouse_order_id is not None and order.source_customer_order_id is None:
        return ProductionSource.WAREHOUSE
    if order.source_customer_order_id is not None and order.source_warehouse_order_id is None:
        return ProductionSource.CUSTOMER
    raise ConfigurationInvariantViolation(
        f"Production order {order.order_number} must reference exactly one source order"
    )


def _transition(db: Session, order: models.ProductionOrder, status: ProductionOrderStatus, event: str) -> None:
    order.status = status.value
    db.commit()
    db.refresh(order)
    logger.info("Production order %s -> %s", order.order_number, status.value)
    audit.record_event(db, audit.PRODUCTION, order.id, status.value, event)


def confirm_order(db: Session, order_id: int) -> models.ProductionOrder:
    order = get_order(db, order_id)
    require_status(order, [ProductionOrderStatus.CREATED], "confirm")
    _transition(db, order, ProductionOrderStatus.CONFIRMED, "Production order confirmed")
    return order


def record_schedule(db: Session, order: models.ProductionOrder, schedule_id: str, tasks: List[Dict[str, Any]]) -> None:
    require_status(order, [ProductionOrderStatus.CONFIRMED], "schedule")
    order.schedule_id = schedule_id
    order.schedule_tasks = tasks
    _transition(db, order, ProductionOrderStatus.SCHEDULED, f"Scheduled as {schedule_id} with {len(tasks)} task(s)")


def mark_dispatched(db: Session, order: models.ProductionOrder, control_order_count: int) -> None:
    require_status(order, [ProductionOrderStatus.SCHEDULED], "dispatch")
    _transition(db, order, ProductionOrderStatus.DISPATCHED, f"{control_order_count} control order(s) created")


def mark_in_progress(db: Session, order: models.ProductionOrder) -> bool:
    if order.status != ProductionOrderStatus.DISPATCHED.value:
        return False
    _transition(db, order, ProductionOrderStatus.IN_PROGRESS, "Work started at a workstation")
    return True


def mark_completed(db: Session, order: models.ProductionOrder) -> bool:
    if order.status == ProductionOrderStatus.COMPLETED.value:
        logger.info("Production order %s already completed, skipping", order.order_number)
        return False
    if order.status == ProductionOrderStatus.CANCELLED.value:
        raise InvalidStateTransitionException(f"Cannot complete {order.order_number}: status is CANCELLED")
    order.completed_at = utcnow()
    _transition(db, order, ProductionOrderStatus.COMPLETED, "All control orders completed")
    return True


def claim_completion_submission(db: Session, order: models.ProductionOrder) -> bool:
    """Stamp the order as submitted; False when a previous submission already ran."""
    if order.completion_submitted_at is not None:
        logger.info("Production order %s completion already submitted, skipping", order.order_number)
        return False
    order.completion_submitted_at = utcnow()
    db.commit()
    db.refresh(order)
    return True


def cancel_order(db: Session, order_id: int) -> models.ProductionOrder:
    order = get_order(db, order_id)
    if order.status in TERMINAL_STATUSES:
        raise InvalidStateTransitionException(f"Cannot cancel {order.order_number}: status is {order.status}")
    _transition(db, order, ProductionOrderStatus.CANCELLED, "Production order cancelled")
    return order

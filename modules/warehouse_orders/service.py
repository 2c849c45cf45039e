import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from core.errors import InvalidStateTransitionException, NotFoundException, require_status
from core.models import next_order_number, utcnow
from modules.audit import service as audit
from modules.warehouse_orders import models
from modules.warehouse_orders.types import (
    READY_FROM_PRODUCTION_STATUSES,
    TERMINAL_STATUSES,
    TriggerScenario,
    WarehouseOrderStatus,
)

logger = logging.getLogger(__name__)


def create_order(
    db: Session,
    customer_order_id: int,
    customer_order_number: str,
    workstation_id: int,
    items: Iterable[Dict[str, Any]],
) -> models.WarehouseOrder:
    order = models.WarehouseOrder(
        order_number=next_order_number(db, models.WarehouseOrder.order_number, "WO-"),
        customer_order_id=customer_order_id,
        workstation_id=workstation_id,
        status=WarehouseOrderStatus.PENDING.value,
        notes=f"Auto-generated from customer order {customer_order_number}",
        items=[models.WarehouseOrderItem(**item) for item in items],
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Created warehouse order %s for customer order %s", order.order_number, customer_order_number)
    audit.record_event(db, audit.WAREHOUSE, order.id, "CREATED", order.notes)
    return order


def get_order(db: Session, order_id: int) -> models.WarehouseOrder:
    order = db.query(models.WarehouseOrder).filter(models.WarehouseOrder.id == order_id).first()
    if not order:
        raise NotFoundException(f"Warehouse order {order_id} not found")
    return order


def list_orders(
    db: Session, status: Optional[str] = None, customer_order_id: Optional[int] = None
) -> List[models.WarehouseOrder]:
    query = db.query(models.WarehouseOrder)
    if status:
        query = query.filter(models.WarehouseOrder.status == status)
    if customer_order_id is not None:
        query = query.filter(models.WarehouseOrder.customer_order_id == customer_order_id)
    return query.order_by(models.WarehouseOrder.id).all()


def count_by_customer_order(db: Session, customer_order_id: int, status: Optional[str] = None) -> int:
    query = db.query(models.WarehouseOrder).filter(models.WarehouseOrder.customer_order_id == customer_order_id)
    if status:
        query = query.filter(models.WarehouseOrder.status == status)
    return query.count()


def record_confirmation(db: Session, order: models.WarehouseOrder, scenario: TriggerScenario) -> models.WarehouseOrder:
    require_status(order, [WarehouseOrderStatus.PENDING], "confirm")
    order.trigger_scenario = scenario.value
    order.status = WarehouseOrderStatus.CONFIRMED.value
    db.commit()
    db.refresh(order)
    logger.info("Warehouse order %s confirmed: %s", order.order_number, scenario.value)
    audit.record_event(db, audit.WAREHOUSE, order.id, "CONFIRMED", f"Order confirmed - scenario {scenario.value}")
    return order


def link_production_order(db: Session, order: models.WarehouseOrder, production_order_id: int) -> models.WarehouseOrder:
    order.production_order_id = production_order_id
    order.status = WarehouseOrderStatus.AWAITING_PRODUCTION.value
    db.commit()
    db.refresh(order)
    logger.info("Warehouse order %s awaiting production order #%s", order.order_number, production_order_id)
    audit.record_event(
        db, audit.WAREHOUSE, order.id, "AWAITING_PRODUCTION", f"Production order #{production_order_id} requested"
    )
    return order


def mark_processing(db: Session, order: models.WarehouseOrder) -> models.WarehouseOrder:
    order.status = WarehouseOrderStatus.PROCESSING.value
    db.commit()
    db.refresh(order)
    audit.record_event(db, audit.WAREHOUSE, order.id, "PROCESSING", "Modules issued to final assembly")
    return order


def mark_ready_from_production(db: Session, order: models.WarehouseOrder) -> bool:
    """Hand the order back for direct fulfillment once its production has been credited."""
    if order.status not in {s.value for s in READY_FROM_PRODUCTION_STATUSES}:
        logger.warning(
            "Warehouse order %s is %s; not switching to direct fulfillment", order.order_number, order.status
        )
        return False
    order.status = WarehouseOrderStatus.CONFIRMED.value
    order.trigger_scenario = TriggerScenario.DIRECT_FULFILLMENT.value
    db.commit()
    db.refresh(order)
    logger.info("Warehouse order %s ready for fulfillment after production", order.order_number)
    audit.record_event(db, audit.WAREHOUSE, order.id, "READY", "Production completed - ready for fulfillment")
    return True


def mark_completed(db: Session, order: models.WarehouseOrder) -> bool:
    if order.status == WarehouseOrderStatus.COMPLETED.value:
        logger.info("Warehouse order %s already completed, skipping", order.order_number)
        return False
    order.status = WarehouseOrderStatus.COMPLETED.value
    order.completed_at = utcnow()
    db.commit()
    db.refresh(order)
    logger.info("Warehouse order %s completed", order.order_number)
    audit.record_event(db, audit.WAREHOUSE, order.id, "COMPLETED", "All final assembly orders completed")
    return True


def set_status(db: Session, order_id: int, status: WarehouseOrderStatus, reason: str) -> models.WarehouseOrder:
    """Privileged operator override that bypasses the normal transition rules.

    The value must still belong to the warehouse alphabet and a terminal order
    cannot be reopened. Every override is written to the audit trail.
    """
    order = get_order(db, order_id)
    if order.status in TERMINAL_STATUSES:
        raise InvalidStateTransitionException(
            f"Cannot override status of {order.order_number}: status is {order.status}"
        )
    previous = order.status
    order.status = status.value
    if status == WarehouseOrderStatus.COMPLETED:
        order.completed_at = utcnow()
    db.commit()
    db.refresh(order)
    logger.warning("Warehouse order %s status overridden %s -> %s: %s", order.order_number, previous, status.value, reason)
    audit.record_event(
        db, audit.WAREHOUSE, order.id, "STATUS_OVERRIDE", f"{previous} -> {status.value}: {reason}"
    )
    return order


def cancel_order(db: Session, order_id: int) -> models.WarehouseOrder:
    order = get_order(db, order_id)
    if order.status in TERMINAL_STATUSES:
        raise InvalidStateTransitionException(f"Cannot cancel {order.order_number}: status is {order.status}")
    order.status = WarehouseOrderStatus.CANCELLED.value
    db.commit()
    db.refresh(order)
    audit.record_event(db, audit.WAREHOUSE, order.id, "CANCELLED", "Order cancelled")
    return order

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from core.errors import (
    InvalidStateTransitionException,
    NotFoundException,
    ValidationAppException,
    require_status,
)
from core.models import next_order_number, utcnow
from core.settings import Settings
from modules.audit import service as audit
from modules.customer_orders import models, schemas
from modules.customer_orders.types import TERMINAL_STATUSES, CustomerOrderStatus

logger = logging.getLogger(__name__)


def create_order(db: Session, order_in: schemas.CustomerOrderCreate, settings: Settings) -> models.CustomerOrder:
    if not order_in.items:
        raise ValidationAppException("A customer order needs at least one line item")
    if len(order_in.items) > settings.max_order_items:
        raise ValidationAppException(f"A customer order may hold at most {settings.max_order_items} line items")

    order = models.CustomerOrder(
        order_number=next_order_number(db, models.CustomerOrder.order_number, "ORD-"),
        status=CustomerOrderStatus.PENDING.value,
        workstation_id=order_in.workstation_id or settings.plant_warehouse_workstation_id,
        notes=order_in.notes,
        items=[
            models.CustomerOrderItem(item_type=item.item_type.value, item_id=item.item_id, quantity=item.quantity)
            for item in order_in.items
        ],
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Created customer order %s with %d item(s)", order.order_number, len(order.items))
    audit.record_event(db, audit.CUSTOMER, order.id, "CREATED", f"Customer order {order.order_number} created")
    return order


def get_order(db: Session, order_id: int) -> models.CustomerOrder:
    order = db.query(models.CustomerOrder).filter(models.CustomerOrder.id == order_id).first()
    if not order:
        raise NotFoundException(f"Customer order {order_id} not found")
    return order


def list_orders(db: Session, status: Optional[str] = None) -> List[models.CustomerOrder]:
    query = db.query(models.CustomerOrder)
    if status:
        query = query.filter(models.CustomerOrder.status == status)
    return query.order_by(models.CustomerOrder.id).all()


def total_quantity(order: models.CustomerOrder) -> int:
    return sum(item.quantity for item in order.items)


def record_confirmation(db: Session, order: models.CustomerOrder, scenario: str, status: str) -> models.CustomerOrder:
    require_status(order, [CustomerOrderStatus.PENDING], "confirm")
    order.trigger_scenario = scenario
    order.status = status
    db.commit()
    db.refresh(order)
    logger.info("Customer order %s confirmed: scenario %s, status %s", order.order_number, scenario, status)
    audit.record_event(db, audit.CUSTOMER, order.id, "CONFIRMED", f"Order confirmed - scenario {scenario}")
    return order


def complete_order(db: Session, order_id: int) -> models.CustomerOrder:
    """Explicit fulfillment action; completion never cascades into a customer order."""
    order = get_order(db, order_id)
    require_status(order, [CustomerOrderStatus.PROCESSING, CustomerOrderStatus.CONFIRMED], "complete")
    order.status = CustomerOrderStatus.COMPLETED.value
    order.completed_at = utcnow()
    db.commit()
    db.refresh(order)
    logger.info("Customer order %s completed", order.order_number)
    audit.record_event(db, audit.CUSTOMER, order.id, "COMPLETED", "Order completed")
    return order


def cancel_order(db: Session, order_id: int) -> models.CustomerOrder:
    order = get_order(db, order_id)
    if order.status in TERMINAL_STATUSES:
        raise InvalidStateTransitionException(f"Cannot cancel {order.order_number}: status is {order.status}")
    order.status = CustomerOrderStatus.CANCELLED.value
    db.commit()
    db.refresh(order)
    audit.record_event(db, audit.CUSTOMER, order.id, "CANCELLED", "Order cancelled")
    return order

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from core.errors import InvalidStateTransitionException, NotFoundException, require_status
from core.models import next_order_number, utcnow
from core.notifications import SideEffectReport
from core.settings import Settings
from modules.audit import service as audit
from modules.integrations.inventory import ItemType, StockReason
from modules.supply_orders import models
from modules.supply_orders.types import OPEN_STATUSES, SupplyOrderStatus

logger = logging.getLogger(__name__)


def create_order(
    db: Session,
    settings: Settings,
    requesting_workstation_id: int,
    items: Iterable[Dict[str, Any]],
    source_control_order_id: Optional[int] = None,
    source_control_category: Optional[str] = None,
    priority: str = "NORMAL",
    required_by: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> models.SupplyOrder:
    order = models.SupplyOrder(
        order_number=next_order_number(db, models.SupplyOrder.order_number, "SO-", width=5),
        source_control_order_id=source_control_order_id,
        source_control_category=source_control_category,
        requesting_workstation_id=requesting_workstation_id,
        supply_workstation_id=settings.parts_supply_workstation_id,
        status=SupplyOrderStatus.PENDING.value,
        priority=priority,
        required_by=required_by,
        notes=notes,
        items=[
            models.SupplyOrderItem(
                part_id=item["part_id"],
                quantity_requested=item["quantity"],
                quantity_supplied=0,
                unit="piece",
                notes=item.get("notes"),
            )
            for item in items
        ],
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info(
        "Created supply order %s for workstation %s with %d part type(s)",
        order.order_number,
        requesting_workstation_id,
        len(order.items),
    )
    audit.record_event(db, audit.SUPPLY, order.id, "CREATED", notes or "")
    return order


def get_order(db: Session, order_id: int) -> models.SupplyOrder:
    order = db.query(models.SupplyOrder).filter(models.SupplyOrder.id == order_id).first()
    if not order:
        raise NotFoundException(f"Supply order {order_id} not found")
    return order


def list_orders(
    db: Session,
    status: Optional[str] = None,
    requesting_workstation_id: Optional[int] = None,
    control_order_id: Optional[int] = None,
) -> List[models.SupplyOrder]:
    query = db.query(models.SupplyOrder)
    if status:
        query = query.filter(models.SupplyOrder.status == status)
    if requesting_workstation_id is not None:
        query = query.filter(models.SupplyOrder.requesting_workstation_id == requesting_workstation_id)
    if control_order_id is not None:
        query = query.filter(models.SupplyOrder.source_control_order_id == control_order_id)
    return query.order_by(models.SupplyOrder.id).all()


def find_by_control_order(db: Session, control_order_id: int) -> List[models.SupplyOrder]:
    return list_orders(db, control_order_id=control_order_id)


def start_order(db: Session, order_id: int) -> models.SupplyOrder:
    order = get_order(db, order_id)
    require_status(order, [SupplyOrderStatus.PENDING], "start")
    order.status = SupplyOrderStatus.IN_PROGRESS.value
    db.commit()
    db.refresh(order)
    audit.record_event(db, audit.SUPPLY, order.id, "IN_PROGRESS", "Picking started")
    return order


def fulfill_order(db: Session, order_id: int, inventory) -> SideEffectReport:
    """Mark the order FULFILLED, then move the parts between depots best-effort."""
    order = get_order(db, order_id)
    require_status(order, OPEN_STATUSES, "fulfill")
    for item in order.items:
        item.quantity_supplied = item.quantity_requested
    order.status = SupplyOrderStatus.FULFILLED.value
    order.fulfilled_at = utcnow()
    db.commit()
    db.refresh(order)
    logger.info("Supply order %s fulfilled", order.order_number)
    audit.record_event(db, audit.SUPPLY, order.id, "FULFILLED", "Parts delivered")

    report = SideEffectReport()
    note = f"Supply order {order.order_number}"
    for item in order.items:
        report.attempt(
            f"debit parts supply {item.part_id}",
            inventory.debit_stock,
            order.supply_workstation_id,
            ItemType.PART.value,
            item.part_id,
            item.quantity_supplied,
            StockReason.SUPPLY.value,
            note,
        )
        report.attempt(
            f"credit workstation {order.requesting_workstation_id} part {item.part_id}",
            inventory.credit_stock,
            order.requesting_workstation_id,
            ItemType.PART.value,
            item.part_id,
            item.quantity_supplied,
            StockReason.SUPPLY.value,
            note,
        )
    audit.record_notification_failures(db, audit.SUPPLY, order.id, report.failures)
    return report


def reject_order(db: Session, order_id: int, reason: str) -> models.SupplyOrder:
    return _close(db, order_id, SupplyOrderStatus.REJECTED, "Rejected", reason)


def cancel_order(db: Session, order_id: int, reason: str) -> models.SupplyOrder:
    return _close(db, order_id, SupplyOrderStatus.CANCELLED, "Cancelled", reason)


def _close(db: Session, order_id: int, status: SupplyOrderStatus, label: str, reason: str) -> models.SupplyOrder:
    order = get_order(db, order_id)
    if order.status not in {s.value for s in OPEN_STATUSES}:
        raise InvalidStateTransitionException(
            f"Cannot mark {order.order_number} {status.value}: status is {order.status}"
        )
    order.status = status.value
    if status == SupplyOrderStatus.REJECTED:
        order.rejected_at = utcnow()
    else:
        order.cancelled_at = utcnow()
    order.notes = f"{order.notes}\n{label}: {reason}" if order.notes else f"{label}: {reason}"
    db.commit()
    db.refresh(order)
    logger.info("Supply order %s %s: %s", order.order_number, status.value.lower(), reason)
    audit.record_event(db, audit.SUPPLY, order.id, status.value, reason)
    return order

"""Order audit trail.

Events are written in their own commit so they survive a later failure in
the same cascade. Downstream notification failures are recorded here; this
is where operators see "the action succeeded but a dependent update did not".
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from modules.audit import models

logger = logging.getLogger(__name__)

CUSTOMER = "CUSTOMER"
WAREHOUSE = "WAREHOUSE"
PRODUCTION = "PRODUCTION"
CONTROL = "CONTROL"
WORKSTATION = "WORKSTATION"
SUPPLY = "SUPPLY"

ORDER_TYPES = (CUSTOMER, WAREHOUSE, PRODUCTION, CONTROL, WORKSTATION, SUPPLY)


def record_event(db: Session, order_type: str, order_id: int, event_type: str, description: str = "") -> None:
    event = models.OrderAuditEvent(
        order_type=order_type, order_id=order_id, event_type=event_type, description=description
    )
    try:
        db.add(event)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not record audit event %s for %s #%s", event_type, order_type, order_id)


def record_notification_failures(db: Session, order_type: str, order_id: int, failures: Iterable) -> None:
    for failure in failures:
        record_event(
            db,
            order_type,
            order_id,
            "NOTIFICATION_FAILED",
            f"{failure.target}: {failure.error}",
        )


def list_events(db: Session, order_type: str, order_id: int, event_type: Optional[str] = None) -> List[models.OrderAuditEvent]:
    query = db.query(models.OrderAuditEvent).filter(
        models.OrderAuditEvent.order_type == order_type,
        models.OrderAuditEvent.order_id == order_id,
    )
    if event_type:
        query = query.filter(models.OrderAuditEvent.event_type == event_type)
    return query.order_by(models.OrderAuditEvent.id).all()

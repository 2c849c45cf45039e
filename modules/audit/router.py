from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from core.errors import ValidationAppException
from modules.audit import schemas, service

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/{order_type}/{order_id}", response_model=list[schemas.AuditEventRead])
def list_audit_events_endpoint(order_type: str, order_id: int, db: Session = Depends(get_db)):
    order_type = order_type.upper()
    if order_type not in service.ORDER_TYPES:
        raise ValidationAppException(f"Unknown order type: {order_type}")
    return service.list_events(db, order_type, order_id)

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from core.settings import Settings, get_settings
from modules.orchestration.dependencies import get_inventory_client
from modules.orchestration.schemas import SideEffectReportRead
from modules.supply_orders import schemas, service

router = APIRouter(prefix="/supply-orders", tags=["supply_orders"])


@router.post("", response_model=schemas.SupplyOrderRead)
def create_supply_order_endpoint(
    order_in: schemas.SupplyOrderCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return service.create_order(
        db,
        settings,
        requesting_workstation_id=order_in.requesting_workstation_id,
        items=[{"part_id": item.part_id, "quantity": item.quantity} for item in order_in.items],
        priority=order_in.priority,
        required_by=order_in.required_by,
        notes=order_in.notes,
    )


@router.get("", response_model=list[schemas.SupplyOrderRead])
def list_supply_orders_endpoint(
    status: Optional[str] = None,
    requesting_workstation_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return service.list_orders(db, status=status, requesting_workstation_id=requesting_workstation_id)


@router.get("/{order_id}", response_model=schemas.SupplyOrderRead)
def get_supply_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.get_order(db, order_id)


@router.post("/{order_id}/start", response_model=schemas.SupplyOrderRead)
def start_supply_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.start_order(db, order_id)


@router.post("/{order_id}/fulfill", response_model=SideEffectReportRead)
def fulfill_supply_order_endpoint(
    order_id: int, db: Session = Depends(get_db), inventory=Depends(get_inventory_client)
):
    return service.fulfill_order(db, order_id, inventory).as_dict()


@router.post("/{order_id}/reject", response_model=schemas.SupplyOrderRead)
def reject_supply_order_endpoint(order_id: int, request: schemas.ReasonRequest, db: Session = Depends(get_db)):
    return service.reject_order(db, order_id, request.reason)


@router.post("/{order_id}/cancel", response_model=schemas.SupplyOrderRead)
def cancel_supply_order_endpoint(order_id: int, request: schemas.ReasonRequest, db: Session = Depends(get_db)):
    return service.cancel_order(db, order_id, request.reason)

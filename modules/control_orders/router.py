from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from modules.control_orders import schemas, service
from modules.orchestration.dependencies import (
    get_completion_propagator,
    get_dispatch_coordinator,
    get_supply_gate,
)
from modules.orchestration.schemas import ProgressRead, PropagationRead
from modules.supply_orders import service as supply_service
from modules.supply_orders.schemas import SupplyOrderRead

router = APIRouter(prefix="/control-orders", tags=["control_orders"])


@router.get("", response_model=list[schemas.ControlOrderRead])
def list_control_orders_endpoint(
    status: Optional[str] = None,
    category: Optional[str] = None,
    production_order_id: Optional[int] = None,
    workstation_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return service.list_orders(
        db,
        status=status,
        category=category,
        production_order_id=production_order_id,
        workstation_id=workstation_id,
    )


@router.get("/{order_id}", response_model=schemas.ControlOrderRead)
def get_control_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.get_order(db, order_id)


@router.post("/{order_id}/dispatch", response_model=schemas.ControlOrderRead)
def dispatch_control_order_endpoint(
    order_id: int, db: Session = Depends(get_db), coordinator=Depends(get_dispatch_coordinator)
):
    return coordinator.dispatch_control_order(db, order_id)


@router.post("/{order_id}/halt", response_model=schemas.ControlOrderRead)
def halt_control_order_endpoint(order_id: int, request: schemas.HaltRequest, db: Session = Depends(get_db)):
    return service.halt_order(db, order_id, request.reason)


@router.post("/{order_id}/resume", response_model=schemas.ControlOrderRead)
def resume_control_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.resume_order(db, order_id)


@router.post("/{order_id}/cancel", response_model=schemas.ControlOrderRead)
def cancel_control_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.cancel_order(db, order_id)


@router.post("/{order_id}/supply-orders", response_model=SupplyOrderRead)
def request_supplies_endpoint(order_id: int, db: Session = Depends(get_db), supply_gate=Depends(get_supply_gate)):
    control = service.get_order(db, order_id)
    return supply_gate.request_supplies(db, control)


@router.get("/{order_id}/supply-orders", response_model=list[SupplyOrderRead])
def list_control_order_supplies_endpoint(order_id: int, db: Session = Depends(get_db)):
    service.get_order(db, order_id)
    return supply_service.find_by_control_order(db, order_id)


@router.post("/{order_id}/recheck", response_model=PropagationRead)
def recheck_control_order_endpoint(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    return propagator.recheck_control_order(db, order_id).as_dict()


@router.get("/{order_id}/progress", response_model=ProgressRead)
def control_order_progress_endpoint(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    control = service.get_order(db, order_id)
    return propagator.control_order_progress(db, control).as_dict()

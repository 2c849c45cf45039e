from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from modules.orchestration.dependencies import get_completion_propagator
from modules.orchestration.schemas import PropagationRead
from modules.workstation_orders import schemas, service

router = APIRouter(prefix="/workstation-orders", tags=["workstation_orders"])


@router.get("", response_model=list[schemas.WorkstationOrderRead])
def list_workstation_orders_endpoint(
    status: Optional[str] = None,
    kind: Optional[str] = None,
    workstation_id: Optional[int] = None,
    control_order_id: Optional[int] = None,
    warehouse_order_id: Optional[int] = None,
    customer_order_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return service.list_orders(
        db,
        status=status,
        kind=kind,
        workstation_id=workstation_id,
        control_order_id=control_order_id,
        warehouse_order_id=warehouse_order_id,
        customer_order_id=customer_order_id,
    )


@router.get("/{order_id}", response_model=schemas.WorkstationOrderRead)
def get_workstation_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.get_order(db, order_id)


@router.post("/{order_id}/start", response_model=schemas.WorkstationOrderRead)
def start_workstation_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.start_order(db, order_id)


@router.post("/{order_id}/complete", response_model=PropagationRead)
def complete_workstation_order_endpoint(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    return propagator.complete_workstation_order(db, order_id).as_dict()


@router.post("/{order_id}/halt", response_model=schemas.WorkstationOrderRead)
def halt_workstation_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.halt_order(db, order_id)


@router.post("/{order_id}/resume", response_model=schemas.WorkstationOrderRead)
def resume_workstation_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.resume_order(db, order_id)


@router.post("/{order_id}/abandon", response_model=schemas.WorkstationOrderRead)
def abandon_workstation_order_endpoint(
    order_id: int, request: schemas.AbandonRequest, db: Session = Depends(get_db)
):
    return service.abandon_order(db, order_id, request.reason)


@router.post("/{order_id}/waiting-for-parts", response_model=schemas.WorkstationOrderRead)
def mark_waiting_for_parts_endpoint(
    order_id: int, request: schemas.WaitingForPartsRequest, db: Session = Depends(get_db)
):
    return service.mark_waiting_for_parts(db, order_id, request.supply_order_id)

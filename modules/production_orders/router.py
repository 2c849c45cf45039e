from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from modules.orchestration.dependencies import get_completion_propagator, get_dispatch_coordinator
from modules.orchestration.schemas import DispatchRead, ProgressRead, PropagationRead, SideEffectReportRead
from modules.production_orders import schemas, service

router = APIRouter(prefix="/production-orders", tags=["production_orders"])


@router.get("", response_model=list[schemas.ProductionOrderRead])
def list_production_orders_endpoint(
    status: Optional[str] = None,
    source_warehouse_order_id: Optional[int] = None,
    source_customer_order_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return service.list_orders(
        db,
        status=status,
        source_warehouse_order_id=source_warehouse_order_id,
        source_customer_order_id=source_customer_order_id,
    )


@router.get("/{order_id}", response_model=schemas.ProductionOrderRead)
def get_production_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.get_order(db, order_id)


@router.post("/{order_id}/confirm", response_model=schemas.ProductionOrderRead)
def confirm_production_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.confirm_order(db, order_id)


@router.post("/{order_id}/schedule", response_model=schemas.ProductionOrderRead)
def schedule_production_order_endpoint(
    order_id: int, db: Session = Depends(get_db), coordinator=Depends(get_dispatch_coordinator)
):
    return coordinator.schedule_production_order(db, order_id)


@router.post("/{order_id}/dispatch", response_model=DispatchRead)
def dispatch_production_order_endpoint(
    order_id: int, db: Session = Depends(get_db), coordinator=Depends(get_dispatch_coordinator)
):
    created = coordinator.dispatch_production_order(db, order_id)
    return {"production_order_id": order_id, "control_orders": created}


@router.post("/{order_id}/complete", response_model=PropagationRead)
def complete_production_order_endpoint(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    return propagator.complete_production_order(db, order_id).as_dict()


@router.post("/{order_id}/submit", response_model=SideEffectReportRead)
def submit_production_completion_endpoint(
    order_id: int, db: Session = Depends(get_db), coordinator=Depends(get_dispatch_coordinator)
):
    return coordinator.submit_production_order_completion(db, order_id).as_dict()


@router.post("/{order_id}/recheck", response_model=PropagationRead)
def recheck_production_order_endpoint(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    return propagator.recheck_production_order(db, order_id).as_dict()


@router.post("/{order_id}/cancel", response_model=schemas.ProductionOrderRead)
def cancel_production_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.cancel_order(db, order_id)


@router.get("/{order_id}/progress", response_model=ProgressRead)
def production_order_progress_endpoint(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    service.get_order(db, order_id)
    return propagator.production_order_progress(db, order_id).as_dict()

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from core.settings import Settings, get_settings
from modules.customer_orders import schemas, service
from modules.orchestration.dependencies import (
    get_completion_propagator,
    get_dispatch_coordinator,
    get_scenario_resolver,
)
from modules.orchestration.schemas import ProgressRead, ScenarioRead

router = APIRouter(prefix="/customer-orders", tags=["customer_orders"])


@router.post("", response_model=schemas.CustomerOrderRead)
def create_customer_order_endpoint(
    order_in: schemas.CustomerOrderCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return service.create_order(db, order_in, settings)


@router.get("", response_model=list[schemas.CustomerOrderRead])
def list_customer_orders_endpoint(status: Optional[str] = None, db: Session = Depends(get_db)):
    return service.list_orders(db, status=status)


@router.get("/{order_id}", response_model=schemas.CustomerOrderRead)
def get_customer_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.get_order(db, order_id)


@router.post("/{order_id}/confirm", response_model=schemas.CustomerOrderRead)
def confirm_customer_order_endpoint(
    order_id: int, db: Session = Depends(get_db), coordinator=Depends(get_dispatch_coordinator)
):
    return coordinator.confirm_customer_order(db, order_id)


@router.post("/{order_id}/fulfill", response_model=schemas.CustomerOrderRead)
def fulfill_customer_order_endpoint(
    order_id: int, db: Session = Depends(get_db), coordinator=Depends(get_dispatch_coordinator)
):
    return coordinator.fulfill_customer_order(db, order_id)


@router.post("/{order_id}/complete", response_model=schemas.CustomerOrderRead)
def complete_customer_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.complete_order(db, order_id)


@router.post("/{order_id}/cancel", response_model=schemas.CustomerOrderRead)
def cancel_customer_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.cancel_order(db, order_id)


@router.get("/{order_id}/scenario", response_model=ScenarioRead)
def current_scenario_endpoint(order_id: int, db: Session = Depends(get_db), resolver=Depends(get_scenario_resolver)):
    return {"order_id": order_id, "scenario": resolver.recheck_customer_order(db, order_id).value}


@router.get("/{order_id}/progress", response_model=ProgressRead)
def customer_order_progress_endpoint(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    service.get_order(db, order_id)
    return propagator.customer_order_progress(db, order_id).as_dict()

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from modules.orchestration.dependencies import (
    get_completion_propagator,
    get_dispatch_coordinator,
    get_scenario_resolver,
)
from modules.orchestration.schemas import ProgressRead
from modules.production_orders.schemas import ProductionOrderRead, ProductionRequest
from modules.warehouse_orders import schemas, service

router = APIRouter(prefix="/warehouse-orders", tags=["warehouse_orders"])


@router.get("", response_model=list[schemas.WarehouseOrderRead])
def list_warehouse_orders_endpoint(
    status: Optional[str] = None, customer_order_id: Optional[int] = None, db: Session = Depends(get_db)
):
    return service.list_orders(db, status=status, customer_order_id=customer_order_id)


@router.get("/{order_id}", response_model=schemas.WarehouseOrderRead)
def get_warehouse_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.get_order(db, order_id)


@router.post("/{order_id}/confirm", response_model=schemas.WarehouseOrderRead)
def confirm_warehouse_order_endpoint(
    order_id: int, db: Session = Depends(get_db), resolver=Depends(get_scenario_resolver)
):
    return resolver.confirm_warehouse_order(db, order_id)


@router.post("/{order_id}/fulfill", response_model=schemas.WarehouseOrderRead)
def fulfill_warehouse_order_endpoint(
    order_id: int, db: Session = Depends(get_db), coordinator=Depends(get_dispatch_coordinator)
):
    return coordinator.fulfill_warehouse_order(db, order_id)


@router.post("/{order_id}/production-order", response_model=ProductionOrderRead)
def request_production_endpoint(
    order_id: int,
    request: Optional[ProductionRequest] = Body(default=None),
    db: Session = Depends(get_db),
    coordinator=Depends(get_dispatch_coordinator),
):
    return coordinator.create_production_order_for_warehouse(db, order_id, request)


@router.patch("/{order_id}/status", response_model=schemas.WarehouseOrderRead)
def override_warehouse_status_endpoint(
    order_id: int, override: schemas.WarehouseStatusOverride, db: Session = Depends(get_db)
):
    return service.set_status(db, order_id, override.status, override.reason)


@router.post("/{order_id}/cancel", response_model=schemas.WarehouseOrderRead)
def cancel_warehouse_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return service.cancel_order(db, order_id)


@router.get("/{order_id}/progress", response_model=ProgressRead)
def warehouse_order_progress_endpoint(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    service.get_order(db, order_id)
    return propagator.warehouse_order_progress(db, order_id).as_dict()

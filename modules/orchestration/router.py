from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from core.errors import NotFoundException
from modules.audit import service as audit
from modules.control_orders import service as control_service
from modules.customer_orders import service as customer_service
from modules.integrations.scheduling import ScheduledPlan
from modules.orchestration import schemas
from modules.orchestration.dependencies import get_completion_propagator, get_dispatch_coordinator
from modules.production_orders import service as production_service
from modules.warehouse_orders import service as warehouse_service

router = APIRouter(prefix="/orchestration", tags=["orchestration"])


@router.get("/progress/{order_type}/{order_id}", response_model=schemas.HierarchyProgressRead)
def order_progress(
    order_type: str, order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    order_type = order_type.upper()
    if order_type == audit.CUSTOMER:
        customer_service.get_order(db, order_id)
        progress = propagator.customer_order_progress(db, order_id)
    elif order_type == audit.WAREHOUSE:
        warehouse_service.get_order(db, order_id)
        progress = propagator.warehouse_order_progress(db, order_id)
    elif order_type == audit.PRODUCTION:
        production_service.get_order(db, order_id)
        progress = propagator.production_order_progress(db, order_id)
    elif order_type == audit.CONTROL:
        progress = propagator.control_order_progress(db, control_service.get_order(db, order_id))
    else:
        raise NotFoundException(f"No progress tracking for order type {order_type}")
    return {"order_type": order_type, "order_id": order_id, "progress": progress.as_dict()}


@router.post("/production-orders/{order_id}/control-orders", response_model=schemas.DispatchRead)
def control_orders_from_schedule(
    order_id: int,
    schedule: schemas.ScheduleIn,
    db: Session = Depends(get_db),
    coordinator=Depends(get_dispatch_coordinator),
):
    plan = ScheduledPlan.from_dict(schedule.model_dump())
    created = coordinator.create_control_orders_from_schedule(db, plan, order_id)
    return {"production_order_id": order_id, "control_orders": created}


@router.post("/production-orders/{order_id}/submit", response_model=schemas.SideEffectReportRead)
def submit_production_completion(
    order_id: int, db: Session = Depends(get_db), coordinator=Depends(get_dispatch_coordinator)
):
    return coordinator.submit_production_order_completion(db, order_id).as_dict()


@router.post("/control-orders/{order_id}/recheck", response_model=schemas.PropagationRead)
def recheck_control_order(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    return propagator.recheck_control_order(db, order_id).as_dict()


@router.post("/production-orders/{order_id}/recheck", response_model=schemas.PropagationRead)
def recheck_production_order(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    return propagator.recheck_production_order(db, order_id).as_dict()

from typing import Any, Dict

from sqlalchemy.orm import Session

from core.models import utcnow
from modules.control_orders import service as control_service
from modules.orchestration.propagation import CompletionPropagator
from modules.production_orders import service as production_service
from modules.workstation_orders import service as workstation_service


def build_production_progress(
    db: Session, propagator: CompletionPropagator, production_order_id: int
) -> Dict[str, Any]:
    """Progress of one production order down to its workstation orders."""
    order = production_service.get_order(db, production_order_id)
    progress = propagator.production_order_progress(db, order.id)

    control_rows = []
    for control in control_service.list_orders(db, production_order_id=order.id):
        control_progress = propagator.control_order_progress(db, control)
        workstation_rows = [
            {
                "id": ws_order.id,
                "order_number": ws_order.order_number,
                "kind": ws_order.kind,
                "workstation_id": ws_order.workstation_id,
                "status": ws_order.status,
                "output_item_name": ws_order.output_item_name,
                "quantity": ws_order.quantity,
            }
            for ws_order in workstation_service.list_orders(db, control_order_id=control.id)
        ]
        control_rows.append(
            {
                "id": control.id,
                "order_number": control.order_number,
                "category": control.category,
                "workstation_id": control.assigned_workstation_id,
                "status": control.status,
                "progress": control_progress.as_dict(),
                "workstation_orders": workstation_rows,
            }
        )

    return {
        "header": {
            "production_order_id": order.id,
            "order_number": order.order_number,
            "status": order.status,
            "priority": order.priority,
            "schedule_id": order.schedule_id,
            "generated_at": utcnow().isoformat(),
        },
        "progress": progress.as_dict(),
        "control_orders": control_rows,
    }

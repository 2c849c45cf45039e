"""Start gating for workstation orders based on local part availability."""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from core.errors import InvalidStateTransitionException, ValidationAppException
from core.settings import Settings
from modules.control_orders.models import ControlOrder
from modules.integrations.inventory import InventoryError, ItemType
from modules.integrations.masterdata import MasterdataError
from modules.supply_orders import service as supply_service
from modules.supply_orders.models import SupplyOrder
from modules.supply_orders.types import SupplyOrderStatus
from modules.workstation_orders import service as workstation_service
from modules.workstation_orders.models import WorkstationOrder
from modules.workstation_orders.types import WorkstationOrderKind, WorkstationOrderStatus

logger = logging.getLogger(__name__)

# Finishing stages consume the part produced by the stage before them.
_PASS_THROUGH_KINDS = {WorkstationOrderKind.PARTS_PRE_PRODUCTION, WorkstationOrderKind.PART_FINISHING}


@dataclass(frozen=True)
class GateDecision:
    status: WorkstationOrderStatus
    shortages: List[Dict[str, Any]] = field(default_factory=list)


class SupplyGate:
    def __init__(self, settings: Settings, inventory, masterdata=None):
        self.settings = settings
        self.inventory = inventory
        self.masterdata = masterdata

    def required_inputs(self, kind: WorkstationOrderKind, item_id: int, quantity: int) -> List[Dict[str, Any]]:
        if kind == WorkstationOrderKind.INJECTION_MOLDING:
            return []
        if kind in _PASS_THROUGH_KINDS:
            return [{"item_type": ItemType.PART.value, "item_id": item_id, "quantity": quantity}]
        if self.masterdata is None:
            return []
        try:
            bom = self.masterdata.parts_for_module(item_id)
        except MasterdataError as exc:
            logger.warning("No bill of materials for module %s, starting ungated: %s", item_id, exc)
            return []
        return [
            {"item_type": ItemType.PART.value, "item_id": entry.component_id, "quantity": entry.quantity * quantity}
            for entry in bom
        ]

    def evaluate(self, workstation_id: int, required_inputs: List[Dict[str, Any]]) -> GateDecision:
        shortages = []
        for required in required_inputs:
            try:
                available = self.inventory.get_stock(workstation_id, required["item_type"], required["item_id"])
            except InventoryError as exc:
                logger.warning("Stock read failed at workstation %s: %s", workstation_id, exc)
                available = 0
            if available < required["quantity"]:
                shortages.append({**required, "quantity": required["quantity"] - available})
        if shortages:
            return GateDecision(status=WorkstationOrderStatus.WAITING_FOR_PARTS, shortages=shortages)
        return GateDecision(status=WorkstationOrderStatus.PENDING)

    def open_workstation_order(
        self,
        db: Session,
        kind: WorkstationOrderKind,
        output_item_type: str,
        output_item_id: int,
        quantity: int,
        **fields: Any,
    ) -> WorkstationOrder:
        """Create a workstation order in PENDING, or in WAITING_FOR_PARTS behind a new supply order."""
        required = fields.pop("required_inputs", None)
        if required is None:
            required = self.required_inputs(kind, output_item_id, quantity)
        decision = self.evaluate(self.settings.workstation_id_for(kind.value), required)

        order = workstation_service.create_order(
            db,
            self.settings,
            kind,
            output_item_type=output_item_type,
            output_item_id=output_item_id,
            quantity=quantity,
            required_inputs=required,
            **fields,
        )
        if decision.status == WorkstationOrderStatus.WAITING_FOR_PARTS:
            supply = supply_service.create_order(
                db,
                self.settings,
                requesting_workstation_id=order.workstation_id,
                items=[{"part_id": s["item_id"], "quantity": s["quantity"]} for s in decision.shortages],
                source_control_order_id=order.control_order_id,
                source_control_category=kind.category,
                priority=order.priority,
                required_by=order.target_start_time,
                notes=f"Parts for {order.order_number}",
            )
            order = workstation_service.mark_waiting_for_parts(db, order.id, supply.id)
        return order

    def ensure_control_order_dispatchable(self, db: Session, control_order: ControlOrder) -> None:
        """Refuse dispatch while the control order's supply requests are all still open.

        Cancelled requests are withdrawn and do not count.
        """
        supplies = [
            s
            for s in supply_service.find_by_control_order(db, control_order.id)
            if s.status != SupplyOrderStatus.CANCELLED.value
        ]
        if supplies and not any(s.status == SupplyOrderStatus.FULFILLED.value for s in supplies):
            raise InvalidStateTransitionException(
                f"Cannot dispatch {control_order.order_number}: waiting for supply order(s) "
                + ", ".join(s.order_number for s in supplies)
            )

    def request_supplies(self, db: Session, control_order: ControlOrder) -> SupplyOrder:
        """Raise one supply order covering the parts of every task on a control order."""
        kind_name = self.settings.kind_for_workstation(control_order.assigned_workstation_id)
        if kind_name is None:
            raise ValidationAppException(
                f"Workstation {control_order.assigned_workstation_id} does not take workstation orders"
            )
        kind = WorkstationOrderKind(kind_name)
        totals: "OrderedDict[int, int]" = OrderedDict()
        for task in control_order.tasks or []:
            for required in self.required_inputs(kind, task["item_id"], task["quantity"]):
                totals[required["item_id"]] = totals.get(required["item_id"], 0) + required["quantity"]
        if not totals:
            raise ValidationAppException(f"{control_order.order_number} needs no supplied parts")
        return supply_service.create_order(
            db,
            self.settings,
            requesting_workstation_id=control_order.assigned_workstation_id,
            items=[{"part_id": part_id, "quantity": qty} for part_id, qty in totals.items()],
            source_control_order_id=control_order.id,
            source_control_category=control_order.category,
            priority=control_order.priority,
            required_by=control_order.target_start_time,
            notes=f"Parts for {control_order.category.lower()} control order {control_order.order_number}",
        )


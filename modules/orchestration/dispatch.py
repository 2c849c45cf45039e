"""Downward dispatch through the order hierarchy.

Each parent advance creates its children: customer orders spawn a warehouse
or production order, schedules become control orders, control orders become
gated workstation orders. A completed production order is routed to its
consumer, either the modules depot (warehouse-sourced) or final assembly
(customer-sourced).
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import (
    ConfigurationInvariantViolation,
    DownstreamServiceException,
    InsufficientStockException,
    InvalidStateTransitionException,
    NotFoundException,
    require_status,
)
from core.notifications import SideEffectReport
from core.settings import Settings
from modules.audit import service as audit
from modules.control_orders import service as control_service
from modules.control_orders.models import ControlOrder
from modules.control_orders.types import ControlCategory, ControlOrderStatus
from modules.customer_orders import service as customer_service
from modules.customer_orders.models import CustomerOrder
from modules.customer_orders.types import CustomerOrderStatus
from modules.integrations.inventory import InventoryError, ItemType, StockReason
from modules.integrations.masterdata import MasterdataError
from modules.integrations.scheduling import ScheduledPlan, ScheduledTask, SchedulingError
from modules.orchestration.scenario import Scenario, ScenarioResolver
from modules.orchestration.supply_gate import SupplyGate
from modules.production_orders import service as production_service
from modules.production_orders.models import ProductionOrder
from modules.production_orders.schemas import ProductionRequest
from modules.production_orders.types import (
    ProductionOrderStatus,
    ProductionSource,
    WorkstationType,
)
from modules.warehouse_orders import service as warehouse_service
from modules.warehouse_orders.models import WarehouseOrder
from modules.warehouse_orders.types import TriggerScenario, WarehouseOrderStatus
from modules.workstation_orders import service as workstation_service
from modules.workstation_orders.types import WorkstationOrderKind

logger = logging.getLogger(__name__)


def build_instructions(category: str, tasks: List[ScheduledTask]) -> str:
    if category == ControlCategory.PRODUCTION.value:
        lines = ["Production Schedule:"]
        for i, task in enumerate(tasks, start=1):
            lines += [
                "",
                f"Step {i}:",
                f"  Item: {task.item_name}",
                f"  Quantity: {task.quantity}",
                f"  Duration: {task.duration} minutes",
                f"  Time: {task.start_time} to {task.end_time}",
            ]
    else:
        lines = ["Assembly Instructions:"]
        for i, task in enumerate(tasks, start=1):
            lines += [
                "",
                f"Step {i}:",
                f"  Component: {task.item_name}",
                f"  Quantity: {task.quantity}",
                f"  Estimated Time: {task.duration} minutes",
            ]
    return "\n".join(lines)


def build_quality_checkpoints(category: str, tasks: List[ScheduledTask]) -> str:
    if category == ControlCategory.ASSEMBLY.value:
        return "\n".join(
            [
                "Assembly Quality Standards:",
                "  - Verify all components are present",
                "  - Check fit and alignment",
                "  - Functional test of the assembled module",
            ]
        )
    lines = ["Quality Checkpoints:"]
    for i, task in enumerate(tasks, start=1):
        lines += ["", f"After Step {i}:", f"  - Verify {task.item_name} dimensions", "  - Document completion time"]
    return "\n".join(lines)


class DispatchCoordinator:
    def __init__(
        self,
        settings: Settings,
        inventory,
        resolver: Optional[ScenarioResolver] = None,
        supply_gate: Optional[SupplyGate] = None,
        scheduler=None,
        masterdata=None,
    ):
        self.settings = settings
        self.inventory = inventory
        self.resolver = resolver or ScenarioResolver(settings, inventory)
        self.supply_gate = supply_gate or SupplyGate(settings, inventory, masterdata)
        self.scheduler = scheduler
        self.masterdata = masterdata

    # Customer and warehouse level

    def confirm_customer_order(self, db: Session, customer_order_id: int) -> CustomerOrder:
        order = customer_service.get_order(db, customer_order_id)
        require_status(order, [CustomerOrderStatus.PENDING], "confirm")
        scenario = self.resolver.resolve_customer_order(order)

        if scenario == Scenario.DIRECT_FULFILLMENT:
            return customer_service.record_confirmation(db, order, scenario.value, CustomerOrderStatus.CONFIRMED.value)

        customer_service.record_confirmation(db, order, scenario.value, CustomerOrderStatus.PROCESSING.value)
        expanded = self._expand_line_items(order.items)
        if scenario == Scenario.DIRECT_PRODUCTION:
            production_service.create_order(
                db,
                items=[self._production_item(line) for line in expanded],
                source_customer_order_id=order.id,
                notes=f"Direct production for customer order {order.order_number}",
            )
        else:
            warehouse_service.create_order(
                db,
                customer_order_id=order.id,
                customer_order_number=order.order_number,
                workstation_id=self.settings.modules_depot_workstation_id,
                items=expanded,
            )
        return order

    def fulfill_customer_order(self, db: Session, customer_order_id: int) -> CustomerOrder:
        """Serve a DIRECT_FULFILLMENT order from plant-warehouse stock and complete it."""
        order = customer_service.get_order(db, customer_order_id)
        require_status(order, [CustomerOrderStatus.CONFIRMED], "fulfill")
        if order.trigger_scenario != Scenario.DIRECT_FULFILLMENT.value:
            raise InvalidStateTransitionException(
                f"Cannot fulfill {order.order_number} from stock: scenario is {order.trigger_scenario}"
            )
        self._debit_all(order.workstation_id, order.items, order.order_number)
        db.commit()
        audit.record_event(db, audit.CUSTOMER, order.id, "FULFILLED", "Served from plant warehouse stock")
        return customer_service.complete_order(db, order.id)

    def fulfill_warehouse_order(self, db: Session, warehouse_order_id: int) -> WarehouseOrder:
        """Issue modules from the depot and open one final-assembly order per product."""
        order = warehouse_service.get_order(db, warehouse_order_id)
        require_status(order, [WarehouseOrderStatus.CONFIRMED], "fulfill")
        if order.trigger_scenario != TriggerScenario.DIRECT_FULFILLMENT.value:
            raise InvalidStateTransitionException(
                f"Cannot fulfill {order.order_number}: scenario is {order.trigger_scenario}"
            )
        self._debit_all(order.workstation_id, order.items, order.order_number)
        db.commit()
        warehouse_service.mark_processing(db, order)

        groups: "OrderedDict[Any, List]" = OrderedDict()
        for item in order.items:
            key = item.product_id if item.product_id is not None else ("item", item.id)
            groups.setdefault(key, []).append(item)
        for key, items in groups.items():
            first = items[0]
            if first.product_id is not None:
                output_type, output_id, quantity = ItemType.PRODUCT.value, first.product_id, first.product_quantity
            else:
                output_type, output_id, quantity = first.item_type, first.item_id, first.quantity
            try:
                workstation_service.create_order(
                    db,
                    self.settings,
                    WorkstationOrderKind.FINAL_ASSEMBLY,
                    output_item_type=output_type,
                    output_item_id=output_id,
                    quantity=quantity,
                    required_inputs=[
                        {"item_type": i.item_type, "item_id": i.item_id, "quantity": i.quantity} for i in items
                    ],
                    warehouse_order_id=order.id,
                    customer_order_id=order.customer_order_id,
                    notes=f"Final assembly for warehouse order {order.order_number}",
                )
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Could not create final assembly order for %s %s", output_type, output_id)
        return order

    def create_production_order_for_warehouse(
        self, db: Session, warehouse_order_id: int, request: Optional[ProductionRequest] = None
    ) -> ProductionOrder:
        """Scenario 3. Returns the existing production order if one was already requested."""
        order = warehouse_service.get_order(db, warehouse_order_id)
        if order.production_order_id is not None:
            logger.info(
                "Warehouse order %s already has production order #%s, not creating another",
                order.order_number,
                order.production_order_id,
            )
            return production_service.get_order(db, order.production_order_id)
        require_status(order, [WarehouseOrderStatus.CONFIRMED], "request production for")
        if order.trigger_scenario != TriggerScenario.PRODUCTION_REQUIRED.value:
            raise InvalidStateTransitionException(
                f"Cannot request production for {order.order_number}: scenario is {order.trigger_scenario}"
            )
        request = request or ProductionRequest()
        production = production_service.create_order(
            db,
            items=[
                self._production_item(
                    {
                        "item_type": item.item_type,
                        "item_id": item.item_id,
                        "item_name": item.item_name,
                        "quantity": item.quantity,
                    }
                )
                for item in order.items
            ],
            source_warehouse_order_id=order.id,
            priority=request.priority,
            due_date=request.due_date,
            notes=request.notes or f"Restock for warehouse order {order.order_number}",
        )
        warehouse_service.link_production_order(db, order, production.id)
        return production

    # Production level

    def schedule_production_order(self, db: Session, production_order_id: int) -> ProductionOrder:
        order = production_service.get_order(db, production_order_id)
        require_status(order, [ProductionOrderStatus.CONFIRMED], "schedule")
        if self.scheduler is None:
            raise DownstreamServiceException("Scheduling service is not configured")
        line_items = [
            {
                "itemId": item.item_id,
                "itemName": item.item_name,
                "quantity": item.quantity,
                "estimatedDuration": item.estimated_minutes,
                "workstationType": item.workstation_type,
            }
            for item in order.items
        ]
        try:
            plan = self.scheduler.submit(order.order_number, order.priority, order.due_date, line_items)
        except SchedulingError as exc:
            raise DownstreamServiceException(str(exc)) from exc
        production_service.record_schedule(db, order, plan.schedule_id, [task.as_dict() for task in plan.tasks])
        return order

    def dispatch_production_order(self, db: Session, production_order_id: int) -> Dict[int, int]:
        order = production_service.get_order(db, production_order_id)
        require_status(order, [ProductionOrderStatus.SCHEDULED], "dispatch")
        plan = ScheduledPlan(
            schedule_id=order.schedule_id,
            tasks=[ScheduledTask.from_dict(task) for task in order.schedule_tasks or []],
        )
        created = self.create_control_orders_from_schedule(db, plan, order.id)
        if not created:
            raise InvalidStateTransitionException(
                f"Cannot dispatch {order.order_number}: schedule {order.schedule_id} has no dispatchable tasks"
            )
        production_service.mark_dispatched(db, order, len(created))
        return created

    def create_control_orders_from_schedule(
        self, db: Session, plan: ScheduledPlan, production_order_id: int
    ) -> Dict[int, int]:
        """Create one control order per scheduled workstation, keyed workstation id -> control order id.

        Tasks at the same workstation collapse into one order with a multi-step
        instruction block. Workstations outside both ranges are skipped, and a
        failure on one workstation does not stop the others.
        """
        production = production_service.get_order(db, production_order_id)
        grouped: "OrderedDict[int, List[ScheduledTask]]" = OrderedDict()
        for task in plan.tasks:
            grouped.setdefault(task.workstation_id, []).append(task)

        created: Dict[int, int] = {}
        for workstation_id, tasks in grouped.items():
            category = self.settings.control_category_for_workstation(workstation_id)
            if category is None:
                logger.warning("Workstation %s is not dispatchable, skipping %d task(s)", workstation_id, len(tasks))
                continue
            try:
                control = control_service.create_order(
                    db,
                    ControlCategory(category),
                    production_order_id=production.id,
                    workstation_id=workstation_id,
                    tasks=[task.as_dict() for task in tasks],
                    priority=production.priority,
                    instructions=build_instructions(category, tasks),
                    quality_checkpoints=build_quality_checkpoints(category, tasks),
                    target_start_time=tasks[0].start_time,
                    target_completion_time=tasks[-1].end_time,
                )
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Could not create control order for workstation %s", workstation_id)
                continue
            created[workstation_id] = control.id
        logger.info(
            "Created %d control order(s) for %s from schedule %s",
            len(created),
            production.order_number,
            plan.schedule_id,
        )
        return created

    # Control level

    def dispatch_control_order(self, db: Session, control_order_id: int) -> ControlOrder:
        control = control_service.get_order(db, control_order_id)
        require_status(control, [ControlOrderStatus.ASSIGNED], "dispatch")
        kind_name = self.settings.kind_for_workstation(control.assigned_workstation_id)
        if kind_name is None:
            raise ConfigurationInvariantViolation(
                f"{control.order_number} is assigned to workstation {control.assigned_workstation_id}, "
                "which takes no workstation orders"
            )
        self.supply_gate.ensure_control_order_dispatchable(db, control)
        control_service.mark_in_progress(db, control)

        kind = WorkstationOrderKind(kind_name)
        for task in control.tasks or []:
            scheduled = ScheduledTask.from_dict(task)
            try:
                self.supply_gate.open_workstation_order(
                    db,
                    kind,
                    output_item_type=control.item_type,
                    output_item_id=scheduled.item_id,
                    quantity=scheduled.quantity,
                    output_item_name=scheduled.item_name,
                    control_order_id=control.id,
                    production_order_id=control.source_production_order_id,
                    priority=control.priority,
                    target_start_time=scheduled.start_time,
                    target_completion_time=scheduled.end_time,
                )
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Could not create %s order for %s", kind.value, control.order_number)

        production = production_service.get_order(db, control.source_production_order_id)
        production_service.mark_in_progress(db, production)
        return control

    # Completion routing

    def submit_production_order_completion(self, db: Session, production_order_id: int) -> SideEffectReport:
        """Route a COMPLETED production order's output to its consumer.

        Safe to call repeatedly: only the first call credits stock. Ledger and
        notification failures are returned on the report, never raised.
        """
        order = production_service.get_order(db, production_order_id)
        require_status(order, [ProductionOrderStatus.COMPLETED], "submit completion of")
        source = production_service.source_of(order)

        report = SideEffectReport()
        if not production_service.claim_completion_submission(db, order):
            return report

        if source == ProductionSource.WAREHOUSE:
            self._route_to_modules_depot(db, order, report)
        else:
            self._route_to_final_assembly(db, order, report)

        audit.record_event(
            db,
            audit.PRODUCTION,
            order.id,
            "SUBMITTED",
            f"Completion routed to {source.value.lower()} consumer ({len(report.failures)} failure(s))",
        )
        audit.record_notification_failures(db, audit.PRODUCTION, order.id, report.failures)
        return report

    def _route_to_modules_depot(self, db: Session, order: ProductionOrder, report: SideEffectReport) -> None:
        depot = self.settings.modules_depot_workstation_id
        note = f"Production completed: {order.order_number}"
        for item in order.items:
            report.attempt(
                f"credit modules depot {item.item_type} {item.item_id}",
                self.inventory.credit_stock,
                depot,
                item.item_type,
                item.item_id,
                item.quantity,
                StockReason.PRODUCTION.value,
                note,
            )

        try:
            warehouse = warehouse_service.get_order(db, order.source_warehouse_order_id)
        except NotFoundException as exc:
            report.record_failure("warehouse order update", exc.message)
            return
        if warehouse_service.mark_ready_from_production(db, warehouse):
            logger.info(
                "Warehouse order %s ready for fulfillment; notifying customer order #%s",
                warehouse.order_number,
                warehouse.customer_order_id,
            )
            audit.record_event(
                db,
                audit.CUSTOMER,
                warehouse.customer_order_id,
                "WAREHOUSE_READY",
                f"Warehouse order {warehouse.order_number} restocked by {order.order_number}",
            )
        else:
            report.record_failure("warehouse order update", f"{warehouse.order_number} is {warehouse.status}")

    def _route_to_final_assembly(self, db: Session, order: ProductionOrder, report: SideEffectReport) -> None:
        station = self.settings.final_assembly_workstation_id
        note = f"Production completed: {order.order_number}"
        for item in order.items:
            report.attempt(
                f"credit final assembly {item.item_type} {item.item_id}",
                self.inventory.credit_stock,
                station,
                item.item_type,
                item.item_id,
                item.quantity,
                StockReason.PRODUCTION.value,
                note,
            )

        try:
            customer = customer_service.get_order(db, order.source_customer_order_id)
        except NotFoundException as exc:
            report.record_failure("final assembly orders", exc.message)
            return
        lines = [i for i in customer.items if i.item_type == ItemType.PRODUCT.value]
        if not lines:
            logger.warning("Customer order %s has no product lines, no final assembly opened", customer.order_number)
            report.record_failure("final assembly orders", f"{customer.order_number} has no product lines")
        for line in lines:
            try:
                workstation_service.create_order(
                    db,
                    self.settings,
                    WorkstationOrderKind.FINAL_ASSEMBLY,
                    output_item_type=line.item_type,
                    output_item_id=line.item_id,
                    quantity=line.quantity,
                    required_inputs=[
                        {"item_type": i.item_type, "item_id": i.item_id, "quantity": i.quantity} for i in order.items
                    ],
                    production_order_id=order.id,
                    customer_order_id=customer.id,
                    priority=order.priority,
                    notes=f"Final assembly for customer order {customer.order_number}",
                )
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("Could not create final assembly order for product %s", line.item_id)
                report.record_failure(f"final assembly order for product {line.item_id}", str(exc))

    # Helpers

    def _debit_all(self, workstation_id: int, items, order_number: str) -> None:
        snapshot = self.resolver.take_snapshot(workstation_id, items)
        if not snapshot.covers_all:
            missing = ", ".join(f"{s.item_type} {s.item_id} ({s.available}/{s.requested})" for s in snapshot.shortages)
            raise InsufficientStockException(f"Insufficient stock for {order_number}: {missing}")
        debited = []
        for item in items:
            try:
                self.inventory.debit_stock(
                    workstation_id,
                    item.item_type,
                    item.item_id,
                    item.quantity,
                    StockReason.FULFILLMENT.value,
                    f"Fulfillment: {order_number}",
                )
            except InventoryError as exc:
                self._reverse_debits(workstation_id, debited, order_number)
                raise DownstreamServiceException(f"Stock debit failed for {order_number}: {exc}") from exc
            debited.append(item)
        for item in items:
            item.fulfilled_quantity = item.quantity

    def _reverse_debits(self, workstation_id: int, items, order_number: str) -> None:
        # The order stays unfulfilled, so stock already issued goes back before a retry.
        for item in items:
            try:
                self.inventory.credit_stock(
                    workstation_id,
                    item.item_type,
                    item.item_id,
                    item.quantity,
                    StockReason.ADJUSTMENT.value,
                    f"Fulfillment reversed: {order_number}",
                )
            except InventoryError:
                logger.exception(
                    "Could not reverse debit of %s %s x %s for %s",
                    item.item_type,
                    item.item_id,
                    item.quantity,
                    order_number,
                )

    def _expand_line_items(self, items) -> List[Dict[str, Any]]:
        """Break product lines into their modules; module and part lines pass through."""
        expanded = []
        for item in items:
            if item.item_type != ItemType.PRODUCT.value:
                expanded.append(
                    {"item_type": item.item_type, "item_id": item.item_id, "quantity": item.quantity}
                )
                continue
            bom = []
            if self.masterdata is not None:
                try:
                    bom = self.masterdata.modules_for_product(item.item_id)
                except MasterdataError as exc:
                    logger.warning("Module lookup failed for product %s: %s", item.item_id, exc)
            if not bom:
                logger.warning("No modules listed for product %s, treating it as a single module", item.item_id)
                expanded.append(
                    {
                        "item_type": ItemType.MODULE.value,
                        "item_id": item.item_id,
                        "quantity": item.quantity,
                        "product_id": item.item_id,
                        "product_quantity": item.quantity,
                    }
                )
                continue
            for entry in bom:
                expanded.append(
                    {
                        "item_type": ItemType.MODULE.value,
                        "item_id": entry.component_id,
                        "item_name": entry.component_name or self.masterdata.label("MODULE", entry.component_id),
                        "quantity": entry.quantity * item.quantity,
                        "product_id": item.item_id,
                        "product_quantity": item.quantity,
                    }
                )
        return expanded

    @staticmethod
    def _production_item(line: Dict[str, Any]) -> Dict[str, Any]:
        workstation_type = (
            WorkstationType.MANUFACTURING if line["item_type"] == ItemType.PART.value else WorkstationType.ASSEMBLY
        )
        return {
            "item_type": line["item_type"],
            "item_id": line["item_id"],
            "item_name": line.get("item_name"),
            "quantity": line["quantity"],
            "workstation_type": workstation_type.value,
        }

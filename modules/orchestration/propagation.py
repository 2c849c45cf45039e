"""Upward completion propagation.

One workstation-order completion walks at most four hops:
workstation -> control -> production -> warehouse or customer notification.
Every hop commits on its own and re-checks "already COMPLETED" before it
writes, so replayed notifications are harmless and a failure higher up
leaves the lower levels completed.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import ConfigurationInvariantViolation, InvalidStateTransitionException
from core.notifications import SideEffectReport
from core.settings import Settings
from modules.audit import service as audit
from modules.control_orders import service as control_service
from modules.control_orders.models import ControlOrder
from modules.control_orders.types import ControlCategory, ControlOrderStatus
from modules.customer_orders import service as customer_service
from modules.integrations.inventory import ItemType, StockReason
from modules.orchestration.dispatch import DispatchCoordinator
from modules.production_orders import service as production_service
from modules.production_orders.types import ProductionOrderStatus
from modules.warehouse_orders import service as warehouse_service
from modules.warehouse_orders.types import WarehouseOrderStatus
from modules.workstation_orders import service as workstation_service
from modules.workstation_orders.models import WorkstationOrder
from modules.workstation_orders.types import WorkstationOrderKind, WorkstationOrderStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderProgress:
    total: int
    completed: int
    # Set when some children could not be counted; the totals are then partial.
    degraded: bool = False

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.completed / self.total * 100

    @property
    def is_complete(self) -> bool:
        # An order with no children, or with children that were not counted, is never complete.
        return not self.degraded and self.total > 0 and self.completed == self.total

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "completed": self.completed,
            "percent": round(self.percent, 2),
            "is_complete": self.is_complete,
            "degraded": self.degraded,
        }


@dataclass
class PropagationResult:
    workstation_order_id: Optional[int] = None
    control_order_completed: bool = False
    production_order_completed: bool = False
    warehouse_order_completed: bool = False
    submission: Optional[SideEffectReport] = None
    credit: Optional[SideEffectReport] = None

    def as_dict(self) -> dict:
        return {
            "workstation_order_id": self.workstation_order_id,
            "control_order_completed": self.control_order_completed,
            "production_order_completed": self.production_order_completed,
            "warehouse_order_completed": self.warehouse_order_completed,
            "submission": self.submission.as_dict() if self.submission else None,
            "credit": self.credit.as_dict() if self.credit else None,
        }


class CompletionPropagator:
    def __init__(self, settings: Settings, dispatcher: DispatchCoordinator):
        self.settings = settings
        self.dispatcher = dispatcher
        self.inventory = dispatcher.inventory

    def complete_workstation_order(self, db: Session, workstation_order_id: int) -> PropagationResult:
        """IN_PROGRESS -> COMPLETED, credit standalone final assembly output, then propagate."""
        order = workstation_service.complete_order(db, workstation_order_id)
        result = PropagationResult(workstation_order_id=order.id)
        if order.control_order_id is None and order.kind == WorkstationOrderKind.FINAL_ASSEMBLY.value:
            result.credit = self._credit_plant_warehouse(db, order)
        if not self.settings.auto_status_propagation:
            logger.info("Automatic status propagation disabled; %s not propagated", order.order_number)
            return result
        return self.on_workstation_order_completed(db, order, result)

    def on_workstation_order_completed(
        self, db: Session, order: WorkstationOrder, result: Optional[PropagationResult] = None
    ) -> PropagationResult:
        """Aggregate one completion into its parents. Safe to replay."""
        result = result or PropagationResult(workstation_order_id=order.id)
        if order.control_order_id is not None:
            self._guarded(db, audit.CONTROL, order.control_order_id, self._propagate_control_order, result)
        elif order.warehouse_order_id is not None:
            self._guarded(db, audit.WAREHOUSE, order.warehouse_order_id, self._propagate_warehouse_order, result)
        elif order.customer_order_id is not None:
            self._guarded(db, audit.CUSTOMER, order.customer_order_id, self._notify_customer_if_assembled, result)
        return result

    def recheck_control_order(self, db: Session, control_order_id: int) -> PropagationResult:
        """Manual retry of a propagation hop that did not run or failed."""
        result = PropagationResult()
        self._propagate_control_order(db, control_order_id, result)
        return result

    def recheck_production_order(self, db: Session, production_order_id: int) -> PropagationResult:
        result = PropagationResult()
        self._propagate_production_order(db, production_order_id, result)
        return result

    def complete_production_order(self, db: Session, production_order_id: int) -> PropagationResult:
        """Operator completion; refused while any control order is still open."""
        order = production_service.get_order(db, production_order_id)
        result = PropagationResult()
        if order.status == ProductionOrderStatus.COMPLETED.value:
            logger.info("Production order %s already completed, skipping", order.order_number)
            return result
        progress = self.production_order_progress(db, production_order_id)
        if progress.degraded:
            raise InvalidStateTransitionException(
                f"Cannot complete {order.order_number}: control orders could not be counted"
            )
        if progress.completed < progress.total:
            raise InvalidStateTransitionException(
                f"Cannot complete {order.order_number}: {progress.total - progress.completed} control order(s) open"
            )
        result.production_order_completed = production_service.mark_completed(db, order)
        result.submission = self.dispatcher.submit_production_order_completion(db, order.id)
        return result

    # Progress snapshots

    def control_order_progress(self, db: Session, control_order: ControlOrder) -> OrderProgress:
        """Count children of the control order's own category, one workstation kind at a time.

        Every child counts toward the total whatever its status, so an
        abandoned or halted child keeps the control order open. A failing
        count for one kind is logged and the other kinds still aggregate,
        but the snapshot is then degraded and never complete.
        """
        total = completed = 0
        degraded = False
        for kind in WorkstationOrderKind.for_category(control_order.category):
            try:
                kind_total = workstation_service.count_by_parent(
                    db, WorkstationOrder.control_order_id, control_order.id, kind
                )
                kind_completed = workstation_service.count_by_parent(
                    db,
                    WorkstationOrder.control_order_id,
                    control_order.id,
                    kind,
                    status=WorkstationOrderStatus.COMPLETED.value,
                )
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Counting %s orders under %s failed", kind.value, control_order.order_number)
                degraded = True
                continue
            total += kind_total
            completed += kind_completed
        return OrderProgress(total=total, completed=completed, degraded=degraded)

    def production_order_progress(self, db: Session, production_order_id: int) -> OrderProgress:
        """Count control orders of both categories; a cancelled one keeps the production order open."""
        total = completed = 0
        degraded = False
        for category in ControlCategory:
            try:
                category_total = control_service.count_by_production_order(
                    db, production_order_id, category=category.value
                )
                category_completed = control_service.count_by_production_order(
                    db, production_order_id, category=category.value, status=ControlOrderStatus.COMPLETED.value
                )
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Counting %s control orders under #%s failed", category.value, production_order_id)
                degraded = True
                continue
            total += category_total
            completed += category_completed
        return OrderProgress(total=total, completed=completed, degraded=degraded)

    def warehouse_order_progress(self, db: Session, warehouse_order_id: int) -> OrderProgress:
        return self._final_assembly_progress(db, WorkstationOrder.warehouse_order_id, warehouse_order_id)

    def customer_order_progress(self, db: Session, customer_order_id: int) -> OrderProgress:
        """Warehouse orders plus direct production orders raised for the customer order."""
        warehouse_total = warehouse_service.count_by_customer_order(db, customer_order_id)
        warehouse_done = warehouse_service.count_by_customer_order(
            db, customer_order_id, status=WarehouseOrderStatus.COMPLETED.value
        )
        productions = production_service.list_orders(db, source_customer_order_id=customer_order_id)
        production_done = sum(1 for p in productions if p.status == ProductionOrderStatus.COMPLETED.value)
        return OrderProgress(
            total=warehouse_total + len(productions),
            completed=warehouse_done + production_done,
        )

    def _final_assembly_progress(self, db: Session, parent_column, parent_id: int) -> OrderProgress:
        kind = WorkstationOrderKind.FINAL_ASSEMBLY
        total = workstation_service.count_by_parent(db, parent_column, parent_id, kind)
        completed = workstation_service.count_by_parent(
            db, parent_column, parent_id, kind, status=WorkstationOrderStatus.COMPLETED.value
        )
        return OrderProgress(total=total, completed=completed)

    # Hops

    def _propagate_control_order(self, db: Session, control_order_id: int, result: PropagationResult) -> None:
        control = control_service.get_order(db, control_order_id)
        if control.status == ControlOrderStatus.COMPLETED.value:
            logger.info("Control order %s already completed, skipping", control.order_number)
            return
        progress = self.control_order_progress(db, control)
        logger.info(
            "Control order %s: %d/%d workstation order(s) completed",
            control.order_number,
            progress.completed,
            progress.total,
        )
        if not progress.is_complete:
            return
        result.control_order_completed = control_service.mark_completed(db, control)
        self._guarded(
            db, audit.PRODUCTION, control.source_production_order_id, self._propagate_production_order, result
        )

    def _propagate_production_order(self, db: Session, production_order_id: int, result: PropagationResult) -> None:
        order = production_service.get_order(db, production_order_id)
        if order.status == ProductionOrderStatus.COMPLETED.value:
            if order.completion_submitted_at is None:
                # An earlier run completed the order but stopped before routing it.
                result.submission = self.dispatcher.submit_production_order_completion(db, order.id)
            else:
                logger.info("Production order %s already completed, skipping", order.order_number)
            return
        progress = self.production_order_progress(db, production_order_id)
        logger.info(
            "Production order %s: %d/%d control order(s) completed",
            order.order_number,
            progress.completed,
            progress.total,
        )
        if not progress.is_complete:
            return
        result.production_order_completed = production_service.mark_completed(db, order)
        result.submission = self.dispatcher.submit_production_order_completion(db, order.id)

    def _propagate_warehouse_order(self, db: Session, warehouse_order_id: int, result: PropagationResult) -> None:
        order = warehouse_service.get_order(db, warehouse_order_id)
        if order.status == WarehouseOrderStatus.COMPLETED.value:
            logger.info("Warehouse order %s already completed, skipping", order.order_number)
            return
        if not self.warehouse_order_progress(db, warehouse_order_id).is_complete:
            return
        result.warehouse_order_completed = warehouse_service.mark_completed(db, order)
        if result.warehouse_order_completed:
            self._notify_customer_if_assembled(db, order.customer_order_id, result)

    def _notify_customer_if_assembled(self, db: Session, customer_order_id: int, result: PropagationResult) -> None:
        """Tell the customer order its goods are ready. The customer order itself is completed explicitly."""
        customer = customer_service.get_order(db, customer_order_id)
        progress = self._final_assembly_progress(db, WorkstationOrder.customer_order_id, customer_order_id)
        if not progress.is_complete:
            return
        logger.info("Customer order %s: all final assembly completed, ready for fulfillment", customer.order_number)
        audit.record_event(
            db, audit.CUSTOMER, customer.id, "READY_FOR_FULFILLMENT", "All final assembly orders completed"
        )

    def _guarded(self, db: Session, order_type: str, order_id: int, hop, result: PropagationResult) -> None:
        # Lower levels are already committed; a failing hop is logged and can be rechecked.
        try:
            hop(db, order_id, result)
        except ConfigurationInvariantViolation:
            raise
        except Exception:
            db.rollback()
            logger.exception("Completion propagation to %s order #%s failed", order_type.lower(), order_id)
            audit.record_event(
                db, order_type, order_id, "PROPAGATION_FAILED", "Completion propagation failed, recheck required"
            )

    def _credit_plant_warehouse(self, db: Session, order: WorkstationOrder) -> SideEffectReport:
        report = SideEffectReport()
        item_type = order.output_item_type or ItemType.PRODUCT.value
        report.attempt(
            f"credit plant warehouse {item_type} {order.output_item_id}",
            self.inventory.credit_stock,
            self.settings.plant_warehouse_workstation_id,
            item_type,
            order.output_item_id,
            order.quantity,
            StockReason.PRODUCTION.value,
            f"Final assembly completed: {order.order_number}",
        )
        audit.record_notification_failures(db, audit.WORKSTATION, order.id, report.failures)
        return report

"""Fulfillment scenario resolution.

Scenario 4 (direct production) is chosen purely by lot size. Below the
threshold, stock decides: the customer order is served from the plant
warehouse when it holds everything, otherwise a warehouse order restocks
from the modules depot, which in turn either fulfills directly or needs a
production order.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Tuple

from sqlalchemy.orm import Session

from core.errors import require_status
from core.settings import Settings
from modules.customer_orders import service as customer_service
from modules.customer_orders.models import CustomerOrder
from modules.customer_orders.types import CustomerOrderStatus
from modules.integrations.inventory import InventoryError
from modules.warehouse_orders import service as warehouse_service
from modules.warehouse_orders.models import WarehouseOrder
from modules.warehouse_orders.types import TriggerScenario, WarehouseOrderStatus

logger = logging.getLogger(__name__)


class Scenario(str, Enum):
    DIRECT_FULFILLMENT = "DIRECT_FULFILLMENT"
    PRODUCTION_REQUIRED = "PRODUCTION_REQUIRED"
    WAREHOUSE_ORDER_NEEDED = "WAREHOUSE_ORDER_NEEDED"
    DIRECT_PRODUCTION = "DIRECT_PRODUCTION"


@dataclass(frozen=True)
class StockLine:
    item_type: str
    item_id: int
    requested: int
    available: int

    @property
    def sufficient(self) -> bool:
        return self.available >= self.requested


@dataclass(frozen=True)
class StockSnapshot:
    workstation_id: int
    lines: Tuple[StockLine, ...] = ()

    @property
    def covers_all(self) -> bool:
        return all(line.sufficient for line in self.lines)

    @property
    def shortages(self) -> List[StockLine]:
        return [line for line in self.lines if not line.sufficient]


class ScenarioResolver:
    def __init__(self, settings: Settings, inventory):
        self.settings = settings
        self.inventory = inventory

    def resolve(self, total_quantity: int, snapshot: StockSnapshot) -> Scenario:
        """Deterministic in (total_quantity, snapshot, lot-size threshold)."""
        if self.settings.is_direct_production(total_quantity):
            return Scenario.DIRECT_PRODUCTION
        return self.resolve_stock(snapshot)

    @staticmethod
    def resolve_stock(snapshot: StockSnapshot) -> Scenario:
        return Scenario.DIRECT_FULFILLMENT if snapshot.covers_all else Scenario.PRODUCTION_REQUIRED

    def take_snapshot(self, workstation_id: int, items: Iterable) -> StockSnapshot:
        """Read current stock for every requested item; a failed read counts as no stock."""
        requested: "OrderedDict[Tuple[str, int], int]" = OrderedDict()
        for item in items:
            key = (item.item_type, item.item_id)
            requested[key] = requested.get(key, 0) + item.quantity

        lines = []
        for (item_type, item_id), quantity in requested.items():
            try:
                available = self.inventory.get_stock(workstation_id, item_type, item_id)
            except InventoryError as exc:
                logger.warning("Stock read failed for %s %s at workstation %s: %s", item_type, item_id, workstation_id, exc)
                available = 0
            lines.append(StockLine(item_type=item_type, item_id=item_id, requested=quantity, available=available))
        return StockSnapshot(workstation_id=workstation_id, lines=tuple(lines))

    def resolve_customer_order(self, order: CustomerOrder) -> Scenario:
        total = customer_service.total_quantity(order)
        if self.settings.is_direct_production(total):
            logger.info(
                "Customer order %s quantity %d >= lot size %d: direct production",
                order.order_number,
                total,
                self.settings.lot_size_threshold,
            )
            return Scenario.DIRECT_PRODUCTION
        snapshot = self.take_snapshot(order.workstation_id, order.items)
        scenario = self.resolve(total, snapshot)
        if scenario == Scenario.PRODUCTION_REQUIRED:
            # At customer level a shortage is covered by restocking through a warehouse order.
            scenario = Scenario.WAREHOUSE_ORDER_NEEDED
        logger.info("Customer order %s quantity %d resolved to %s", order.order_number, total, scenario.value)
        return scenario

    def recheck_customer_order(self, db: Session, customer_order_id: int) -> Scenario:
        """Re-evaluate a CONFIRMED order against live stock without changing it."""
        order = customer_service.get_order(db, customer_order_id)
        if order.status != CustomerOrderStatus.CONFIRMED.value:
            return Scenario(order.trigger_scenario) if order.trigger_scenario else self.resolve_customer_order(order)
        current = self.resolve_customer_order(order)
        if order.trigger_scenario and current.value != order.trigger_scenario:
            logger.warning(
                "Customer order %s scenario changed %s -> %s since confirmation",
                order.order_number,
                order.trigger_scenario,
                current.value,
            )
        return current

    def confirm_warehouse_order(self, db: Session, warehouse_order_id: int) -> WarehouseOrder:
        """PENDING -> CONFIRMED with the trigger scenario taken from current module stock.

        Confirming twice is rejected; the lot-size branch was already taken when
        the owning customer order was confirmed.
        """
        order = warehouse_service.get_order(db, warehouse_order_id)
        require_status(order, [WarehouseOrderStatus.PENDING], "confirm")
        snapshot = self.take_snapshot(order.workstation_id, order.items)
        for line in snapshot.shortages:
            logger.info(
                "Warehouse order %s short on %s %s: %d requested, %d available",
                order.order_number,
                line.item_type,
                line.item_id,
                line.requested,
                line.available,
            )
        scenario = TriggerScenario(self.resolve_stock(snapshot).value)
        return warehouse_service.record_confirmation(db, order, scenario)

from types import SimpleNamespace

import pytest

from core.errors import InvalidStateTransitionException
from modules.integrations.inventory import InventoryError
from modules.orchestration.scenario import Scenario, StockLine, StockSnapshot
from modules.warehouse_orders import service as warehouse_service
from modules.warehouse_orders.types import TriggerScenario, WarehouseOrderStatus


def snapshot(*lines):
    return StockSnapshot(
        workstation_id=7,
        lines=tuple(StockLine(item_type="PRODUCT", item_id=i, requested=r, available=a) for i, r, a in lines),
    )


def test_lot_size_decides_before_stock(resolver):
    full = snapshot((1, 5, 10))
    empty = snapshot((1, 5, 0))
    assert resolver.resolve(5, full) == Scenario.DIRECT_PRODUCTION
    assert resolver.resolve(5, empty) == Scenario.DIRECT_PRODUCTION
    assert resolver.resolve(3, empty) == Scenario.DIRECT_PRODUCTION


def test_small_lots_resolve_on_stock(resolver):
    assert resolver.resolve(2, snapshot((1, 2, 2))) == Scenario.DIRECT_FULFILLMENT
    assert resolver.resolve(2, snapshot((1, 2, 1))) == Scenario.PRODUCTION_REQUIRED


def test_resolution_is_deterministic(resolver):
    partial = snapshot((1, 1, 1), (2, 1, 0))
    results = {resolver.resolve(2, partial) for _ in range(5)}
    assert results == {Scenario.PRODUCTION_REQUIRED}


def test_snapshot_sums_duplicate_lines(resolver, ledger):
    ledger.set(7, "PRODUCT", 1, 3)
    items = [
        SimpleNamespace(item_type="PRODUCT", item_id=1, quantity=2),
        SimpleNamespace(item_type="PRODUCT", item_id=1, quantity=2),
    ]
    result = resolver.take_snapshot(7, items)
    assert len(result.lines) == 1
    assert result.lines[0].requested == 4
    assert not result.covers_all
    assert result.shortages[0].available == 3


def test_failed_stock_read_counts_as_empty(resolver, ledger, monkeypatch):
    def broken(*args):
        raise InventoryError("ledger down")

    monkeypatch.setattr(ledger, "get_stock", broken)
    result = resolver.take_snapshot(7, [SimpleNamespace(item_type="PRODUCT", item_id=1, quantity=1)])
    assert result.lines[0].available == 0
    assert resolver.resolve_stock(result) == Scenario.PRODUCTION_REQUIRED


def test_customer_order_of_two_with_stock_is_direct_fulfillment(resolver, ledger, make_customer_order):
    ledger.set(7, "PRODUCT", 100, 2)
    order = make_customer_order((100, 2))
    assert resolver.resolve_customer_order(order) == Scenario.DIRECT_FULFILLMENT


def test_customer_order_of_two_without_stock_needs_warehouse_order(resolver, make_customer_order):
    order = make_customer_order((100, 2))
    assert resolver.resolve_customer_order(order) == Scenario.WAREHOUSE_ORDER_NEEDED


def test_customer_order_of_five_skips_stock_lookup(resolver, ledger, make_customer_order):
    ledger.set(7, "PRODUCT", 100, 50)
    order = make_customer_order((100, 3), (101, 2))
    assert resolver.resolve_customer_order(order) == Scenario.DIRECT_PRODUCTION
    assert ledger.reads == []


def test_confirm_warehouse_order_uses_depot_stock(db, resolver, ledger):
    ledger.set(8, "MODULE", 11, 4)
    order = warehouse_service.create_order(
        db, customer_order_id=1, customer_order_number="ORD-0001", workstation_id=8,
        items=[{"item_type": "MODULE", "item_id": 11, "quantity": 4}],
    )
    confirmed = resolver.confirm_warehouse_order(db, order.id)
    assert confirmed.status == WarehouseOrderStatus.CONFIRMED.value
    assert confirmed.trigger_scenario == TriggerScenario.DIRECT_FULFILLMENT.value


def test_confirm_warehouse_order_short_on_modules(db, resolver, ledger):
    ledger.set(8, "MODULE", 11, 1)
    order = warehouse_service.create_order(
        db, customer_order_id=1, customer_order_number="ORD-0001", workstation_id=8,
        items=[{"item_type": "MODULE", "item_id": 11, "quantity": 4}],
    )
    confirmed = resolver.confirm_warehouse_order(db, order.id)
    assert confirmed.trigger_scenario == TriggerScenario.PRODUCTION_REQUIRED.value


def test_confirm_warehouse_order_twice_is_rejected(db, resolver):
    order = warehouse_service.create_order(
        db, customer_order_id=1, customer_order_number="ORD-0001", workstation_id=8,
        items=[{"item_type": "MODULE", "item_id": 11, "quantity": 1}],
    )
    resolver.confirm_warehouse_order(db, order.id)
    with pytest.raises(InvalidStateTransitionException):
        resolver.confirm_warehouse_order(db, order.id)

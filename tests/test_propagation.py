import pytest
from sqlalchemy.exc import OperationalError

from core.errors import InvalidStateTransitionException
from core.settings import Settings
from modules.audit import service as audit
from modules.control_orders import service as control_service
from modules.control_orders.types import ControlOrderStatus
from modules.orchestration.dispatch import DispatchCoordinator
from modules.orchestration.propagation import CompletionPropagator, OrderProgress
from modules.production_orders import service as production_service
from modules.production_orders.types import ProductionOrderStatus
from modules.warehouse_orders import service as warehouse_service
from modules.warehouse_orders.types import WarehouseOrderStatus
from modules.workstation_orders import service as workstation_service
from modules.workstation_orders.types import WorkstationOrderKind


def dispatch_hierarchy(db, coordinator, items=None):
    """Warehouse-sourced production order with both control orders dispatched."""
    items = items or [
        {"item_type": "PART", "item_id": 501, "quantity": 4, "workstation_type": "MANUFACTURING"},
        {"item_type": "MODULE", "item_id": 12, "quantity": 2, "workstation_type": "ASSEMBLY"},
    ]
    warehouse = warehouse_service.create_order(
        db, customer_order_id=1, customer_order_number="ORD-0001", workstation_id=8,
        items=[{"item_type": i["item_type"], "item_id": i["item_id"], "quantity": i["quantity"]} for i in items],
    )
    production = production_service.create_order(db, items=items, source_warehouse_order_id=warehouse.id)
    warehouse_service.link_production_order(db, warehouse, production.id)
    production_service.confirm_order(db, production.id)
    coordinator.schedule_production_order(db, production.id)
    controls = coordinator.dispatch_production_order(db, production.id)
    for control_id in controls.values():
        coordinator.dispatch_control_order(db, control_id)
    return warehouse, production, controls


def finish(db, propagator, workstation_order_id):
    workstation_service.start_order(db, workstation_order_id)
    return propagator.complete_workstation_order(db, workstation_order_id)


def test_progress_of_empty_order():
    progress = OrderProgress(total=0, completed=0)
    assert progress.percent == 0
    assert not progress.is_complete
    assert not OrderProgress(total=2, completed=2, degraded=True).is_complete
    assert OrderProgress(total=4, completed=1).as_dict() == {
        "total": 4,
        "completed": 1,
        "percent": 25.0,
        "is_complete": False,
        "degraded": False,
    }


def test_completion_walks_up_to_warehouse_hand_off(db, coordinator, propagator, ledger):
    warehouse, production, controls = dispatch_hierarchy(db, coordinator)
    [molding] = workstation_service.list_orders(db, control_order_id=controls[1])
    [gears] = workstation_service.list_orders(db, control_order_id=controls[4])

    first = finish(db, propagator, molding.id)

    assert first.control_order_completed
    assert not first.production_order_completed
    progress = propagator.production_order_progress(db, production.id)
    assert (progress.completed, progress.total, progress.percent) == (1, 2, 50.0)
    assert ledger.credits == []

    second = finish(db, propagator, gears.id)

    assert second.control_order_completed
    assert second.production_order_completed
    assert second.submission.ok
    assert ledger.credits == [(8, "PART", 501, 4, "PRODUCTION"), (8, "MODULE", 12, 2, "PRODUCTION")]
    assert production_service.get_order(db, production.id).status == ProductionOrderStatus.COMPLETED.value
    assert warehouse_service.get_order(db, warehouse.id).status == WarehouseOrderStatus.CONFIRMED.value


def test_replayed_completion_changes_nothing(db, coordinator, propagator, ledger):
    _, production, controls = dispatch_hierarchy(db, coordinator)
    orders = workstation_service.list_orders(db, production_order_id=production.id)
    for order in orders:
        finish(db, propagator, order.id)
    credits = list(ledger.credits)

    for order in orders:
        replay = propagator.on_workstation_order_completed(db, workstation_service.get_order(db, order.id))
        assert not replay.control_order_completed
        assert not replay.production_order_completed
        assert replay.submission is None

    assert ledger.credits == credits
    assert len(audit.list_events(db, audit.PRODUCTION, production.id, "COMPLETED")) == 1


def test_abandoned_child_keeps_control_order_open(db, coordinator, propagator):
    _, _, controls = dispatch_hierarchy(
        db,
        coordinator,
        items=[
            {"item_type": "PART", "item_id": 501, "quantity": 4, "workstation_type": "MANUFACTURING"},
            {"item_type": "PART", "item_id": 502, "quantity": 1, "workstation_type": "MANUFACTURING"},
        ],
    )
    first, second = workstation_service.list_orders(db, control_order_id=controls[1])
    workstation_service.abandon_order(db, second.id, "mould damaged")

    result = finish(db, propagator, first.id)

    assert not result.control_order_completed
    control = control_service.get_order(db, controls[1])
    assert control.status == ControlOrderStatus.IN_PROGRESS.value
    progress = propagator.control_order_progress(db, control)
    assert (progress.completed, progress.total) == (1, 2)


@pytest.mark.parametrize("sibling_state", ["HALTED", "WAITING_FOR_PARTS"])
def test_unfinished_sibling_keeps_control_order_open(db, coordinator, propagator, ledger, sibling_state):
    _, production, controls = dispatch_hierarchy(
        db,
        coordinator,
        items=[
            {"item_type": "PART", "item_id": 501, "quantity": 4, "workstation_type": "MANUFACTURING"},
            {"item_type": "PART", "item_id": 502, "quantity": 1, "workstation_type": "MANUFACTURING"},
        ],
    )
    first, second = workstation_service.list_orders(db, control_order_id=controls[1])
    if sibling_state == "HALTED":
        workstation_service.start_order(db, second.id)
        workstation_service.halt_order(db, second.id)
    else:
        workstation_service.mark_waiting_for_parts(db, second.id, supply_order_id=1)

    result = finish(db, propagator, first.id)

    assert not result.control_order_completed
    children = workstation_service.list_orders(db, control_order_id=controls[1])
    assert sorted(o.status for o in children) == sorted(["COMPLETED", sibling_state])
    assert control_service.get_order(db, controls[1]).status == ControlOrderStatus.IN_PROGRESS.value
    assert production_service.get_order(db, production.id).status == ProductionOrderStatus.IN_PROGRESS.value
    assert ledger.credits == []


def test_cancelled_control_order_keeps_production_order_open(db, coordinator, propagator, ledger):
    _, production, controls = dispatch_hierarchy(db, coordinator)
    control_service.cancel_order(db, controls[4])
    [molding] = workstation_service.list_orders(db, control_order_id=controls[1])

    result = finish(db, propagator, molding.id)

    assert result.control_order_completed
    assert not result.production_order_completed
    progress = propagator.production_order_progress(db, production.id)
    assert (progress.completed, progress.total) == (1, 2)
    assert production_service.get_order(db, production.id).status == ProductionOrderStatus.IN_PROGRESS.value
    assert ledger.credits == []


def test_failed_control_order_count_blocks_production_completion(db, coordinator, propagator, ledger, monkeypatch):
    _, production, controls = dispatch_hierarchy(db, coordinator)
    [molding] = workstation_service.list_orders(db, control_order_id=controls[1])
    real_count = control_service.count_by_production_order

    def flaky_count(db, production_order_id, category=None, status=None):
        if category == "ASSEMBLY":
            raise OperationalError("SELECT count(*)", {}, Exception("database is locked"))
        return real_count(db, production_order_id, category=category, status=status)

    monkeypatch.setattr(control_service, "count_by_production_order", flaky_count)

    result = finish(db, propagator, molding.id)

    assert result.control_order_completed
    assert not result.production_order_completed
    progress = propagator.production_order_progress(db, production.id)
    assert progress.degraded
    assert (progress.completed, progress.total) == (1, 1)
    assert not progress.is_complete
    assert not OrderProgress(total=2, completed=2, degraded=True).is_complete
    assert production_service.get_order(db, production.id).status == ProductionOrderStatus.IN_PROGRESS.value
    assert ledger.credits == []
    with pytest.raises(InvalidStateTransitionException):
        propagator.complete_production_order(db, production.id)


def test_disabled_propagation_waits_for_recheck(db, ledger, scheduler, masterdata):
    settings = Settings(database_url="sqlite://", auto_status_propagation=False)
    coordinator = DispatchCoordinator(settings, ledger, scheduler=scheduler, masterdata=masterdata)
    propagator = CompletionPropagator(settings, coordinator)
    _, _, controls = dispatch_hierarchy(db, coordinator)
    [molding] = workstation_service.list_orders(db, control_order_id=controls[1])

    finish(db, propagator, molding.id)
    assert control_service.get_order(db, controls[1]).status == ControlOrderStatus.IN_PROGRESS.value

    result = propagator.recheck_control_order(db, controls[1])
    assert result.control_order_completed
    assert control_service.get_order(db, controls[1]).status == ControlOrderStatus.COMPLETED.value


def test_failed_hop_is_recorded_and_recoverable(db, coordinator, propagator, ledger, monkeypatch):
    _, production, controls = dispatch_hierarchy(db, coordinator)
    original = production_service.mark_completed

    def broken(*args, **kwargs):
        raise RuntimeError("database hiccup")

    monkeypatch.setattr(production_service, "mark_completed", broken)
    for order in workstation_service.list_orders(db, production_order_id=production.id):
        finish(db, propagator, order.id)

    assert control_service.get_order(db, controls[4]).status == ControlOrderStatus.COMPLETED.value
    assert production_service.get_order(db, production.id).status == ProductionOrderStatus.IN_PROGRESS.value
    assert audit.list_events(db, audit.PRODUCTION, production.id, "PROPAGATION_FAILED")

    monkeypatch.setattr(production_service, "mark_completed", original)
    result = propagator.recheck_production_order(db, production.id)

    assert result.production_order_completed
    assert len(ledger.credits) == 2


def test_manual_completion_refused_while_control_orders_open(db, coordinator, propagator):
    _, production, _ = dispatch_hierarchy(db, coordinator)
    with pytest.raises(InvalidStateTransitionException):
        propagator.complete_production_order(db, production.id)


def test_standalone_final_assembly_credits_plant_warehouse(db, settings, propagator, ledger, make_customer_order):
    customer = make_customer_order((100, 2))
    warehouse = warehouse_service.create_order(
        db, customer_order_id=customer.id, customer_order_number=customer.order_number, workstation_id=8,
        items=[{"item_type": "MODULE", "item_id": 11, "quantity": 2, "product_id": 100, "product_quantity": 2}],
    )
    assembly = workstation_service.create_order(
        db,
        settings,
        WorkstationOrderKind.FINAL_ASSEMBLY,
        output_item_type="PRODUCT",
        output_item_id=100,
        quantity=2,
        warehouse_order_id=warehouse.id,
        customer_order_id=customer.id,
    )

    result = finish(db, propagator, assembly.id)

    assert result.credit.ok
    assert ledger.credits == [(7, "PRODUCT", 100, 2, "PRODUCTION")]
    assert result.warehouse_order_completed
    assert warehouse_service.get_order(db, warehouse.id).status == WarehouseOrderStatus.COMPLETED.value
    assert audit.list_events(db, audit.CUSTOMER, customer.id, "READY_FOR_FULFILLMENT")

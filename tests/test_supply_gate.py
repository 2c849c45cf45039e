import pytest

from core.errors import InvalidStateTransitionException, ValidationAppException
from modules.audit import service as audit
from modules.control_orders import service as control_service
from modules.control_orders.types import ControlCategory
from modules.supply_orders import service as supply_service
from modules.supply_orders.types import SupplyOrderStatus
from modules.workstation_orders.types import WorkstationOrderKind, WorkstationOrderStatus
from conftest import FailingLedger


def assembly_control(db, tasks=None, workstation_id=4):
    return control_service.create_order(
        db,
        ControlCategory.ASSEMBLY,
        production_order_id=1,
        workstation_id=workstation_id,
        tasks=tasks or [{"workstation_id": workstation_id, "item_id": 11, "item_name": "Gearbox", "quantity": 3}],
    )


def test_required_inputs_per_kind(supply_gate):
    assert supply_gate.required_inputs(WorkstationOrderKind.INJECTION_MOLDING, 501, 4) == []
    assert supply_gate.required_inputs(WorkstationOrderKind.PART_FINISHING, 501, 4) == [
        {"item_type": "PART", "item_id": 501, "quantity": 4}
    ]
    assert supply_gate.required_inputs(WorkstationOrderKind.GEAR_ASSEMBLY, 11, 3) == [
        {"item_type": "PART", "item_id": 501, "quantity": 6}
    ]
    # No bill of materials: the order is not gated.
    assert supply_gate.required_inputs(WorkstationOrderKind.GEAR_ASSEMBLY, 99, 3) == []


def test_order_with_local_parts_opens_pending(db, supply_gate, ledger):
    ledger.set(4, "PART", 501, 6)

    order = supply_gate.open_workstation_order(
        db, WorkstationOrderKind.GEAR_ASSEMBLY, output_item_type="MODULE", output_item_id=11, quantity=3
    )

    assert order.status == WorkstationOrderStatus.PENDING.value
    assert order.supply_order_id is None
    assert supply_service.list_orders(db) == []


def test_shortage_raises_supply_order_and_waits(db, supply_gate, ledger):
    ledger.set(4, "PART", 501, 2)

    order = supply_gate.open_workstation_order(
        db, WorkstationOrderKind.GEAR_ASSEMBLY, output_item_type="MODULE", output_item_id=11, quantity=3
    )

    assert order.status == WorkstationOrderStatus.WAITING_FOR_PARTS.value
    supply = supply_service.get_order(db, order.supply_order_id)
    assert supply.order_number == "SO-00001"
    assert supply.supply_workstation_id == 9
    assert supply.requesting_workstation_id == 4
    assert [(i.part_id, i.quantity_requested) for i in supply.items] == [(501, 4)]


def test_dispatch_blocked_until_a_supply_order_is_fulfilled(db, supply_gate, ledger):
    control = assembly_control(db)
    supply = supply_gate.request_supplies(db, control)
    assert supply.source_control_order_id == control.id
    assert [(i.part_id, i.quantity_requested) for i in supply.items] == [(501, 6)]

    with pytest.raises(InvalidStateTransitionException):
        supply_gate.ensure_control_order_dispatchable(db, control)

    supply_service.fulfill_order(db, supply.id, ledger)
    supply_gate.ensure_control_order_dispatchable(db, control)


def test_cancelled_supply_orders_do_not_block(db, supply_gate):
    control = assembly_control(db)
    supply = supply_gate.request_supplies(db, control)
    supply_service.cancel_order(db, supply.id, "parts found on the line")

    supply_gate.ensure_control_order_dispatchable(db, control)


def test_no_supply_needed_for_molding(db, supply_gate):
    control = control_service.create_order(
        db,
        ControlCategory.PRODUCTION,
        production_order_id=1,
        workstation_id=1,
        tasks=[{"workstation_id": 1, "item_id": 501, "item_name": "Housing", "quantity": 3}],
    )
    with pytest.raises(ValidationAppException):
        supply_gate.request_supplies(db, control)


def test_fulfillment_moves_parts_between_depots(db, settings, ledger):
    supply = supply_service.create_order(db, settings, requesting_workstation_id=4, items=[{"part_id": 501, "quantity": 5}])

    report = supply_service.fulfill_order(db, supply.id, ledger)

    assert report.ok
    assert ledger.debits == [(9, "PART", 501, 5, "SUPPLY")]
    assert ledger.credits == [(4, "PART", 501, 5, "SUPPLY")]
    assert supply_service.get_order(db, supply.id).items[0].quantity_supplied == 5


def test_fulfillment_survives_ledger_failure(db, settings):
    supply = supply_service.create_order(db, settings, requesting_workstation_id=4, items=[{"part_id": 501, "quantity": 5}])

    report = supply_service.fulfill_order(db, supply.id, FailingLedger())

    assert not report.ok
    assert len(report.failures) == 2
    assert supply_service.get_order(db, supply.id).status == SupplyOrderStatus.FULFILLED.value
    assert len(audit.list_events(db, audit.SUPPLY, supply.id, "NOTIFICATION_FAILED")) == 2


def test_closed_supply_order_cannot_be_rejected(db, settings, ledger):
    supply = supply_service.create_order(db, settings, requesting_workstation_id=4, items=[{"part_id": 501, "quantity": 1}])
    supply_service.start_order(db, supply.id)
    rejected = supply_service.reject_order(db, supply.id, "part discontinued")
    assert rejected.status == SupplyOrderStatus.REJECTED.value
    assert "Rejected: part discontinued" in rejected.notes

    with pytest.raises(InvalidStateTransitionException):
        supply_service.cancel_order(db, supply.id, "too late")

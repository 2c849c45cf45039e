import pytest

from core.errors import InvalidStateTransitionException, NotFoundException
from modules.workstation_orders import service as workstation_service
from modules.workstation_orders.types import WorkstationOrderKind, WorkstationOrderStatus


@pytest.fixture
def molding_order(db, settings):
    return workstation_service.create_order(
        db, settings, WorkstationOrderKind.INJECTION_MOLDING, output_item_type="PART", output_item_id=501, quantity=4
    )


def test_numbers_and_workstation_follow_kind(db, settings, molding_order):
    assert molding_order.order_number == "IM-0001"
    assert molding_order.workstation_id == 1
    finishing = workstation_service.create_order(
        db, settings, WorkstationOrderKind.PART_FINISHING, output_item_type="PART", output_item_id=501, quantity=4
    )
    assert finishing.order_number == "PF-0001"
    assert finishing.workstation_id == 3


def test_start_sets_actual_start_time(db, molding_order):
    started = workstation_service.start_order(db, molding_order.id)
    assert started.status == WorkstationOrderStatus.IN_PROGRESS.value
    assert started.actual_start_time is not None


def test_start_from_waiting_for_parts(db, molding_order):
    workstation_service.mark_waiting_for_parts(db, molding_order.id, supply_order_id=7)
    started = workstation_service.start_order(db, molding_order.id)
    assert started.status == WorkstationOrderStatus.IN_PROGRESS.value
    assert started.actual_start_time is not None


def test_completed_order_cannot_start_again(db, molding_order):
    workstation_service.start_order(db, molding_order.id)
    workstation_service.complete_order(db, molding_order.id)
    with pytest.raises(InvalidStateTransitionException):
        workstation_service.start_order(db, molding_order.id)


def test_complete_requires_in_progress(db, molding_order):
    with pytest.raises(InvalidStateTransitionException):
        workstation_service.complete_order(db, molding_order.id)


def test_halt_and_resume(db, molding_order):
    workstation_service.start_order(db, molding_order.id)
    assert workstation_service.halt_order(db, molding_order.id).status == WorkstationOrderStatus.HALTED.value
    with pytest.raises(InvalidStateTransitionException):
        workstation_service.complete_order(db, molding_order.id)
    assert workstation_service.resume_order(db, molding_order.id).status == WorkstationOrderStatus.IN_PROGRESS.value


def test_abandoned_order_is_terminal(db, molding_order):
    abandoned = workstation_service.abandon_order(db, molding_order.id, "wrong material")
    assert abandoned.status == WorkstationOrderStatus.ABANDONED.value
    assert "Abandoned: wrong material" in abandoned.notes
    with pytest.raises(InvalidStateTransitionException):
        workstation_service.abandon_order(db, molding_order.id, "again")


def test_unknown_order(db):
    with pytest.raises(NotFoundException):
        workstation_service.start_order(db, 404)

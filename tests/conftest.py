import os
import pathlib
import sys
from datetime import datetime, timedelta

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import get_db, init_db
from core.models import Base
from core.settings import Settings, get_settings
from modules.customer_orders import service as customer_service
from modules.customer_orders.schemas import CustomerOrderCreate
from modules.integrations.inventory import InventoryError
from modules.integrations.masterdata import BomEntry, MasterdataError
from modules.integrations.scheduling import ScheduledPlan, ScheduledTask, SchedulingError
from modules.orchestration.dispatch import DispatchCoordinator
from modules.orchestration.propagation import CompletionPropagator
from modules.orchestration.scenario import ScenarioResolver
from modules.orchestration.supply_gate import SupplyGate


class InMemoryLedger:
    """Stock ledger double keyed by (workstation, item type, item id)."""

    def __init__(self, stock=None):
        self.stock = dict(stock or {})
        self.credits = []
        self.debits = []
        self.reads = []

    def set(self, workstation_id, item_type, item_id, quantity):
        self.stock[(workstation_id, item_type, item_id)] = quantity

    def get_stock(self, workstation_id, item_type, item_id):
        self.reads.append((workstation_id, item_type, item_id))
        return self.stock.get((workstation_id, item_type, item_id), 0)

    def credit_stock(self, workstation_id, item_type, item_id, quantity, reason, note=""):
        key = (workstation_id, item_type, item_id)
        self.stock[key] = self.stock.get(key, 0) + quantity
        self.credits.append((workstation_id, item_type, item_id, quantity, reason))
        return True

    def debit_stock(self, workstation_id, item_type, item_id, quantity, reason, note=""):
        key = (workstation_id, item_type, item_id)
        self.stock[key] = self.stock.get(key, 0) - quantity
        self.debits.append((workstation_id, item_type, item_id, quantity, reason))
        return True


class FailingLedger(InMemoryLedger):
    """Reads work, every write fails."""

    def credit_stock(self, workstation_id, item_type, item_id, quantity, reason, note=""):
        raise InventoryError(f"ledger unavailable for credit at workstation {workstation_id}")

    def debit_stock(self, workstation_id, item_type, item_id, quantity, reason, note=""):
        raise InventoryError(f"ledger unavailable for debit at workstation {workstation_id}")


class FlakyLedger(InMemoryLedger):
    """Debits go through until `debits_before_failure` have been recorded, then fail."""

    def __init__(self, debits_before_failure=None, stock=None):
        super().__init__(stock)
        self.debits_before_failure = debits_before_failure

    def debit_stock(self, workstation_id, item_type, item_id, quantity, reason, note=""):
        if self.debits_before_failure is not None and len(self.debits) >= self.debits_before_failure:
            raise InventoryError(f"ledger timed out debiting {item_type} {item_id}")
        return super().debit_stock(workstation_id, item_type, item_id, quantity, reason, note)


class FakeScheduler:
    """Plans every line item as one task, manufacturing lines on workstation 1, assembly lines on workstation 4."""

    def __init__(self, workstation_for_type=None, fail=False):
        self.workstation_for_type = workstation_for_type or {"MANUFACTURING": 1, "ASSEMBLY": 4}
        self.fail = fail
        self.submitted = []

    def submit(self, order_number, priority, due_date, line_items):
        if self.fail:
            raise SchedulingError(f"Scheduling failed for {order_number}")
        self.submitted.append((order_number, line_items))
        start = datetime(2026, 1, 5, 8, 0)
        tasks = []
        for i, line in enumerate(line_items):
            task_start = start + timedelta(minutes=30 * i)
            tasks.append(
                ScheduledTask(
                    workstation_id=self.workstation_for_type[line["workstationType"]],
                    item_id=line["itemId"],
                    item_name=line.get("itemName") or f"Item {line['itemId']}",
                    quantity=line["quantity"],
                    start_time=task_start,
                    end_time=task_start + timedelta(minutes=30),
                    duration=30,
                )
            )
        return ScheduledPlan(schedule_id=f"SCH-{len(self.submitted)}", tasks=tasks)


class FakeMasterdata:
    def __init__(self, product_modules=None, module_parts=None):
        self.product_modules = product_modules or {}
        self.module_parts = module_parts or {}

    def modules_for_product(self, product_id):
        return [BomEntry(component_id=m, component_type="MODULE", quantity=q) for m, q in self.product_modules.get(product_id, [])]

    def parts_for_module(self, module_id):
        if module_id not in self.module_parts:
            raise MasterdataError(f"No parts listed for module {module_id}")
        return [BomEntry(component_id=p, component_type="PART", quantity=q) for p, q in self.module_parts[module_id]]

    def label(self, kind, item_id):
        return f"{kind.upper()} #{item_id}"


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", lot_size_threshold=3)


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def masterdata():
    # Product 100 is built from modules 11 (x1) and 12 (x2); module 11 needs parts 501 (x2).
    return FakeMasterdata(product_modules={100: [(11, 1), (12, 2)]}, module_parts={11: [(501, 2)]})


@pytest.fixture
def resolver(settings, ledger):
    return ScenarioResolver(settings, ledger)


@pytest.fixture
def supply_gate(settings, ledger, masterdata):
    return SupplyGate(settings, ledger, masterdata)


@pytest.fixture
def coordinator(settings, ledger, resolver, supply_gate, scheduler, masterdata):
    return DispatchCoordinator(
        settings, ledger, resolver=resolver, supply_gate=supply_gate, scheduler=scheduler, masterdata=masterdata
    )


@pytest.fixture
def propagator(settings, coordinator):
    return CompletionPropagator(settings, coordinator)


@pytest.fixture
def make_customer_order(db, settings):
    def _make(*lines):
        """Each line is (item_id, quantity) for a PRODUCT, or (item_type, item_id, quantity)."""
        items = []
        for line in lines:
            if len(line) == 2:
                items.append({"item_type": "PRODUCT", "item_id": line[0], "quantity": line[1]})
            else:
                items.append({"item_type": line[0], "item_id": line[1], "quantity": line[2]})
        return customer_service.create_order(db, CustomerOrderCreate(items=items), settings)

    return _make


@pytest.fixture
def client(engine, settings, ledger, scheduler, masterdata):
    from main import app
    from modules.orchestration.dependencies import (
        get_inventory_client,
        get_masterdata_client,
        get_scheduling_client,
    )

    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_inventory_client] = lambda: ledger
    app.dependency_overrides[get_scheduling_client] = lambda: scheduler
    app.dependency_overrides[get_masterdata_client] = lambda: masterdata
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()

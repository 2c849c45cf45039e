"""FastAPI dependency providers for the orchestration components and their collaborators."""

from functools import lru_cache

from fastapi import Depends

from core.settings import Settings, get_settings
from modules.integrations.inventory import InventoryClient
from modules.integrations.masterdata import MasterdataClient
from modules.integrations.scheduling import SchedulingClient
from modules.orchestration.dispatch import DispatchCoordinator
from modules.orchestration.propagation import CompletionPropagator
from modules.orchestration.scenario import ScenarioResolver
from modules.orchestration.supply_gate import SupplyGate


@lru_cache
def get_inventory_client() -> InventoryClient:
    return InventoryClient.from_settings(get_settings())


@lru_cache
def get_scheduling_client() -> SchedulingClient:
    return SchedulingClient.from_settings(get_settings())


@lru_cache
def get_masterdata_client() -> MasterdataClient:
    return MasterdataClient.from_settings(get_settings())


def get_scenario_resolver(
    settings: Settings = Depends(get_settings),
    inventory=Depends(get_inventory_client),
) -> ScenarioResolver:
    return ScenarioResolver(settings, inventory)


def get_supply_gate(
    settings: Settings = Depends(get_settings),
    inventory=Depends(get_inventory_client),
    masterdata=Depends(get_masterdata_client),
) -> SupplyGate:
    return SupplyGate(settings, inventory, masterdata)


def get_dispatch_coordinator(
    settings: Settings = Depends(get_settings),
    inventory=Depends(get_inventory_client),
    resolver: ScenarioResolver = Depends(get_scenario_resolver),
    supply_gate: SupplyGate = Depends(get_supply_gate),
    scheduler=Depends(get_scheduling_client),
    masterdata=Depends(get_masterdata_client),
) -> DispatchCoordinator:
    return DispatchCoordinator(
        settings,
        inventory,
        resolver=resolver,
        supply_gate=supply_gate,
        scheduler=scheduler,
        masterdata=masterdata,
    )


def get_completion_propagator(
    settings: Settings = Depends(get_settings),
    dispatcher: DispatchCoordinator = Depends(get_dispatch_coordinator),
) -> CompletionPropagator:
    return CompletionPropagator(settings, dispatcher)

"""Application settings and shared constants."""

from functools import lru_cache
from typing import Dict, Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

# Workstation kinds grouped by the control-order category that dispatches them.
MANUFACTURING_KINDS = ("INJECTION_MOLDING", "PARTS_PRE_PRODUCTION", "PART_FINISHING")
ASSEMBLY_KINDS = ("GEAR_ASSEMBLY", "MOTOR_ASSEMBLY", "FINAL_ASSEMBLY")


class Settings(BaseSettings):
    app_name: str = "Factory Order Orchestration"
    database_url: str = Field("sqlite:///./factory_orders.db")
    log_level: str = Field("INFO")

    lot_size_threshold: int = Field(3)
    max_order_items: int = Field(100)
    auto_status_propagation: bool = Field(True)

    injection_molding_workstation_id: int = 1
    parts_pre_production_workstation_id: int = 2
    part_finishing_workstation_id: int = 3
    gear_assembly_workstation_id: int = 4
    motor_assembly_workstation_id: int = 5
    final_assembly_workstation_id: int = 6
    plant_warehouse_workstation_id: int = 7
    modules_depot_workstation_id: int = 8
    parts_supply_workstation_id: int = 9

    inventory_service_url: str = Field("http://localhost:8014")
    masterdata_service_url: str = Field("http://localhost:8013")
    scheduling_service_url: str = Field("http://localhost:8016/api")

    # Seconds
    masterdata_read_timeout: float = 5.0
    inventory_read_timeout: float = 3.0
    inventory_write_timeout: float = 10.0
    scheduling_timeout: float = 30.0

    class Config:
        env_file = ".env"
        case_sensitive = False
        frozen = True

    @field_validator("lot_size_threshold", "max_order_items")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_workstation_ranges(self) -> "Settings":
        if set(self.manufacturing_workstation_ids) & set(self.assembly_workstation_ids):
            raise ValueError("manufacturing and assembly workstation ids must be disjoint")
        return self

    @property
    def manufacturing_workstation_ids(self) -> Tuple[int, ...]:
        return tuple(self.workstation_id_for(kind) for kind in MANUFACTURING_KINDS)

    @property
    def assembly_workstation_ids(self) -> Tuple[int, ...]:
        return tuple(self.workstation_id_for(kind) for kind in ASSEMBLY_KINDS)

    def workstation_ids_by_kind(self) -> Dict[str, int]:
        return {
            "INJECTION_MOLDING": self.injection_molding_workstation_id,
            "PARTS_PRE_PRODUCTION": self.parts_pre_production_workstation_id,
            "PART_FINISHING": self.part_finishing_workstation_id,
            "GEAR_ASSEMBLY": self.gear_assembly_workstation_id,
            "MOTOR_ASSEMBLY": self.motor_assembly_workstation_id,
            "FINAL_ASSEMBLY": self.final_assembly_workstation_id,
        }

    def workstation_id_for(self, kind: str) -> int:
        try:
            return self.workstation_ids_by_kind()[kind]
        except KeyError:
            raise ValueError(f"unknown workstation order kind: {kind}") from None

    def kind_for_workstation(self, workstation_id: int) -> Optional[str]:
        for kind, ws_id in self.workstation_ids_by_kind().items():
            if ws_id == workstation_id:
                return kind
        return None

    def control_category_for_workstation(self, workstation_id: int) -> Optional[str]:
        """Return PRODUCTION or ASSEMBLY for dispatchable workstations, None otherwise."""
        if workstation_id in self.manufacturing_workstation_ids:
            return "PRODUCTION"
        if workstation_id in self.assembly_workstation_ids:
            return "ASSEMBLY"
        return None

    def is_direct_production(self, total_quantity: int) -> bool:
        return total_quantity >= self.lot_size_threshold


@lru_cache
def get_settings() -> Settings:
    return Settings()

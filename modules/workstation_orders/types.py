from enum import Enum

from core.settings import ASSEMBLY_KINDS, MANUFACTURING_KINDS


class WorkstationOrderKind(str, Enum):
    INJECTION_MOLDING = "INJECTION_MOLDING"
    PARTS_PRE_PRODUCTION = "PARTS_PRE_PRODUCTION"
    PART_FINISHING = "PART_FINISHING"
    GEAR_ASSEMBLY = "GEAR_ASSEMBLY"
    MOTOR_ASSEMBLY = "MOTOR_ASSEMBLY"
    FINAL_ASSEMBLY = "FINAL_ASSEMBLY"

    @property
    def category(self) -> str:
        return "PRODUCTION" if self.value in MANUFACTURING_KINDS else "ASSEMBLY"

    @property
    def number_prefix(self) -> str:
        return NUMBER_PREFIXES[self.value]

    @classmethod
    def for_category(cls, category: str):
        names = MANUFACTURING_KINDS if category == "PRODUCTION" else ASSEMBLY_KINDS
        return [cls(name) for name in names]


class WorkstationOrderStatus(str, Enum):
    PENDING = "PENDING"
    WAITING_FOR_PARTS = "WAITING_FOR_PARTS"
    IN_PROGRESS = "IN_PROGRESS"
    HALTED = "HALTED"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"


NUMBER_PREFIXES = {
    "INJECTION_MOLDING": "IM-",
    "PARTS_PRE_PRODUCTION": "PP-",
    "PART_FINISHING": "PF-",
    "GEAR_ASSEMBLY": "GA-",
    "MOTOR_ASSEMBLY": "MA-",
    "FINAL_ASSEMBLY": "FA-",
}

STARTABLE_STATUSES = (WorkstationOrderStatus.PENDING, WorkstationOrderStatus.WAITING_FOR_PARTS)
TERMINAL_STATUSES = {WorkstationOrderStatus.COMPLETED.value, WorkstationOrderStatus.ABANDONED.value}

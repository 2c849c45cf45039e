from enum import Enum


class ControlOrderStatus(str, Enum):
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    HALTED = "HALTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ControlCategory(str, Enum):
    PRODUCTION = "PRODUCTION"
    ASSEMBLY = "ASSEMBLY"


NUMBER_PREFIXES = {
    ControlCategory.PRODUCTION.value: "PCO-",
    ControlCategory.ASSEMBLY.value: "ACO-",
}

OUTPUT_ITEM_TYPES = {
    ControlCategory.PRODUCTION.value: "PART",
    ControlCategory.ASSEMBLY.value: "MODULE",
}

TERMINAL_STATUSES = {ControlOrderStatus.COMPLETED.value, ControlOrderStatus.CANCELLED.value}

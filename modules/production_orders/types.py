from enum import Enum


class ProductionOrderStatus(str, Enum):
    CREATED = "CREATED"
    CONFIRMED = "CONFIRMED"
    SCHEDULED = "SCHEDULED"
    DISPATCHED = "DISPATCHED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Priority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class WorkstationType(str, Enum):
    MANUFACTURING = "MANUFACTURING"
    ASSEMBLY = "ASSEMBLY"


class ProductionSource(str, Enum):
    WAREHOUSE = "WAREHOUSE"
    CUSTOMER = "CUSTOMER"


TERMINAL_STATUSES = {ProductionOrderStatus.COMPLETED.value, ProductionOrderStatus.CANCELLED.value}

from enum import Enum


class WarehouseOrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    AWAITING_PRODUCTION = "AWAITING_PRODUCTION"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TriggerScenario(str, Enum):
    DIRECT_FULFILLMENT = "DIRECT_FULFILLMENT"
    PRODUCTION_REQUIRED = "PRODUCTION_REQUIRED"


TERMINAL_STATUSES = {WarehouseOrderStatus.COMPLETED.value, WarehouseOrderStatus.CANCELLED.value}

# Statuses from which finished production may hand the order back for fulfillment.
READY_FROM_PRODUCTION_STATUSES = (
    WarehouseOrderStatus.AWAITING_PRODUCTION,
    WarehouseOrderStatus.PROCESSING,
    WarehouseOrderStatus.CONFIRMED,
)

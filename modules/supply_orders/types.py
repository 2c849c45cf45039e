from enum import Enum


class SupplyOrderStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    FULFILLED = "FULFILLED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


OPEN_STATUSES = (SupplyOrderStatus.PENDING, SupplyOrderStatus.IN_PROGRESS)

from enum import Enum


class CustomerOrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = {CustomerOrderStatus.COMPLETED.value, CustomerOrderStatus.CANCELLED.value}

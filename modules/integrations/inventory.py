"""HTTP client for the inventory ledger service."""

import logging
from enum import Enum
from typing import Optional

import requests

from core.settings import Settings

logger = logging.getLogger(__name__)


class ItemType(str, Enum):
    PRODUCT = "PRODUCT"
    MODULE = "MODULE"
    PART = "PART"


class StockReason(str, Enum):
    PRODUCTION = "PRODUCTION"
    CONSUMPTION = "CONSUMPTION"
    FULFILLMENT = "FULFILLMENT"
    SUPPLY = "SUPPLY"
    ADJUSTMENT = "ADJUSTMENT"


class InventoryError(Exception):
    pass


def _value(value):
    return value.value if isinstance(value, Enum) else value


class InventoryClient:
    """Credits, debits and reads stock per (workstation, item).

    Calls are synchronous with no retry; the ledger treats them as
    idempotent in intent only, so callers guard against repeats themselves.
    """

    def __init__(
        self,
        base_url: str,
        read_timeout: float = 3.0,
        write_timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "InventoryClient":
        return cls(
            settings.inventory_service_url,
            read_timeout=settings.inventory_read_timeout,
            write_timeout=settings.inventory_write_timeout,
        )

    def adjust_stock(
        self, workstation_id: int, item_type: str, item_id: int, delta: int, reason: str, note: str = ""
    ) -> bool:
        payload = {
            "workstationId": workstation_id,
            "itemType": _value(item_type),
            "itemId": item_id,
            "delta": delta,
            "reasonCode": _value(reason),
            "notes": note or "",
        }
        try:
            response = self.session.post(
                f"{self.base_url}/api/stock/adjust", json=payload, timeout=self.write_timeout
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise InventoryError(
                f"Stock adjustment failed at workstation {workstation_id} for {item_type} {item_id} ({delta:+d})"
            ) from exc
        logger.info("Stock adjusted: %+d %s %s at workstation %s (%s)", delta, item_type, item_id, workstation_id, reason)
        return True

    def credit_stock(
        self, workstation_id: int, item_type: str, item_id: int, quantity: int, reason: str, note: str = ""
    ) -> bool:
        return self.adjust_stock(workstation_id, item_type, item_id, abs(quantity), reason, note)

    def debit_stock(
        self, workstation_id: int, item_type: str, item_id: int, quantity: int, reason: str, note: str = ""
    ) -> bool:
        return self.adjust_stock(workstation_id, item_type, item_id, -abs(quantity), reason, note)

    def get_stock(self, workstation_id: int, item_type: str, item_id: int) -> int:
        try:
            response = self.session.get(
                f"{self.base_url}/api/inventory",
                params={"workstationId": workstation_id, "itemType": _value(item_type), "itemId": item_id},
                timeout=self.read_timeout,
            )
            if response.status_code == 404:
                return 0
            response.raise_for_status()
            body = response.json() or {}
        except (requests.RequestException, ValueError) as exc:
            raise InventoryError(f"Stock lookup failed at workstation {workstation_id} for {item_type} {item_id}") from exc
        return int(body.get("quantity") or 0)

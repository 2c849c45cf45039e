"""Read-only masterdata lookups used for labels and bill-of-materials expansion."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests

from core.settings import Settings

logger = logging.getLogger(__name__)

_KIND_PATHS = {
    "PRODUCT": "products",
    "MODULE": "modules",
    "PART": "parts",
    "WORKSTATION": "workstations",
}


class MasterdataError(Exception):
    pass


@dataclass(frozen=True)
class BomEntry:
    component_id: int
    component_type: str
    quantity: int
    component_name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BomEntry":
        return cls(
            component_id=int(data["componentId"]),
            component_type=str(data.get("componentType") or ""),
            quantity=int(data.get("quantity") or 1),
            component_name=data.get("componentName") or "",
        )


class MasterdataClient:
    """Masterdata changes rarely, so responses are cached for the client's lifetime."""

    def __init__(self, base_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._cache: Dict[Tuple[str, ...], Any] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "MasterdataClient":
        return cls(settings.masterdata_service_url, timeout=settings.masterdata_read_timeout)

    def _get(self, key: Tuple[str, ...], path: str) -> Any:
        if key in self._cache:
            return self._cache[key]
        try:
            response = self.session.get(f"{self.base_url}{path}", timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise MasterdataError(f"Masterdata lookup failed: {path}") from exc
        self._cache[key] = body
        return body

    def lookup(self, kind: str, item_id: int) -> Dict[str, Any]:
        kind = kind.upper()
        if kind not in _KIND_PATHS:
            raise MasterdataError(f"Unknown masterdata kind: {kind}")
        return self._get((kind, str(item_id)), f"/api/{_KIND_PATHS[kind]}/{item_id}") or {}

    def label(self, kind: str, item_id: int) -> str:
        try:
            name = self.lookup(kind, item_id).get("name")
        except MasterdataError:
            name = None
        return name or f"{kind.upper()} #{item_id}"

    def modules_for_product(self, product_id: int) -> List[BomEntry]:
        rows = self._get(("PRODUCT_MODULES", str(product_id)), f"/api/products/{product_id}/modules") or []
        return [BomEntry.from_dict(row) for row in rows]

    def parts_for_module(self, module_id: int) -> List[BomEntry]:
        rows = self._get(("MODULE_PARTS", str(module_id)), f"/api/modules/{module_id}/parts") or []
        return [BomEntry.from_dict(row) for row in rows]

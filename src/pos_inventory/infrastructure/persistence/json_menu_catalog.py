"""JSON-file-backed implementation of MenuCatalog.

The catalog is owned by menu administration; this store only needs names
and prices.  ``save`` exists so the CLI can seed a catalog.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from pos_inventory.domain.exceptions import StoreUnavailableError
from pos_inventory.domain.model.menu_item import MenuItem
from pos_inventory.domain.model.value_objects import Money
from pos_inventory.domain.repository.menu_catalog import MenuCatalog


class JsonMenuCatalog(MenuCatalog):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path

    # --- MenuCatalog interface ------------------------------------------------

    def get_by_id(self, menu_item_id: str) -> MenuItem | None:
        for raw in self._load_raw():
            if raw["id"] == menu_item_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[MenuItem]:
        return [self._to_domain(raw) for raw in self._load_raw()]

    def save(self, item: MenuItem) -> None:
        records = self._load_raw()
        for i, raw in enumerate(records):
            if raw["id"] == item.id:
                records[i] = self._to_raw(item)
                break
        else:
            records.append(self._to_raw(item))
        self._persist_raw(records)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(item: MenuItem) -> dict:
        return {
            "id": item.id,
            "name": item.name,
            "price": str(item.price.amount),
            "currency": item.price.currency,
        }

    @staticmethod
    def _to_domain(raw: dict) -> MenuItem:
        return MenuItem(
            id=raw["id"],
            name=raw["name"],
            price=Money(Decimal(raw["price"]), raw.get("currency", "USD")),
        )

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        if not self._file_path.exists():
            return []
        try:
            return json.loads(self._file_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreUnavailableError(f"Cannot read menu catalog: {exc}") from exc

    def _persist_raw(self, records: list[dict]) -> None:
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(json.dumps(records, indent=2) + "\n", encoding="utf-8")
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot write menu catalog: {exc}") from exc

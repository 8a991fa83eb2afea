"""Static per-category catalog of relief locations."""

from __future__ import annotations

import json
import logging
from importlib.resources import files
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any, List

from relieffinder.models import Category, Item

LOGGER = logging.getLogger(__name__)

CATALOG_FILES = {
    Category.SHELTER: "shelters-miami.json",
    Category.FOOD_BANK: "food-banks-miami.json",
    Category.CLINIC: "clinics-miami.json",
}


class CatalogSource:
    """Reads the fixed list of candidate locations for a category."""

    def __init__(self, data_dir: Path | None = None) -> None:
        self.data_dir = Path(data_dir) if data_dir is not None else None

    def _resolve(self, category: Category) -> Traversable:
        filename = CATALOG_FILES[category]
        if self.data_dir is not None:
            return self.data_dir / filename
        return files("relieffinder.catalog").joinpath("data").joinpath(filename)

    def load_raw(self, category: str | Category) -> List[dict[str, Any]]:
        category = Category.parse(category)
        resource = self._resolve(category)
        if not resource.is_file():
            return []
        try:
            raw = json.loads(resource.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.warning("Unreadable %s catalog %s: %s", category.value, resource, exc)
            return []
        if not isinstance(raw, list):
            LOGGER.warning("Ignoring %s catalog %s: expected a list", category.value, resource)
            return []
        return [entry for entry in raw if isinstance(entry, dict)]

    def list_items(self, category: str | Category) -> List[Item]:
        category = Category.parse(category)
        items: List[Item] = []
        for entry in self.load_raw(category):
            try:
                items.append(Item.from_dict(entry, category))
            except (KeyError, TypeError, ValueError) as exc:
                LOGGER.warning("Skipping %s catalog entry %r: %s", category.value, entry.get("id"), exc)
        return items

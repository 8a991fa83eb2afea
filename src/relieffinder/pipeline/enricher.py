"""Open-status enrichment pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Sequence

from relieffinder.cache.store import CacheStore
from relieffinder.catalog.source import CatalogSource
from relieffinder.config import AppConfig
from relieffinder.models import (
    CacheDocument,
    CacheEntry,
    Category,
    DiagnosticRecord,
    Item,
    OpenStatus,
)
from relieffinder.places.client import StatusLookupClient, build_client

LOGGER = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(slots=True)
class EnrichmentResult:
    category: Category
    items: list[Item]
    key_present: bool
    cache_path: Path
    updated_count: int = 0
    persisted: bool = False
    diagnostics: dict[str, DiagnosticRecord] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [item.to_dict() for item in self.items],
            "meta": {
                "keyPresent": self.key_present,
                "updatedCount": self.updated_count,
                "cachePath": str(self.cache_path),
                "persisted": self.persisted,
                "perItemDebug": {
                    item_id: record.to_dict() for item_id, record in self.diagnostics.items()
                },
            },
        }


class EnrichmentPipeline:
    """Resolves open status for a batch of items with cache fallback."""

    def __init__(
        self,
        lookup_client: StatusLookupClient,
        store: CacheStore,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.lookup_client = lookup_client
        self.store = store
        self.clock = clock

    def enrich(self, category: str | Category, items: Sequence[Item]) -> EnrichmentResult:
        """Resolve every item in order; one item's failure never stops the batch."""
        category = Category.parse(category)
        cache = self.store.snapshot()
        result = EnrichmentResult(
            category=category,
            items=list(items),
            key_present=self.lookup_client.key_present,
            cache_path=self.store.path,
        )
        updates: CacheDocument = {}

        # Sequential on purpose: the provider is rate limited.
        for item in result.items:
            try:
                entry = self._resolve(item, cache, result.diagnostics)
            except Exception as exc:
                LOGGER.error("Failed to resolve open status for %s: %s", item.id, exc)
                item.open_now = self._fallback(item, cache)
                result.diagnostics[item.id] = DiagnosticRecord(error=str(exc))
                continue
            if entry is not None:
                updates[item.id] = entry
                result.updated_count += 1

        if updates:
            result.persisted = self.store.commit(updates)
        LOGGER.info(
            "Enriched %d %s items, %d updated from live lookups",
            len(result.items),
            category.value,
            result.updated_count,
        )
        return result

    def _resolve(
        self,
        item: Item,
        cache: CacheDocument,
        diagnostics: dict[str, DiagnosticRecord],
    ) -> CacheEntry | None:
        found = self.lookup_client.lookup(item.name, item.address, item.lat, item.lng)
        diagnostics[item.id] = DiagnosticRecord(place_id=found.place_id, method=found.method)
        if found.open_now is None:
            item.open_now = self._fallback(item, cache)
            return None

        item.open_now = found.open_now
        return CacheEntry(
            open_now=found.open_now,
            last_updated=_isoformat(self.clock()),
            place_id=found.place_id,
            method=found.method,
        )

    @staticmethod
    def _fallback(item: Item, cache: CacheDocument) -> OpenStatus:
        prior = cache.get(item.id)
        if prior is not None and prior.open_now is not None:
            return prior.open_now
        return item.open_now


def run_batch(
    category: str | Category,
    config: AppConfig,
    *,
    base_dir: Path | None = None,
    catalog: CatalogSource | None = None,
    lookup_client: StatusLookupClient | None = None,
) -> EnrichmentResult:
    """Enrich one category's catalog using collaborators built from *config*."""
    category = Category.parse(category)
    catalog = catalog or CatalogSource(config.catalog_dir)
    store = CacheStore(config.resolve_cache_path(base_dir))
    items = catalog.list_items(category)

    if lookup_client is not None:
        return EnrichmentPipeline(lookup_client, store).enrich(category, items)
    with build_client(config) as client:
        return EnrichmentPipeline(client, store).enrich(category, items)

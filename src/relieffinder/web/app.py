"""FastAPI application exposing the relief location catalog."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from relieffinder.cache.store import CacheStore
from relieffinder.catalog.source import CatalogSource
from relieffinder.config import AppConfig
from relieffinder.models import Category, InvalidCategoryError
from relieffinder.pipeline.enricher import run_batch

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="ReliefFinder", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_config() -> AppConfig:
    return AppConfig.from_env()


def _parse_category(value: str | None) -> Category:
    try:
        return Category.parse(value)
    except InvalidCategoryError:
        raise HTTPException(status_code=400, detail="invalid type") from None


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.get("/health")
async def health() -> dict[str, Any]:
    return {"status": "ok", "keyPresent": _get_config().key_present}


@app.get("/static-list")
async def static_list(type: str | None = None) -> dict[str, Any]:
    """Return the catalog for a category with live open status applied."""
    category = _parse_category(type)
    config = _get_config()
    try:
        result = await asyncio.to_thread(run_batch, category, config, base_dir=Path.cwd())
    except Exception as exc:  # pragma: no cover - defensive
        LOGGER.exception("static-list failed for %s: %s", category.value, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return result.to_dict()


@app.get("/open-status")
async def open_status() -> dict[str, Any]:
    """Return the raw open-status cache document."""
    store = CacheStore(_get_config().resolve_cache_path(Path.cwd()))
    document = await asyncio.to_thread(store.load)
    return {item_id: entry.to_dict() for item_id, entry in document.items()}


@app.get("/catalog/{category}")
async def catalog(category: str) -> dict[str, Any]:
    """Return the static catalog entries for a category, without enrichment."""
    parsed = _parse_category(category)
    catalog_source = CatalogSource(_get_config().catalog_dir)
    items = await asyncio.to_thread(catalog_source.list_items, parsed)
    return {"results": [item.to_dict() for item in items]}

"""Core ReliefFinder data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

# True = open, False = closed, None = unknown.
OpenStatus = Optional[bool]


class InvalidCategoryError(ValueError):
    """Raised when a category selector is not one of the supported values."""


class Category(str, Enum):
    SHELTER = "shelter"
    FOOD_BANK = "food_bank"
    CLINIC = "clinic"

    @classmethod
    def parse(cls, value: str | Category | None) -> Category:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or ""))
        except ValueError:
            raise InvalidCategoryError(f"invalid type: {value!r}") from None


def _as_open_status(value: Any) -> OpenStatus:
    return value if isinstance(value, bool) else None


def _required(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    text = "" if value is None else str(value).strip()
    if not text:
        raise KeyError(key)
    return text


@dataclass(slots=True)
class Item:
    """A point of interest from the static catalog."""

    id: str
    name: str
    category: Category
    lat: float
    lng: float
    address: Optional[str] = None
    open_now: OpenStatus = None
    source: str = "seed"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], category: Category) -> "Item":
        return cls(
            id=_required(data, "id"),
            name=_required(data, "name"),
            category=category,
            lat=float(data.get("lat", 0.0)),
            lng=float(data.get("lng", 0.0)),
            address=data.get("address") or None,
            open_now=_as_open_status(data.get("openNow")),
            source=str(data.get("source") or "seed"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.category.value,
            "address": self.address,
            "lat": self.lat,
            "lng": self.lng,
            "openNow": self.open_now,
            "source": self.source,
        }


@dataclass(slots=True)
class CacheEntry:
    """Last-known status of an item, persisted between batches."""

    open_now: OpenStatus
    last_updated: Optional[str]
    place_id: Optional[str] = None
    method: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            open_now=_as_open_status(data.get("openNow")),
            last_updated=data.get("lastUpdated"),
            place_id=data.get("placeId"),
            method=data.get("method"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "openNow": self.open_now,
            "lastUpdated": self.last_updated,
            "placeId": self.place_id,
            "method": self.method,
        }


CacheDocument = Dict[str, CacheEntry]


@dataclass(slots=True)
class LookupResult:
    """Outcome of one live status lookup."""

    open_now: OpenStatus
    place_id: Optional[str]
    method: str


@dataclass(slots=True)
class DiagnosticRecord:
    """Per-item trace of how a batch resolved its status."""

    place_id: Optional[str] = None
    method: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"placeId": self.place_id, "method": self.method}
        if self.error is not None:
            payload["error"] = self.error
        return payload

"""Live open-status lookups against the Google Places web service."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Protocol

import httpx

from relieffinder.config import AppConfig
from relieffinder.models import LookupResult

LOGGER = logging.getLogger(__name__)

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"
FIND_PLACE_FIELDS = "place_id,opening_hours,formatted_address"

METHOD_NO_KEY = "no-key"
METHOD_FINDPLACE = "findplace"
METHOD_TEXTSEARCH = "textsearch"
METHOD_TEXTSEARCH_NONE = "textsearch-none"
METHOD_ERROR = "error"

# Provider statuses that mean the request itself failed, as opposed to ZERO_RESULTS.
FAULT_STATUSES = frozenset(
    {"REQUEST_DENIED", "INVALID_REQUEST", "OVER_QUERY_LIMIT", "UNKNOWN_ERROR"}
)


class PlacesError(RuntimeError):
    """Raised when the Places service returns an unusable response."""


class StatusLookupClient(Protocol):
    @property
    def key_present(self) -> bool: ...

    def lookup(
        self, name: str, address: str | None, lat: float, lng: float
    ) -> LookupResult: ...


def _first(payload: dict[str, Any], key: str) -> dict[str, Any] | None:
    values = payload.get(key) or []
    if not isinstance(values, list) or not values:
        return None
    first = values[0]
    return first if isinstance(first, dict) else None


def _describe(exc: Exception) -> str:
    # Status errors embed the request URL, which carries the API key.
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    return f"{type(exc).__name__}: {exc}"


def _open_now(place: dict[str, Any]) -> bool | None:
    hours = place.get("opening_hours")
    if not isinstance(hours, dict):
        return None
    value = hours.get("open_now")
    return value if isinstance(value, bool) else None


class PlacesStatusClient:
    """Two-stage find-place / text-search lookup for a single location."""

    def __init__(
        self,
        api_key: str | None,
        *,
        timeout: float = 5.0,
        radius_m: int = 5000,
        base_url: str = PLACES_BASE_URL,
        client: httpx.Client | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api_key = api_key or None
        self.timeout = timeout
        self._clock = clock
        self.radius_m = radius_m
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout, connect=min(timeout, 3.0))
        )

    @property
    def key_present(self) -> bool:
        return self._api_key is not None

    def __enter__(self) -> "PlacesStatusClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def lookup(
        self, name: str, address: str | None, lat: float, lng: float
    ) -> LookupResult:
        if not self._api_key:
            return LookupResult(open_now=None, place_id=None, method=METHOD_NO_KEY)

        # One budget covers both stages of a single lookup.
        deadline = self._clock() + self.timeout
        try:
            query = f"{name} {address}" if address else name
            found = self._get(
                "findplacefromtext",
                {
                    "input": query,
                    "inputtype": "textquery",
                    "fields": FIND_PLACE_FIELDS,
                },
                deadline,
            )
            candidate = _first(found, "candidates")
            if candidate is not None:
                # A matched place without hours still ends the chain here.
                return LookupResult(
                    open_now=_open_now(candidate),
                    place_id=candidate.get("place_id"),
                    method=METHOD_FINDPLACE,
                )

            searched = self._get(
                "textsearch",
                {
                    "query": name,
                    "location": f"{lat},{lng}",
                    "radius": str(self.radius_m),
                },
                deadline,
            )
            place = _first(searched, "results")
            if place is None:
                return LookupResult(open_now=None, place_id=None, method=METHOD_TEXTSEARCH_NONE)
            return LookupResult(
                open_now=_open_now(place),
                place_id=place.get("place_id"),
                method=METHOD_TEXTSEARCH,
            )
        except (httpx.HTTPError, PlacesError, ValueError) as exc:
            LOGGER.warning("Places lookup failed for %s: %s", name, _describe(exc))
            return LookupResult(open_now=None, place_id=None, method=METHOD_ERROR)

    def _get(self, endpoint: str, params: dict[str, str], deadline: float) -> dict[str, Any]:
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise PlacesError(f"{endpoint}: lookup timed out after {self.timeout}s")
        response = self._client.get(
            f"{self.base_url}/{endpoint}/json",
            params={**params, "key": self._api_key},
            timeout=httpx.Timeout(remaining, connect=min(remaining, 3.0)),
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise PlacesError(f"{endpoint}: expected a JSON object")
        status = payload.get("status")
        if status in FAULT_STATUSES:
            detail = payload.get("error_message") or status
            raise PlacesError(f"{endpoint}: {detail}")
        return payload


def build_client(config: AppConfig) -> PlacesStatusClient:
    return PlacesStatusClient(
        config.api_key,
        timeout=config.lookup_timeout,
        radius_m=config.search_radius_m,
    )

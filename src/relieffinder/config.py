"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

DEFAULT_CACHE_PATH = Path("data/cache/open-status.json")
DEFAULT_LOOKUP_TIMEOUT = 5.0
DEFAULT_SEARCH_RADIUS_M = 5000

API_KEY_ENV_VARS = ("GCP_SERVER_MAPS_KEY", "NEXT_PUBLIC_MAPS_API_KEY")


def _get_api_key(environ: Mapping[str, str]) -> str | None:
    """Return the first non-empty provider key found in *environ*."""
    for name in API_KEY_ENV_VARS:
        value = (environ.get(name) or "").strip()
        if value:
            return value
    return None


@dataclass(slots=True)
class AppConfig:
    cache_path: Path | None = None
    catalog_dir: Path | None = None
    api_key: str | None = None
    lookup_timeout: float = DEFAULT_LOOKUP_TIMEOUT
    search_radius_m: int = DEFAULT_SEARCH_RADIUS_M

    def __post_init__(self) -> None:
        if self.cache_path is None:
            self.cache_path = DEFAULT_CACHE_PATH
        if not self.api_key:
            self.api_key = None

    @property
    def key_present(self) -> bool:
        return self.api_key is not None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: object) -> "AppConfig":
        """Build a config from environment variables, letting explicit overrides win."""
        env = os.environ if environ is None else environ
        values: dict[str, object] = {"api_key": _get_api_key(env)}

        catalog_dir = env.get("RELIEFFINDER_CATALOG_DIR")
        if catalog_dir:
            values["catalog_dir"] = Path(catalog_dir)
        cache_path = env.get("RELIEFFINDER_CACHE_PATH")
        if cache_path:
            values["cache_path"] = Path(cache_path)
        timeout = env.get("RELIEFFINDER_LOOKUP_TIMEOUT")
        if timeout:
            values["lookup_timeout"] = float(timeout)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]

    def resolve_cache_path(self, base_dir: Path | None = None) -> Path:
        if self.cache_path is None:
            self.cache_path = DEFAULT_CACHE_PATH
        if Path(self.cache_path).is_absolute() or base_dir is None:
            return Path(self.cache_path)
        return base_dir / self.cache_path

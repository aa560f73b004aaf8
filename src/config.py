from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, Field

from utils import mask_secret


class Configuration(BaseModel):
    # Google Places (New)
    google_places_api_key: Optional[str] = Field(default=None)
    google_places_base_url: str = Field(default="https://places.googleapis.com/v1")
    google_places_timeout: int = Field(default=10)
    google_places_max_results: int = Field(default=20)
    photo_max_width_px: int = Field(default=800)
    base_place_type: str = Field(default="restaurant")

    # Discovery defaults
    default_radius_m: int = Field(default=1000)
    default_limit: int = Field(default=20)
    lang_default: str = Field(default="ja")
    detail_concurrency: int = Field(default=8)
    detail_timeout: float = Field(default=8.0)

    # Access gate
    maintenance_mode: bool = Field(default=False)
    min_app_version: Optional[str] = Field(default=None)

    # Dispatch client
    backend_base_url: str = Field(default="http://localhost:8010")
    app_version: str = Field(default="0.0.0")
    app_store_url: Optional[str] = Field(default=None)
    play_store_url: Optional[str] = Field(default=None)
    client_timeout: float = Field(default=15.0)

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "google_places_api_key": os.getenv("GOOGLE_PLACES_API_KEY"),
            "google_places_base_url": os.getenv("GOOGLE_PLACES_BASE_URL"),
            "google_places_timeout": os.getenv("GOOGLE_PLACES_TIMEOUT"),
            "google_places_max_results": os.getenv("GOOGLE_PLACES_MAX_RESULTS"),
            "photo_max_width_px": os.getenv("PHOTO_MAX_WIDTH_PX"),
            "base_place_type": os.getenv("BASE_PLACE_TYPE"),
            "default_radius_m": os.getenv("DEFAULT_RADIUS_M"),
            "default_limit": os.getenv("DEFAULT_LIMIT"),
            "lang_default": os.getenv("LANG_DEFAULT"),
            "detail_concurrency": os.getenv("DETAIL_CONCURRENCY"),
            "detail_timeout": os.getenv("DETAIL_TIMEOUT"),
            "maintenance_mode": os.getenv("MAINTENANCE_MODE"),
            "min_app_version": os.getenv("MIN_APP_VERSION"),
            # client side
            "backend_base_url": os.getenv("BACKEND_BASE_URL"),
            "app_version": os.getenv("APP_VERSION"),
            "app_store_url": os.getenv("APP_STORE_URL"),
            "play_store_url": os.getenv("PLAY_STORE_URL"),
            "client_timeout": os.getenv("CLIENT_TIMEOUT"),
        }

        bool_fields = {"maintenance_mode"}

        for k, v in env_map.items():
            if v is None:
                continue
            if k in bool_fields:
                raw[k] = str(v).lower() in {"1", "true", "yes", "on"}
            else:
                raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def require_google_places(self) -> None:
        if not self.google_places_api_key:
            raise ValueError("GOOGLE_PLACES_API_KEY is required")

    def log_summary(self) -> str:
        return (
            "places=%s base=%s timeout=%s max_results=%s lang_default=%s "
            "maintenance=%s min_app_version=%s api_key=%s"
            % (
                bool(self.google_places_api_key),
                self.google_places_base_url,
                self.google_places_timeout,
                self.google_places_max_results,
                self.lang_default,
                self.maintenance_mode,
                self.min_app_version or "unset",
                mask_secret(self.google_places_api_key),
            )
        )

"""Data models for nearby dish discovery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

# Error markers the backend puts in 403 bodies; the dispatch client decodes them.
MAINTENANCE_MARKER = "Service maintenance"
UNSUPPORTED_VERSION_MARKER = "Unsupported version"

API_VERSIONS = ("v1", "v2")


@dataclass(frozen=True)
class DiscoveryQuery:
    latitude: float
    longitude: float
    radius_meters: int = 1000
    limit: int = 20
    language_tag: str = "ja"
    category_filter: Optional[Tuple[str, ...]] = None


@dataclass
class Location:
    lat: float
    lng: float


@dataclass
class Review:
    author: str
    rating: float
    text: str
    translated: bool = False


@dataclass
class PlaceSummary:
    """One nearby-search hit, normalized from the provider."""

    place_id: str
    name: str
    location: Location
    vicinity: str = ""
    types: list[str] = field(default_factory=list)
    primary_type: Optional[str] = None


@dataclass
class PlaceDetail:
    place_id: str
    name: str
    vicinity: str
    location: Optional[Location]
    rating: Optional[float] = None
    review_count: int = 0
    types: list[str] = field(default_factory=list)
    primary_type: Optional[str] = None
    photo_names: list[str] = field(default_factory=list)
    reviews: List[Review] = field(default_factory=list)


@dataclass
class PlaceInfo:
    place_id: str
    name: str
    vicinity: str
    location: Location
    google_map_url: str


@dataclass
class DishMediaItem:
    dish_id: str
    dish_name: str
    category: str
    photo_url: str
    rating: float
    review_count: int
    distance_meters: float
    place: PlaceInfo
    reviews: List[Review] = field(default_factory=list)

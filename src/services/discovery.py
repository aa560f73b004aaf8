from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from typing import Iterable, List, Optional

from loguru import logger

from config import Configuration
from models import DiscoveryQuery, DishMediaItem, PlaceDetail, PlaceInfo, PlaceSummary
from services.google_places import GooglePlacesClient, ProviderError, google_map_url, included_types
from utils import haversine_m


@dataclass
class PlaceOutcome:
    """Result of enriching one place: an item, or the reason it was dropped."""

    place_id: str
    item: Optional[DishMediaItem] = None
    reason: Optional[str] = None


def resolve_category(
    base_type: str,
    categories: Optional[Iterable[str]],
    primary_type: Optional[str],
    types: Iterable[str],
) -> str:
    if primary_type:
        return primary_type
    place_types = set(types)
    for t in included_types(base_type, categories):
        if t in place_types:
            return t
    return base_type


def build_item(
    query: DiscoveryQuery,
    summary: PlaceSummary,
    detail: PlaceDetail,
    photo_url: str,
    base_type: str,
) -> DishMediaItem:
    location = detail.location or summary.location
    name = detail.name or summary.name
    place = PlaceInfo(
        place_id=summary.place_id,
        name=name,
        vicinity=detail.vicinity or summary.vicinity,
        location=location,
        google_map_url=google_map_url(summary.place_id, name),
    )
    return DishMediaItem(
        dish_id=detail.photo_names[0] if detail.photo_names else summary.place_id,
        dish_name=name,
        category=resolve_category(
            base_type,
            query.category_filter,
            detail.primary_type or summary.primary_type,
            detail.types or summary.types,
        ),
        photo_url=photo_url,
        rating=detail.rating if detail.rating is not None else 0.0,
        review_count=detail.review_count,
        distance_meters=haversine_m(query.latitude, query.longitude, location.lat, location.lng),
        place=place,
        reviews=list(detail.reviews),
    )


class DiscoveryAggregator:
    """Nearby search, then per-place detail enrichment fanned out concurrently.

    A failing nearby search fails the whole call. A failing or timed-out detail
    lookup only drops that place.
    """

    def __init__(self, cfg: Configuration, gateway: GooglePlacesClient) -> None:
        self.cfg = cfg
        self.gateway = gateway
        # Worker threads outlive a timed-out wait_for; this caps provider calls actually in flight.
        self._inflight = threading.BoundedSemaphore(max(1, cfg.detail_concurrency))

    def _lookup(self, query: DiscoveryQuery, summary: PlaceSummary) -> DishMediaItem:
        with self._inflight:
            detail = self.gateway.place_details(summary.place_id, query.language_tag)
            photo = self.gateway.photo_url(detail.photo_names[0]) if detail.photo_names else ""
        return build_item(query, summary, detail, photo, self.cfg.base_place_type)

    async def _enrich(
        self, query: DiscoveryQuery, summary: PlaceSummary, semaphore: asyncio.Semaphore
    ) -> PlaceOutcome:
        async with semaphore:
            try:
                item = await asyncio.wait_for(
                    asyncio.to_thread(self._lookup, query, summary),
                    timeout=self.cfg.detail_timeout,
                )
            except ProviderError as exc:
                return PlaceOutcome(summary.place_id, reason=str(exc))
            except asyncio.TimeoutError:
                return PlaceOutcome(
                    summary.place_id, reason=f"detail lookup timed out after {self.cfg.detail_timeout}s"
                )
            except Exception as exc:
                # malformed provider record; drop the place, keep its siblings
                logger.opt(exception=exc).debug("enrichment failed for {}", summary.place_id)
                return PlaceOutcome(summary.place_id, reason=f"{type(exc).__name__}: {exc}")
        return PlaceOutcome(summary.place_id, item=item)

    async def discover(self, query: DiscoveryQuery) -> List[DishMediaItem]:
        summaries = await asyncio.to_thread(
            self.gateway.nearby_search,
            query.latitude,
            query.longitude,
            radius_m=query.radius_meters,
            lang=query.language_tag,
            limit=query.limit,
            categories=query.category_filter,
        )
        if not summaries:
            logger.info("discover lat={} lng={} radius={}: no places", query.latitude, query.longitude, query.radius_meters)
            return []

        semaphore = asyncio.Semaphore(max(1, self.cfg.detail_concurrency))
        # gather keeps provider order
        outcomes = await asyncio.gather(*(self._enrich(query, s, semaphore) for s in summaries))

        items: list[DishMediaItem] = []
        dropped = 0
        for outcome in outcomes:
            if outcome.item is None:
                dropped += 1
                logger.warning("dropped place {}: {}", outcome.place_id, outcome.reason)
                continue
            items.append(outcome.item)

        logger.info(
            "discover lat={} lng={} radius={} places={} returned={} dropped={}",
            query.latitude,
            query.longitude,
            query.radius_meters,
            len(summaries),
            min(len(items), query.limit),
            dropped,
        )
        return items[: query.limit]

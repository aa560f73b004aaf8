from __future__ import annotations

import urllib.parse
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests
from loguru import logger

from config import Configuration
from models import Location, PlaceDetail, PlaceSummary, Review

# Hard ceiling of searchNearby.maxResultCount on the provider side.
PROVIDER_MAX_RESULTS = 20

SEARCH_FIELD_MASK = ",".join([
    "places.id",
    "places.displayName",
    "places.shortFormattedAddress",
    "places.formattedAddress",
    "places.location",
    "places.types",
    "places.primaryType",
])

DETAIL_FIELD_MASK = ",".join([
    "id",
    "displayName",
    "shortFormattedAddress",
    "formattedAddress",
    "location",
    "rating",
    "userRatingCount",
    "types",
    "primaryType",
    "photos",
    "reviews",
])


class ProviderError(RuntimeError):
    def __init__(self, status: str, message: str, http_status: Optional[int] = None) -> None:
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message
        self.http_status = http_status


def google_map_url(place_id: str, name: str) -> str:
    q = urllib.parse.quote_plus(name or place_id)
    pid = urllib.parse.quote_plus(place_id)
    return f"https://www.google.com/maps/search/?api=1&query={q}&query_place_id={pid}"


def included_types(base_type: str, categories: Optional[Iterable[str]]) -> List[str]:
    types = [base_type]
    for cat in categories or ():
        if cat and cat not in types:
            types.append(cat)
    return types


def _error_from_response(resp: requests.Response) -> Tuple[str, str]:
    try:
        body = resp.json()
    except ValueError:
        body = None
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        status = err.get("status") or str(resp.status_code)
        message = err.get("message") or f"upstream {resp.status_code}"
        return str(status), str(message)
    return str(resp.status_code), f"upstream {resp.status_code}: {resp.text[:300]}"


def _display_text(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("text") or "")
    return str(value or "")


def _parse_location(raw: Any) -> Optional[Location]:
    if not isinstance(raw, dict):
        return None
    lat = raw.get("latitude")
    lng = raw.get("longitude")
    if lat is None or lng is None:
        return None
    return Location(lat=float(lat), lng=float(lng))


def _parse_review(raw: Dict[str, Any]) -> Review:
    text = raw.get("text") or {}
    original = raw.get("originalText") or {}
    body = text.get("text") or original.get("text") or ""
    translated = bool(
        text.get("text")
        and original.get("languageCode")
        and text.get("languageCode")
        and original["languageCode"] != text["languageCode"]
    )
    author = (raw.get("authorAttribution") or {}).get("displayName") or ""
    rating = raw.get("rating")
    return Review(
        author=str(author),
        rating=float(rating) if isinstance(rating, (int, float)) else 0.0,
        text=str(body),
        translated=translated,
    )


class GooglePlacesClient:
    """Thin wrapper over Places API (New): nearby search, details, photo media.

    Failures surface as ProviderError. Nothing is retried or cached here.
    """

    def __init__(self, cfg: Configuration, session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self.base = cfg.google_places_base_url.rstrip("/")
        self.session = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        field_mask: Optional[str] = None,
        params: Optional[dict] = None,
        body: Optional[dict] = None,
    ) -> dict:
        url = f"{self.base}/{path.lstrip('/')}"
        headers = {
            "Accept": "application/json",
            "X-Goog-Api-Key": self.cfg.google_places_api_key or "",
        }
        if field_mask:
            headers["X-Goog-FieldMask"] = field_mask
        try:
            resp = self.session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=body,
                timeout=self.cfg.google_places_timeout,
            )
        except requests.RequestException as exc:  # network error
            raise ProviderError("UNAVAILABLE", f"request error: {exc}") from exc

        if not resp.ok:
            status, message = _error_from_response(resp)
            raise ProviderError(status, message, http_status=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ProviderError("INVALID_RESPONSE", "invalid json response", http_status=resp.status_code) from exc
        if not isinstance(payload, dict):
            raise ProviderError("INVALID_RESPONSE", "unexpected response shape", http_status=resp.status_code)
        return payload

    def nearby_search(
        self,
        lat: float,
        lng: float,
        *,
        radius_m: int,
        lang: str,
        limit: int,
        categories: Optional[Iterable[str]] = None,
    ) -> List[PlaceSummary]:
        max_results = min(self.cfg.google_places_max_results, PROVIDER_MAX_RESULTS)
        body = {
            "locationRestriction": {
                "circle": {
                    "center": {"latitude": lat, "longitude": lng},
                    "radius": float(radius_m),
                }
            },
            "languageCode": lang,
            "includedTypes": included_types(self.cfg.base_place_type, categories),
            "maxResultCount": max(1, min(limit, max_results)),
        }
        logger.debug(
            "nearby search lat={} lng={} radius={} types={} max={}",
            lat, lng, radius_m, body["includedTypes"], body["maxResultCount"],
        )
        payload = self._request("POST", "places:searchNearby", field_mask=SEARCH_FIELD_MASK, body=body)
        return self._parse_summaries(payload.get("places") or [])

    def _parse_summaries(self, items: List[dict]) -> List[PlaceSummary]:
        results: list[PlaceSummary] = []
        for raw in items:
            place_id = raw.get("id")
            location = _parse_location(raw.get("location"))
            if not place_id or location is None:
                logger.debug("skip place without id/location: {}", raw.get("id"))
                continue
            results.append(
                PlaceSummary(
                    place_id=str(place_id),
                    name=_display_text(raw.get("displayName")),
                    location=location,
                    vicinity=str(raw.get("shortFormattedAddress") or raw.get("formattedAddress") or ""),
                    types=[str(t) for t in raw.get("types") or []],
                    primary_type=raw.get("primaryType") or None,
                )
            )
        return results

    def place_details(self, place_id: str, lang: str) -> PlaceDetail:
        payload = self._request(
            "GET",
            f"places/{place_id}",
            field_mask=DETAIL_FIELD_MASK,
            params={"languageCode": lang},
        )
        rating = payload.get("rating")
        try:
            return PlaceDetail(
                place_id=str(payload.get("id") or place_id),
                name=_display_text(payload.get("displayName")),
                vicinity=str(payload.get("shortFormattedAddress") or payload.get("formattedAddress") or ""),
                location=_parse_location(payload.get("location")),
                rating=float(rating) if isinstance(rating, (int, float)) else None,
                review_count=int(payload.get("userRatingCount") or 0),
                types=[str(t) for t in payload.get("types") or []],
                primary_type=payload.get("primaryType") or None,
                photo_names=[p["name"] for p in payload.get("photos") or [] if p.get("name")],
                reviews=[_parse_review(r) for r in payload.get("reviews") or []],
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ProviderError("INVALID_RESPONSE", f"malformed place {place_id}: {exc}") from exc

    def photo_url(self, photo_name: str) -> str:
        """Resolve a photo resource name to a key-free, short-lived image URL."""
        payload = self._request(
            "GET",
            f"{photo_name}/media",
            params={"maxWidthPx": self.cfg.photo_max_width_px, "skipHttpRedirect": "true"},
        )
        return str(payload.get("photoUri") or "")

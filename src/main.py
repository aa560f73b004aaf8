from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel

from config import Configuration
from models import (
    API_VERSIONS,
    MAINTENANCE_MARKER,
    UNSUPPORTED_VERSION_MARKER,
    DishMediaItem,
)
from services.discovery import DiscoveryAggregator
from services.google_places import GooglePlacesClient, ProviderError
from services.query_validator import ValidationError, parse_discovery_query
from utils import parse_version


app = FastAPI(title="Dish Discovery")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-request-id"],
)


class AccessDenied(Exception):
    def __init__(self, marker: str, message: str) -> None:
        super().__init__(message)
        self.marker = marker
        self.message = message


class LocationPayload(BaseModel):
    lat: float
    lng: float


class PlaceInfoPayload(BaseModel):
    placeId: str
    name: str
    vicinity: str
    location: LocationPayload
    googleMapUrl: str


class ReviewPayload(BaseModel):
    author: str
    rating: float
    text: str
    translated: bool


class DishMediaItemPayload(BaseModel):
    dishId: str
    dishName: str
    category: str
    photoUrl: str
    rating: float
    reviewCount: int
    distanceMeters: float
    place: PlaceInfoPayload
    reviews: List[ReviewPayload] = []


def to_payload(item: DishMediaItem) -> DishMediaItemPayload:
    p = item.place
    return DishMediaItemPayload(
        dishId=item.dish_id,
        dishName=item.dish_name,
        category=item.category,
        photoUrl=item.photo_url,
        rating=item.rating,
        reviewCount=item.review_count,
        distanceMeters=item.distance_meters,
        place=PlaceInfoPayload(
            placeId=p.place_id,
            name=p.name,
            vicinity=p.vicinity,
            location=LocationPayload(lat=p.location.lat, lng=p.location.lng),
            googleMapUrl=p.google_map_url,
        ),
        reviews=[
            ReviewPayload(author=r.author, rating=r.rating, text=r.text, translated=r.translated)
            for r in item.reviews
        ],
    )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["x-request-id"] = request_id
    return response


@app.exception_handler(AccessDenied)
async def access_denied_handler(request: Request, exc: AccessDenied) -> JSONResponse:
    return JSONResponse(status_code=403, content={"error": exc.marker, "message": exc.message})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid query", "message": exc.message, "field": exc.field},
    )


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    logger.error("nearby search failed status={}: {}", exc.status, exc.message)
    return JSONResponse(
        status_code=502,
        content={"error": "Upstream provider error", "message": exc.message, "status": exc.status},
    )


def get_config() -> Configuration:
    return Configuration.from_env()


def get_aggregator(cfg: Configuration = Depends(get_config)) -> DiscoveryAggregator:
    try:
        cfg.require_google_places()
    except ValueError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return DiscoveryAggregator(cfg, GooglePlacesClient(cfg))


def check_version(version: str) -> str:
    if version not in API_VERSIONS:
        raise HTTPException(status_code=404, detail="Not Found")
    return version


def access_gate(
    cfg: Configuration = Depends(get_config),
    x_app_version: Optional[str] = Header(None),
) -> None:
    if cfg.maintenance_mode:
        raise AccessDenied(MAINTENANCE_MARKER, "The service is temporarily down for maintenance.")
    if cfg.min_app_version:
        minimum = parse_version(cfg.min_app_version)
        current = parse_version(x_app_version)
        if minimum is not None and (current is None or current < minimum):
            raise AccessDenied(
                UNSUPPORTED_VERSION_MARKER,
                f"App version {x_app_version or 'unknown'} is not supported; "
                f"please update to {cfg.min_app_version} or later.",
            )


def require_bearer(authorization: Optional[str] = Header(None)) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=401,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token.strip()


@app.get("/healthz")
def healthz() -> dict:
    cfg = Configuration.from_env()
    logger.info("cfg: {}", cfg.log_summary())
    return {"status": "ok"}


@app.api_route(
    "/{version}/listDishMedia",
    methods=["GET", "POST"],
    response_model=List[DishMediaItemPayload],
    dependencies=[Depends(check_version), Depends(access_gate), Depends(require_bearer)],
)
async def list_dish_media(
    request: Request,
    cfg: Configuration = Depends(get_config),
    aggregator: DiscoveryAggregator = Depends(get_aggregator),
) -> List[DishMediaItemPayload]:
    raw: Dict[str, Any]
    if request.method == "POST":
        try:
            body = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise ValidationError("body", "request body must be a JSON object")
        raw = body
    else:
        raw = dict(request.query_params)
        categories = request.query_params.getlist("category")
        if len(categories) > 1:
            raw["category"] = categories

    query = parse_discovery_query(raw, cfg)

    try:
        items = await aggregator.discover(query)
    except ProviderError:
        raise
    except Exception as exc:
        logger.exception("listDishMedia failed: {}", exc)
        raise HTTPException(status_code=500, detail="internal error")

    return [to_payload(i) for i in items]


if __name__ == "__main__":
    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()
    uvicorn.run("main:app", host="0.0.0.0", port=8010, reload=True)

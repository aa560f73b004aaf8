from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from config import Configuration
from models import DiscoveryQuery


class ValidationError(ValueError):
    """Raised when a discovery parameter is missing, malformed or out of bounds."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class _DiscoveryParams(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0, allow_inf_nan=False)
    lng: float = Field(..., ge=-180.0, le=180.0, allow_inf_nan=False)
    radius: int = Field(..., ge=1, le=5000)
    limit: int = Field(..., ge=1, le=40)
    lang: str = Field(..., min_length=1)
    category: Optional[Union[str, List[str]]] = None

    @field_validator("lat", "lng", "radius", "limit", mode="before")
    @classmethod
    def _numeric_input(cls, value: Any) -> Any:
        # bool is an int subclass; a flag is never a coordinate or a count
        if isinstance(value, bool):
            raise ValueError("must be a number")
        if isinstance(value, str):
            return value.strip()
        return value


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_categories(value: Union[str, List[str], None]) -> Optional[Tuple[str, ...]]:
    """Split a comma separated category filter, dropping blanks and repeats.

    First-seen order is kept so provider requests stay deterministic.
    """
    if value is None:
        return None
    chunks = value if isinstance(value, list) else [value]
    out: list[str] = []
    for chunk in chunks:
        for token in str(chunk).split(","):
            token = token.strip()
            if token and token not in out:
                out.append(token)
    return tuple(out) or None


def parse_discovery_query(
    raw: Mapping[str, Any], cfg: Optional[Configuration] = None
) -> DiscoveryQuery:
    """Validate raw request parameters into a DiscoveryQuery.

    Numbers may arrive as strings or numbers. ``radius`` must be an integer in
    [1, 5000] and ``limit`` in [1, 40]; out-of-range values are rejected, not
    clamped. Absent or blank optional fields take the configured defaults.
    """
    cfg = cfg or Configuration()
    values = {
        key: raw[key]
        for key in ("lat", "lng", "radius", "limit", "lang", "category")
        if key in raw and not _is_blank(raw[key])
    }
    values.setdefault("radius", cfg.default_radius_m)
    values.setdefault("limit", cfg.default_limit)
    values.setdefault("lang", cfg.lang_default)
    if isinstance(values.get("lang"), str):
        values["lang"] = values["lang"].strip()

    try:
        params = _DiscoveryParams(**values)
    except PydanticValidationError as exc:
        err = exc.errors()[0]
        loc = err.get("loc") or ("query",)
        raise ValidationError(str(loc[0]), err.get("msg", "invalid value")) from exc

    return DiscoveryQuery(
        latitude=params.lat,
        longitude=params.lng,
        radius_meters=params.radius,
        limit=params.limit,
        language_tag=params.lang,
        category_filter=parse_categories(params.category),
    )

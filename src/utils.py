"""Utility helpers for dish discovery."""

from __future__ import annotations

import math
import re
from typing import Optional, Tuple

EARTH_RADIUS_M = 6371000.0


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    if not value:
        return "unset"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}...{value[-visible:]}"


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def parse_version(value: Optional[str]) -> Optional[Tuple[int, ...]]:
    """Parse a dotted version like ``1.4.2`` into a comparable tuple.

    Pre-release suffixes on a part (``2.0.0-beta``) keep only the leading digits.
    Returns None for empty or unparseable input.
    """
    if not value:
        return None
    parts: list[int] = []
    for chunk in value.strip().split("."):
        match = re.match(r"\d+", chunk)
        if not match:
            return None
        parts.append(int(match.group(0)))
    # 1.2 == 1.2.0
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)

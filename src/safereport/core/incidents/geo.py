"""Location parsing and risk-zone aggregation.

A stored location is free text, ``"lat,lon"`` or ``"lat,lon|address"``.
Only locations with valid coordinates take part in hotspot clustering.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel

ZoneLevel = Literal["high", "medium", "low"]

_CLUSTER_PRECISION = 3
_HIGH_THRESHOLD = 5
_MEDIUM_THRESHOLD = 3
_RADIUS: dict[str, int] = {"high": 12, "medium": 10, "low": 8}


@dataclass(frozen=True)
class ParsedLocation:
    lat: float | None = None
    lon: float | None = None
    address: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None


def _parse_coordinates(text: str) -> tuple[float, float] | None:
    parts = text.split(",")
    if len(parts) != 2:
        return None
    try:
        lat, lon = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    return lat, lon


def parse_location(raw: str | None) -> ParsedLocation:
    if raw is None or not raw.strip():
        return ParsedLocation()
    text = raw.strip()
    coords_part, _, address = text.partition("|")
    coords = _parse_coordinates(coords_part)
    if coords is None:
        return ParsedLocation(address=text)
    lat, lon = coords
    return ParsedLocation(lat=lat, lon=lon, address=address.strip() or None)


def format_location(lat: float, lon: float, address: str | None = None) -> str:
    coords = f"{lat:.6f},{lon:.6f}"
    return f"{coords}|{address}" if address else coords


class Hotspot(BaseModel):
    name: str
    lat: float
    lon: float
    level: ZoneLevel
    radius: int
    count: int


def zone_level(count: int) -> ZoneLevel:
    if count >= _HIGH_THRESHOLD:
        return "high"
    if count >= _MEDIUM_THRESHOLD:
        return "medium"
    return "low"


def compute_hotspots(
    incidents: Iterable[tuple[str, str | None]],
) -> list[Hotspot]:
    """Cluster ``(type, location)`` pairs by coordinates rounded to three decimals.

    A zone is named after the type of the first incident seen in it.
    Zones are returned busiest first.
    """
    clusters: dict[tuple[float, float], list[str]] = {}
    for incident_type, location in incidents:
        parsed = parse_location(location)
        if not parsed.has_coordinates:
            continue
        key = (
            round(parsed.lat, _CLUSTER_PRECISION),
            round(parsed.lon, _CLUSTER_PRECISION),
        )
        clusters.setdefault(key, []).append(incident_type)

    zones = []
    for (lat, lon), types in clusters.items():
        level = zone_level(len(types))
        zones.append(
            Hotspot(
                name=f"{types[0]} Risk Zone",
                lat=lat,
                lon=lon,
                level=level,
                radius=_RADIUS[level],
                count=len(types),
            )
        )
    zones.sort(key=lambda z: z.count, reverse=True)
    return zones

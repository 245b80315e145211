"""Great-circle distances on a spherical Earth."""

from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def within_radius(lat: float, lon: float, ref_lat: float, ref_lon: float, radius_km: float) -> bool:
    return haversine_km(lat, lon, ref_lat, ref_lon) <= radius_km


def format_distance(km: float) -> str:
    """``0.35`` -> ``"350m"``, ``1.24`` -> ``"1.2km"``; metres are truncated."""

    if km < 1:
        return f"{int(km * 1000)}m"
    return f"{km:.1f}km"


__all__ = ["EARTH_RADIUS_KM", "format_distance", "haversine_km", "within_radius"]

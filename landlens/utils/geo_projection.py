"""
Local metric projections for circles and areas.

Every shape is small compared to a UTM zone, so metric work happens in the
zone of a reference point and is projected back to WGS84 afterwards.
"""
from functools import lru_cache
from typing import List, Tuple

import numpy as np
from pyproj import Transformer

WGS84 = "EPSG:4326"


def get_utm_zone(longitude: float) -> int:
    """
    Calculate the UTM zone number from longitude.

    Args:
        longitude: Longitude in degrees

    Returns:
        UTM zone number (1-60); the antimeridian belongs to zone 60
    """
    return min(int((longitude + 180) / 6) + 1, 60)


def get_utm_crs(longitude: float, latitude: float) -> str:
    """
    Get the UTM CRS for a location.

    Args:
        longitude: Longitude in degrees
        latitude: Latitude in degrees

    Returns:
        EPSG code, 326XX north of the equator and 327XX south of it
    """
    hemisphere = "6" if latitude >= 0 else "7"
    return f"EPSG:32{hemisphere}{get_utm_zone(longitude):02d}"


@lru_cache(maxsize=64)
def _transformer_pair(utm_crs: str) -> Tuple[Transformer, Transformer]:
    return (
        Transformer.from_crs(WGS84, utm_crs, always_xy=True),
        Transformer.from_crs(utm_crs, WGS84, always_xy=True),
    )


def get_transformers(latitude: float, longitude: float) -> Tuple[Transformer, Transformer]:
    """
    Forward and reverse transformers between WGS84 and the local UTM zone.

    Both use (x, y) = (lon, lat) on the WGS84 side. Transformers are cached
    per zone.

    Returns:
        Tuple of (to_meters, to_latlon)
    """
    return _transformer_pair(get_utm_crs(longitude, latitude))


def project_to_meters(
    coordinates: List[Tuple[float, float]]
) -> Tuple[List[Tuple[float, float]], Transformer]:
    """
    Project (lat, lon) points into the UTM zone of the first point.

    Args:
        coordinates: Non-empty list of (latitude, longitude) tuples

    Returns:
        Tuple of (x, y) points in meters and the transformer back to WGS84

    Raises:
        ValueError: If ``coordinates`` is empty
    """
    if not coordinates:
        raise ValueError("Coordinates list cannot be empty")

    points = np.asarray(coordinates, dtype=float)
    to_meters, to_latlon = get_transformers(points[0, 0], points[0, 1])
    xs, ys = to_meters.transform(points[:, 1], points[:, 0])
    return list(zip(np.atleast_1d(xs).tolist(), np.atleast_1d(ys).tolist())), to_latlon


def project_to_latlon(
    coordinates: List[Tuple[float, float]],
    transformer: Transformer
) -> List[Tuple[float, float]]:
    """
    Project metric (x, y) points back to (lat, lon).

    Args:
        coordinates: Points in meters
        transformer: Reverse transformer from project_to_meters

    Returns:
        List of (latitude, longitude) tuples
    """
    if not coordinates:
        return []
    points = np.asarray(coordinates, dtype=float)
    lons, lats = transformer.transform(points[:, 0], points[:, 1])
    return list(zip(np.atleast_1d(lats).tolist(), np.atleast_1d(lons).tolist()))

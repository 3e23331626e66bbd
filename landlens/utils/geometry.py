"""
Geometry helpers for shapes and source features.

Provides utilities for:
- Converting user shapes to shapely polygons (x = lon, y = lat)
- Approximating circles in a local metric projection
- Decoding Overpass element geometry into polygons
- Bounding boxes and approximate areas
"""
import logging
from typing import Any, Optional

from shapely.errors import GEOSException
from shapely.geometry import LineString, MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import polygonize, transform, unary_union
from shapely.validation import make_valid

from landlens.domain.models import BoundingBox, LatLon, Shape, ShapeKind
from landlens.utils.geo_projection import (
    get_transformers,
    project_to_latlon,
    project_to_meters,
)

logger = logging.getLogger(__name__)

CIRCLE_QUAD_SEGMENTS = 16


class GeometryDecodeError(ValueError):
    """Raised when source geometry cannot be turned into a polygon."""
    pass


def polygonal(geometry: BaseGeometry) -> BaseGeometry:
    """
    Keep only the areal part of a geometry.

    Intersections and repaired rings can yield collections mixing polygons
    with lines or points; only polygons are meaningful here.

    Args:
        geometry: Any shapely geometry

    Returns:
        Polygon or MultiPolygon, possibly empty
    """
    if geometry.is_empty:
        return Polygon()
    if isinstance(geometry, (Polygon, MultiPolygon)):
        return geometry
    parts = []
    for part in getattr(geometry, "geoms", []):
        if isinstance(part, Polygon):
            parts.append(part)
        elif isinstance(part, MultiPolygon):
            parts.extend(part.geoms)
    if not parts:
        return Polygon()
    if len(parts) == 1:
        return parts[0]
    return MultiPolygon(parts)


def ring_to_polygon(points: list[LatLon]) -> BaseGeometry:
    """
    Build a closed polygon from (lat, lon) points, repairing self-intersections.

    Args:
        points: Ordered ring, closed or not

    Returns:
        Valid Polygon or MultiPolygon
    """
    polygon = Polygon([(lon, lat) for lat, lon in points])
    if not polygon.is_valid:
        return polygonal(make_valid(polygon))
    return polygon


def circle_outline(center: LatLon, radius: float) -> Polygon:
    """
    Approximate a circle of ``radius`` meters around ``center``.

    The circle is buffered in the local UTM zone and projected back, so the
    outline is round on the ground rather than in degrees.

    Args:
        center: (lat, lon) of the circle center
        radius: Radius in meters

    Returns:
        Polygon in (lon, lat) coordinates
    """
    projected, to_latlon = project_to_meters([center])
    disc = Point(projected[0]).buffer(radius, quad_segs=CIRCLE_QUAD_SEGMENTS)
    ring = project_to_latlon(list(disc.exterior.coords), to_latlon)
    return Polygon([(lon, lat) for lat, lon in ring])


def shape_to_geometry(shape: Shape) -> BaseGeometry:
    """
    Convert a user shape to a shapely polygon in (lon, lat) coordinates.

    Args:
        shape: User shape

    Returns:
        Valid Polygon or MultiPolygon
    """
    if shape.kind == ShapeKind.CIRCLE:
        return circle_outline(shape.center, shape.radius)
    if shape.kind in (ShapeKind.POLYGON, ShapeKind.FREEHAND):
        return ring_to_polygon(list(shape.vertices))
    raise ValueError(f"Unsupported shape kind: {shape.kind}")


def bounding_box(shape: Shape) -> BoundingBox:
    """
    Get the axis-aligned bounding box of a shape.

    Polygon boxes come straight from the extreme vertices; circle boxes come
    from their projected outline.
    """
    if shape.kind == ShapeKind.CIRCLE:
        west, south, east, north = circle_outline(shape.center, shape.radius).bounds
    else:
        lats = [lat for lat, _ in shape.vertices]
        lons = [lon for _, lon in shape.vertices]
        north, south, east, west = max(lats), min(lats), max(lons), min(lons)
    return BoundingBox(north=north, south=south, east=east, west=west)


def _points_from_overpass(geometry: list[dict[str, Any]]) -> list[LatLon]:
    return [(float(pt["lat"]), float(pt["lon"])) for pt in geometry]


def element_to_geometry(element: dict[str, Any]) -> Optional[BaseGeometry]:
    """
    Decode an Overpass ``out geom`` element into a closed polygon.

    Ways use their own node geometry. Relations use the union of their
    ``outer`` member rings.

    Args:
        element: Overpass element document

    Returns:
        Polygon or MultiPolygon, or None when the element has no geometry

    Raises:
        GeometryDecodeError: If the geometry is present but malformed
    """
    try:
        element_type = element.get("type")
        if element_type == "way":
            geometry = element.get("geometry")
            if not geometry:
                return None
            return ring_to_polygon(_points_from_overpass(geometry))

        if element_type == "relation":
            # Outer rings are often split across several member ways
            lines = [
                LineString([(lon, lat) for lat, lon in _points_from_overpass(member["geometry"])])
                for member in element.get("members", [])
                if member.get("role") == "outer" and member.get("geometry")
            ]
            if not lines:
                return None
            rings = list(polygonize(unary_union(lines)))
            if not rings:
                raise GeometryDecodeError(
                    f"Outer members of relation {element.get('id')} do not close"
                )
            return polygonal(make_valid(unary_union(rings)))

        return None
    except (KeyError, TypeError, ValueError, GEOSException) as e:
        raise GeometryDecodeError(
            f"Malformed geometry for {element.get('type')} {element.get('id')}: {e}"
        ) from e


def area_m2(geometry: BaseGeometry) -> float:
    """
    Approximate the area of a (lon, lat) geometry in square meters.

    Args:
        geometry: Polygonal geometry in degrees

    Returns:
        Area in m² in the UTM zone of the geometry's centroid
    """
    if geometry.is_empty:
        return 0.0
    centroid = geometry.centroid
    to_meters, _ = get_transformers(centroid.y, centroid.x)
    return float(transform(to_meters.transform, geometry).area)

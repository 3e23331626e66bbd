"""
Domain service: spatial predicates and feature queries for Overpass.
"""
import numpy as np

from landlens.config import settings
from landlens.domain.models import Shape, ShapeKind
from landlens.infrastructure.api_constants import FeatureSelectors


def format_number(value: float) -> str:
    """
    Render a number the way JavaScript prints it in template strings.

    Integral values drop the fractional part (500.0 -> "500"). Otherwise the
    shortest round-trip digits are used, positional for magnitudes in
    [1e-6, 1e21) and exponential outside it with an unpadded exponent
    (1e-7, 2.5e+21).
    """
    number = float(value)
    if number.is_integer() and abs(number) < 1e21:
        return str(int(number))
    if 1e-6 <= abs(number) < 1e21:
        return np.format_float_positional(number, unique=True, trim="-")
    return np.format_float_scientific(number, unique=True, trim="-", exp_digits=1)


def build_filter(shape: Shape) -> str:
    """
    Convert a shape into an Overpass spatial predicate.

    Circles become ``around:<radius>,<lat>,<lon>``. Polygons and freehand
    outlines become ``poly:"<lat> <lon> ..."`` with vertices in their
    original order. The result depends only on the shape's geometry.

    Args:
        shape: User shape

    Returns:
        Predicate string for use inside a filter clause
    """
    if shape.kind == ShapeKind.CIRCLE:
        lat, lon = shape.center
        return (
            f"around:{format_number(shape.radius)},"
            f"{format_number(lat)},{format_number(lon)}"
        )
    if shape.kind in (ShapeKind.POLYGON, ShapeKind.FREEHAND):
        pairs = " ".join(
            f"{format_number(lat)} {format_number(lon)}" for lat, lon in shape.vertices
        )
        return f'poly:"{pairs}"'
    raise ValueError(f"Unsupported shape kind: {shape.kind}")


def build_feature_query(shape: Shape, timeout: int = None) -> str:
    """
    Build the Overpass QL query for every whitelisted feature inside a shape.

    Args:
        shape: User shape
        timeout: Server-side query timeout in seconds (defaults to settings)

    Returns:
        Overpass QL query text
    """
    timeout = timeout or settings.overpass_query_timeout
    predicate = build_filter(shape)
    clauses = [
        f"  {element_type}{tag}({predicate});"
        for tag in FeatureSelectors.TAGS
        for element_type in FeatureSelectors.ELEMENT_TYPES
    ]
    return "\n".join([
        f"[out:json][timeout:{timeout}];",
        "(",
        *clauses,
        ");",
        "out geom;",
    ])

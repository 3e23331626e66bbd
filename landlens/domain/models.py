"""
Domain models for annotated shapes and their environmental profiles.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, sessions, HTTP, etc.).
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


LatLon = Tuple[float, float]


def _check_lat_lon(point: LatLon) -> LatLon:
    lat, lon = point
    if not -90.0 <= lat <= 90.0:
        raise ValueError(f"Latitude {lat} out of range [-90, 90]")
    if not -180.0 <= lon <= 180.0:
        raise ValueError(f"Longitude {lon} out of range [-180, 180]")
    return (float(lat), float(lon))


class ShapeKind(str, Enum):
    """Kinds of user-drawn shapes."""
    POLYGON = "polygon"
    CIRCLE = "circle"
    FREEHAND = "freehand-polygon"


class Shape(BaseModel):
    """
    A user-drawn region on the map.

    Polygon and freehand shapes carry an ordered vertex ring of (lat, lon)
    pairs. Circles carry a center and a radius in meters. Rectangles and
    triangles are polygons.
    """
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    kind: ShapeKind
    vertices: Tuple[LatLon, ...] = ()
    center: Optional[LatLon] = None
    radius: Optional[float] = Field(default=None, description="Radius in meters")

    model_config = ConfigDict(frozen=True)

    @field_validator("vertices")
    @classmethod
    def _validate_vertices(cls, value: Tuple[LatLon, ...]) -> Tuple[LatLon, ...]:
        return tuple(_check_lat_lon(p) for p in value)

    @field_validator("center")
    @classmethod
    def _validate_center(cls, value: Optional[LatLon]) -> Optional[LatLon]:
        return _check_lat_lon(value) if value is not None else None

    @model_validator(mode="after")
    def _validate_geometry(self) -> "Shape":
        if self.kind == ShapeKind.CIRCLE:
            if self.center is None or self.radius is None:
                raise ValueError("A circle needs a center and a radius")
            if self.radius <= 0:
                raise ValueError(f"Circle radius must be > 0, got {self.radius}")
            if self.vertices:
                raise ValueError("A circle has no vertices")
        else:
            if len(self.vertices) < 3:
                raise ValueError(
                    f"A {self.kind.value} needs at least 3 vertices, got {len(self.vertices)}"
                )
            if self.center is not None or self.radius is not None:
                raise ValueError(f"A {self.kind.value} has no center or radius")
        return self

    @property
    def is_circle(self) -> bool:
        return self.kind == ShapeKind.CIRCLE

    def with_vertices(self, vertices: List[LatLon]) -> "Shape":
        """Return a copy of this shape, same id, with a new vertex ring."""
        if self.is_circle:
            raise ValueError("Circles cannot be edited by vertices")
        return Shape(id=self.id, kind=self.kind, vertices=tuple(vertices))

    @classmethod
    def polygon(cls, vertices: List[LatLon], id: Optional[str] = None) -> "Shape":
        extra = {"id": id} if id else {}
        return cls(kind=ShapeKind.POLYGON, vertices=tuple(vertices), **extra)

    @classmethod
    def freehand(cls, vertices: List[LatLon], id: Optional[str] = None) -> "Shape":
        extra = {"id": id} if id else {}
        return cls(kind=ShapeKind.FREEHAND, vertices=tuple(vertices), **extra)

    @classmethod
    def circle(cls, center: LatLon, radius: float, id: Optional[str] = None) -> "Shape":
        extra = {"id": id} if id else {}
        return cls(kind=ShapeKind.CIRCLE, center=center, radius=radius, **extra)

    @classmethod
    def rectangle(
        cls,
        north: float,
        south: float,
        east: float,
        west: float,
        id: Optional[str] = None,
    ) -> "Shape":
        """Axis-aligned rectangle, vertices ordered SW, NW, NE, SE."""
        return cls.polygon(
            [(south, west), (north, west), (north, east), (south, east)],
            id=id,
        )

    @classmethod
    def triangle(
        cls, a: LatLon, b: LatLon, c: LatLon, id: Optional[str] = None
    ) -> "Shape":
        return cls.polygon([a, b, c], id=id)


class BoundingBox(BaseModel):
    """Axis-aligned box enclosing a shape."""
    north: float
    south: float
    east: float
    west: float

    @model_validator(mode="after")
    def _validate_extent(self) -> "BoundingBox":
        if self.north < self.south:
            raise ValueError(f"north ({self.north}) must be >= south ({self.south})")
        if self.east < self.west:
            raise ValueError(f"east ({self.east}) must be >= west ({self.west})")
        return self

    @property
    def corners(self) -> dict[str, LatLon]:
        return {
            "north_west": (self.north, self.west),
            "north_east": (self.north, self.east),
            "south_west": (self.south, self.west),
            "south_east": (self.south, self.east),
        }


class SamplePoint(BaseModel):
    """A grid sample coordinate; index is its row-major grid position."""
    index: int
    lat: float
    lon: float


class Coordinates(BaseModel):
    lat: float
    lon: float


class TimeRange(BaseModel):
    """Inclusive date window, formatted YYYYMMDD."""
    start: str
    end: str


class SampleRecord(BaseModel):
    """Joined soil and weather results for one sample point."""
    index: int
    coordinates: Coordinates
    soil: dict[str, Any] = Field(
        description="Soil service document or {'error': message}"
    )
    weather: dict[str, Any] = Field(
        description="Weather service document or {'error': message}"
    )

    @property
    def soil_failed(self) -> bool:
        return "error" in self.soil

    @property
    def weather_failed(self) -> bool:
        return "error" in self.weather


class EnvironmentalDataset(BaseModel):
    """Soil and weather samples over one shape's bounding box."""
    bounding_box: BoundingBox
    grid_size: int
    total_points: int
    time_range: TimeRange
    collected_at: datetime
    samples: List[SampleRecord]


class FeatureCategory(str, Enum):
    """Display categories, in classification priority order."""
    BUILDING = "building"
    GREEN = "green"
    WATER = "water"
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    INDUSTRIAL = "industrial"


class FeatureStyle(BaseModel):
    """Leaflet path style for a clipped feature."""
    fill_color: str = Field(alias="fillColor")
    color: str
    weight: int = 1
    fill_opacity: float = Field(alias="fillOpacity")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class FeatureResult(BaseModel):
    """A source feature clipped to a user shape."""
    osm_id: int
    osm_type: str
    category: FeatureCategory
    tags: dict[str, str]
    style: FeatureStyle
    geometry: dict[str, Any] = Field(description="GeoJSON geometry of the intersection")
    area_m2: float = Field(description="Approximate area of the intersection in m²")


class ShapeAnalysis(BaseModel):
    """Per-shape analysis result; failed units carry an error message."""
    shape_id: str
    features: List[FeatureResult] = Field(default_factory=list)
    feature_error: Optional[str] = None
    environment: Optional[EnvironmentalDataset] = None


class AnalysisSummary(BaseModel):
    """Language-model summary of an analysis report."""
    text: Optional[str] = None
    structured: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class AnalysisReport(BaseModel):
    """Joined result of analyzing every shape in a session."""
    session_id: Optional[str] = None
    generated_at: datetime
    grid_size: int
    features_found: bool
    shapes: List[ShapeAnalysis]
    summary: Optional[AnalysisSummary] = None


class ToolbarState(BaseModel):
    """Enabled state of the toolbar affordances."""
    analyze_enabled: bool
    clear_enabled: bool
    undo_enabled: bool
    redo_enabled: bool

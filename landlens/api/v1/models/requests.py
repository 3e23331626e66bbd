"""
API request models using Pydantic.
"""
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from landlens.domain.models import Shape, ShapeKind


class ShapeCreateRequest(BaseModel):
    """A shape produced by one of the drawing tools."""
    kind: ShapeKind = Field(
        description="Shape kind: polygon, circle or freehand-polygon"
    )
    vertices: List[Tuple[float, float]] = Field(
        default_factory=list,
        description="Ordered (lat, lon) vertex ring for polygons and freehand outlines"
    )
    center: Optional[Tuple[float, float]] = Field(
        default=None,
        description="(lat, lon) center for circles"
    )
    radius: Optional[float] = Field(
        default=None,
        description="Radius in meters for circles"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "kind": "polygon",
                "vertices": [[9.59, 76.52], [9.60, 76.52], [9.60, 76.53]],
            }
        }
    )

    def to_shape(self) -> Shape:
        return Shape(
            kind=self.kind,
            vertices=tuple(self.vertices),
            center=self.center,
            radius=self.radius,
        )


class ShapeEditRequest(BaseModel):
    """New vertex ring for an edited shape."""
    vertices: List[Tuple[float, float]] = Field(
        description="Ordered (lat, lon) vertex ring"
    )


class ChatRequest(BaseModel):
    """Free-form question for the assistant."""
    query: str = Field(min_length=1, description="User question")

"""
Domain service: feature query and intersection against user shapes.

For each shape the engine:
1. Builds the spatial predicate and the Overpass query
2. Fetches overlapping ways and relations
3. Clips every feature polygon to the shape
4. Classifies the clipped result by tag priority for display
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from shapely.errors import GEOSException
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from landlens.domain.models import (
    FeatureCategory,
    FeatureResult,
    FeatureStyle,
    Shape,
)
from landlens.infrastructure.external_api_client import (
    ExternalAPIClient,
    ExternalAPIError,
)
from landlens.services.domain.filter_builder import build_feature_query
from landlens.utils.geometry import (
    GeometryDecodeError,
    area_m2,
    element_to_geometry,
    polygonal,
    shape_to_geometry,
)

logger = logging.getLogger(__name__)


CATEGORY_STYLES: dict[FeatureCategory, FeatureStyle] = {
    FeatureCategory.BUILDING: FeatureStyle(fill_color="#FFA500", color="#D2691E", weight=1, fill_opacity=0.5),
    FeatureCategory.GREEN: FeatureStyle(fill_color="#228B22", color="#006400", weight=1, fill_opacity=0.5),
    FeatureCategory.WATER: FeatureStyle(fill_color="#4682B4", color="#1E90FF", weight=1, fill_opacity=0.6),
    FeatureCategory.RESIDENTIAL: FeatureStyle(fill_color="#FFC0CB", color="#FFB6C1", weight=1, fill_opacity=0.5),
    FeatureCategory.COMMERCIAL: FeatureStyle(fill_color="#DA70D6", color="#BA55D3", weight=1, fill_opacity=0.5),
    FeatureCategory.INDUSTRIAL: FeatureStyle(fill_color="#808080", color="#696969", weight=1, fill_opacity=0.5),
}


def classify_tags(tags: Optional[dict[str, str]]) -> Optional[FeatureCategory]:
    """
    Pick a display category from a tag set; first match wins.

    Priority: building > wood or park > water > residential > commercial >
    industrial.

    Args:
        tags: OSM tag mapping (may be None)

    Returns:
        FeatureCategory, or None when no classified tag is present
    """
    if not tags:
        return None
    if tags.get("building"):
        return FeatureCategory.BUILDING
    if tags.get("natural") == "wood" or tags.get("leisure") == "park":
        return FeatureCategory.GREEN
    if tags.get("natural") == "water":
        return FeatureCategory.WATER
    landuse = tags.get("landuse")
    if landuse == "residential":
        return FeatureCategory.RESIDENTIAL
    if landuse == "commercial":
        return FeatureCategory.COMMERCIAL
    if landuse == "industrial":
        return FeatureCategory.INDUSTRIAL
    return None


@dataclass
class FeatureQueryOutcome:
    """Feature results for one shape, or the error that dropped them."""
    shape_id: str
    features: list[FeatureResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class FeatureIntersectionEngine:
    """
    Domain service turning user shapes into clipped, classified features.
    """

    def __init__(self, api_client: ExternalAPIClient):
        """
        Initialize the engine.

        Args:
            api_client: Client used for the feature source
        """
        self.api_client = api_client

    async def query_and_clip(self, shape: Shape) -> list[FeatureResult]:
        """
        Fetch the features overlapping a shape and clip them to it.

        Args:
            shape: User shape

        Returns:
            List of FeatureResult, possibly empty

        Raises:
            ExternalAPIError: If the feature source request fails
        """
        query = build_feature_query(shape)
        elements = await self.api_client.query_features(query)
        features = self.clip_features(shape, elements)
        logger.info(
            f"Shape {shape.id}: {len(features)} clipped features "
            f"from {len(elements)} source elements"
        )
        return features

    def clip_features(
        self,
        shape: Shape,
        elements: Iterable[dict[str, Any]],
    ) -> list[FeatureResult]:
        """
        Intersect source elements with a shape and classify the overlaps.

        Elements without geometry, with malformed geometry, without overlap or
        without a classified tag are skipped.

        Args:
            shape: User shape
            elements: Overpass element documents

        Returns:
            List of FeatureResult in source order
        """
        shape_geometry = shape_to_geometry(shape)
        results = []
        skipped_malformed = 0

        for element in elements:
            category = classify_tags(element.get("tags"))
            if category is None:
                continue

            try:
                feature_geometry = element_to_geometry(element)
            except GeometryDecodeError as e:
                logger.warning(str(e))
                skipped_malformed += 1
                continue
            if feature_geometry is None:
                continue

            intersection = self._intersect(shape_geometry, feature_geometry)
            if intersection is None or intersection.is_empty:
                continue

            results.append(FeatureResult(
                osm_id=int(element.get("id", 0)),
                osm_type=element.get("type", "way"),
                category=category,
                tags=dict(element.get("tags") or {}),
                style=CATEGORY_STYLES[category],
                geometry=mapping(intersection),
                area_m2=area_m2(intersection),
            ))

        if skipped_malformed:
            logger.debug(f"Skipped {skipped_malformed} elements with malformed geometry")
        return results

    def _intersect(
        self,
        shape_geometry: BaseGeometry,
        feature_geometry: BaseGeometry,
    ) -> Optional[BaseGeometry]:
        try:
            return polygonal(shape_geometry.intersection(feature_geometry))
        except GEOSException as e:
            logger.warning(f"Intersection failed: {e}")
            return None

    async def _query_outcome(self, shape: Shape) -> FeatureQueryOutcome:
        try:
            features = await self.query_and_clip(shape)
        except ExternalAPIError as e:
            logger.error(f"Feature query failed for shape {shape.id}: {e.message}")
            return FeatureQueryOutcome(shape_id=shape.id, error=e.message)
        return FeatureQueryOutcome(shape_id=shape.id, features=features)

    async def query_shapes(self, shapes: list[Shape]) -> list[FeatureQueryOutcome]:
        """
        Query and clip every shape in parallel.

        A failed shape yields an outcome carrying its error; the others are
        unaffected.

        Args:
            shapes: User shapes

        Returns:
            One FeatureQueryOutcome per shape, in input order
        """
        return list(await asyncio.gather(*(self._query_outcome(s) for s in shapes)))


def any_features_found(outcomes: Iterable[FeatureQueryOutcome]) -> bool:
    """True when at least one shape produced a classified feature."""
    return any(outcome.features for outcome in outcomes)

"""
Unit tests for the feature query and intersection engine.

Tests cover:
- Tag priority classification
- Clipping features to user shapes
- Skipping unclassified, distant and malformed features
- Per-shape failure isolation
"""
import pytest

from landlens.domain.models import FeatureCategory, Shape
from landlens.infrastructure.external_api_client import ExternalAPIError
from landlens.services.domain.intersection_engine import (
    CATEGORY_STYLES,
    FeatureIntersectionEngine,
    any_features_found,
    classify_tags,
)


# ============================================================
# Classification Tests
# ============================================================

class TestClassifyTags:
    """Tests for tag priority classification."""

    @pytest.mark.parametrize("tags, expected", [
        ({"building": "yes"}, FeatureCategory.BUILDING),
        ({"building": "yes", "landuse": "industrial"}, FeatureCategory.BUILDING),
        ({"natural": "wood"}, FeatureCategory.GREEN),
        ({"leisure": "park", "natural": "water"}, FeatureCategory.GREEN),
        ({"natural": "water", "landuse": "residential"}, FeatureCategory.WATER),
        ({"landuse": "residential"}, FeatureCategory.RESIDENTIAL),
        ({"landuse": "commercial"}, FeatureCategory.COMMERCIAL),
        ({"landuse": "industrial"}, FeatureCategory.INDUSTRIAL),
    ])
    def test_priority(self, tags, expected):
        assert classify_tags(tags) == expected

    @pytest.mark.parametrize("tags", [None, {}, {"landuse": "farmland"}, {"highway": "primary"}])
    def test_unclassified(self, tags):
        assert classify_tags(tags) is None

    def test_every_category_has_a_style(self):
        assert set(CATEGORY_STYLES) == set(FeatureCategory)


# ============================================================
# Clipping Tests
# ============================================================

class TestClipFeatures:
    """Tests for intersecting source elements with a shape."""

    def test_building_with_landuse_gets_building_style(
        self, mock_api_client, square_shape, overlapping_building
    ):
        engine = FeatureIntersectionEngine(mock_api_client)

        results = engine.clip_features(square_shape, [overlapping_building])

        assert len(results) == 1
        result = results[0]
        assert result.category == FeatureCategory.BUILDING
        assert result.style.fill_color == "#FFA500"
        assert result.osm_id == 101

    def test_intersection_is_clipped_to_shape(
        self, mock_api_client, square_shape, overlapping_building
    ):
        engine = FeatureIntersectionEngine(mock_api_client)

        result = engine.clip_features(square_shape, [overlapping_building])[0]

        assert result.geometry["type"] == "Polygon"
        lons = [x for x, _ in result.geometry["coordinates"][0]]
        lats = [y for _, y in result.geometry["coordinates"][0]]
        assert min(lons) == pytest.approx(0.005)
        assert max(lons) == pytest.approx(0.01)
        assert min(lats) == pytest.approx(0.005)
        assert max(lats) == pytest.approx(0.01)
        # a quarter of the ~1.23 km² square
        assert result.area_m2 == pytest.approx(307_700, rel=0.02)

    def test_non_overlapping_feature_skipped(self, mock_api_client, square_shape, distant_water):
        engine = FeatureIntersectionEngine(mock_api_client)

        assert engine.clip_features(square_shape, [distant_water]) == []

    def test_untagged_feature_skipped(self, mock_api_client, square_shape, overlapping_building):
        engine = FeatureIntersectionEngine(mock_api_client)
        untagged = dict(overlapping_building, tags={"highway": "service"})

        assert engine.clip_features(square_shape, [untagged]) == []

    def test_feature_without_geometry_skipped(self, mock_api_client, square_shape):
        engine = FeatureIntersectionEngine(mock_api_client)
        element = {"type": "way", "id": 5, "tags": {"building": "yes"}}

        assert engine.clip_features(square_shape, [element]) == []

    def test_malformed_feature_skipped_others_kept(
        self, mock_api_client, square_shape, overlapping_park
    ):
        engine = FeatureIntersectionEngine(mock_api_client)
        malformed = {
            "type": "way",
            "id": 6,
            "tags": {"building": "yes"},
            "geometry": [{"lat": 0.001}],
        }

        results = engine.clip_features(square_shape, [malformed, overlapping_park])

        assert [r.osm_id for r in results] == [102]
        assert results[0].category == FeatureCategory.GREEN

    def test_touching_feature_skipped(self, mock_api_client, square_shape):
        engine = FeatureIntersectionEngine(mock_api_client)
        neighbour = {
            "type": "way",
            "id": 8,
            "tags": {"landuse": "commercial"},
            "geometry": [
                {"lat": 0.0, "lon": 0.01}, {"lat": 0.01, "lon": 0.01},
                {"lat": 0.01, "lon": 0.02}, {"lat": 0.0, "lon": 0.02},
            ],
        }

        assert engine.clip_features(square_shape, [neighbour]) == []

    def test_circle_shape_clipping(self, mock_api_client, overlapping_park):
        engine = FeatureIntersectionEngine(mock_api_client)
        circle = Shape.circle((0.0, 0.0), 200)

        results = engine.clip_features(circle, [overlapping_park])

        # the circle lies entirely inside the park
        assert len(results) == 1
        assert results[0].area_m2 == pytest.approx(3.14159 * 200 ** 2, rel=0.02)


# ============================================================
# Query Tests
# ============================================================

class TestQueryAndClip:
    """Tests for querying the feature source per shape."""

    @pytest.mark.asyncio
    async def test_query_and_clip(self, mock_api_client, square_shape, overlapping_building):
        mock_api_client.query_features.return_value = [overlapping_building]
        engine = FeatureIntersectionEngine(mock_api_client)

        results = await engine.query_and_clip(square_shape)

        assert len(results) == 1
        query = mock_api_client.query_features.call_args.args[0]
        assert 'poly:"0 0 0.01 0 0.01 0.01 0 0.01"' in query

    @pytest.mark.asyncio
    async def test_zero_features_is_not_an_error(self, mock_api_client, square_shape):
        engine = FeatureIntersectionEngine(mock_api_client)

        assert await engine.query_and_clip(square_shape) == []

    @pytest.mark.asyncio
    async def test_query_error_propagates(self, mock_api_client, square_shape):
        mock_api_client.query_features.side_effect = ExternalAPIError("boom", status_code=500)
        engine = FeatureIntersectionEngine(mock_api_client)

        with pytest.raises(ExternalAPIError):
            await engine.query_and_clip(square_shape)

    @pytest.mark.asyncio
    async def test_failed_shape_does_not_drop_siblings(
        self, mock_api_client, square_shape, overlapping_building
    ):
        circle = Shape.circle((0.0, 0.0), 300, id="circle")

        def fake_query(query):
            if "around:" in query:
                raise ExternalAPIError("API request failed: 504 - Gateway Timeout", status_code=504)
            return [overlapping_building]

        mock_api_client.query_features.side_effect = fake_query
        engine = FeatureIntersectionEngine(mock_api_client)

        outcomes = await engine.query_shapes([circle, square_shape])

        assert [o.shape_id for o in outcomes] == ["circle", "square"]
        assert not outcomes[0].succeeded
        assert "504" in outcomes[0].error
        assert outcomes[1].succeeded
        assert len(outcomes[1].features) == 1
        assert any_features_found(outcomes)

    @pytest.mark.asyncio
    async def test_nothing_found(self, mock_api_client, square_shape, triangle_shape):
        engine = FeatureIntersectionEngine(mock_api_client)

        outcomes = await engine.query_shapes([square_shape, triangle_shape])

        assert not any_features_found(outcomes)
        assert all(o.succeeded for o in outcomes)

"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample shapes
- Sample Overpass elements
- Sample soil and weather documents
- Mock API clients
- FastAPI test client
"""
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

import landlens.services.application.session as session_module
from landlens.main import app
from landlens.domain.models import Shape
from landlens.infrastructure.analysis_client import AnalysisClient
from landlens.infrastructure.external_api_client import ExternalAPIClient


# ============================================================
# Sample Shape Fixtures
# ============================================================

@pytest.fixture
def square_shape() -> Shape:
    """A 0.01° square near the equator, corners (0, 0) and (0.01, 0.01)."""
    return Shape.polygon(
        [(0.0, 0.0), (0.01, 0.0), (0.01, 0.01), (0.0, 0.01)],
        id="square",
    )


@pytest.fixture
def triangle_shape() -> Shape:
    return Shape.triangle((9.59, 76.52), (9.60, 76.52), (9.60, 76.53), id="triangle")


@pytest.fixture
def circle_shape() -> Shape:
    return Shape.circle((9.5916, 76.5222), 500, id="circle")


# ============================================================
# Sample Source Data Fixtures
# ============================================================

def way(osm_id: int, tags: dict, ring: list[tuple[float, float]]) -> dict:
    """Build an Overpass ``out geom`` way from (lat, lon) points."""
    return {
        "type": "way",
        "id": osm_id,
        "tags": tags,
        "geometry": [{"lat": lat, "lon": lon} for lat, lon in ring],
    }


@pytest.fixture
def overlapping_building() -> dict:
    """Building covering the north-east quarter of square_shape and beyond."""
    return way(
        101,
        {"building": "yes", "landuse": "residential"},
        [(0.005, 0.005), (0.015, 0.005), (0.015, 0.015), (0.005, 0.015), (0.005, 0.005)],
    )


@pytest.fixture
def overlapping_park() -> dict:
    return way(
        102,
        {"leisure": "park"},
        [(-0.005, -0.005), (0.005, -0.005), (0.005, 0.005), (-0.005, 0.005)],
    )


@pytest.fixture
def distant_water() -> dict:
    return way(
        103,
        {"natural": "water"},
        [(1.0, 1.0), (1.01, 1.0), (1.01, 1.01), (1.0, 1.01)],
    )


@pytest.fixture
def soil_document() -> dict:
    return {
        "type": "Feature",
        "properties": {"layers": [{"name": "phh2o", "depths": []}]},
    }


@pytest.fixture
def weather_document() -> dict:
    return {
        "type": "Feature",
        "properties": {"parameter": {"T2M": {"20240301": 27.1}}},
    }


# ============================================================
# Mock API Client Fixtures
# ============================================================

@pytest.fixture
def mock_api_client(soil_document, weather_document):
    """Create a mock external API client with empty feature results."""
    mock_client = AsyncMock(spec=ExternalAPIClient)
    mock_client.query_features.return_value = []
    mock_client.get_soil_properties.return_value = soil_document
    mock_client.get_weather_history.return_value = weather_document
    return mock_client


@pytest.fixture
def mock_analysis_client():
    """Create a mock language-model client."""
    mock_client = AsyncMock(spec=AnalysisClient)
    mock_client.summarize_dataset.return_value = '{"suitability_score": 72}'
    mock_client.ask.return_value = "Hello from the assistant"
    return mock_client


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client with a fresh session registry."""
    session_module._registry = None
    yield TestClient(app)
    app.dependency_overrides.clear()
    session_module._registry = None

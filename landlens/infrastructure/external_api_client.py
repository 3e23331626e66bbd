"""
Infrastructure layer: clients for the feature, soil and weather services.

These calls are never retried: a failure surfaces once, as an
ExternalAPIError, and the caller decides how to record it.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from landlens.config import settings
from landlens.infrastructure.api_constants import (
    APIConstants,
    PowerEndpoints,
    SoilGridsEndpoints,
    SoilSelectors,
    WeatherSelectors,
)

logger = logging.getLogger(__name__)


class ExternalAPIError(Exception):
    """Custom exception for external API errors."""

    def __init__(self, message: str, status_code: int = APIConstants.TRANSPORT_ERROR_STATUS):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ExternalAPIClient:
    """
    Client for the Overpass, SoilGrids and NASA POWER services.

    All three services are read-only; one shared httpx client is used for
    every call.
    """

    def __init__(self):
        """Initialize the API client with configuration."""
        self.overpass_url = settings.overpass_url
        self.soilgrids_base_url = settings.soilgrids_base_url.rstrip("/")
        self.power_base_url = settings.power_base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            headers={"accept": APIConstants.CONTENT_TYPE_JSON},
            timeout=settings.http_timeout,
        )

    async def __aenter__(self) -> "ExternalAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def _make_request(
        self,
        method: str,
        url: str,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Make an HTTP request and decode the JSON body.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Absolute endpoint URL
            **kwargs: Additional arguments for the request

        Returns:
            Decoded JSON object

        Raises:
            ExternalAPIError: On non-2xx status, transport failure, invalid JSON
                or a body that is not a JSON object
        """
        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ExternalAPIError(
                f"API request failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            )
        except httpx.RequestError as e:
            raise ExternalAPIError(f"API request error: {str(e)}")
        except ValueError as e:
            raise ExternalAPIError(f"API returned invalid JSON: {str(e)}")

        if not isinstance(data, dict):
            raise ExternalAPIError(
                f"API returned unexpected document: expected an object, got {type(data).__name__}"
            )
        return data

    async def query_features(self, query: str) -> List[Dict[str, Any]]:
        """
        Run an Overpass QL query.

        Args:
            query: Overpass QL text

        Returns:
            List of element documents (may be empty)

        Raises:
            ExternalAPIError: If the request fails
        """
        data = await self._make_request("POST", self.overpass_url, data={"data": query})
        elements = data.get("elements") or []
        if not isinstance(elements, list):
            raise ExternalAPIError(
                f"API returned unexpected document: elements is {type(elements).__name__}"
            )
        elements = [e for e in elements if isinstance(e, dict)]
        logger.debug(f"Overpass returned {len(elements)} elements")
        return elements

    async def get_soil_properties(self, lat: float, lon: float) -> Dict[str, Any]:
        """
        Fetch soil properties at a point.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees

        Returns:
            SoilGrids properties document

        Raises:
            ExternalAPIError: If the request fails
        """
        params: list[tuple[str, Any]] = [("lat", lat), ("lon", lon)]
        params += [("property", p) for p in SoilSelectors.PROPERTIES]
        params += [("depth", d) for d in SoilSelectors.DEPTHS]
        params += [("value", v) for v in SoilSelectors.VALUES]
        return await self._make_request(
            "GET",
            f"{self.soilgrids_base_url}{SoilGridsEndpoints.PROPERTIES_QUERY}",
            params=params,
        )

    async def get_weather_history(
        self,
        lat: float,
        lon: float,
        start: str,
        end: str,
    ) -> Dict[str, Any]:
        """
        Fetch daily weather parameters at a point over a date window.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees
            start: First day, YYYYMMDD
            end: Last day, YYYYMMDD (inclusive)

        Returns:
            NASA POWER point document

        Raises:
            ExternalAPIError: If the request fails
        """
        params = {
            "parameters": ",".join(WeatherSelectors.PARAMETERS),
            "community": WeatherSelectors.COMMUNITY,
            "longitude": lon,
            "latitude": lat,
            "start": start,
            "end": end,
            "format": WeatherSelectors.FORMAT,
        }
        return await self._make_request(
            "GET",
            f"{self.power_base_url}{PowerEndpoints.DAILY_POINT}",
            params=params,
        )


# Singleton instance
_api_client: Optional[ExternalAPIClient] = None


def get_api_client() -> ExternalAPIClient:
    """
    Get or create the singleton API client instance.

    Returns:
        ExternalAPIClient instance
    """
    global _api_client
    if _api_client is None:
        _api_client = ExternalAPIClient()
    return _api_client

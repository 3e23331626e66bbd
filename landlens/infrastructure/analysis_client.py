"""
Infrastructure layer: language-model client with retry logic.
"""
import json
import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from landlens.config import settings
from landlens.infrastructure.api_constants import APIConstants, GeminiEndpoints
from landlens.infrastructure.external_api_client import ExternalAPIError

logger = logging.getLogger(__name__)


ANALYSIS_INSTRUCTIONS = """You are a land-use and environmental analyst.
You receive a JSON dataset describing one or more map areas drawn by a user.
For each area it lists OpenStreetMap features clipped to the area (category,
tags, clipped area in m²) and an environmental sample grid with soil
properties (SoilGrids) and 30 days of daily weather (NASA POWER). Fields set
to {"error": ...} are missing data, not zero values.

Answer with a single JSON object and nothing else, using this schema:
{
  "suitability_score": <number 0-100>,
  "risks": [<string>, ...],
  "recommendations": [<string>, ...],
  "metrics": {<metric name>: <number or string>, ...},
  "data_completeness": <number 0-100>,
  "dashboard_summary": <short paragraph>
}"""


class _RetryableAnalysisError(Exception):
    """Server-side or transport failure worth retrying."""
    pass


class AnalysisClient:
    """
    Client for the Gemini generateContent API.
    Implements retry logic with exponential backoff on 5xx and transport errors.
    """

    def __init__(self):
        """Initialize the client with configuration."""
        self.base_url = settings.gemini_base_url.rstrip("/")
        self.api_key = settings.gemini_api_key
        self.model = settings.gemini_model
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": APIConstants.CONTENT_TYPE_JSON},
            timeout=APIConstants.LONG_TIMEOUT,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type(_RetryableAnalysisError),
        reraise=True,
    )
    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self.client.post(
                GeminiEndpoints.generate_content(self.model),
                params={"key": self.api_key},
                json=payload,
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code >= 500:
                raise _RetryableAnalysisError(
                    f"API request failed: {e.response.status_code} - {e.response.text}"
                ) from e
            raise ExternalAPIError(
                f"API request failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            )
        except httpx.RequestError as e:
            raise _RetryableAnalysisError(f"API request error: {str(e)}") from e
        except ValueError as e:
            raise ExternalAPIError(f"API returned invalid JSON: {str(e)}")

    async def generate(self, prompt: str) -> str:
        """
        Send a prompt and return the model's text answer.

        Args:
            prompt: Full prompt text

        Returns:
            Text of the first candidate

        Raises:
            ExternalAPIError: If the request fails after retries or the
                response has no text
        """
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            data = await self._post(payload)
        except _RetryableAnalysisError as e:
            raise ExternalAPIError(str(e)) from e

        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise ExternalAPIError("Invalid response structure from API.")

    async def summarize_dataset(self, dataset: Dict[str, Any]) -> str:
        """
        Ask the model to summarize an analysis dataset.

        Args:
            dataset: JSON-serializable analysis dataset

        Returns:
            Raw model text (expected, not guaranteed, to be JSON)
        """
        prompt = (
            f"{ANALYSIS_INSTRUCTIONS}\n\nDATASET:\n"
            f"{json.dumps(dataset, default=str)}"
        )
        logger.info(f"Requesting analysis summary ({len(prompt)} prompt chars)")
        return await self.generate(prompt)

    async def ask(self, query: str) -> str:
        """Free-form chat question."""
        return await self.generate(query)


# Singleton instance
_analysis_client: Optional[AnalysisClient] = None


def get_analysis_client() -> AnalysisClient:
    """
    Get or create the singleton analysis client instance.

    Returns:
        AnalysisClient instance
    """
    global _analysis_client
    if _analysis_client is None:
        _analysis_client = AnalysisClient()
    return _analysis_client

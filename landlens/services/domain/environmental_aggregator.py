"""
Domain service: grid-based soil and weather sampling for a shape.

Every sample point queries the soil and weather services concurrently. A
failed request is recorded inline as ``{"error": message}`` on that point;
it never aborts the point or the dataset.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Optional

from landlens.config import settings
from landlens.domain.models import (
    Coordinates,
    EnvironmentalDataset,
    SamplePoint,
    SampleRecord,
    Shape,
    TimeRange,
)
from landlens.infrastructure.api_constants import WeatherSelectors
from landlens.infrastructure.external_api_client import (
    ExternalAPIClient,
    ExternalAPIError,
)
from landlens.utils.geometry import bounding_box
from landlens.utils.sampling_grid import build_grid, validate_grid_size

logger = logging.getLogger(__name__)


def time_window(now: datetime, days: int = None) -> TimeRange:
    """
    Trailing date window ending on ``now``'s calendar date.

    Args:
        now: Collection time
        days: Window length in days (defaults to settings)

    Returns:
        TimeRange with YYYYMMDD start and end
    """
    days = days or settings.climate_window_days
    start = now - timedelta(days=days)
    return TimeRange(
        start=start.strftime(WeatherSelectors.DATE_FORMAT),
        end=now.strftime(WeatherSelectors.DATE_FORMAT),
    )


async def _capture(label: str, request: Awaitable[dict[str, Any]]) -> dict[str, Any]:
    try:
        return await request
    except ExternalAPIError as e:
        logger.warning(f"{label} failed: {e.message}")
        return {"error": e.message}


class EnvironmentalAggregator:
    """
    Domain service collecting an environmental dataset per shape.
    """

    def __init__(
        self,
        api_client: ExternalAPIClient,
        default_grid_size: Optional[int] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            api_client: Client used for soil and weather requests
            default_grid_size: Grid size used when a call does not pass one
        """
        self.api_client = api_client
        self.default_grid_size = validate_grid_size(
            default_grid_size if default_grid_size is not None else settings.grid_size
        )

    async def collect(
        self,
        shape: Shape,
        grid_size: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> EnvironmentalDataset:
        """
        Sample soil and weather over a shape's bounding box.

        Args:
            shape: User shape
            grid_size: Points per side (>= 2, defaults to default_grid_size)
            now: Collection time (defaults to current UTC time)

        Returns:
            EnvironmentalDataset with samples in grid order

        Raises:
            ValueError: If grid_size is below 2
        """
        grid_size = validate_grid_size(
            grid_size if grid_size is not None else self.default_grid_size
        )
        now = now or datetime.now(timezone.utc)

        box = bounding_box(shape)
        window = time_window(now)
        points = build_grid(box, grid_size)

        logger.info(
            f"Shape {shape.id}: sampling {len(points)} points, "
            f"window {window.start}-{window.end}"
        )

        samples = await asyncio.gather(*(self._sample_point(p, window) for p in points))

        soil_failures = sum(1 for s in samples if s.soil_failed)
        weather_failures = sum(1 for s in samples if s.weather_failed)
        if soil_failures or weather_failures:
            logger.warning(
                f"Shape {shape.id}: {soil_failures} soil and {weather_failures} "
                f"weather failures out of {len(samples)} points"
            )

        return EnvironmentalDataset(
            bounding_box=box,
            grid_size=grid_size,
            total_points=len(points),
            time_range=window,
            collected_at=now,
            samples=sorted(samples, key=lambda s: s.index),
        )

    async def _sample_point(self, point: SamplePoint, window: TimeRange) -> SampleRecord:
        soil, weather = await asyncio.gather(
            _capture(
                f"Soil request at point {point.index}",
                self.api_client.get_soil_properties(point.lat, point.lon),
            ),
            _capture(
                f"Weather request at point {point.index}",
                self.api_client.get_weather_history(
                    point.lat, point.lon, window.start, window.end
                ),
            ),
        )
        return SampleRecord(
            index=point.index,
            coordinates=Coordinates(lat=point.lat, lon=point.lon),
            soil=soil,
            weather=weather,
        )

    async def collect_many(
        self,
        shapes: list[Shape],
        grid_size: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[EnvironmentalDataset]:
        """Collect datasets for several shapes in parallel, in input order."""
        return list(await asyncio.gather(
            *(self.collect(shape, grid_size, now) for shape in shapes)
        ))

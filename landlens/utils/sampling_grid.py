"""
Sampling grid construction over a bounding box.
"""
import logging
from typing import Optional

import numpy as np

from landlens.config import settings
from landlens.domain.models import BoundingBox, SamplePoint

logger = logging.getLogger(__name__)

MIN_GRID_SIZE = 2


def validate_grid_size(grid_size: int, max_size: Optional[int] = None) -> int:
    """
    Reject grid sizes that cannot span a box or would flood the services.

    Args:
        grid_size: Requested points per side
        max_size: Upper bound (defaults to settings.max_grid_size)

    Raises:
        ValueError: If grid_size is not an integer in [2, max_size]
    """
    max_size = max_size if max_size is not None else settings.max_grid_size
    if int(grid_size) != grid_size or not MIN_GRID_SIZE <= grid_size <= max_size:
        raise ValueError(
            f"Grid size must be an integer between {MIN_GRID_SIZE} and {max_size}, got {grid_size}"
        )
    return int(grid_size)


def build_grid(bounding_box: BoundingBox, grid_size: int) -> list[SamplePoint]:
    """
    Lay an evenly spaced N x N grid of sample points over a bounding box.

    Points are row-major: row i runs south to north, column j runs west to
    east, and point (i, j) has index ``i * grid_size + j``. The four corner
    points coincide with the box corners.

    Args:
        bounding_box: Box to cover
        grid_size: Points per side (>= 2)

    Returns:
        List of grid_size * grid_size SamplePoint instances
    """
    grid_size = validate_grid_size(grid_size)

    # linspace pins both endpoints exactly
    lats = np.linspace(bounding_box.south, bounding_box.north, grid_size)
    lons = np.linspace(bounding_box.west, bounding_box.east, grid_size)

    points = [
        SamplePoint(index=i * grid_size + j, lat=float(lat), lon=float(lon))
        for i, lat in enumerate(lats)
        for j, lon in enumerate(lons)
    ]
    logger.debug(f"Built {grid_size}x{grid_size} grid over {bounding_box}")
    return points

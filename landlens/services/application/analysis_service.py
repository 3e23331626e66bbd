"""
Application service: Orchestration layer for the analyze operation.
"""
import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

from landlens.domain.models import (
    AnalysisReport,
    AnalysisSummary,
    Shape,
    ShapeAnalysis,
)
from landlens.infrastructure.analysis_client import AnalysisClient
from landlens.infrastructure.external_api_client import ExternalAPIError
from landlens.services.domain.environmental_aggregator import EnvironmentalAggregator
from landlens.services.domain.intersection_engine import (
    FeatureIntersectionEngine,
    any_features_found,
)
from landlens.utils.sampling_grid import validate_grid_size

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


def parse_structured_summary(text: Optional[str]) -> Optional[dict[str, Any]]:
    """
    Best-effort decode of a model answer as a JSON object.

    A surrounding Markdown code fence is ignored. The schema is not
    validated.

    Args:
        text: Raw model text

    Returns:
        The decoded object, or None if the text is not a JSON object
    """
    if not text:
        return None
    match = _CODE_FENCE.match(text)
    candidate = match.group(1) if match else text
    try:
        decoded = json.loads(candidate)
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None


class AnalysisService:
    """
    Application service for the analyze operation.

    Orchestrates, per shape and in parallel, the feature query with its
    intersection and the environmental sampling, then optionally hands the
    joined report to the language model. No business logic here, only
    coordination between the domain services and infrastructure.
    """

    def __init__(
        self,
        engine: FeatureIntersectionEngine,
        aggregator: EnvironmentalAggregator,
        analysis_client: AnalysisClient,
    ):
        """
        Initialize the service with dependencies.

        Args:
            engine: Feature query and intersection engine
            aggregator: Environmental sampling aggregator
            analysis_client: Language-model client for summaries
        """
        self.engine = engine
        self.aggregator = aggregator
        self.analysis_client = analysis_client

    def validate_request(
        self,
        shapes: list[Shape],
        grid_size: Optional[int] = None,
    ) -> int:
        """
        Check an analyze request without touching the network.

        Args:
            shapes: Shapes to analyze
            grid_size: Requested points per side, or None for the default

        Returns:
            The effective grid size

        Raises:
            ValueError: If there are no shapes or the grid size is out of range
        """
        if not shapes:
            raise ValueError("Nothing to analyze: draw at least one shape first")
        return validate_grid_size(
            grid_size if grid_size is not None else self.aggregator.default_grid_size
        )

    async def analyze(
        self,
        shapes: list[Shape],
        grid_size: Optional[int] = None,
        summarize: bool = False,
        session_id: Optional[str] = None,
    ) -> AnalysisReport:
        """
        Analyze every shape and join the results into one report.

        This method orchestrates:
        1. Input validation (before any network call)
        2. Feature query/clip for all shapes in parallel with environmental
           sampling for all shapes
        3. Joining both per shape and the "features found" flag
        4. Optionally, the language-model summary

        Args:
            shapes: Shapes to analyze
            grid_size: Sample points per bounding-box side
            summarize: Whether to request a language-model summary
            session_id: Owning session, recorded on the report

        Returns:
            AnalysisReport with one ShapeAnalysis per shape, in input order

        Raises:
            ValueError: If there are no shapes or grid_size is out of range
        """
        grid_size = self.validate_request(shapes, grid_size)

        now = datetime.now(timezone.utc)
        logger.info(f"Analyzing {len(shapes)} shapes with a {grid_size}x{grid_size} grid")

        outcomes, datasets = await asyncio.gather(
            self.engine.query_shapes(shapes),
            self.aggregator.collect_many(shapes, grid_size, now),
        )

        report = AnalysisReport(
            session_id=session_id,
            generated_at=now,
            grid_size=grid_size,
            features_found=any_features_found(outcomes),
            shapes=[
                ShapeAnalysis(
                    shape_id=outcome.shape_id,
                    features=outcome.features,
                    feature_error=outcome.error,
                    environment=dataset,
                )
                for outcome, dataset in zip(outcomes, datasets)
            ],
        )

        failed = [o.shape_id for o in outcomes if not o.succeeded]
        if failed:
            logger.warning(f"Partial analysis: feature query failed for shapes {failed}")
        if not report.features_found:
            logger.info("No analyzable features found")

        if summarize:
            report.summary = await self.summarize(report)

        return report

    async def summarize(self, report: AnalysisReport) -> AnalysisSummary:
        """
        Ask the language model for a summary of a report.

        Transport failures are returned as an error summary. A non-JSON
        answer is kept as raw text without structured fields.

        Args:
            report: Completed analysis report

        Returns:
            AnalysisSummary
        """
        dataset = report.model_dump(mode="json", by_alias=True, exclude={"summary"})
        try:
            text = await self.analysis_client.summarize_dataset(dataset)
        except ExternalAPIError as e:
            logger.error(f"Analysis summary failed: {e.message}")
            return AnalysisSummary(error=e.message)

        structured = parse_structured_summary(text)
        if structured is None:
            logger.info("Analysis summary is not JSON, keeping raw text")
        return AnalysisSummary(text=text, structured=structured)

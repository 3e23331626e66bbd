"""
Dependency injection for FastAPI.
"""
from typing import Annotated
from fastapi import Depends, HTTPException, Path

from landlens.infrastructure.analysis_client import (
    AnalysisClient,
    get_analysis_client,
)
from landlens.infrastructure.external_api_client import (
    ExternalAPIClient,
    get_api_client,
)
from landlens.services.application.analysis_service import AnalysisService
from landlens.services.application.session import (
    AnnotationSession,
    SessionRegistry,
    get_session_registry,
)
from landlens.services.domain.environmental_aggregator import EnvironmentalAggregator
from landlens.services.domain.intersection_engine import FeatureIntersectionEngine


def get_intersection_engine(
    api_client: Annotated[ExternalAPIClient, Depends(get_api_client)],
) -> FeatureIntersectionEngine:
    """
    Dependency factory for FeatureIntersectionEngine.

    Args:
        api_client: External API client (injected)

    Returns:
        FeatureIntersectionEngine instance
    """
    return FeatureIntersectionEngine(api_client=api_client)


def get_environmental_aggregator(
    api_client: Annotated[ExternalAPIClient, Depends(get_api_client)],
) -> EnvironmentalAggregator:
    """
    Dependency factory for EnvironmentalAggregator.

    Args:
        api_client: External API client (injected)

    Returns:
        EnvironmentalAggregator instance
    """
    return EnvironmentalAggregator(api_client=api_client)


def get_analysis_service(
    engine: Annotated[FeatureIntersectionEngine, Depends(get_intersection_engine)],
    aggregator: Annotated[EnvironmentalAggregator, Depends(get_environmental_aggregator)],
    analysis_client: Annotated[AnalysisClient, Depends(get_analysis_client)],
) -> AnalysisService:
    """
    Dependency factory for AnalysisService.

    Args:
        engine: Feature intersection engine (injected)
        aggregator: Environmental aggregator (injected)
        analysis_client: Language-model client (injected)

    Returns:
        AnalysisService instance
    """
    return AnalysisService(
        engine=engine,
        aggregator=aggregator,
        analysis_client=analysis_client,
    )


def get_session(
    session_id: Annotated[str, Path(description="Session identifier")],
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
) -> AnnotationSession:
    """
    Resolve the session named in the path.

    Raises:
        HTTPException: 404 if the session does not exist
    """
    try:
        return registry.get(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")


# Type aliases for cleaner route signatures
AnalysisServiceDep = Annotated[AnalysisService, Depends(get_analysis_service)]
AnalysisClientDep = Annotated[AnalysisClient, Depends(get_analysis_client)]
SessionRegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]
SessionDep = Annotated[AnnotationSession, Depends(get_session)]

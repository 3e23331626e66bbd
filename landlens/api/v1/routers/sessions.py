"""
API router for annotation sessions: shapes, history and analysis.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Path, Query, Request, status
from fastapi.responses import Response

from landlens.api.dependencies import (
    AnalysisServiceDep,
    SessionDep,
    SessionRegistryDep,
)
from landlens.api.v1.models.requests import ShapeCreateRequest, ShapeEditRequest
from landlens.api.v1.models.responses import HistoryResponse, SessionResponse
from landlens.domain.models import AnalysisReport, Shape
from landlens.middleware.rate_limiter import ANALYZE_RATE_LIMIT, limiter
from landlens.services.application.session import AnnotationSession


router = APIRouter(
    prefix="/sessions",
    tags=["sessions"],
)

ShapeIdPath = Annotated[str, Path(description="Shape identifier")]


def _session_response(session: AnnotationSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        shapes=session.shapes(),
        toolbar=session.toolbar_state(),
        has_analysis=session.last_report is not None,
    )


def _shape_not_found(shape_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Shape '{shape_id}' not found")


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a session",
)
async def create_session(registry: SessionRegistryDep) -> SessionResponse:
    """Create an empty annotation session."""
    return _session_response(registry.create())


@router.get(
    "/{session_id}",
    response_model=SessionResponse,
    summary="Get session state",
    responses={404: {"description": "Session not found"}},
)
async def get_session_state(session: SessionDep) -> SessionResponse:
    """Return the active shapes and toolbar state."""
    return _session_response(session)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="End a session",
    responses={404: {"description": "Session not found"}},
)
async def delete_session(session: SessionDep, registry: SessionRegistryDep) -> Response:
    """Drop a session with all its shapes and history."""
    registry.delete(session.session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{session_id}/shapes",
    response_model=Shape,
    status_code=status.HTTP_201_CREATED,
    summary="Add a drawn shape",
    responses={
        400: {"description": "Invalid shape geometry"},
        404: {"description": "Session not found"},
    },
)
async def draw_shape(body: ShapeCreateRequest, session: SessionDep) -> Shape:
    """
    Add a newly drawn shape and record it in the history.

    Polygons and freehand outlines need at least 3 vertices; circles need
    a center and a positive radius.
    """
    try:
        shape = body.to_shape()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.draw(shape)


@router.put(
    "/{session_id}/shapes/{shape_id}",
    response_model=Shape,
    summary="Edit a shape's vertices",
    responses={
        400: {"description": "Invalid vertices or shape is a circle"},
        404: {"description": "Session or shape not found"},
    },
)
async def edit_shape(
    shape_id: ShapeIdPath,
    body: ShapeEditRequest,
    session: SessionDep,
) -> Shape:
    """Replace a shape's vertex ring; the previous ring is kept for undo."""
    try:
        return session.edit(shape_id, body.vertices)
    except KeyError:
        raise _shape_not_found(shape_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/{session_id}/shapes/{shape_id}",
    response_model=SessionResponse,
    summary="Delete a shape",
    responses={404: {"description": "Session or shape not found"}},
)
async def delete_shape(shape_id: ShapeIdPath, session: SessionDep) -> SessionResponse:
    """Remove one shape; undo restores it."""
    try:
        session.delete(shape_id)
    except KeyError:
        raise _shape_not_found(shape_id)
    return _session_response(session)


@router.delete(
    "/{session_id}/shapes",
    response_model=SessionResponse,
    summary="Clear all shapes",
    responses={404: {"description": "Session not found"}},
)
async def clear_shapes(session: SessionDep) -> SessionResponse:
    """Remove every shape as a single undoable step."""
    session.clear_all()
    return _session_response(session)


@router.post(
    "/{session_id}/undo",
    response_model=HistoryResponse,
    summary="Undo the last change",
    responses={404: {"description": "Session not found"}},
)
async def undo(session: SessionDep) -> HistoryResponse:
    """Revert the most recent shape change, if any."""
    entry = session.undo()
    return HistoryResponse(
        **_session_response(session).model_dump(),
        applied=entry.action.value if entry else None,
    )


@router.post(
    "/{session_id}/redo",
    response_model=HistoryResponse,
    summary="Redo the last undone change",
    responses={404: {"description": "Session not found"}},
)
async def redo(session: SessionDep) -> HistoryResponse:
    """
    Re-apply the most recently undone change, if any.

    Redoing an edit leaves the shape as it is.
    """
    entry = session.redo()
    return HistoryResponse(
        **_session_response(session).model_dump(),
        applied=entry.action.value if entry else None,
    )


@router.post(
    "/{session_id}/analyze",
    response_model=AnalysisReport,
    summary="Analyze all shapes",
    description="""
    Build the environmental and land-use profile of every shape in the session.

    For each shape, in parallel:
    1. Queries OpenStreetMap features and clips them to the shape
    2. Samples soil and 30-day weather on a grid over the shape's bounding box

    Failed sources are reported inline on the affected shape or sample point;
    the analysis itself always completes. With `summarize=true` the joined
    report is also summarized by the language model.
    """,
    responses={
        400: {"description": "Session has no shapes or grid size is out of range"},
        404: {"description": "Session not found"},
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit(ANALYZE_RATE_LIMIT)
async def analyze_session(
    request: Request,
    session: SessionDep,
    analysis_service: AnalysisServiceDep,
    grid_size: Annotated[Optional[int], Query(description="Sample points per bounding-box side")] = None,
    summarize: Annotated[bool, Query(description="Request a language-model summary")] = False,
) -> AnalysisReport:
    """
    Run the analysis for a session.

    Args:
        request: Incoming request (used by the rate limiter)
        session: Session (injected)
        analysis_service: Analysis service (injected)
        grid_size: Sample points per side, between 2 and settings.max_grid_size
        summarize: Whether to request a summary

    Returns:
        AnalysisReport

    Raises:
        HTTPException: 400 on empty session or invalid grid size
    """
    try:
        grid_size = analysis_service.validate_request(session.shapes(), grid_size)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    shapes = session.begin_analysis()
    report = await analysis_service.analyze(
        shapes,
        grid_size=grid_size,
        summarize=summarize,
        session_id=session.session_id,
    )
    session.finish_analysis(report)
    return report


@router.get(
    "/{session_id}/analysis",
    response_model=AnalysisReport,
    summary="Get the last analysis",
    responses={404: {"description": "Session not found or not analyzed yet"}},
)
async def get_last_analysis(session: SessionDep) -> AnalysisReport:
    """Return the most recent analysis report of the session."""
    if session.last_report is None:
        raise HTTPException(status_code=404, detail="No analysis available for this session")
    return session.last_report

"""
Application service: per-session annotation context.

A session owns the shape collection, its history engine and the context of
the most recent analysis. Every shape mutation goes through the session so
that each one is recorded in the history atomically with the change.
"""
import logging
import uuid
from typing import Optional

from landlens.domain.models import AnalysisReport, LatLon, Shape, ToolbarState
from landlens.domain.shape_collection import ShapeCollection
from landlens.services.domain.history_engine import (
    HistoryAction,
    HistoryEngine,
    HistoryEntry,
)
from landlens.utils.geometry import bounding_box

logger = logging.getLogger(__name__)


class AnnotationSession:
    """
    Shapes, history and analysis context for one user session.
    """

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or uuid.uuid4().hex
        self.collection = ShapeCollection()
        self.history = HistoryEngine(self.collection)
        self.last_report: Optional[AnalysisReport] = None
        self._analyzed_shapes: list[Shape] = []
        self.history.add_change_listener(self._on_history_change)

    def shapes(self) -> list[Shape]:
        return self.collection.shapes()

    def toolbar_state(self) -> ToolbarState:
        """Affordance state derived from collection and stack emptiness."""
        has_content = self.collection.has_content
        return ToolbarState(
            analyze_enabled=has_content,
            clear_enabled=has_content,
            undo_enabled=self.history.can_undo,
            redo_enabled=self.history.can_redo,
        )

    def draw(self, shape: Shape) -> Shape:
        """
        Insert a newly drawn shape and record it.

        Args:
            shape: Shape from the drawing tool

        Returns:
            The inserted shape
        """
        self.collection.add(shape)
        self.history.commit(HistoryAction.ADD, [shape])

        corners = bounding_box(shape).corners
        logger.info(
            f"Session {self.session_id}: drew {shape.kind.value} {shape.id}, bounds "
            + ", ".join(f"{name}=({lat:.6f}, {lon:.6f})" for name, (lat, lon) in corners.items())
        )
        return shape

    def delete(self, shape_id: str) -> Shape:
        """
        Remove one shape and record it.

        Raises:
            KeyError: If the shape is not in the session
        """
        shape = self.collection.remove(shape_id)
        self.history.commit(HistoryAction.REMOVE, [shape])
        logger.info(f"Session {self.session_id}: deleted shape {shape_id}")
        return shape

    def edit(self, shape_id: str, vertices: list[LatLon]) -> Shape:
        """
        Replace a shape's vertex ring and record the prior ring.

        Raises:
            KeyError: If the shape is not in the session
            ValueError: If the shape is a circle or the new ring is invalid
        """
        current = self.collection.get(shape_id)
        if current is None:
            raise KeyError(shape_id)
        edited = current.with_vertices(vertices)
        self.collection.replace(edited)
        self.history.commit(HistoryAction.EDIT, [edited], prior_vertices=current.vertices)
        logger.info(f"Session {self.session_id}: edited shape {shape_id}")
        return edited

    def clear_all(self) -> list[Shape]:
        """
        Remove every shape as one undoable step.

        Returns:
            The removed shapes (empty when there was nothing to clear)
        """
        if not self.collection.has_content:
            return []
        removed = self.collection.clear()
        self.history.commit(HistoryAction.REMOVE, removed)
        logger.info(f"Session {self.session_id}: cleared {len(removed)} shapes")
        return removed

    def undo(self) -> Optional[HistoryEntry]:
        return self.history.undo()

    def redo(self) -> Optional[HistoryEntry]:
        return self.history.redo()

    def begin_analysis(self) -> list[Shape]:
        """Start a fresh analysis context and snapshot the shapes to analyze."""
        self.last_report = None
        self._analyzed_shapes = self.collection.shapes()
        return list(self._analyzed_shapes)

    def finish_analysis(self, report: AnalysisReport) -> bool:
        """
        Keep a finished report as the session's analysis context.

        The report is discarded when any analyzed shape was removed or
        changed while the analysis ran.

        Returns:
            True if the report was stored
        """
        snapshot, self._analyzed_shapes = self._analyzed_shapes, []
        analyzed_ids = {s.id for s in snapshot}
        current = all(self.collection.get(s.id) == s for s in snapshot)
        if not current or any(a.shape_id not in analyzed_ids for a in report.shapes):
            logger.info(f"Session {self.session_id}: shapes changed during analysis, report discarded")
            return False
        self.last_report = report
        return True

    def _on_history_change(self) -> None:
        # Analysis layers go away with the last shape
        if not self.collection.has_content:
            self.last_report = None


class SessionRegistry:
    """In-memory store of live sessions."""

    def __init__(self):
        self._sessions: dict[str, AnnotationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> AnnotationSession:
        session = AnnotationSession()
        self._sessions[session.session_id] = session
        logger.info(f"Created session {session.session_id}")
        return session

    def get(self, session_id: str) -> AnnotationSession:
        """
        Look up a session.

        Raises:
            KeyError: If the session does not exist
        """
        return self._sessions[session_id]

    def delete(self, session_id: str) -> None:
        del self._sessions[session_id]
        logger.info(f"Deleted session {session_id}")


# Singleton instance
_registry: Optional[SessionRegistry] = None


def get_session_registry() -> SessionRegistry:
    """
    Get or create the singleton session registry.

    Returns:
        SessionRegistry instance
    """
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry

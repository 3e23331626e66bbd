"""
Domain service: undo/redo command log over a shape collection.

Each user mutation is recorded as a value object carrying full shape
snapshots, so undoing and redoing never depends on references into live
state. History is linear: committing a new entry discards the redo stack.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from landlens.domain.models import LatLon, Shape
from landlens.domain.shape_collection import ShapeCollection

logger = logging.getLogger(__name__)


class HistoryAction(str, Enum):
    """Kinds of recorded mutations."""
    ADD = "add"
    REMOVE = "remove"
    EDIT = "edit"


@dataclass(frozen=True)
class HistoryEntry:
    """
    One recorded mutation.

    For ADD and EDIT, ``shapes`` holds the shape as it is after the mutation.
    For REMOVE it holds every removed shape (several for a clear-all).
    ``prior_vertices`` is only set for EDIT.
    """
    action: HistoryAction
    shapes: tuple[Shape, ...]
    prior_vertices: Optional[tuple[LatLon, ...]] = None

    def __post_init__(self):
        if not self.shapes:
            raise ValueError("A history entry needs at least one shape")
        if self.action == HistoryAction.EDIT:
            if self.prior_vertices is None:
                raise ValueError("An edit entry needs the prior vertices")
            if len(self.shapes) != 1:
                raise ValueError("An edit entry covers exactly one shape")
        elif self.prior_vertices is not None:
            raise ValueError(f"Only edit entries carry prior vertices, got {self.action.value}")


ChangeListener = Callable[[], None]
RestoreListener = Callable[[Shape], None]


class HistoryEngine:
    """
    Undo and redo stacks over a ShapeCollection.

    Change listeners fire after every commit, undo and redo so dependent
    state (toolbar affordances) can be recomputed. Restore listeners fire
    for every shape a removal-undo puts back, so interaction bindings can
    be reattached.
    """

    def __init__(self, collection: ShapeCollection):
        self.collection = collection
        self._undo: list[HistoryEntry] = []
        self._redo: list[HistoryEntry] = []
        self._change_listeners: list[ChangeListener] = []
        self._restore_listeners: list[RestoreListener] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._undo)

    @property
    def redo_entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._redo)

    def add_change_listener(self, listener: ChangeListener) -> None:
        self._change_listeners.append(listener)

    def add_restore_listener(self, listener: RestoreListener) -> None:
        self._restore_listeners.append(listener)

    def commit(
        self,
        action: HistoryAction,
        shapes: Iterable[Shape],
        prior_vertices: Optional[Iterable[LatLon]] = None,
    ) -> HistoryEntry:
        """
        Record a mutation that has just been applied to the collection.

        Args:
            action: Kind of mutation
            shapes: Shape snapshot(s) for the entry
            prior_vertices: Vertex ring before an edit

        Returns:
            The committed entry
        """
        entry = HistoryEntry(
            action=action,
            shapes=tuple(shapes),
            prior_vertices=tuple(prior_vertices) if prior_vertices is not None else None,
        )
        self._undo.append(entry)
        self._redo.clear()
        logger.debug(f"Committed {action.value} of {len(entry.shapes)} shape(s)")
        self._notify_change()
        return entry

    def undo(self) -> Optional[HistoryEntry]:
        """Revert the most recent entry. Returns None when there is nothing to undo."""
        if not self._undo:
            return None

        entry = self._undo.pop()
        if entry.action == HistoryAction.ADD:
            for shape in entry.shapes:
                self.collection.remove(shape.id)
        elif entry.action == HistoryAction.REMOVE:
            for shape in entry.shapes:
                self.collection.add(shape)
                self._notify_restore(shape)
        elif entry.action == HistoryAction.EDIT:
            shape = entry.shapes[0]
            self.collection.replace(shape.with_vertices(list(entry.prior_vertices)))
        else:
            raise ValueError(f"Unknown history action: {entry.action}")

        self._redo.append(entry)
        logger.debug(f"Undid {entry.action.value}")
        self._notify_change()
        return entry

    def redo(self) -> Optional[HistoryEntry]:
        """
        Re-apply the most recently undone entry.

        Edit entries carry no forward payload, so redoing one only moves it
        back onto the undo stack and leaves the collection unchanged.
        """
        if not self._redo:
            return None

        entry = self._redo.pop()
        if entry.action == HistoryAction.ADD:
            for shape in entry.shapes:
                self.collection.add(shape)
        elif entry.action == HistoryAction.REMOVE:
            for shape in entry.shapes:
                self.collection.remove(shape.id)
        elif entry.action == HistoryAction.EDIT:
            pass
        else:
            raise ValueError(f"Unknown history action: {entry.action}")

        self._undo.append(entry)
        logger.debug(f"Redid {entry.action.value}")
        self._notify_change()
        return entry

    @staticmethod
    def replay(entries: Iterable[HistoryEntry]) -> ShapeCollection:
        """
        Rebuild a collection by applying entries forward from empty.

        Args:
            entries: History entries, oldest first

        Returns:
            The reconstructed ShapeCollection
        """
        collection = ShapeCollection()
        for entry in entries:
            if entry.action == HistoryAction.ADD:
                for shape in entry.shapes:
                    collection.add(shape)
            elif entry.action == HistoryAction.REMOVE:
                for shape in entry.shapes:
                    collection.remove(shape.id)
            elif entry.action == HistoryAction.EDIT:
                collection.replace(entry.shapes[0])
            else:
                raise ValueError(f"Unknown history action: {entry.action}")
        return collection

    def _notify_change(self) -> None:
        for listener in self._change_listeners:
            listener()

    def _notify_restore(self, shape: Shape) -> None:
        for listener in self._restore_listeners:
            listener(shape)

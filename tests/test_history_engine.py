"""
Unit tests for the history engine and annotation sessions.

Tests cover:
- Commit, undo and redo for add, remove and edit
- Clear-all as a single entry
- The edit redo asymmetry
- Replaying the undo stack reproduces the collection
- Toolbar state
"""
import random
from datetime import datetime, timezone

import pytest

from landlens.domain.models import AnalysisReport, Shape, ShapeAnalysis
from landlens.domain.shape_collection import ShapeCollection
from landlens.services.application.session import AnnotationSession, SessionRegistry
from landlens.services.domain.history_engine import (
    HistoryAction,
    HistoryEngine,
    HistoryEntry,
)


def _snapshot(collection: ShapeCollection) -> dict[str, Shape]:
    return {shape.id: shape for shape in collection}


def _report(*shape_ids: str) -> AnalysisReport:
    return AnalysisReport(
        generated_at=datetime(2024, 4, 1, tzinfo=timezone.utc),
        grid_size=2,
        features_found=False,
        shapes=[ShapeAnalysis(shape_id=shape_id) for shape_id in shape_ids],
    )


def _square(shape_id: str, offset: float = 0.0) -> Shape:
    return Shape.polygon(
        [(offset, offset), (offset + 1, offset), (offset + 1, offset + 1)],
        id=shape_id,
    )


# ============================================================
# Shape Collection Tests
# ============================================================

class TestShapeCollection:
    """Tests for the ordered shape collection."""

    def test_preserves_insertion_order(self):
        collection = ShapeCollection()
        for shape_id in ["c", "a", "b"]:
            collection.add(_square(shape_id))

        assert [s.id for s in collection] == ["c", "a", "b"]

    def test_rejects_duplicate_ids(self):
        collection = ShapeCollection()
        collection.add(_square("a"))

        with pytest.raises(ValueError, match="already"):
            collection.add(_square("a", offset=2))

    def test_replace_keeps_position(self):
        collection = ShapeCollection()
        collection.add(_square("a"))
        collection.add(_square("b"))

        collection.replace(_square("a", offset=5))

        assert [s.id for s in collection] == ["a", "b"]
        assert collection.get("a").vertices[0] == (5.0, 5.0)

    def test_has_content(self):
        collection = ShapeCollection()
        assert not collection.has_content
        collection.add(_square("a"))
        assert collection.has_content


# ============================================================
# History Entry Tests
# ============================================================

class TestHistoryEntry:
    """Tests for history entry validation."""

    def test_edit_requires_prior_vertices(self):
        with pytest.raises(ValueError, match="prior vertices"):
            HistoryEntry(action=HistoryAction.EDIT, shapes=(_square("a"),))

    def test_only_edit_carries_prior_vertices(self):
        with pytest.raises(ValueError, match="Only edit"):
            HistoryEntry(
                action=HistoryAction.ADD,
                shapes=(_square("a"),),
                prior_vertices=((0.0, 0.0), (1.0, 0.0), (1.0, 1.0)),
            )

    def test_requires_a_shape(self):
        with pytest.raises(ValueError):
            HistoryEntry(action=HistoryAction.REMOVE, shapes=())


# ============================================================
# Undo / Redo Tests
# ============================================================

class TestUndoRedo:
    """Tests for undo and redo over each action kind."""

    def test_undo_on_empty_stack_is_noop(self):
        session = AnnotationSession()

        assert session.undo() is None
        assert session.redo() is None
        assert len(session.collection) == 0

    def test_undo_add_removes_shape(self):
        session = AnnotationSession()
        session.draw(_square("a"))

        entry = session.undo()

        assert entry.action == HistoryAction.ADD
        assert "a" not in session.collection
        assert session.history.can_redo

    def test_undo_redo_add_is_noop_on_content(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        session.draw(_square("b", offset=3))
        before = _snapshot(session.collection)

        session.undo()
        session.redo()

        assert _snapshot(session.collection) == before

    def test_undo_remove_restores_exact_shape(self):
        session = AnnotationSession()
        original = session.draw(_square("a", offset=1.5))
        session.delete("a")

        session.undo()

        assert session.collection.get("a") == original

    def test_undo_remove_notifies_restore_listeners(self):
        session = AnnotationSession()
        restored = []
        session.history.add_restore_listener(restored.append)
        session.draw(_square("a"))
        session.delete("a")

        session.undo()

        assert [s.id for s in restored] == ["a"]

    def test_undo_redo_remove_is_noop_on_content(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        session.draw(_square("b", offset=3))
        session.delete("a")
        before = _snapshot(session.collection)

        session.undo()
        session.redo()

        assert _snapshot(session.collection) == before

    def test_undo_edit_restores_prior_vertices(self):
        session = AnnotationSession()
        original = session.draw(_square("a"))
        session.edit("a", [(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)])

        session.undo()

        assert session.collection.get("a").vertices == original.vertices

    def test_redo_edit_leaves_shape_unchanged(self):
        session = AnnotationSession()
        original = session.draw(_square("a"))
        session.edit("a", [(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)])
        session.undo()

        entry = session.redo()

        assert entry.action == HistoryAction.EDIT
        assert session.collection.get("a").vertices == original.vertices
        assert session.history.undo_entries[-1] is entry

    def test_new_commit_clears_redo_stack(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        session.undo()
        assert session.history.can_redo

        session.draw(_square("b"))

        assert not session.history.can_redo

    def test_clear_all_is_one_entry(self):
        session = AnnotationSession()
        for i in range(3):
            session.draw(_square(f"s{i}", offset=i))

        removed = session.clear_all()

        assert len(removed) == 3
        assert len(session.collection) == 0
        entry = session.history.undo_entries[-1]
        assert entry.action == HistoryAction.REMOVE
        assert len(entry.shapes) == 3

    def test_undo_clear_all_restores_every_shape(self):
        session = AnnotationSession()
        for i in range(3):
            session.draw(_square(f"s{i}", offset=i))
        before = _snapshot(session.collection)
        session.clear_all()

        session.undo()

        assert _snapshot(session.collection) == before

    def test_clear_all_on_empty_session_records_nothing(self):
        session = AnnotationSession()

        assert session.clear_all() == []
        assert not session.history.can_undo

    def test_change_listener_fires_on_every_operation(self):
        engine = HistoryEngine(ShapeCollection())
        calls = []
        engine.add_change_listener(lambda: calls.append(1))
        shape = _square("a")
        engine.collection.add(shape)

        engine.commit(HistoryAction.ADD, [shape])
        engine.undo()
        engine.redo()

        assert len(calls) == 3


# ============================================================
# Replay Invariant Tests
# ============================================================

class TestReplayInvariant:
    """Replaying the undo stack from empty reproduces the collection."""

    @pytest.mark.parametrize("seed", range(10))
    def test_replay_matches_collection_for_every_prefix(self, seed):
        rng = random.Random(seed)
        session = AnnotationSession()
        counter = 0

        for _ in range(40):
            ids = [s.id for s in session.collection]
            op = rng.choice(["draw", "draw", "delete", "edit", "clear"])

            if op == "draw" or not ids:
                counter += 1
                session.draw(_square(f"s{counter}", offset=rng.uniform(-10, 10)))
            elif op == "delete":
                session.delete(rng.choice(ids))
            elif op == "edit":
                base = rng.uniform(-10, 10)
                session.edit(
                    rng.choice(ids),
                    [(base, base), (base + 2, base), (base + 2, base + 3), (base, base + 1)],
                )
            else:
                session.clear_all()

            replayed = HistoryEngine.replay(session.history.undo_entries)
            assert _snapshot(replayed) == _snapshot(session.collection)

    def test_replay_after_undo(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        session.edit("a", [(0.0, 0.0), (3.0, 0.0), (3.0, 3.0)])
        session.edit("a", [(0.0, 0.0), (4.0, 0.0), (4.0, 4.0)])
        session.undo()

        replayed = HistoryEngine.replay(session.history.undo_entries)

        assert _snapshot(replayed) == _snapshot(session.collection)
        assert session.collection.get("a").vertices[1] == (3.0, 0.0)


# ============================================================
# Session Tests
# ============================================================

class TestAnnotationSession:
    """Tests for session-level operations and derived state."""

    def test_toolbar_disabled_when_empty(self):
        state = AnnotationSession().toolbar_state()

        assert not state.analyze_enabled
        assert not state.clear_enabled
        assert not state.undo_enabled
        assert not state.redo_enabled

    def test_toolbar_follows_history(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        assert session.toolbar_state().analyze_enabled
        assert session.toolbar_state().undo_enabled

        session.undo()
        state = session.toolbar_state()

        assert not state.analyze_enabled
        assert not state.clear_enabled
        assert not state.undo_enabled
        assert state.redo_enabled

    def test_delete_unknown_shape_raises(self):
        session = AnnotationSession()

        with pytest.raises(KeyError):
            session.delete("missing")
        assert not session.history.can_undo

    def test_edit_circle_rejected(self):
        session = AnnotationSession()
        session.draw(Shape.circle((10.0, 10.0), 100, id="c"))

        with pytest.raises(ValueError, match="Circles"):
            session.edit("c", [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)])
        assert len(session.history.undo_entries) == 1

    def test_edit_with_too_few_vertices_rejected(self):
        session = AnnotationSession()
        session.draw(_square("a"))

        with pytest.raises(ValueError):
            session.edit("a", [(0.0, 0.0), (1.0, 1.0)])
        assert len(session.history.undo_entries) == 1

    def test_emptying_collection_drops_last_report(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        session.last_report = object()

        session.undo()

        assert session.last_report is None

    def test_begin_analysis_resets_context(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        session.last_report = object()

        shapes = session.begin_analysis()

        assert session.last_report is None
        assert [s.id for s in shapes] == ["a"]

    def test_finish_analysis_stores_report(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        shapes = session.begin_analysis()
        report = _report(*[s.id for s in shapes])

        assert session.finish_analysis(report)
        assert session.last_report is report

    def test_report_discarded_when_cleared_during_analysis(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        session.begin_analysis()
        session.clear_all()

        assert not session.finish_analysis(_report("a"))
        assert session.last_report is None

    def test_report_discarded_when_edited_during_analysis(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        session.begin_analysis()
        session.edit("a", [(0.0, 0.0), (0.0, 2.0), (2.0, 2.0), (2.0, 0.0)])

        assert not session.finish_analysis(_report("a"))
        assert session.last_report is None

    def test_report_discarded_when_redrawn_during_analysis(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        session.begin_analysis()
        session.clear_all()
        session.draw(_square("b", offset=5.0))

        assert not session.finish_analysis(_report("a"))
        assert session.last_report is None

    def test_report_kept_when_shape_added_during_analysis(self):
        session = AnnotationSession()
        session.draw(_square("a"))
        session.begin_analysis()
        session.draw(_square("b", offset=5.0))

        assert session.finish_analysis(_report("a"))
        assert session.last_report.shapes[0].shape_id == "a"


class TestSessionRegistry:
    """Tests for the in-memory session registry."""

    def test_create_and_get(self):
        registry = SessionRegistry()
        session = registry.create()

        assert registry.get(session.session_id) is session
        assert len(registry) == 1

    def test_unknown_session_raises(self):
        with pytest.raises(KeyError):
            SessionRegistry().get("nope")

    def test_delete(self):
        registry = SessionRegistry()
        session = registry.create()

        registry.delete(session.session_id)

        assert len(registry) == 0

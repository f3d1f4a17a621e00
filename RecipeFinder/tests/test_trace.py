"""Tests for step trace recording and replay."""
from __future__ import annotations

import pytest

from RecipeFinder.catalog import DEFAULT_BASE_ELEMENTS, table_from_mapping
from RecipeFinder.graph import Combination, build_graph
from RecipeFinder.search import (
    ALGORITHMS,
    BidirectionalSearch,
    BreadthFirstSearch,
    get_strategy,
)
from RecipeFinder.trace import StepRecord, StepTrace, StepTraceRecorder

BASES = DEFAULT_BASE_ELEMENTS


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def graph():
    return build_graph(table_from_mapping({
        "Pressure": [["Air", "Air"]],
        "Energy": [["Air", "Fire"]],
        "Dust": [["Air", "Earth"]],
        "Wind": [["Air", "Energy"], ["Air", "Pressure"]],
        "Storm": [["Energy", "Wind"]],
    }))


@pytest.fixture
def dust_trace(graph) -> StepTrace:
    recorder = StepTraceRecorder()
    BreadthFirstSearch(graph, BASES, observer=recorder).run("Dust")
    return recorder.trace()


# ---------------------------------------------------------------------------
# Tests: Recorded content
# ---------------------------------------------------------------------------

class TestRecording:
    """Test what a breadth-first search records."""

    def test_initial_snapshot(self, dust_trace):
        """Step 0 holds the bases before anything is expanded."""
        first = dust_trace[0]
        assert first.index == 0
        assert first.element is None
        assert first.frontier == BASES
        assert dict(first.discovered) == {}
        assert not first.found_target

    def test_one_record_per_expansion(self, dust_trace):
        """Air and Earth are expanded after the initial snapshot."""
        assert [r.element for r in dust_trace] == [None, "Air", "Earth"]
        assert [r.index for r in dust_trace] == [0, 1, 2]

    def test_frontier_and_discoveries(self, dust_trace):
        """Each record shows the queue after the expansion."""
        air = dust_trace[1]
        assert air.frontier == ("Earth", "Fire", "Water", "Pressure")
        assert dict(air.discovered) == {"Pressure": Combination("Pressure", "Air", "Air")}

        earth = dust_trace[2]
        assert earth.found_target
        assert earth.discovered["Dust"] == Combination("Dust", "Air", "Earth")
        assert earth.seen == ("Air", "Earth", "Fire", "Water", "Pressure", "Dust")

    def test_snapshots_do_not_share_state(self, dust_trace):
        """Later discoveries never leak into earlier records."""
        assert "Dust" not in dust_trace[1].discovered

    def test_records_are_immutable(self, dust_trace):
        """Discovered maps are read-only views."""
        with pytest.raises(TypeError):
            dust_trace[1].discovered["Fake"] = Combination("Fake", "Air", "Air")  # type: ignore[index]

    def test_found_index(self, dust_trace):
        assert dust_trace.found_index() == 2
        assert dust_trace.final.found_target

    def test_bidirectional_records_backward_frontier(self, graph):
        """Bidirectional steps carry the backward queue as well."""
        recorder = StepTraceRecorder()
        BidirectionalSearch(graph, BASES, observer=recorder).run("Storm")
        trace = recorder.trace()
        assert trace[0].backward_frontier == ("Storm",)
        assert trace[2].element == "Storm"
        assert set(trace[2].backward_frontier) == {"Energy", "Wind"}
        assert trace.final.found_target


# ---------------------------------------------------------------------------
# Tests: Replay
# ---------------------------------------------------------------------------

class TestReplay:
    """Test seeking and serialisation."""

    def test_seek(self, dust_trace):
        """Any index can be revisited without re-running the search."""
        assert dust_trace.seek(1) is dust_trace[1]
        assert dust_trace.seek(0) is dust_trace[0]

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_seek_out_of_range(self, dust_trace, index):
        with pytest.raises(IndexError):
            dust_trace.seek(index)

    def test_slicing(self, dust_trace):
        assert [r.element for r in dust_trace[1:]] == ["Air", "Earth"]

    def test_to_list_shape(self, dust_trace):
        """Records serialise with the response field names."""
        step = dust_trace.to_list()[2]
        assert step == {
            "step": 2,
            "current": "Earth",
            "queue": ["Fire", "Water", "Pressure", "Dust"],
            "backward_queue": [],
            "seen": ["Air", "Earth", "Fire", "Water", "Pressure", "Dust"],
            "discovered": {
                "Pressure": {"ingredient_a": "Air", "ingredient_b": "Air"},
                "Dust": {"ingredient_a": "Air", "ingredient_b": "Earth"},
            },
            "found_target": True,
        }

    def test_max_steps_truncates(self, graph):
        """A capped recorder stops recording but the search finishes."""
        recorder = StepTraceRecorder(max_steps=2)
        outcome = BreadthFirstSearch(graph, BASES, observer=recorder).run("Storm")
        trace = recorder.trace()
        assert outcome.found
        assert len(trace) == 2
        assert trace.truncated

    def test_empty_trace(self):
        trace = StepTrace()
        assert len(trace) == 0
        assert trace.final is None
        assert trace.found_index() is None


# ---------------------------------------------------------------------------
# Tests: Observer neutrality
# ---------------------------------------------------------------------------

class TestNonInterference:
    """Recording never changes what a search returns."""

    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    @pytest.mark.parametrize("target", ["Dust", "Wind", "Storm", "Air"])
    def test_same_outcome_with_and_without_trace(self, graph, algorithm, target):
        strategy_cls = get_strategy(algorithm)
        plain = strategy_cls(graph, BASES).run(target)
        traced = strategy_cls(graph, BASES, observer=StepTraceRecorder()).run(target)
        assert plain.tree == traced.tree
        assert plain.nodes_visited == traced.nodes_visited

    def test_record_is_a_step_record(self, dust_trace):
        assert all(isinstance(r, StepRecord) for r in dust_trace)

"""
Tests for point-in-time reconstruction and its snapshot cache.
"""

import pytest

from rxscope import (
    ComputationCreate,
    ComputationDispose,
    ComputationType,
    EventOrderError,
    EventType,
    ReactivityEvent,
    SignalCreate,
    SignalRead,
    SignalWrite,
    StateReconstructor,
)
from rxscope.events import SubscriptionAdd, SubscriptionRemove
from rxscope.replay import GraphState, HistoricalEdge, apply_event


def make_event(index, timestamp, node_id, data):
    return ReactivityEvent(
        id=f"event-{index}",
        type=data.event_type,
        timestamp=timestamp,
        node_id=node_id,
        data=data,
    )


@pytest.fixture
def write_log():
    """A signal created at 100 and written at 150 and 200."""
    return [
        make_event(1, 100, "signal-1", SignalCreate(value=0, name="count")),
        make_event(2, 150, "signal-1", SignalWrite(previous_value=0, new_value=5)),
        make_event(3, 200, "signal-1", SignalWrite(previous_value=5, new_value=2)),
    ]


@pytest.fixture
def graph_log():
    """A memo subscribing to a signal, dropping it and being disposed."""
    return [
        make_event(1, 10, "signal-1", SignalCreate(value=1)),
        make_event(2, 20, "memo-1", ComputationCreate(ComputationType.MEMO, name="double")),
        make_event(3, 30, "memo-1", SubscriptionAdd(source_id="signal-1")),
        make_event(4, 35, "signal-1", SignalRead(value=1)),
        make_event(5, 40, "memo-1", SubscriptionRemove(source_id="signal-1")),
        make_event(6, 50, "memo-1", ComputationDispose()),
    ]


@pytest.mark.unit
class TestReconstructAt:
    """Replaying the log up to a point in time."""

    def test_value_between_writes(self, write_log):
        """The state between two writes carries the earlier write."""
        reconstructor = StateReconstructor(write_log)
        state = reconstructor.reconstruct_at(175)

        node = state.active_nodes["signal-1"]
        assert node.value == 5
        assert node.last_update_time == 150
        assert node.created_at == 100
        assert node.node.name == "count"
        assert node.node.type == "signal"
        assert state.timestamp == 175

    def test_value_after_last_write(self, write_log):
        """Querying past the end applies every event."""
        state = StateReconstructor(write_log).reconstruct_at(250)
        assert state.active_nodes["signal-1"].value == 2

    def test_events_at_query_time_are_included(self, write_log):
        """The replay window is closed on the right."""
        state = StateReconstructor(write_log).reconstruct_at(150)
        assert state.active_nodes["signal-1"].value == 5

    def test_before_first_event_is_empty(self, write_log):
        """Nothing exists before the first event."""
        state = StateReconstructor(write_log).reconstruct_at(50)
        assert state.active_nodes == {}
        assert state.edges == []

    def test_events_at_or_before_time_zero_are_not_replayed(self):
        """Replay from an empty graph starts after virtual time 0."""
        log = [make_event(1, 0, "signal-1", SignalCreate(value=1))]
        state = StateReconstructor(log).reconstruct_at(10)
        assert state.active_nodes == {}

    def test_computation_node_uses_computation_type_and_name(self, graph_log):
        """Computation nodes are typed by their computation kind."""
        state = StateReconstructor(graph_log).reconstruct_at(25)
        memo = state.active_nodes["memo-1"]
        assert memo.node.type == "memo"
        assert memo.node.name == "double"
        assert memo.value is None

    def test_unnamed_node_falls_back_to_id(self, graph_log):
        """Nodes without a name are labelled with their ID."""
        state = StateReconstructor(graph_log).reconstruct_at(25)
        assert state.active_nodes["signal-1"].node.name == "signal-1"

    def test_subscription_events_shape_edges(self, graph_log):
        """subscription-add and -remove add and drop dependency edges."""
        reconstructor = StateReconstructor(graph_log)

        assert reconstructor.reconstruct_at(35).edges == [
            HistoricalEdge(from_id="signal-1", to_id="memo-1")
        ]
        assert reconstructor.reconstruct_at(45).edges == []

    def test_dispose_moves_node_to_disposed_set(self, graph_log):
        """Disposed computations leave the active set."""
        state = StateReconstructor(graph_log).reconstruct_at(60)
        assert "memo-1" not in state.active_nodes
        assert state.disposed_node_ids == {"memo-1"}
        assert "signal-1" in state.active_nodes

    def test_reads_do_not_change_state(self, graph_log):
        """signal-read and execution markers leave the graph as it was."""
        reconstructor = StateReconstructor(graph_log)
        before = reconstructor.reconstruct_at(34)
        after = reconstructor.reconstruct_at(36)
        assert before.same_graph(after)

    def test_unsorted_log_is_rejected(self, write_log):
        """Out-of-order timestamps raise EventOrderError."""
        with pytest.raises(EventOrderError, match="event-1 at 100"):
            StateReconstructor([write_log[1], write_log[0]])

    @pytest.mark.parametrize("bad", [float("nan"), None, float("inf")])
    def test_non_finite_timestamp_is_rejected(self, write_log, bad):
        """A NaN, missing or infinite timestamp cannot hide inside a sorted log."""
        log = [
            write_log[0],
            make_event(9, bad, "signal-1", SignalWrite(previous_value=0, new_value=9)),
            write_log[1],
            write_log[2],
        ]
        with pytest.raises(EventOrderError, match="event-9"):
            StateReconstructor(log)

    def test_non_numeric_timestamp_is_rejected(self, write_log):
        """A timestamp that is not a number raises EventOrderError."""
        log = [
            write_log[0],
            make_event(9, "later", "signal-1", SignalWrite(previous_value=0, new_value=9)),
        ]
        with pytest.raises(EventOrderError, match="non-numeric"):
            StateReconstructor(log)

    def test_equal_timestamps_apply_in_log_order(self):
        """Events sharing a timestamp are applied in the order given."""
        log = [
            make_event(1, 100, "signal-1", SignalCreate(value=0)),
            make_event(2, 100, "signal-1", SignalWrite(previous_value=0, new_value=1)),
            make_event(3, 100, "signal-1", SignalWrite(previous_value=1, new_value=7)),
        ]
        state = StateReconstructor(log).reconstruct_at(100)
        assert state.active_nodes["signal-1"].value == 7

    def test_capacity_must_be_positive(self, write_log):
        """A zero-sized cache is refused."""
        with pytest.raises(ValueError):
            StateReconstructor(write_log, capacity=0)


@pytest.mark.unit
class TestSnapshotCache:
    """Cache hits, reuse of snapshots and eviction."""

    def test_cold_and_warm_cache_agree(self, graph_log, write_log):
        """A cached reconstructor answers exactly like a fresh one."""
        shifted = [
            make_event(10 + index, event.timestamp + 5, "signal-2", event.data)
            for index, event in enumerate(write_log)
        ]
        log = sorted(graph_log + shifted, key=lambda event: event.timestamp)
        warm = StateReconstructor(log)
        for query in [300, 120, 45, 205, 30, 160]:
            warm.reconstruct_at(query)

        for query in [0, 15, 30, 45, 105, 155, 160, 170, 205, 300]:
            cold = StateReconstructor(log).reconstruct_at(query)
            assert warm.reconstruct_at(query).same_graph(cold), query

    def test_repeat_query_is_a_hit(self, write_log):
        """The second identical query is served from the cache."""
        reconstructor = StateReconstructor(write_log)
        first = reconstructor.reconstruct_at(175)
        second = reconstructor.reconstruct_at(175)

        assert first.same_graph(second)
        assert first is not second
        stats = reconstructor.get_cache_stats()
        assert (stats.size, stats.hits, stats.misses) == (1, 1, 1)

    def test_mutating_a_result_does_not_corrupt_the_cache(self, write_log):
        """Results are copies, so editing one leaves later answers intact."""
        reconstructor = StateReconstructor(write_log)
        fresh = reconstructor.reconstruct_at(175)
        fresh.active_nodes["signal-1"].value = 99
        fresh.active_nodes.pop("signal-1")

        hit = reconstructor.reconstruct_at(175)
        assert hit.active_nodes["signal-1"].value == 5
        hit.disposed_node_ids.add("signal-1")
        hit.edges.append(HistoricalEdge(from_id="signal-1", to_id="memo-1"))

        later = reconstructor.reconstruct_at(250)
        assert later.active_nodes["signal-1"].value == 2
        assert later.disposed_node_ids == set()
        assert later.edges == []
        assert reconstructor.get_cache_stats().hits == 1

    def test_later_query_does_not_mutate_cached_snapshot(self, write_log):
        """Replaying forward from a snapshot works on a copy."""
        reconstructor = StateReconstructor(write_log)
        early = reconstructor.reconstruct_at(160)
        reconstructor.reconstruct_at(250)

        assert early.active_nodes["signal-1"].value == 5
        assert early.timestamp == 160

    def test_query_before_every_snapshot_replays_from_empty(self, write_log):
        """A snapshot later than the query is never used as a start point."""
        reconstructor = StateReconstructor(write_log)
        reconstructor.reconstruct_at(250)
        state = reconstructor.reconstruct_at(120)
        assert state.active_nodes["signal-1"].value == 0

    def test_least_recently_used_snapshot_is_evicted(self, write_log):
        """A hit protects a snapshot from the next eviction."""
        reconstructor = StateReconstructor(write_log, capacity=2)
        reconstructor.reconstruct_at(100)
        reconstructor.reconstruct_at(200)
        reconstructor.reconstruct_at(100)
        reconstructor.reconstruct_at(300)

        reconstructor.reconstruct_at(300)
        reconstructor.reconstruct_at(100)
        assert reconstructor.get_cache_stats().hits == 3

        reconstructor.reconstruct_at(200)
        stats = reconstructor.get_cache_stats()
        assert stats.misses == 4
        assert stats.size == 2

    def test_clear_cache_resets_stats(self, write_log):
        """clear_cache empties the cache and zeroes the counters."""
        reconstructor = StateReconstructor(write_log)
        reconstructor.reconstruct_at(150)
        reconstructor.reconstruct_at(150)
        reconstructor.clear_cache()

        assert tuple(reconstructor.get_cache_stats()) == (0, 0, 0)


@pytest.mark.unit
class TestGraphState:
    """Snapshot copying and direct event application."""

    def test_clone_is_independent(self):
        """Mutating a clone leaves the original untouched."""
        state = GraphState(timestamp=0)
        apply_event(state, make_event(1, 1, "signal-1", SignalCreate(value=1)))
        copy = state.clone()

        apply_event(copy, make_event(2, 2, "signal-1", SignalWrite(1, 2)))
        apply_event(copy, make_event(3, 3, "memo-1", SubscriptionAdd("signal-1")))

        assert state.active_nodes["signal-1"].value == 1
        assert state.edges == []
        assert copy.active_nodes["signal-1"].value == 2

    def test_write_to_unknown_node_is_ignored(self):
        """Writes for nodes never created do not invent nodes."""
        state = GraphState(timestamp=0)
        apply_event(state, make_event(1, 1, "signal-9", SignalWrite(0, 1)))
        assert state.active_nodes == {}

    def test_event_type_matches_payload(self):
        """The helper builds well-typed events."""
        event = make_event(1, 1, "signal-1", SignalRead(value=3))
        assert event.type is EventType.SIGNAL_READ

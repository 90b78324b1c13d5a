"""
RxScope Primitives - Instrumented Signals, Memos, Effects and Roots
===================================================================

A small push-based reactive runtime whose every step is reported to a
``ReactivityTracker``. It exists so that the tracker, the pattern detector and
the replay engine can be driven by real reactive programs.

Key Features:
- Automatic dependency tracking through the runtime's ``TrackingContext``
- Breadth-first, de-duplicated change propagation (no recursion per hop)
- Memos read while still pending are refreshed first, so a diamond converges
  on a single consistent value
- Dynamic dependencies: sources dropped between runs are unsubscribed and
  reported with ``subscription-remove``
- Ownership: memos and effects created inside an effect or root are owned by
  it, and disposed with it

Example:
    ```python
    runtime = ReactiveRuntime()
    count = runtime.create_signal(1, name="count")
    double = runtime.create_memo(lambda: count() * 2, name="double")

    seen = []
    runtime.create_root(
        lambda dispose: runtime.create_effect(lambda: seen.append(double()))
    )
    count.set(5)
    assert seen == [2, 10]
    ```
"""

import operator
import time
from collections import deque
from contextlib import nullcontext
from typing import Any, Callable, Deque, Dict, Generic, List, Optional, Set, TypeVar, Union

from .context import TrackingContext
from .events import (
    ComputationCreate,
    ComputationDispose,
    ComputationExecuteEnd,
    ComputationExecuteStart,
    ComputationType,
    EventType,
    SignalCreate,
    SignalRead,
    SignalWrite,
    SubscriptionAdd,
    SubscriptionRemove,
)
from .tracker import ReactivityTracker
from .types import Clock, EdgeType, NodeType, make_edge_id

T = TypeVar("T")

# ``False`` means "always treat a write as a change"
Equals = Union[None, bool, Callable[[Any, Any], bool]]


class _Source:
    """Something computations can read: a signal or a memo."""

    node_id: str

    def __init__(self, equals: Equals) -> None:
        self._observers: List["_Computation"] = []
        self._equals = equals

    def _add_observer(self, computation: "_Computation") -> None:
        if computation not in self._observers:
            self._observers.append(computation)

    def _remove_observer(self, computation: "_Computation") -> None:
        if computation in self._observers:
            self._observers.remove(computation)

    def _has_changed(self, old: Any, new: Any) -> bool:
        if self._equals is False:
            return True
        equals = self._equals if callable(self._equals) else operator.eq
        return not equals(old, new)


class _Computation:
    """Shared lifecycle of memos, effects and roots."""

    kind: ComputationType

    def __init__(self, runtime: "ReactiveRuntime", fn: Callable, name: Optional[str]) -> None:
        self._runtime = runtime
        self._fn = fn
        self._sources: Dict[str, _Source] = {}
        self._reads: Optional[Dict[str, _Source]] = None
        self._disposed = False

        tracker = runtime.tracker
        self.node_id = tracker.register_node(NodeType(self.kind.value), name, None)
        runtime._computations[self.node_id] = self
        tracker.emit(
            EventType.COMPUTATION_CREATE,
            self.node_id,
            ComputationCreate(computation_type=self.kind, name=name),
        )

        owner = runtime.context.current_owner
        if owner is not None:
            tracker.add_edge(EdgeType.OWNERSHIP, owner, self.node_id)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def _execute(self) -> None:
        raise NotImplementedError

    def _owner_scope(self):
        return nullcontext()

    def _run(self) -> Any:
        """Run ``fn`` as the current computation and report it to the tracker."""
        runtime = self._runtime
        tracker = runtime.tracker
        reads: Dict[str, _Source] = {}
        self._reads = reads

        tracker.update_node(self.node_id, is_executing=True)
        tracker.emit(
            EventType.COMPUTATION_EXECUTE_START, self.node_id, ComputationExecuteStart()
        )
        start = time.perf_counter()

        try:
            with runtime.context.computation(self.node_id), self._owner_scope():
                return self._fn()
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            tracker.emit(
                EventType.COMPUTATION_EXECUTE_END,
                self.node_id,
                ComputationExecuteEnd(duration_ms=duration_ms),
            )
            node = tracker.get_node(self.node_id)
            if node is not None:
                tracker.update_node(
                    self.node_id,
                    is_executing=False,
                    is_stale=False,
                    execution_count=node.execution_count + 1,
                    last_executed_at=tracker.clock(),
                )
            self._reads = None
            self._reconcile_sources(reads)

    def _record_read(self, source: _Source) -> None:
        if self._reads is not None:
            self._reads[source.node_id] = source
        source._add_observer(self)

    def _reconcile_sources(self, reads: Dict[str, _Source]) -> None:
        """Unsubscribe from sources that the latest run no longer read."""
        tracker = self._runtime.tracker
        for source_id, source in self._sources.items():
            if source_id in reads:
                continue
            source._remove_observer(self)
            edge_id = make_edge_id(EdgeType.DEPENDENCY, source_id, self.node_id)
            if tracker.has_edge(edge_id):
                tracker.remove_edge(edge_id)
                tracker.emit(
                    EventType.SUBSCRIPTION_REMOVE,
                    self.node_id,
                    SubscriptionRemove(source_id=source_id),
                )
        self._sources = reads

    def _dispose_children(self) -> None:
        node = self._runtime.tracker.get_node(self.node_id)
        if node is None:
            return
        for child_id in list(node.owned):
            child = self._runtime._computations.get(child_id)
            if child is not None:
                child.dispose()

    def dispose(self) -> None:
        """Stop reacting, dispose owned computations and stamp ``disposed_at``."""
        if self._disposed:
            return
        self._disposed = True
        self._dispose_children()

        for source in self._sources.values():
            source._remove_observer(self)
        self._sources = {}

        tracker = self._runtime.tracker
        tracker.emit(EventType.COMPUTATION_DISPOSE, self.node_id, ComputationDispose())
        tracker.update_node(self.node_id, disposed_at=tracker.clock())


class TrackedSignal(_Source, Generic[T]):
    """A reactive value cell. Call it (or ``get()``) to read, ``set()`` to write."""

    def __init__(
        self,
        runtime: "ReactiveRuntime",
        initial_value: T,
        name: Optional[str] = None,
        equals: Equals = None,
    ) -> None:
        super().__init__(equals)
        self._runtime = runtime
        self._value = initial_value

        tracker = runtime.tracker
        self.node_id = tracker.register_node(NodeType.SIGNAL, name, initial_value)
        tracker.emit(
            EventType.SIGNAL_CREATE,
            self.node_id,
            SignalCreate(value=initial_value, name=name),
        )

    def get(self) -> T:
        value = self._value
        self._runtime._track_read(self)
        self._runtime.tracker.emit(EventType.SIGNAL_READ, self.node_id, SignalRead(value=value))
        return value

    __call__ = get

    def peek(self) -> T:
        """Read without tracking a dependency or emitting an event."""
        return self._value

    def set(self, value_or_fn: Union[T, Callable[[T], T]]) -> T:
        """
        Write a new value. A callable is treated as an updater of the previous value.

        The write is always reported; observers only re-run when the value changed.
        """
        runtime = self._runtime
        tracker = runtime.tracker
        previous = self._value
        new_value = value_or_fn(previous) if callable(value_or_fn) else value_or_fn

        changed = self._has_changed(previous, new_value)
        if changed:
            self._value = new_value

        tracker.update_node(self.node_id, value=self._value)
        tracker.emit(
            EventType.SIGNAL_WRITE,
            self.node_id,
            SignalWrite(previous_value=previous, new_value=self._value),
        )

        if changed:
            tracker.trigger_edges(self.node_id)
            runtime._schedule_observers(self)
            runtime._flush()

        return self._value

    def __repr__(self) -> str:
        return f"TrackedSignal({self.node_id}={self._value!r})"


class TrackedMemo(_Computation, _Source, Generic[T]):
    """A cached derivation, recomputed when any source it read changes."""

    kind = ComputationType.MEMO

    def __init__(
        self,
        runtime: "ReactiveRuntime",
        fn: Callable[[], T],
        name: Optional[str] = None,
        equals: Equals = None,
    ) -> None:
        _Source.__init__(self, equals)
        _Computation.__init__(self, runtime, fn, name)
        self._value: Optional[T] = None
        self._initialized = False
        self._execute()

    def _execute(self) -> None:
        if self._disposed:
            return

        value = self._run()
        changed = not self._initialized or self._has_changed(self._value, value)
        self._value = value
        self._initialized = True
        self._runtime.tracker.update_node(self.node_id, value=value)

        if changed:
            self._runtime._schedule_observers(self)

    def get(self) -> T:
        runtime = self._runtime
        if runtime._is_pending(self):
            runtime._run_now(self)
        runtime._track_read(self)
        return self._value

    __call__ = get

    def __repr__(self) -> str:
        return f"TrackedMemo({self.node_id}={self._value!r})"


class TrackedEffect(_Computation):
    """A side-effecting computation. Owns whatever it creates while running."""

    kind = ComputationType.EFFECT

    def __init__(
        self, runtime: "ReactiveRuntime", fn: Callable[[], Any], name: Optional[str] = None
    ) -> None:
        super().__init__(runtime, fn, name)
        self._execute()

    def _owner_scope(self):
        return self._runtime.context.owner(self.node_id)

    def _execute(self) -> None:
        if self._disposed:
            return
        # Children of the previous run are replaced by this run's children
        self._dispose_children()
        self._run()

    def __call__(self) -> None:
        self.dispose()


class TrackedRoot(_Computation):
    """An ownership scope that never re-runs; disposing it disposes everything it owns."""

    kind = ComputationType.ROOT

    def _execute(self) -> None:
        pass

    def run(self, fn: Callable[[Callable[[], None]], T]) -> T:
        context = self._runtime.context
        with context.untracked(), context.owner(self.node_id):
            return fn(self.dispose)


class ReactiveRuntime:
    """
    Factory and scheduler for tracked primitives sharing one tracker.

    Each runtime has its own ``TrackingContext``, so independent runtimes (and
    independent tests) never share "currently executing" state.

    Attributes:
        tracker: Registry every primitive reports to
        context: Computation/owner stacks for this runtime
    """

    def __init__(
        self, tracker: Optional[ReactivityTracker] = None, clock: Optional[Clock] = None
    ) -> None:
        self.tracker = tracker or ReactivityTracker(clock=clock)
        self.context = TrackingContext()
        self._computations: Dict[str, _Computation] = {}
        self._pending: Deque[_Computation] = deque()
        self._pending_ids: Set[str] = set()
        self._is_propagating = False

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    def create_signal(
        self, initial_value: T, name: Optional[str] = None, equals: Equals = None
    ) -> TrackedSignal[T]:
        return TrackedSignal(self, initial_value, name=name, equals=equals)

    def create_memo(
        self, fn: Callable[[], T], name: Optional[str] = None, equals: Equals = None
    ) -> TrackedMemo[T]:
        return TrackedMemo(self, fn, name=name, equals=equals)

    def create_effect(self, fn: Callable[[], Any], name: Optional[str] = None) -> TrackedEffect:
        return TrackedEffect(self, fn, name=name)

    def create_root(self, fn: Callable[[Callable[[], None]], T], name: Optional[str] = None) -> T:
        """Run ``fn(dispose)`` inside a new ownership root and return its result."""
        return TrackedRoot(self, fn, name).run(fn)

    def get_computation(self, node_id: str) -> Optional[_Computation]:
        return self._computations.get(node_id)

    # ------------------------------------------------------------------
    # Dependency tracking
    # ------------------------------------------------------------------

    def _track_read(self, source: _Source) -> None:
        computation_id = self.context.current_computation
        if computation_id is None or computation_id == source.node_id:
            return
        computation = self._computations.get(computation_id)
        if computation is None:
            return

        computation._record_read(source)

        edge_id = make_edge_id(EdgeType.DEPENDENCY, source.node_id, computation_id)
        if not self.tracker.has_edge(edge_id):
            self.tracker.add_edge(EdgeType.DEPENDENCY, source.node_id, computation_id)
            self.tracker.emit(
                EventType.SUBSCRIPTION_ADD,
                computation_id,
                SubscriptionAdd(source_id=source.node_id),
            )

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def _schedule_observers(self, source: _Source) -> None:
        for observer in list(source._observers):
            if observer.is_disposed or observer.node_id in self._pending_ids:
                continue
            self._pending.append(observer)
            self._pending_ids.add(observer.node_id)
            self.tracker.update_node(observer.node_id, is_stale=True)

    def _is_pending(self, computation: _Computation) -> bool:
        return computation.node_id in self._pending_ids

    def _run_now(self, computation: _Computation) -> None:
        """Pull a pending computation out of the queue and run it immediately."""
        self._pending.remove(computation)
        self._pending_ids.discard(computation.node_id)
        computation._execute()

    def _flush(self) -> None:
        if self._is_propagating:
            return

        self._is_propagating = True
        try:
            while self._pending:
                computation = self._pending.popleft()
                self._pending_ids.discard(computation.node_id)
                computation._execute()
        finally:
            self._is_propagating = False
            self._pending.clear()
            self._pending_ids.clear()

"""Per-container state tracking and the teardown guard."""

import threading
import time
from types import TracebackType
from typing import Dict, FrozenSet, List, Optional, Type

from ..core.enums import ContainerState
from ..core.errors import CleanupError, CleanupFailure, StateTransitionError
from ..core.log import Logger, get_logger, log_container_event
from ..core.type_map import type_tag
from ..core.types import ContainerReport, RunningContainer
from ..runtime.base import ContainerRuntime
from .server_config import ServerConfig

_TRANSITIONS: Dict[ContainerState, FrozenSet[ContainerState]] = {
    ContainerState.PENDING: frozenset({ContainerState.STARTING}),
    ContainerState.STARTING: frozenset({ContainerState.AWAITING_READY, ContainerState.FAILED}),
    ContainerState.AWAITING_READY: frozenset({ContainerState.READY, ContainerState.FAILED}),
    ContainerState.READY: frozenset({ContainerState.RUNNING, ContainerState.STOPPING}),
    ContainerState.RUNNING: frozenset({ContainerState.STOPPING, ContainerState.FAILED}),
    ContainerState.FAILED: frozenset({ContainerState.STOPPING}),
    ContainerState.STOPPING: frozenset({ContainerState.TERMINATED}),
    ContainerState.TERMINATED: frozenset(),
}


def can_transition(current: ContainerState, new: ContainerState) -> bool:
    return new in _TRANSITIONS[current]


class ManagedContainer:
    """One registered config and what became of it during a run."""

    def __init__(self, config: ServerConfig, logger: Optional[Logger] = None) -> None:
        self.config = config
        self.state = ContainerState.PENDING
        self.container: Optional[RunningContainer] = None
        self.start_index: Optional[int] = None
        self.readiness_attempts = 0
        self.startup_duration = 0.0
        self.error: Optional[BaseException] = None
        self.history: List[ContainerState] = [ContainerState.PENDING]
        self._logger = logger or get_logger(__name__)
        self._started_at: Optional[float] = None

    @property
    def name(self) -> str:
        return self.config.container_name()

    @property
    def started(self) -> bool:
        return self.container is not None

    def transition(self, new_state: ContainerState) -> None:
        """Move to ``new_state``.

        Raises:
            StateTransitionError: The transition is not allowed
        """
        if not can_transition(self.state, new_state):
            raise StateTransitionError(
                f"Container {self.name}: illegal transition "
                f"{self.state.value} -> {new_state.value}",
                details={"container": self.name},
            )
        if new_state == ContainerState.STARTING:
            self._started_at = time.monotonic()
        elif new_state == ContainerState.READY and self._started_at is not None:
            self.startup_duration = time.monotonic() - self._started_at
        self.state = new_state
        self.history.append(new_state)
        log_container_event(self._logger, new_state.value, self.name, state=new_state.value)

    def fail(self, error: BaseException) -> None:
        self.error = error
        self.transition(ContainerState.FAILED)

    def report(self) -> ContainerReport:
        return ContainerReport(
            name=self.name,
            kind=type_tag(self.config.kind()),
            state=self.state,
            history=list(self.history),
            start_index=self.start_index,
            readiness_attempts=self.readiness_attempts,
            startup_duration=self.startup_duration,
            error_message=str(self.error) if self.error else None,
        )


class ContainerSet:
    """Containers started during a run, torn down in reverse start order.

    Used as a context manager, teardown runs however the block exits. Cleanup
    failures never replace an exception already propagating; they are added
    to it as notes. Without a primary exception they raise ``CleanupError``.
    """

    def __init__(self, runtime: ContainerRuntime, logger: Optional[Logger] = None) -> None:
        self._runtime = runtime
        self._logger = logger or get_logger(__name__)
        self._started: List[ManagedContainer] = []
        self._lock = threading.RLock()
        self.failures: List[CleanupFailure] = []
        self.teardown_order: List[str] = []

    def track(self, managed: ManagedContainer, container: RunningContainer) -> None:
        """Record a successfully started container."""
        with self._lock:
            managed.container = container
            managed.start_index = len(self._started)
            self._started.append(managed)

    @property
    def start_order(self) -> List[str]:
        with self._lock:
            return [managed.name for managed in self._started]

    def __len__(self) -> int:
        with self._lock:
            return len(self._started)

    def teardown(self) -> List[CleanupFailure]:
        """Stop and remove every tracked container not yet terminated.

        Safe to call more than once; later calls only touch containers an
        earlier call did not reach.
        """
        with self._lock:
            pending = [
                managed
                for managed in reversed(self._started)
                if managed.state != ContainerState.TERMINATED
            ]
            failures: List[CleanupFailure] = []
            for managed in pending:
                failures.extend(self._teardown_one(managed))
            self.failures.extend(failures)
            return failures

    def _teardown_one(self, managed: ManagedContainer) -> List[CleanupFailure]:
        failures = []
        if managed.state in (ContainerState.STARTING, ContainerState.AWAITING_READY):
            managed.transition(ContainerState.FAILED)
        if managed.state != ContainerState.STOPPING:
            managed.transition(ContainerState.STOPPING)
        container = managed.container
        self.teardown_order.append(managed.name)

        for operation, action in (("stop", self._runtime.stop), ("remove", self._runtime.remove)):
            try:
                action(container)
            except Exception as e:  # every container still gets stop and remove
                failure = CleanupFailure(managed.name, operation, e)
                self._logger.error("Cleanup failed: %s", failure)
                failures.append(failure)

        managed.transition(ContainerState.TERMINATED)
        return failures

    def __enter__(self) -> "ContainerSet":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> bool:
        failures = self.teardown()
        if not failures:
            return False
        if exc_val is not None:
            for failure in failures:
                exc_val.add_note(f"cleanup failure: {failure}")
            return False
        raise CleanupError(
            f"{len(failures)} cleanup operation(s) failed: "
            + "; ".join(str(f) for f in failures),
            failures=failures,
        )

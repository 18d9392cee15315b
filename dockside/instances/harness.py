"""Run a test body against a set of ready containers.

``Test`` collects server configs, starts their containers in dependency
order, waits for each to pass its readiness probe and hands the test body a
``TestInstance`` to look the servers up by type. Whatever happens, every
container that was started is stopped and removed afterwards, in reverse
start order.

Example::

    test = Test()
    test.register(VaultServerConfig.builder().port(9200).build())

    def body(instance: TestInstance) -> None:
        vault = instance.server(VaultServer)
        assert vault.external_url() == "http://localhost:9200"

    test.run(body)
"""

import atexit
import inspect
import signal
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Set, Type, TypeVar

from ..core.config import get_config
from ..core.enums import ContainerState, RunOutcome
from ..core.errors import (
    ConfigurationError,
    ReadinessTimeoutError,
    TypeMismatchError,
)
from ..core.log import Logger, get_logger, log_context, log_run_event
from ..core.time import BackoffPolicy
from ..core.type_map import TypeMap, type_tag
from ..core.types import HarnessConfig, RunReport
from ..runtime.base import ContainerRuntime
from ..utils.aio import run_sync
from ..utils.crypto import random_id
from .lifecycle import ContainerSet, ManagedContainer
from .readiness import ReadinessWaiter
from .registry import InstanceEntry, InstanceRegistry
from .server import Server
from .server_config import ServerConfig
from .startup_plan import StartupPlan, StartupPlanner

S = TypeVar("S", bound=Server)

_live_sets: Set[ContainerSet] = set()
_live_lock = threading.Lock()


def _teardown_leftovers() -> None:
    """Tear down containers of runs that never reached their own teardown."""
    with _live_lock:
        leftovers = list(_live_sets)
        _live_sets.clear()
    for containers in leftovers:
        containers.teardown()


atexit.register(_teardown_leftovers)


def _raise_interrupt(signum: int, _frame: Any) -> None:
    raise KeyboardInterrupt(f"received {signal.Signals(signum).name}")


@contextmanager
def _interrupt_guard(containers: ContainerSet) -> Iterator[None]:
    """Turn SIGTERM into KeyboardInterrupt so teardown still runs."""
    with _live_lock:
        _live_sets.add(containers)
    on_main_thread = threading.current_thread() is threading.main_thread()
    previous = signal.signal(signal.SIGTERM, _raise_interrupt) if on_main_thread else None
    try:
        yield
    finally:
        if on_main_thread:
            signal.signal(
                signal.SIGTERM, previous if previous is not None else signal.SIG_DFL
            )
        with _live_lock:
            _live_sets.discard(containers)


class TestInstance:
    """Read-only view of the ready servers, passed to the test body."""

    __test__ = False

    def __init__(self, registry: InstanceRegistry, run_id: str) -> None:
        self._registry = registry
        self.run_id = run_id

    def get(self, kind: type) -> InstanceEntry:
        """Registry entry for a config class."""
        return self._registry.get(kind)

    def server(self, server_cls: Type[S]) -> S:
        """Facade for the server registered under ``server_cls.config_type``."""
        entry = self._registry.get(server_cls.config_type)
        if not isinstance(entry.config, server_cls.config_type):
            raise TypeMismatchError(
                f"{server_cls.__name__} expects a {server_cls.config_type.__name__}, "
                f"registered config is a {type(entry.config).__name__}",
                details={"kind": type_tag(server_cls.config_type)},
            )
        return server_cls.from_entry(entry)

    def kinds(self) -> List[type]:
        return list(self._registry.kinds())


class Test:
    """A set of servers and the test body that runs against them.

    Only one config per kind can be registered; subclass a config to run a
    second instance of the same server.
    """

    __test__ = False

    def __init__(
        self,
        runtime: Optional[ContainerRuntime] = None,
        config: Optional[HarnessConfig] = None,
        logger: Optional[Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config or get_config()
        self._runtime = runtime
        self._logger = logger or get_logger(__name__)
        self._sleep = sleep
        self._configs = TypeMap()
        self._order: List[ServerConfig] = []
        self.report: Optional[RunReport] = None

    @property
    def runtime(self) -> ContainerRuntime:
        if self._runtime is None:
            from ..runtime.docker import DockerRuntime

            self._runtime = DockerRuntime(self._config.runtime, self._config.timeouts)
        return self._runtime

    @property
    def configs(self) -> List[ServerConfig]:
        return list(self._order)

    def register(self, config: ServerConfig) -> "Test":
        """Add a server config.

        Raises:
            DuplicateKindError: A config of the same kind is already registered
            ConfigurationError: ``config`` is not a ServerConfig
        """
        if not isinstance(config, ServerConfig):
            raise ConfigurationError(
                f"Expected a ServerConfig, got {type(config).__name__}"
            )
        self._configs.put(config.kind(), config)
        self._order.append(config)
        self._logger.debug("Registered %s", config.describe())
        return self

    def run(self, body: Callable[[TestInstance], Any]) -> Any:
        """Start all servers, run ``body`` once and tear everything down.

        ``body`` may be a plain function or a coroutine function. Its return
        value is returned. The first failure (startup, readiness or the body
        itself) propagates unchanged, with any cleanup failures attached as
        exception notes. A run that otherwise passed raises ``CleanupError``
        if teardown failed.
        """
        run_id = random_id()
        started_at = time.monotonic()
        try:
            plan = StartupPlanner(self._logger).plan(self._order)
        except ConfigurationError:
            self.report = RunReport(run_id=run_id, outcome=RunOutcome.CONFIG_ERROR)
            raise

        containers = ContainerSet(self.runtime, self._logger)
        outcome = RunOutcome.PASSED
        phase = "startup"
        managed = [ManagedContainer(config, self._logger) for config in plan.order]
        registry = InstanceRegistry()

        with log_context(run_id=run_id), _interrupt_guard(containers):
            log_run_event(self._logger, "starting", run_id, containers=plan.names)
            try:
                with containers:
                    try:
                        self._start_all(plan, managed, containers, registry, run_id)
                        for item in managed:
                            item.transition(ContainerState.RUNNING)
                        registry.freeze()
                        phase = "body"
                        log_run_event(self._logger, "ready", run_id)
                        return _invoke(body, TestInstance(registry, run_id))
                    except BaseException as e:
                        outcome = _classify(e, phase)
                        if phase == "body":
                            for item in managed:
                                if item.state == ContainerState.RUNNING:
                                    item.transition(ContainerState.FAILED)
                        raise
            except BaseException:
                if outcome == RunOutcome.PASSED:
                    outcome = RunOutcome.CLEANUP_FAILED
                raise
            finally:
                self.report = RunReport(
                    run_id=run_id,
                    outcome=outcome,
                    containers=[item.report() for item in managed],
                    start_order=containers.start_order,
                    teardown_order=list(containers.teardown_order),
                    cleanup_failures=[str(f) for f in containers.failures],
                    total_duration=time.monotonic() - started_at,
                )
                log_run_event(
                    self._logger,
                    "finished",
                    run_id,
                    outcome=outcome.value,
                    duration=self.report.total_duration,
                )

    def _start_all(
        self,
        plan: StartupPlan,
        managed: List[ManagedContainer],
        containers: ContainerSet,
        registry: InstanceRegistry,
        run_id: str,
    ) -> None:
        waiter = ReadinessWaiter(
            self.runtime,
            BackoffPolicy.from_config(self._config.readiness),
            self._logger,
            sleep=self._sleep,
        )
        by_name = {item.name: item for item in managed}

        if not self._config.concurrent_start:
            for item in managed:
                self._start_one(item, containers, registry, waiter, run_id)
            return

        failures: List[BaseException] = []
        failures_lock = threading.Lock()

        def start_recording(item: ManagedContainer) -> None:
            try:
                self._start_one(item, containers, registry, waiter, run_id)
            except BaseException as e:
                # kept in the order the failures happened
                with failures_lock:
                    failures.append(e)
                raise

        with ThreadPoolExecutor(
            max_workers=self._config.max_workers, thread_name_prefix="dockside-start"
        ) as executor:
            for wave in plan.waves:
                futures = [
                    executor.submit(start_recording, by_name[config.container_name()])
                    for config in wave
                ]
                wait(futures)
                if failures:
                    raise failures[0]

    def _start_one(
        self,
        item: ManagedContainer,
        containers: ContainerSet,
        registry: InstanceRegistry,
        waiter: ReadinessWaiter,
        run_id: str,
    ) -> None:
        config = item.config
        item.transition(ContainerState.STARTING)
        try:
            container = self.runtime.start(config, run_id=run_id)
        except Exception as e:
            item.fail(e)
            raise
        containers.track(item, container)

        item.transition(ContainerState.AWAITING_READY)
        try:
            outcome = waiter.wait(container, config.readiness_probe(), config.timeout)
        except ReadinessTimeoutError as e:
            item.readiness_attempts = e.attempts
            item.fail(e)
            raise
        item.readiness_attempts = outcome.attempts

        registry.put(config, container)
        item.transition(ContainerState.READY)


def _invoke(body: Callable[[TestInstance], Any], instance: TestInstance) -> Any:
    result = body(instance)
    if inspect.iscoroutine(result):
        return run_sync(result)
    return result


def _classify(error: BaseException, phase: str) -> RunOutcome:
    if isinstance(error, KeyboardInterrupt):
        return RunOutcome.INTERRUPTED
    if isinstance(error, ReadinessTimeoutError):
        return RunOutcome.READINESS_TIMEOUT
    if phase == "startup":
        return RunOutcome.STARTUP_FAILED
    return RunOutcome.BODY_FAILED

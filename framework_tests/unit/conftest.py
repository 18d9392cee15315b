"""
Fixtures for framework unit tests.

Unit tests never talk to a container engine; they run the harness against an
in-memory runtime that records every call it receives.
"""

import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pytest

from dockside.core.types import ExecResult, ProbeResult, RunningContainer
from dockside.instances.server_config import GenericServerConfig


class RecordingRuntime:
    """ContainerRuntime that fabricates containers and records calls."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str]] = []
        self.fail_start: Dict[str, BaseException] = {}
        self.fail_stop: Dict[str, BaseException] = {}
        self.fail_remove: Dict[str, BaseException] = {}
        self.logs_by_name: Dict[str, str] = {}
        self.exec_results: Dict[str, ExecResult] = {}
        self.running: Dict[str, RunningContainer] = {}
        self.on_start: Optional[Callable[[str], None]] = None
        self._counter = 0
        self._lock = threading.Lock()

    def _record(self, operation: str, name: str) -> None:
        with self._lock:
            self.calls.append((operation, name))

    def names(self, operation: str) -> List[str]:
        return [name for op, name in self.calls if op == operation]

    def start(self, config: Any, run_id: Optional[str] = None) -> RunningContainer:
        name = config.container_name()
        self._record("start", name)
        if self.on_start is not None:
            self.on_start(name)
        if name in self.fail_start:
            raise self.fail_start[name]
        with self._lock:
            self._counter += 1
            index = self._counter
        ports = {
            mapping.container_port: mapping.host_port or 40000 + index * 10 + offset
            for offset, mapping in enumerate(config.port_mappings())
        }
        container = RunningContainer(
            name=name,
            handle=f"id-{name}",
            ip=f"172.18.0.{index + 1}",
            host="localhost",
            ports=ports,
            run_id=run_id,
        )
        self.running[name] = container
        return container

    def stop(self, container: RunningContainer) -> None:
        self._record("stop", container.name)
        if container.name in self.fail_stop:
            raise self.fail_stop[container.name]

    def remove(self, container: RunningContainer) -> None:
        self._record("remove", container.name)
        if container.name in self.fail_remove:
            raise self.fail_remove[container.name]
        self.running.pop(container.name, None)

    def exec(self, container: RunningContainer, command: Sequence[str]) -> ExecResult:
        self._record("exec", container.name)
        return self.exec_results.get(container.name, ExecResult(exit_code=0))

    def logs(self, container: RunningContainer) -> str:
        self._record("logs", container.name)
        return self.logs_by_name.get(container.name, "")

    def ping(self) -> bool:
        return True

    def prune(self, run_id: Optional[str] = None) -> List[str]:
        names = list(self.running)
        self.running.clear()
        return names


class ScriptedProbe:
    """Probe that returns NOT_READY a fixed number of times, then READY."""

    def __init__(self, failures: int = 0, results: Optional[Iterable[ProbeResult]] = None) -> None:
        if results is None:
            results = [ProbeResult.not_ready("starting")] * failures + [ProbeResult.ready()]
        self.results = list(results)
        self.calls = 0
        self.call_times: List[float] = []

    def check(self, container: RunningContainer, runtime: Any) -> ProbeResult:
        import time

        self.calls += 1
        self.call_times.append(time.monotonic())
        return self.results[min(self.calls, len(self.results)) - 1]

    def describe(self) -> str:
        return "scripted"


@pytest.fixture
def runtime() -> RecordingRuntime:
    return RecordingRuntime()


@pytest.fixture
def scripted_probe() -> Callable[..., ScriptedProbe]:
    return ScriptedProbe


@pytest.fixture
def never_ready_probe() -> ScriptedProbe:
    return ScriptedProbe(results=[ProbeResult.not_ready("still starting")])


@pytest.fixture
def make_config() -> Callable[..., GenericServerConfig]:
    """Build a config of a new, distinct kind for every call.

    ``make_config("db", depends_on=["cache"])`` returns a config whose
    container name is ``db`` and whose kind is a fresh ``DbConfig`` class.
    """

    def factory(
        name: str,
        depends_on: Sequence[str] = (),
        probe: Any = None,
        ports: Sequence[int] = (80,),
        timeout: float = 5.0,
        **fields: Any,
    ) -> GenericServerConfig:
        kind = type(
            f"{name.title().replace('-', '')}Config",
            (GenericServerConfig,),
            {"__module__": __name__},
        )
        builder = (
            kind.builder()
            .handle(name)
            .image_name(f"example/{name}:1.0")
            .container_ports(list(ports))
            .probe(probe if probe is not None else ScriptedProbe())
            .timeout(timeout)
            .depends_on(tuple(depends_on))
        )
        for key, value in fields.items():
            builder.set(key, value)
        return builder.build()

    return factory

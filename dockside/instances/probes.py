"""Readiness probes evaluated against a started container."""

import asyncio
import socket
import time
from dataclasses import dataclass, field
from typing import Protocol, Tuple

import aiohttp

from ..core.errors import ContainerRuntimeError
from ..core.types import ProbeResult, RunningContainer
from ..runtime.base import ContainerRuntime
from ..utils.aio import run_sync


class ReadinessProbe(Protocol):
    """Protocol for readiness predicates.

    ``check`` must not raise for expected not-ready conditions; it returns
    NOT_READY, or ERROR when the check itself could not be performed.
    """

    def check(self, container: RunningContainer, runtime: ContainerRuntime) -> ProbeResult:
        """Evaluate the probe once."""

    def describe(self) -> str:
        """Short human-readable description."""


@dataclass(frozen=True)
class TcpProbe:
    """Ready once a TCP connect to the published port succeeds."""

    port: int
    connect_timeout: float = 1.0

    def check(self, container: RunningContainer, runtime: ContainerRuntime) -> ProbeResult:
        try:
            host_port = container.host_port(self.port)
        except KeyError as e:
            return ProbeResult.error(str(e))
        try:
            with socket.create_connection(
                (container.host, host_port), timeout=self.connect_timeout
            ):
                return ProbeResult.ready(f"{container.host}:{host_port} accepts connections")
        except OSError as e:
            return ProbeResult.not_ready(f"Connection error: {e}")

    def describe(self) -> str:
        return f"tcp:{self.port}"


@dataclass(frozen=True)
class HttpProbe:
    """Ready once an HTTP GET on the published port returns the expected status."""

    port: int
    path: str = "/"
    expected_status: int = 200
    scheme: str = "http"
    request_timeout: float = 2.0

    def url(self, container: RunningContainer) -> str:
        path = self.path if self.path.startswith("/") else f"/{self.path}"
        return f"{self.scheme}://{container.external_address(self.port)}{path}"

    def check(self, container: RunningContainer, runtime: ContainerRuntime) -> ProbeResult:
        try:
            url = self.url(container)
        except KeyError as e:
            return ProbeResult.error(str(e))
        start_time = time.time()
        try:
            return run_sync(self._async_check(url))
        except (aiohttp.ClientError, OSError, RuntimeError) as e:
            return ProbeResult.error(
                f"Health check error: {e}", response_time=time.time() - start_time
            )

    async def _async_check(self, url: str) -> ProbeResult:
        start_time = time.time()
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            ) as session:
                async with session.get(url, ssl=False) as response:
                    response_time = time.time() - start_time
                    if response.status == self.expected_status:
                        return ProbeResult.ready(
                            f"HTTP {response.status}", response_time=response_time
                        )
                    return ProbeResult.not_ready(
                        f"HTTP {response.status}: {response.reason}",
                        response_time=response_time,
                    )
        except asyncio.TimeoutError:
            return ProbeResult.not_ready(
                "Connection timeout", response_time=time.time() - start_time
            )
        except (aiohttp.ClientError, OSError) as e:
            return ProbeResult.not_ready(
                f"Connection error: {e}", response_time=time.time() - start_time
            )

    def describe(self) -> str:
        return f"http:{self.port}{self.path} -> {self.expected_status}"


@dataclass(frozen=True)
class CommandProbe:
    """Ready once a command run inside the container exits with 0."""

    command: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "command", tuple(self.command))

    def check(self, container: RunningContainer, runtime: ContainerRuntime) -> ProbeResult:
        try:
            result = runtime.exec(container, self.command)
        except ContainerRuntimeError as e:
            return ProbeResult.error(str(e))
        if result.exit_code == 0:
            return ProbeResult.ready(result.output.strip() or None)
        return ProbeResult.not_ready(
            f"exit code {result.exit_code}: {result.output.strip()}",
            exit_code=result.exit_code,
        )

    def describe(self) -> str:
        return "exec:" + " ".join(self.command)


@dataclass(frozen=True)
class LogMessageProbe:
    """Ready once ``message`` appears in the container's output."""

    message: str

    def check(self, container: RunningContainer, runtime: ContainerRuntime) -> ProbeResult:
        try:
            output = runtime.logs(container)
        except ContainerRuntimeError as e:
            return ProbeResult.error(str(e))
        if self.message in output:
            return ProbeResult.ready(f"found {self.message!r} in logs")
        return ProbeResult.not_ready(f"waiting for {self.message!r} in logs")

    def describe(self) -> str:
        return f"log:{self.message!r}"

"""Readiness polling with exponential backoff."""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.enums import ProbeStatus
from ..core.errors import ReadinessTimeoutError
from ..core.log import Logger, get_logger
from ..core.time import BackoffPolicy, Deadline
from ..core.types import ProbeResult, RunningContainer
from ..runtime.base import ContainerRuntime
from .probes import ReadinessProbe


@dataclass
class ReadinessOutcome:
    """Successful readiness wait."""

    attempts: int
    elapsed: float
    result: ProbeResult


class ReadinessWaiter:
    """Polls a probe until it reports READY or the bound is exhausted.

    The first attempt happens immediately. After failed attempt ``n`` the
    waiter sleeps ``base * multiplier**(n-1)`` seconds, capped at the policy's
    max interval and at whatever is left of the per-container timeout.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        policy: Optional[BackoffPolicy] = None,
        logger: Optional[Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._runtime = runtime
        self._policy = policy or BackoffPolicy()
        self._logger = logger or get_logger(__name__)
        self._sleep = sleep

    def wait(
        self,
        container: RunningContainer,
        probe: ReadinessProbe,
        timeout: float,
    ) -> ReadinessOutcome:
        """Block until ``probe`` passes.

        Raises:
            ReadinessTimeoutError: max attempts used up or timeout elapsed
        """
        deadline = Deadline(timeout)
        last: Optional[ProbeResult] = None
        attempt = 0

        while True:
            attempt += 1
            last = probe.check(container, self._runtime)
            if last.is_ready:
                self._logger.debug(
                    "Container %s ready after %d attempt(s)", container.name, attempt
                )
                return ReadinessOutcome(attempt, deadline.elapsed(), last)

            if last.status == ProbeStatus.ERROR:
                self._logger.debug(
                    "Readiness probe error for %s: %s", container.name, last.message
                )
            else:
                self._logger.debug(
                    "Container %s not ready (attempt %d): %s",
                    container.name,
                    attempt,
                    last.message,
                )

            if attempt >= self._policy.max_attempts or deadline.is_expired():
                break
            delay = min(self._policy.delay(attempt), deadline.remaining())
            if delay <= 0:
                break
            self._sleep(delay)

        raise ReadinessTimeoutError(
            f"Container {container.name} not ready after {attempt} attempt(s) "
            f"in {deadline.elapsed():.1f}s (timeout {timeout}s, probe "
            f"{probe.describe()}): {last.message if last else 'no result'}",
            container=container.name,
            attempts=attempt,
            timeout=timeout,
            last_error=last.message if last else None,
        )

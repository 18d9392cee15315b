"""Tests for ReadinessWaiter backoff and timeout handling."""

import time

import pytest

from dockside.core.errors import ReadinessTimeoutError
from dockside.core.time import BackoffPolicy
from dockside.core.types import ProbeResult, RunningContainer
from dockside.instances.readiness import ReadinessWaiter


@pytest.fixture
def container():
    return RunningContainer(name="svc", handle="id-svc", ip="172.18.0.2", ports={80: 40001})


class TestReadinessWaiter:
    """Test polling with an injected sleep."""

    def setup_method(self):
        self.sleeps = []
        self.policy = BackoffPolicy(base_interval=0.5, multiplier=2.0, max_interval=2.0, max_attempts=6)

    def waiter(self, runtime):
        return ReadinessWaiter(runtime, self.policy, sleep=self.sleeps.append)

    def test_ready_on_first_attempt(self, runtime, container, scripted_probe):
        probe = scripted_probe(failures=0)

        outcome = self.waiter(runtime).wait(container, probe, timeout=60.0)

        assert outcome.attempts == 1
        assert outcome.result.is_ready
        assert self.sleeps == []

    def test_backoff_between_attempts(self, runtime, container, scripted_probe):
        probe = scripted_probe(failures=4)

        outcome = self.waiter(runtime).wait(container, probe, timeout=60.0)

        assert outcome.attempts == 5
        assert probe.calls == 5
        assert self.sleeps == [0.5, 1.0, 2.0, 2.0]

    def test_max_attempts_exhausted(self, runtime, container, never_ready_probe):
        with pytest.raises(ReadinessTimeoutError) as exc_info:
            self.waiter(runtime).wait(container, never_ready_probe, timeout=60.0)

        error = exc_info.value
        assert error.container == "svc"
        assert error.attempts == 6
        assert error.timeout == 60.0
        assert error.last_error == "still starting"
        assert never_ready_probe.calls == 6
        assert len(self.sleeps) == 5

    def test_errors_count_as_failed_attempts(self, runtime, container, scripted_probe):
        probe = scripted_probe(
            results=[
                ProbeResult.error("exec failed"),
                ProbeResult.not_ready("booting"),
                ProbeResult.ready(),
            ]
        )

        outcome = self.waiter(runtime).wait(container, probe, timeout=60.0)

        assert outcome.attempts == 3
        assert self.sleeps == [0.5, 1.0]

    def test_sleep_capped_by_remaining_time(self, runtime, container, never_ready_probe):
        self.policy = BackoffPolicy(base_interval=10.0, multiplier=1.0, max_interval=10.0, max_attempts=3)

        with pytest.raises(ReadinessTimeoutError):
            self.waiter(runtime).wait(container, never_ready_probe, timeout=0.5)

        assert all(delay <= 0.5 for delay in self.sleeps)

    def test_timeout_stops_polling(self, runtime, container, never_ready_probe):
        policy = BackoffPolicy(base_interval=0.02, multiplier=1.0, max_interval=0.02, max_attempts=1000)
        waiter = ReadinessWaiter(runtime, policy)

        started = time.monotonic()
        with pytest.raises(ReadinessTimeoutError) as exc_info:
            waiter.wait(container, never_ready_probe, timeout=0.1)

        assert time.monotonic() - started < 2.0
        assert exc_info.value.attempts < 1000

    def test_real_sleep_between_attempts(self, runtime, container, scripted_probe):
        probe = scripted_probe(failures=2)
        policy = BackoffPolicy(base_interval=0.05, multiplier=2.0, max_interval=1.0, max_attempts=5)

        outcome = ReadinessWaiter(runtime, policy).wait(container, probe, timeout=5.0)

        assert outcome.attempts == 3
        assert probe.call_times[1] - probe.call_times[0] >= 0.05
        assert probe.call_times[2] - probe.call_times[1] >= 0.1
        assert outcome.elapsed >= 0.15

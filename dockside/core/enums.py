"""Core enumerations for the dockside harness.

Kept free of imports from other core modules so that types, errors and
lifecycle code can all depend on it.
"""

from enum import Enum


class ContainerState(Enum):
    """Lifecycle state of one registered container."""

    PENDING = "pending"
    STARTING = "starting"
    AWAITING_READY = "awaiting_ready"
    READY = "ready"
    RUNNING = "running"
    STOPPING = "stopping"
    TERMINATED = "terminated"
    FAILED = "failed"


class ProbeStatus(Enum):
    """Outcome of a single readiness probe evaluation."""

    READY = "ready"
    NOT_READY = "not_ready"
    ERROR = "error"


class PullPolicy(Enum):
    """When the runtime pulls an image before starting a container."""

    ALWAYS = "always"
    IF_NOT_PRESENT = "if_not_present"
    NEVER = "never"


class RunOutcome(Enum):
    """Overall result of one harness run."""

    PASSED = "passed"
    CONFIG_ERROR = "config_error"
    STARTUP_FAILED = "startup_failed"
    READINESS_TIMEOUT = "readiness_timeout"
    BODY_FAILED = "body_failed"
    INTERRUPTED = "interrupted"
    CLEANUP_FAILED = "cleanup_failed"

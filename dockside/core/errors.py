"""Error hierarchy for the dockside harness."""

from typing import Optional, Dict, Any, List, Sequence


class DocksideError(Exception):
    """Base exception for all dockside errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Configuration errors are always raised before any container is started
class ConfigurationError(DocksideError):
    """Invalid harness or server configuration."""


class MissingFieldError(ConfigurationError):
    """A required builder field was not set."""

    def __init__(self, message: str, field: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.field = field


class DuplicateNameError(ConfigurationError):
    """Two registered configs share a container name."""


class UnknownDependencyError(ConfigurationError):
    """A config depends on a container name that was never registered."""


class CyclicDependencyError(ConfigurationError):
    """The declared dependency graph contains a cycle."""

    def __init__(self, message: str, cycle: Sequence[str], details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.cycle = list(cycle)


# Registry lookups
class RegistryLookupError(DocksideError):
    """Base class for instance registry lookup errors."""


class NotRegisteredError(RegistryLookupError):
    """No entry exists for the requested kind."""


class TypeMismatchError(RegistryLookupError):
    """The stored entry does not have the type the caller asked for."""


class RegistryFrozenError(RegistryLookupError):
    """The registry is read-only while the test body runs."""


class DuplicateKindError(ConfigurationError, RegistryLookupError):
    """A second entry was registered for the same server kind."""


# Container runtime errors
class ContainerRuntimeError(DocksideError):
    """Base class for container engine errors."""


class RuntimeUnavailableError(ContainerRuntimeError):
    """The container engine could not be reached."""


class ImagePullError(ContainerRuntimeError):
    """The image could not be pulled or is not present locally."""


class ContainerStartError(ContainerRuntimeError):
    """The engine failed to create or start a container."""


class PortConflictError(ContainerRuntimeError):
    """A requested host port is already in use."""

    def __init__(self, message: str, port: int, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.port = port


class ContainerStopError(ContainerRuntimeError):
    """The engine failed to stop or remove a container."""


# Lifecycle errors
class ReadinessTimeoutError(DocksideError):
    """A container never became ready within its bound."""

    def __init__(self, message: str, container: str, attempts: int, timeout: float,
                 last_error: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.container = container
        self.attempts = attempts
        self.timeout = timeout
        self.last_error = last_error


class StateTransitionError(DocksideError):
    """Illegal container state transition."""


class CleanupError(DocksideError):
    """One or more containers failed to stop or be removed during teardown."""

    def __init__(self, message: str, failures: Optional[List["CleanupFailure"]] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.failures = failures or []


class CleanupFailure:
    """A single teardown failure for one container."""

    def __init__(self, container: str, operation: str, error: BaseException) -> None:
        self.container = container
        self.operation = operation
        self.error = error

    def __str__(self) -> str:
        return f"{self.operation} {self.container}: {self.error}"

    def __repr__(self) -> str:
        return f"CleanupFailure({self.container!r}, {self.operation!r}, {self.error!r})"

"""Core type definitions for the dockside harness."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

from pydantic import BaseModel, Field, model_validator

from .enums import ContainerState, ProbeStatus, PullPolicy, RunOutcome


@dataclass(frozen=True)
class RunningContainer:
    """A started container as reported by the runtime.

    ``ip`` is reachable from other containers, ``host`` from the test process.
    ``ports`` maps container ports to the host ports they were published on.
    """

    name: str
    handle: str
    ip: str
    host: str = "localhost"
    ports: Dict[int, int] = field(default_factory=dict)
    run_id: Optional[str] = None

    def host_port(self, container_port: int) -> int:
        """Host port a container port was published on."""
        try:
            return self.ports[container_port]
        except KeyError:
            raise KeyError(
                f"Port {container_port} is not published by {self.name}"
            ) from None

    def internal_address(self, container_port: int) -> str:
        """Container-network address in the form ``{ip}:{port}``."""
        return f"{self.ip}:{container_port}"

    def external_address(self, container_port: int) -> str:
        """Host-reachable address in the form ``{host}:{mapped port}``."""
        return f"{self.host}:{self.host_port(container_port)}"


class ExecResult(BaseModel):
    """Result of running a command inside a container."""

    exit_code: int
    output: str = ""


class ProbeResult(BaseModel):
    """Outcome of one readiness probe evaluation."""

    status: ProbeStatus
    message: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_ready(self) -> bool:
        return self.status == ProbeStatus.READY

    @classmethod
    def ready(cls, message: Optional[str] = None, **details: Any) -> "ProbeResult":
        return cls(status=ProbeStatus.READY, message=message, details=details)

    @classmethod
    def not_ready(cls, message: Optional[str] = None, **details: Any) -> "ProbeResult":
        return cls(status=ProbeStatus.NOT_READY, message=message, details=details)

    @classmethod
    def error(cls, message: str, **details: Any) -> "ProbeResult":
        return cls(status=ProbeStatus.ERROR, message=message, details=details)


class ReadinessConfig(BaseModel):
    """Exponential backoff used while polling readiness probes."""

    base_interval: float = 0.25
    multiplier: float = 2.0
    max_interval: float = 5.0
    max_attempts: int = 60


class TimeoutConfig(BaseModel):
    """Centralized timeout configuration."""

    container_stop: float = 10.0
    port_resolution: float = 5.0
    engine_request: float = 60.0


class RuntimeConfig(BaseModel):
    """Container engine settings."""

    base_url: Optional[str] = None
    pull_policy: PullPolicy = PullPolicy.IF_NOT_PRESENT
    external_host: str = "localhost"
    network: Optional[str] = None
    label_prefix: str = "dockside"


class HarnessConfig(BaseModel):
    """Main harness configuration."""

    readiness: ReadinessConfig = Field(default_factory=ReadinessConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    concurrent_start: bool = False
    max_workers: int = 4
    log_level: str = "INFO"

    @model_validator(mode="after")
    def validate_config(self) -> "HarnessConfig":
        """Pure consistency checks, no side effects."""
        from .errors import ConfigurationError

        readiness = self.readiness
        if readiness.base_interval <= 0:
            raise ConfigurationError("Readiness base interval must be positive")
        if readiness.multiplier < 1.0:
            raise ConfigurationError("Readiness backoff multiplier must be >= 1.0")
        if readiness.max_interval < readiness.base_interval:
            raise ConfigurationError(
                "Readiness max interval must not be below the base interval"
            )
        if readiness.max_attempts < 1:
            raise ConfigurationError("Readiness max attempts must be at least 1")
        for name, value in self.timeouts.model_dump().items():
            if value <= 0:
                raise ConfigurationError(f"Timeout {name} must be positive")
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")

        return self


class ContainerReport(BaseModel):
    """Per-container lifecycle record kept after a run."""

    name: str
    kind: str
    state: ContainerState
    start_index: Optional[int] = None
    history: List[ContainerState] = Field(default_factory=list)
    readiness_attempts: int = 0
    startup_duration: float = 0.0
    error_message: Optional[str] = None


class RunReport(BaseModel):
    """Summary of one harness run."""

    run_id: str
    outcome: RunOutcome
    containers: List[ContainerReport] = Field(default_factory=list)
    start_order: List[str] = Field(default_factory=list)
    teardown_order: List[str] = Field(default_factory=list)
    cleanup_failures: List[str] = Field(default_factory=list)
    total_duration: float = 0.0

    def container(self, name: str) -> ContainerReport:
        for report in self.containers:
            if report.name == name:
                return report
        raise KeyError(name)

"""
Dockside: containerized servers for integration tests

Register server configurations, let the harness start the containers in
dependency order and wait until each one is ready, then run the test body
against them. Every container that was started is stopped and removed
afterwards, however the test ends.
"""

__version__ = "0.2.0"

from .core.enums import ContainerState, ProbeStatus, PullPolicy, RunOutcome
from .core.types import HarnessConfig, ReadinessConfig, RunningContainer, RunReport
from .instances import (
    CommandProbe,
    GenericServerConfig,
    HttpProbe,
    LogMessageProbe,
    Server,
    ServerConfig,
    TcpProbe,
    Test,
    TestInstance,
)

__all__ = [
    "__version__",
    "ContainerState",
    "ProbeStatus",
    "PullPolicy",
    "RunOutcome",
    "HarnessConfig",
    "ReadinessConfig",
    "RunningContainer",
    "RunReport",
    "CommandProbe",
    "GenericServerConfig",
    "HttpProbe",
    "LogMessageProbe",
    "Server",
    "ServerConfig",
    "TcpProbe",
    "Test",
    "TestInstance",
]

"""Server configs, lifecycle orchestration and facades.

API:
    - Test, TestInstance: register configs and run a test body
    - ServerConfig, GenericServerConfig: what to start
    - Server: typed connection details for a ready container
    - TcpProbe, HttpProbe, CommandProbe, LogMessageProbe: readiness checks
"""

from .harness import Test, TestInstance
from .probes import CommandProbe, HttpProbe, LogMessageProbe, ReadinessProbe, TcpProbe
from .registry import InstanceEntry, InstanceRegistry
from .server import Server
from .server_config import ConfigBuilder, GenericServerConfig, ServerConfig

__all__ = [
    "Test",
    "TestInstance",
    "CommandProbe",
    "HttpProbe",
    "LogMessageProbe",
    "ReadinessProbe",
    "TcpProbe",
    "InstanceEntry",
    "InstanceRegistry",
    "Server",
    "ConfigBuilder",
    "GenericServerConfig",
    "ServerConfig",
]

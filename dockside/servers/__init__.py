"""Ready-made server kinds."""

from .auth import OIDCServer, OIDCServerConfig
from .cloud import LocalStackServer, LocalStackServerConfig
from .database import PostgresServer, PostgresServerConfig, RedisServer, RedisServerConfig
from .hashi import (
    ConsulServer,
    ConsulServerConfig,
    CountingServer,
    CountingServerConfig,
    VaultServer,
    VaultServerConfig,
)
from .web import NginxServer, NginxServerConfig, WebContent

BUILTIN_SERVERS = (
    VaultServer,
    ConsulServer,
    CountingServer,
    PostgresServer,
    RedisServer,
    OIDCServer,
    LocalStackServer,
    NginxServer,
)

__all__ = [
    "BUILTIN_SERVERS",
    "ConsulServer",
    "ConsulServerConfig",
    "CountingServer",
    "CountingServerConfig",
    "LocalStackServer",
    "LocalStackServerConfig",
    "NginxServer",
    "NginxServerConfig",
    "OIDCServer",
    "OIDCServerConfig",
    "PostgresServer",
    "PostgresServerConfig",
    "RedisServer",
    "RedisServerConfig",
    "VaultServer",
    "VaultServerConfig",
    "WebContent",
]

"""Database servers."""

from typing import ClassVar, Dict, List

from pydantic import Field

from ..instances.probes import CommandProbe, LogMessageProbe, ReadinessProbe
from ..instances.server import Server
from ..instances.server_config import ServerConfig
from ..utils.crypto import rand_string


class PostgresServerConfig(ServerConfig):
    """PostgreSQL listening on all interfaces with a random password."""

    IMAGE = "postgres"
    CONTAINER_PORT = 5432
    USER: ClassVar[str] = "postgres"

    password: str = Field(default_factory=lambda: rand_string(16))

    def service_env(self) -> Dict[str, str]:
        return {"POSTGRES_PASSWORD": self.password}

    def command(self) -> List[str]:
        return list(self.args) + ["-c", "listen_addresses=*"]

    def readiness_probe(self) -> ReadinessProbe:
        # The entrypoint's init server does not listen on TCP, so this only
        # passes once the real server is up.
        return CommandProbe(("pg_isready", "-h", "127.0.0.1", "-U", self.USER))


class PostgresServer(Server):
    """Connection strings for a PostgreSQL container (libpq URL form)."""

    config_type = PostgresServerConfig
    scheme = "postgresql"

    @property
    def username(self) -> str:
        return self.config.USER

    @property
    def password(self) -> str:
        return self.config.password

    def internal_auth_url(self) -> str:
        return f"{self.scheme}://{self.username}:{self.password}@{self.internal_address()}"

    def external_auth_url(self) -> str:
        return f"{self.scheme}://{self.username}:{self.password}@{self.external_address()}"


class RedisServerConfig(ServerConfig):
    IMAGE = "redis"
    CONTAINER_PORT = 6379

    def readiness_probe(self) -> ReadinessProbe:
        return LogMessageProbe("Ready to accept connections")


class RedisServer(Server):
    config_type = RedisServerConfig
    scheme = "redis"

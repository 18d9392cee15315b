"""HashiCorp servers: Vault, Consul and the counting demo service."""

from typing import ClassVar, Dict, List, Tuple

from pydantic import Field

from ..instances.probes import HttpProbe, LogMessageProbe, ReadinessProbe
from ..instances.server import Server
from ..instances.server_config import ServerConfig
from ..utils.crypto import rand_string


class VaultServerConfig(ServerConfig):
    """Vault in dev mode with a known root token.

    The ``vault`` image stopped publishing after 1.13, so that is the default
    version.
    """

    IMAGE = "vault"
    DEFAULT_VERSION = "1.13.3"
    CONTAINER_PORT = 8200
    LOG_MSG: ClassVar[str] = "Development mode should NOT be used in production installations!"

    token: str = Field(default_factory=lambda: rand_string(16))

    def service_env(self) -> Dict[str, str]:
        return {"VAULT_DEV_ROOT_TOKEN_ID": self.token}

    def readiness_probe(self) -> ReadinessProbe:
        return LogMessageProbe(self.LOG_MSG)


class VaultServer(Server):
    config_type = VaultServerConfig

    @property
    def token(self) -> str:
        return self.config.token

    def auth_headers(self) -> Dict[str, str]:
        return {"X-Vault-Token": self.token}


class ConsulServerConfig(ServerConfig):
    """Single-node Consul agent in dev mode."""

    IMAGE = "hashicorp/consul"
    CONTAINER_PORT = 8500
    DEFAULT_ARGS: ClassVar[Tuple[str, ...]] = ("agent", "-dev", "-client", "0.0.0.0")

    def command(self) -> List[str]:
        return list(self.args) if self.args else list(self.DEFAULT_ARGS)

    def readiness_probe(self) -> ReadinessProbe:
        return HttpProbe(self.CONTAINER_PORT, "/v1/status/leader")


class ConsulServer(Server):
    config_type = ConsulServerConfig


class CountingServerConfig(ServerConfig):
    """HashiCorp's counting demo service."""

    IMAGE = "hashicorp/counting-service"
    DEFAULT_VERSION = "0.0.2"
    CONTAINER_PORT = 9001

    def readiness_probe(self) -> ReadinessProbe:
        return LogMessageProbe("Serving at")


class CountingServer(Server):
    config_type = CountingServerConfig

"""Cloud API emulators."""

from ..instances.probes import HttpProbe, ReadinessProbe
from ..instances.server import Server
from ..instances.server_config import ServerConfig


class LocalStackServerConfig(ServerConfig):
    """LocalStack edge endpoint serving every emulated AWS API on one port."""

    IMAGE = "localstack/localstack"
    CONTAINER_PORT = 4566

    def readiness_probe(self) -> ReadinessProbe:
        return HttpProbe(self.CONTAINER_PORT, "/_localstack/health")


class LocalStackServer(Server):
    config_type = LocalStackServerConfig

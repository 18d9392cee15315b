"""Authentication servers."""

from ..instances.probes import HttpProbe, ReadinessProbe
from ..instances.server import Server
from ..instances.server_config import ServerConfig


class OIDCServerConfig(ServerConfig):
    """Mock OAuth2/OIDC provider; every issuer name is served on demand."""

    IMAGE = "ghcr.io/navikt/mock-oauth2-server"
    DEFAULT_VERSION = "0.3.5"
    CONTAINER_PORT = 8080

    def readiness_probe(self) -> ReadinessProbe:
        return HttpProbe(self.CONTAINER_PORT, "/default/.well-known/openid-configuration")


class OIDCServer(Server):
    config_type = OIDCServerConfig

    def internal_issuer_url(self, issuer: str = "default") -> str:
        return f"{self.internal_url()}/{issuer}"

    def external_issuer_url(self, issuer: str = "default") -> str:
        return f"{self.external_url()}/{issuer}"

    def discovery_url(self, issuer: str = "default") -> str:
        return f"{self.external_issuer_url(issuer)}/.well-known/openid-configuration"

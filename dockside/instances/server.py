"""Server facades: typed views over a ready registry entry."""

from typing import ClassVar, Type, TypeVar

from ..core.errors import DocksideError
from ..core.types import RunningContainer
from .registry import InstanceEntry
from .server_config import ServerConfig

S = TypeVar("S", bound="Server")


class Server:
    """Connection details derived from a config and its running container.

    A facade owns no resources; every property is computed from the stored
    config and container, so building one twice yields equal values.
    ``config_type`` names the config class the facade reads from the registry.
    """

    config_type: ClassVar[Type[ServerConfig]] = ServerConfig
    scheme: ClassVar[str] = "http"

    def __init__(self, config: ServerConfig, container: RunningContainer) -> None:
        self.config = config
        self.container = container

    @classmethod
    def new(cls: Type[S], config: ServerConfig, container: RunningContainer) -> S:
        return cls(config, container)

    @classmethod
    def from_entry(cls: Type[S], entry: InstanceEntry) -> S:
        return cls.new(entry.config, entry.container)

    @property
    def name(self) -> str:
        return self.container.name

    @property
    def ip(self) -> str:
        return self.container.ip

    @property
    def host(self) -> str:
        return self.container.host

    @property
    def internal_port(self) -> int:
        """Primary container port."""
        mappings = self.config.port_mappings()
        if not mappings:
            raise DocksideError(f"{self.name} does not publish any port")
        return mappings[0].container_port

    @property
    def external_port(self) -> int:
        """Host port the primary container port was published on."""
        return self.container.host_port(self.internal_port)

    def internal_address(self) -> str:
        """Container-network address in the form ``{ip}:{port}``."""
        return self.container.internal_address(self.internal_port)

    def external_address(self) -> str:
        """Host-reachable address in the form ``{host}:{port}``."""
        return self.container.external_address(self.internal_port)

    def internal_url(self) -> str:
        return f"{self.scheme}://{self.internal_address()}"

    def external_url(self) -> str:
        return f"{self.scheme}://{self.external_address()}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.external_address()!r})"

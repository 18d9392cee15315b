"""Domain primitives for images, container names and port mappings."""

import re
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError

_CONTAINER_NAME = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")
_PROTOCOLS = ("tcp", "udp")


def validate_container_name(value: str) -> str:
    """Return value if Docker accepts it as a container name."""
    if not value or not value.strip():
        raise ConfigurationError("Container name cannot be empty")
    if not _CONTAINER_NAME.match(value):
        raise ConfigurationError(
            f"Container name must match [a-zA-Z0-9][a-zA-Z0-9_.-]*: {value}"
        )
    return value


@dataclass(frozen=True)
class ImageRef:
    """Image repository plus tag. Hashable, printable as ``repo:tag``."""

    repository: str
    tag: str = "latest"

    def __post_init__(self) -> None:
        if not self.repository or not self.repository.strip():
            raise ConfigurationError("Image repository cannot be empty")
        if not self.tag or not self.tag.strip():
            raise ConfigurationError(f"Image tag cannot be empty for {self.repository}")

    @classmethod
    def parse(cls, reference: str) -> "ImageRef":
        """Parse ``repo[:tag]``; a registry port (``host:5000/img``) is not a tag."""
        if not reference or not reference.strip():
            raise ConfigurationError("Image reference cannot be empty")
        last_segment = reference.rsplit("/", 1)[-1]
        if ":" in last_segment:
            repository, tag = reference.rsplit(":", 1)
            return cls(repository, tag)
        return cls(reference)

    @property
    def basename(self) -> str:
        """Last path component of the repository, e.g. ``localstack``."""
        return self.repository.rsplit("/", 1)[-1]

    def __str__(self) -> str:
        return f"{self.repository}:{self.tag}"


@dataclass(frozen=True)
class PortMapping:
    """Container port published on a host port.

    ``host_port=None`` asks the runtime for any free host port.
    """

    container_port: int
    host_port: Optional[int] = None
    protocol: str = "tcp"

    def __post_init__(self) -> None:
        if not 1 <= self.container_port <= 65535:
            raise ConfigurationError(f"Invalid container port: {self.container_port}")
        if self.host_port is not None and not 1 <= self.host_port <= 65535:
            raise ConfigurationError(f"Invalid host port: {self.host_port}")
        if self.protocol not in _PROTOCOLS:
            raise ConfigurationError(f"Unsupported protocol: {self.protocol}")

    @property
    def key(self) -> str:
        """Engine-style port key, e.g. ``8200/tcp``."""
        return f"{self.container_port}/{self.protocol}"

    def __str__(self) -> str:
        host = self.host_port if self.host_port is not None else "*"
        return f"{host}->{self.key}"

"""Nginx serving static content supplied by the test."""

from dataclasses import dataclass
from typing import ClassVar, Dict, List

from pydantic import Field, model_validator

from ..core.errors import ConfigurationError
from ..instances.probes import LogMessageProbe, ReadinessProbe
from ..instances.server import Server
from ..instances.server_config import ServerConfig

CONF_DIR = "/etc/nginx/conf.d"
HTML_DIR = "/usr/share/nginx/html"
CONTENT_CONF = "dockside-content.conf"


@dataclass(frozen=True)
class WebContent:
    """One static resource: stored as ``name``, served at ``serve_path``."""

    name: str
    content: bytes
    serve_path: str
    content_type: str = "text/html"

    def __post_init__(self) -> None:
        if not self.name or "/" in self.name or self.name in (".", ".."):
            raise ConfigurationError(f"Invalid web content file name: {self.name!r}")
        if not self.serve_path.startswith("/"):
            raise ConfigurationError(
                f"Serve path must start with '/': {self.serve_path!r}"
            )

    @property
    def target_path(self) -> str:
        return f"{HTML_DIR}/{self.name}"

    def location_block(self) -> str:
        return (
            f"    location = {self.serve_path} {{\n"
            f"        default_type {self.content_type};\n"
            f"        alias {self.target_path};\n"
            f"    }}\n"
        )


class NginxServerConfig(ServerConfig):
    """Nginx on port 8888.

    A generated ``conf.d`` server block always listens on 8888 and the
    image's default site (port 80) is replaced by an empty file. Web content
    is copied next to it. Extra verbatim config files can be supplied
    through ``configs`` (file name to text).
    """

    IMAGE = "nginx"
    CONTAINER_PORT = 8888
    LOG_MSG: ClassVar[str] = "start worker process"

    content: List[WebContent] = Field(default_factory=list)
    configs: Dict[str, str] = Field(default_factory=dict)
    timeout: float = 10.0

    @model_validator(mode="after")
    def validate_content(self) -> "NginxServerConfig":
        paths = [item.serve_path for item in self.content]
        duplicates = sorted({path for path in paths if paths.count(path) > 1})
        if duplicates:
            raise ConfigurationError(
                f"{self.handle}: serve paths used more than once: {', '.join(duplicates)}"
            )
        names = [item.name for item in self.content]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"{self.handle}: web content names must be unique")
        for file_name in self.configs:
            if "/" in file_name or not file_name.endswith(".conf"):
                raise ConfigurationError(
                    f"{self.handle}: config file name must be a bare *.conf name: {file_name!r}"
                )
        return self

    def server_block(self) -> str:
        """Generated server block serving every content item."""
        locations = "\n".join(item.location_block() for item in self.content)
        return (
            "server {\n"
            f"    listen {self.CONTAINER_PORT} default_server;\n"
            f"    root {HTML_DIR};\n"
            "\n"
            f"{locations}\n"
            "    # allow every HTTP method on static resources\n"
            "    error_page 405 =200 $uri;\n"
            "}\n"
        )

    def files(self) -> Dict[str, bytes]:
        files: Dict[str, bytes] = {
            f"{CONF_DIR}/default.conf": b"",
            f"{CONF_DIR}/{CONTENT_CONF}": self.server_block().encode("utf-8"),
        }
        for item in self.content:
            files[item.target_path] = item.content
        for file_name, text in self.configs.items():
            files[f"{CONF_DIR}/{file_name}"] = text.encode("utf-8")
        return files

    def readiness_probe(self) -> ReadinessProbe:
        return LogMessageProbe(self.LOG_MSG)


class NginxServer(Server):
    config_type = NginxServerConfig

    def external_url_for(self, serve_path: str) -> str:
        return f"{self.external_url()}{serve_path}"

    def internal_url_for(self, serve_path: str) -> str:
        return f"{self.internal_url()}{serve_path}"

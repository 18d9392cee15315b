"""Server configuration contract and its builder.

A ``ServerConfig`` is an immutable description of one container: which image
to run, what to call it, which ports to publish, how to tell it is ready and
which other containers it waits for. Every server kind subclasses it and fills
in the class-level image and port defaults; tests build instances through
``SomeConfig.builder()``.
"""

from typing import (
    Any,
    ClassVar,
    Dict,
    Generic,
    List,
    Optional,
    Tuple,
    Type,
    TypeVar,
)

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..core.errors import ConfigurationError, MissingFieldError
from ..core.value_objects import ImageRef, PortMapping, validate_container_name
from ..utils.crypto import new_handle
from .probes import ReadinessProbe, TcpProbe

C = TypeVar("C", bound="ServerConfig")

DEFAULT_TIMEOUT = 60.0


class ServerConfig(BaseModel):
    """Base class for every server configuration.

    Subclasses set ``IMAGE``, ``DEFAULT_VERSION`` and ``CONTAINER_PORT`` and
    override ``readiness_probe``; most also add service-specific fields and
    contribute environment through ``service_env``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    IMAGE: ClassVar[str] = ""
    DEFAULT_VERSION: ClassVar[str] = "latest"
    CONTAINER_PORT: ClassVar[Optional[int]] = None

    handle: str = ""
    version: str = ""
    port: Optional[int] = None
    env: Dict[str, str] = Field(default_factory=dict)
    args: List[str] = Field(default_factory=list)
    volumes: Dict[str, str] = Field(default_factory=dict)
    timeout: Optional[float] = DEFAULT_TIMEOUT
    depends_on: Tuple[str, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def fill_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("version"):
            data["version"] = cls.DEFAULT_VERSION
        if not data.get("handle"):
            data["handle"] = new_handle(cls.default_handle_prefix(data))
        return data

    @classmethod
    def default_handle_prefix(cls, data: Dict[str, Any]) -> str:
        if not cls.IMAGE:
            return "server"
        return ImageRef.parse(cls.IMAGE).basename

    @model_validator(mode="after")
    def validate_config(self) -> "ServerConfig":
        """Reject configs that could only fail later at run time."""
        validate_container_name(self.handle)
        image = self.image()
        if self.timeout is None or self.timeout <= 0:
            raise ConfigurationError(
                f"{type(self).__name__} {self.handle}: readiness timeout must be "
                f"set to a positive number of seconds, got {self.timeout}"
            )
        if self.handle in self.depends_on:
            raise ConfigurationError(f"{self.handle} cannot depend on itself")

        seen_container: Dict[Tuple[int, str], PortMapping] = {}
        seen_host: Dict[Tuple[int, str], PortMapping] = {}
        for mapping in self.port_mappings():
            key = (mapping.container_port, mapping.protocol)
            if key in seen_container:
                raise ConfigurationError(
                    f"{self.handle}: container port {mapping.key} is mapped twice"
                )
            seen_container[key] = mapping
            if mapping.host_port is not None:
                host_key = (mapping.host_port, mapping.protocol)
                if host_key in seen_host:
                    raise ConfigurationError(
                        f"{self.handle}: host port {mapping.host_port} is used by "
                        f"{seen_host[host_key].key} and {mapping.key} ({image})"
                    )
                seen_host[host_key] = mapping
        return self

    @classmethod
    def builder(cls: Type[C]) -> "ConfigBuilder[C]":
        return ConfigBuilder(cls)

    @classmethod
    def kind(cls) -> type:
        """Registry key for this config; one instance per kind per run."""
        return cls

    def image(self) -> ImageRef:
        if not self.IMAGE:
            raise ConfigurationError(f"{type(self).__name__} does not define an image")
        return ImageRef(ImageRef.parse(self.IMAGE).repository, self.version)

    def container_name(self) -> str:
        return self.handle

    def service_env(self) -> Dict[str, str]:
        """Environment owned by the service; wins over user-supplied keys."""
        return {}

    def environment(self) -> Dict[str, str]:
        env = dict(self.env)
        env.update(self.service_env())
        return env

    def port_mappings(self) -> List[PortMapping]:
        if self.CONTAINER_PORT is None:
            return []
        return [PortMapping(self.CONTAINER_PORT, self.port)]

    def readiness_probe(self) -> ReadinessProbe:
        if self.CONTAINER_PORT is None:
            raise ConfigurationError(
                f"{type(self).__name__} has no port and must define a readiness probe"
            )
        return TcpProbe(self.CONTAINER_PORT)

    def dependencies(self) -> Tuple[str, ...]:
        return tuple(self.depends_on)

    def command(self) -> List[str]:
        return list(self.args)

    def mounts(self) -> Dict[str, str]:
        return dict(self.volumes)

    def files(self) -> Dict[str, bytes]:
        """Files copied into the container before it starts."""
        return {}

    def describe(self) -> str:
        ports = ", ".join(str(m) for m in self.port_mappings()) or "no ports"
        return f"{self.handle} ({self.image()}, {ports})"


class GenericServerConfig(ServerConfig):
    """Any image, described entirely through fields.

    ``probe`` and ``timeout`` have no defaults: a generic container has no
    known readiness signal.
    """

    image_name: str
    container_ports: List[int] = Field(default_factory=list)
    host_ports: Dict[int, int] = Field(default_factory=dict)
    probe: Any
    timeout: Optional[float] = None

    @classmethod
    def default_handle_prefix(cls, data: Dict[str, Any]) -> str:
        image_name = data.get("image_name")
        if isinstance(image_name, str) and image_name.strip():
            return ImageRef.parse(image_name).basename
        return "generic"

    @model_validator(mode="after")
    def validate_probe(self) -> "GenericServerConfig":
        if not callable(getattr(self.probe, "check", None)):
            raise ConfigurationError(
                f"{self.handle}: probe must provide a check(container, runtime) method"
            )
        return self

    def image(self) -> ImageRef:
        ref = ImageRef.parse(self.image_name)
        if ref.tag == "latest" and self.version:
            return ImageRef(ref.repository, self.version)
        return ref

    def port_mappings(self) -> List[PortMapping]:
        return [
            PortMapping(port, self.host_ports.get(port)) for port in self.container_ports
        ]

    def readiness_probe(self) -> ReadinessProbe:
        return self.probe


class ConfigBuilder(Generic[C]):
    """Collects named field values and validates them on ``build()``.

    Every model field has a chainable setter of the same name::

        config = VaultServerConfig.builder().port(9200).version("1.13.3").build()
    """

    def __init__(self, config_cls: Type[C]) -> None:
        self._config_cls = config_cls
        self._values: Dict[str, Any] = {}

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name not in self._config_cls.model_fields:
            raise ConfigurationError(
                f"{self._config_cls.__name__} has no field {name!r}",
                details={"fields": sorted(self._config_cls.model_fields)},
            )

        def setter(value: Any) -> "ConfigBuilder[C]":
            self._values[name] = value
            return self

        return setter

    def set(self, name: str, value: Any) -> "ConfigBuilder[C]":
        return getattr(self, name)(value)

    def build(self) -> C:
        """Validate and create the config.

        Raises:
            MissingFieldError: A required field was never set
            ConfigurationError: Any other invalid value
        """
        try:
            return self._config_cls(**self._values)
        except ValidationError as e:
            errors = e.errors()
            missing = [err for err in errors if err["type"] == "missing"]
            if missing:
                field = ".".join(str(part) for part in missing[0]["loc"])
                raise MissingFieldError(
                    f"{self._config_cls.__name__}: required field {field!r} is not set",
                    field=field,
                ) from e
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<config>'}: {err['msg']}"
                for err in errors
            )
            raise ConfigurationError(
                f"Invalid {self._config_cls.__name__}: {problems}"
            ) from e

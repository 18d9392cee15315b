"""Docker engine adapter built on the docker SDK."""

import io
import tarfile
import threading
import time
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

import docker
import requests
from docker.errors import APIError, DockerException, ImageNotFound, NotFound

from ..core.enums import PullPolicy
from ..core.errors import (
    ContainerRuntimeError,
    ContainerStartError,
    ContainerStopError,
    ImagePullError,
    PortConflictError,
    RuntimeUnavailableError,
)
from ..core.log import get_logger, log_container_event
from ..core.time import Deadline
from ..core.type_map import type_tag
from ..core.types import ExecResult, RunningContainer, RuntimeConfig, TimeoutConfig
from ..core.value_objects import ImageRef, PortMapping
from ..utils.ports import is_port_available

if TYPE_CHECKING:
    from ..instances.server_config import ServerConfig

logger = get_logger(__name__)

_PORT_POLL_INTERVAL = 0.1


def build_archive(files: Mapping[str, bytes]) -> bytes:
    """Pack ``{absolute path: content}`` into a tar stream rooted at ``/``."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as archive:
        for path, content in sorted(files.items()):
            info = tarfile.TarInfo(name=path.lstrip("/"))
            info.size = len(content)
            info.mode = 0o644
            info.mtime = int(time.time())
            archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def published_ports(
    port_settings: Mapping[str, Any], mappings: Sequence[PortMapping]
) -> Optional[Dict[int, int]]:
    """Host ports the engine bound for ``mappings``, or None until all are bound."""
    resolved: Dict[int, int] = {}
    for mapping in mappings:
        bindings = port_settings.get(mapping.key) or []
        host_ports = [b.get("HostPort") for b in bindings if b.get("HostPort")]
        if not host_ports:
            return None
        resolved[mapping.container_port] = int(host_ports[0])
    return resolved


def container_ip(network_settings: Mapping[str, Any], network: Optional[str] = None) -> str:
    """Container-network address, preferring the configured network."""
    networks = network_settings.get("Networks") or {}
    if network and network in networks and networks[network].get("IPAddress"):
        return networks[network]["IPAddress"]
    if network_settings.get("IPAddress"):
        return network_settings["IPAddress"]
    for settings in networks.values():
        if settings.get("IPAddress"):
            return settings["IPAddress"]
    return ""


class DockerRuntime:
    """ContainerRuntime backed by a local or remote Docker engine."""

    def __init__(
        self,
        config: Optional[RuntimeConfig] = None,
        timeouts: Optional[TimeoutConfig] = None,
        client: Optional[docker.DockerClient] = None,
    ) -> None:
        self._config = config or RuntimeConfig()
        self._timeouts = timeouts or TimeoutConfig()
        self._client = client
        self._lock = threading.Lock()

    @property
    def client(self) -> docker.DockerClient:
        """Engine client, connected on first use."""
        with self._lock:
            if self._client is None:
                timeout = int(self._timeouts.engine_request)
                try:
                    if self._config.base_url:
                        self._client = docker.DockerClient(
                            base_url=self._config.base_url, timeout=timeout
                        )
                    else:
                        self._client = docker.from_env(timeout=timeout)
                except DockerException as e:
                    raise RuntimeUnavailableError(
                        f"Cannot connect to the Docker engine: {e}"
                    ) from e
            return self._client

    def label(self, name: str) -> str:
        return f"{self._config.label_prefix}.{name}"

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except (RuntimeUnavailableError, DockerException, requests.RequestException) as e:
            logger.debug("Docker engine ping failed: %s", e)
            return False

    def start(
        self, config: "ServerConfig", run_id: Optional[str] = None
    ) -> RunningContainer:
        image = config.image()
        name = config.container_name()
        mappings = config.port_mappings()

        self._ensure_image(image)
        self._check_host_ports(name, mappings)

        labels = {
            self.label("managed"): "true",
            self.label("kind"): type_tag(config.kind()),
        }
        if run_id:
            labels[self.label("run_id")] = run_id
        volumes = {
            host: {"bind": target, "mode": "rw"}
            for host, target in config.mounts().items()
        }

        log_container_event(logger, "creating", name, image=str(image))
        try:
            container = self.client.containers.create(
                str(image),
                name=name,
                command=config.command() or None,
                environment=config.environment(),
                ports={m.key: m.host_port for m in mappings},
                labels=labels,
                volumes=volumes or None,
                network=self._config.network,
                detach=True,
            )
        except ImageNotFound as e:
            raise ImagePullError(f"Image {image} not found: {e}") from e
        except (APIError, requests.RequestException) as e:
            raise ContainerStartError(f"Failed to create container {name}: {e}") from e

        try:
            files = config.files()
            if files:
                container.put_archive("/", build_archive(files))
            container.start()
            running = self._resolve(container, name, mappings, run_id)
        except (ContainerRuntimeError, DockerException, requests.RequestException) as e:
            self._discard(container, name)
            if isinstance(e, ContainerRuntimeError):
                raise
            if isinstance(e, APIError) and "port is already allocated" in str(e):
                requested = [m.host_port for m in mappings if m.host_port]
                raise PortConflictError(
                    f"Host port for {name} is already allocated: {e}",
                    port=requested[0] if requested else 0,
                ) from e
            raise ContainerStartError(f"Failed to start container {name}: {e}") from e
        except BaseException:
            # interrupted after create: the caller never sees this container
            self._discard(container, name)
            raise

        log_container_event(
            logger, "started", name, handle=running.handle, ports=running.ports
        )
        return running

    def stop(self, container: RunningContainer) -> None:
        try:
            engine_container = self.client.containers.get(container.handle)
            engine_container.stop(timeout=int(self._timeouts.container_stop))
        except NotFound:
            logger.debug("Container %s already gone, nothing to stop", container.name)
        except APIError as e:
            if e.status_code == 304:
                return
            raise ContainerStopError(f"Failed to stop {container.name}: {e}") from e
        except requests.RequestException as e:
            raise ContainerStopError(f"Failed to stop {container.name}: {e}") from e

    def remove(self, container: RunningContainer) -> None:
        try:
            engine_container = self.client.containers.get(container.handle)
            engine_container.remove(force=True, v=True)
        except NotFound:
            logger.debug("Container %s already removed", container.name)
        except APIError as e:
            # 409: removal already in progress
            if e.status_code == 409:
                return
            raise ContainerStopError(f"Failed to remove {container.name}: {e}") from e
        except requests.RequestException as e:
            raise ContainerStopError(f"Failed to remove {container.name}: {e}") from e

    def exec(self, container: RunningContainer, command: Sequence[str]) -> ExecResult:
        try:
            engine_container = self.client.containers.get(container.handle)
            result = engine_container.exec_run(list(command))
        except (DockerException, requests.RequestException) as e:
            raise ContainerRuntimeError(
                f"Failed to exec in {container.name}: {e}"
            ) from e
        output = result.output or b""
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        return ExecResult(exit_code=result.exit_code, output=output)

    def logs(self, container: RunningContainer) -> str:
        try:
            engine_container = self.client.containers.get(container.handle)
            raw = engine_container.logs(stdout=True, stderr=True)
        except (DockerException, requests.RequestException) as e:
            raise ContainerRuntimeError(
                f"Failed to read logs of {container.name}: {e}"
            ) from e
        return raw.decode("utf-8", errors="replace")

    def prune(self, run_id: Optional[str] = None) -> List[str]:
        filters = [f"{self.label('managed')}=true"]
        if run_id:
            filters.append(f"{self.label('run_id')}={run_id}")
        try:
            leftovers = self.client.containers.list(all=True, filters={"label": filters})
        except (DockerException, requests.RequestException) as e:
            raise ContainerRuntimeError(f"Failed to list containers: {e}") from e

        removed = []
        for engine_container in leftovers:
            try:
                engine_container.remove(force=True, v=True)
            except NotFound:
                continue
            except APIError as e:
                logger.warning("Could not prune %s: %s", engine_container.name, e)
                continue
            log_container_event(logger, "pruned", engine_container.name)
            removed.append(engine_container.name)
        return removed

    def _ensure_image(self, image: ImageRef) -> None:
        policy = self._config.pull_policy
        if policy != PullPolicy.ALWAYS:
            try:
                self.client.images.get(str(image))
                return
            except ImageNotFound:
                if policy == PullPolicy.NEVER:
                    raise ImagePullError(
                        f"Image {image} is not present locally and pull policy is 'never'"
                    ) from None
            except (APIError, requests.RequestException) as e:
                raise ImagePullError(f"Failed to inspect image {image}: {e}") from e

        logger.info("Pulling image %s", image)
        try:
            self.client.images.pull(image.repository, tag=image.tag)
        except (APIError, requests.RequestException) as e:
            raise ImagePullError(f"Failed to pull image {image}: {e}") from e

    def _check_host_ports(self, name: str, mappings: Sequence[PortMapping]) -> None:
        for mapping in mappings:
            if mapping.host_port is None or mapping.protocol != "tcp":
                continue
            if not is_port_available(mapping.host_port):
                raise PortConflictError(
                    f"Host port {mapping.host_port} requested by {name} is already in use",
                    port=mapping.host_port,
                )

    def _resolve(
        self,
        container: Any,
        name: str,
        mappings: Sequence[PortMapping],
        run_id: Optional[str],
    ) -> RunningContainer:
        """Wait until the engine reports every published port."""
        deadline = Deadline(self._timeouts.port_resolution)
        while True:
            container.reload()
            if container.status in ("exited", "dead"):
                raise ContainerStartError(
                    f"Container {name} exited during startup with status {container.status}"
                )
            settings = container.attrs.get("NetworkSettings") or {}
            ports = published_ports(settings.get("Ports") or {}, mappings)
            if ports is not None:
                break
            if deadline.is_expired():
                raise ContainerStartError(
                    f"Engine did not publish ports for {name} within "
                    f"{self._timeouts.port_resolution}s"
                )
            time.sleep(_PORT_POLL_INTERVAL)

        return RunningContainer(
            name=name,
            handle=container.id,
            ip=container_ip(settings, self._config.network),
            host=self._config.external_host,
            ports=ports,
            run_id=run_id,
        )

    def _discard(self, container: Any, name: str) -> None:
        """Remove a container whose start failed."""
        try:
            container.remove(force=True, v=True)
        except (DockerException, requests.RequestException) as e:
            logger.warning("Failed to remove partially started container %s: %s", name, e)
        else:
            log_container_event(logger, "discarded", name)

"""Container runtime protocol.

The harness only talks to the container engine through this interface so the
lifecycle logic can run against an in-memory runtime in unit tests.
"""

from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence

from ..core.types import ExecResult, RunningContainer

if TYPE_CHECKING:
    from ..instances.server_config import ServerConfig


class ContainerRuntime(Protocol):
    """Protocol for container engines to enable dependency injection."""

    def start(
        self, config: "ServerConfig", run_id: Optional[str] = None
    ) -> RunningContainer:
        """Create and start a container for ``config``.

        Host ports requested as "any free port" are resolved before this
        returns. A container whose start fails is removed by the runtime.

        Raises:
            ImagePullError: The image is unavailable
            PortConflictError: A concrete host port is taken
            ContainerStartError: The engine failed to create or start it
        """

    def stop(self, container: RunningContainer) -> None:
        """Stop a container. Stopping a stopped or missing container is a no-op."""

    def remove(self, container: RunningContainer) -> None:
        """Remove a container. Removing a missing container is a no-op."""

    def exec(self, container: RunningContainer, command: Sequence[str]) -> ExecResult:
        """Run a command inside a running container."""

    def logs(self, container: RunningContainer) -> str:
        """Combined stdout and stderr of the container so far."""

    def ping(self) -> bool:
        """True if the engine is reachable."""

    def prune(self, run_id: Optional[str] = None) -> List[str]:
        """Remove containers left behind by earlier runs; returns their names."""

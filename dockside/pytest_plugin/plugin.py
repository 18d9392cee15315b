"""pytest plugin: configuration, Docker-gated tests and harness fixtures."""

import logging
from pathlib import Path
from typing import Any, Iterator, Optional

import pytest
from pytest import StashKey
from _pytest.config import Config
from _pytest.main import Session
from _pytest.nodes import Item

from ..core.config import load_config
from ..core.log import add_file_logging, configure_logging, get_logger, shutdown_logging
from ..core.types import HarnessConfig
from ..instances.harness import Test
from ..runtime.base import ContainerRuntime
from ..runtime.docker import DockerRuntime

logger = get_logger(__name__)


class DocksidePlugin:
    """Per-session plugin state kept in the pytest config stash."""

    def __init__(self) -> None:
        self.config: Optional[HarnessConfig] = None
        self._runtime: Optional[DockerRuntime] = None
        self._docker_available: Optional[bool] = None

    def pytest_configure(self, config: Config) -> None:
        config_file = config.getoption("--dockside-config")
        self.config = load_config(config_file=Path(config_file) if config_file else None)

        if self.config.log_level != "DEBUG":
            logging.getLogger("urllib3").setLevel(logging.WARNING)
            logging.getLogger("docker").setLevel(logging.WARNING)
            logging.getLogger("asyncio").setLevel(logging.WARNING)
            logging.getLogger("aiohttp").setLevel(logging.WARNING)
        configure_logging(level=self.config.log_level, enable_console=True)
        log_file = config.getoption("--dockside-log-file")
        if log_file:
            add_file_logging(Path(log_file))

        config.addinivalue_line(
            "markers", "requires_docker: test needs a reachable Docker engine"
        )
        logger.debug("dockside pytest plugin configured")

    def pytest_unconfigure(self, _config: Config) -> None:
        shutdown_logging()

    @property
    def runtime(self) -> DockerRuntime:
        if self._runtime is None:
            assert self.config is not None
            self._runtime = DockerRuntime(self.config.runtime, self.config.timeouts)
        return self._runtime

    def docker_available(self) -> bool:
        if self._docker_available is None:
            self._docker_available = self.runtime.ping()
            if not self._docker_available:
                logger.warning("Docker engine not reachable; requires_docker tests are skipped")
        return self._docker_available


plugin_key = StashKey[DocksidePlugin]()


def pytest_addoption(parser: Any) -> None:
    """Add custom command line options."""
    group = parser.getgroup("dockside")
    group.addoption(
        "--dockside-config",
        action="store",
        default=None,
        help="dockside YAML configuration file",
    )
    group.addoption(
        "--dockside-log-file",
        action="store",
        default=None,
        help="write dockside logs as JSON lines to this file",
    )


def pytest_configure(config: Config) -> None:
    """Plugin entry point - create and store plugin in stash."""
    plugin = DocksidePlugin()
    config.stash[plugin_key] = plugin
    plugin.pytest_configure(config)


def pytest_unconfigure(config: Config) -> None:
    plugin = config.stash.get(plugin_key, None)
    if plugin is not None:
        plugin.pytest_unconfigure(config)


def pytest_collection_modifyitems(
    session: Session, config: Config, items: list[Item]
) -> None:  # pylint: disable=unused-argument
    """Skip requires_docker tests when the engine cannot be reached."""
    docker_items = [item for item in items if item.get_closest_marker("requires_docker")]
    if not docker_items:
        return
    plugin = config.stash[plugin_key]
    if plugin.docker_available():
        return
    skip = pytest.mark.skip(reason="Docker engine not reachable")
    for item in docker_items:
        item.add_marker(skip)


@pytest.fixture(scope="session")
def dockside_config(request: pytest.FixtureRequest) -> HarnessConfig:
    """Harness configuration loaded for this session."""
    plugin = request.config.stash[plugin_key]
    assert plugin.config is not None
    return plugin.config


@pytest.fixture(scope="session")
def dockside_runtime(request: pytest.FixtureRequest) -> ContainerRuntime:
    """Docker runtime shared by the session; skips if Docker is unreachable."""
    plugin = request.config.stash[plugin_key]
    if not plugin.docker_available():
        pytest.skip("Docker engine not reachable")
    return plugin.runtime


@pytest.fixture
def server_test(
    dockside_runtime: ContainerRuntime, dockside_config: HarnessConfig
) -> Iterator[Test]:
    """Fresh harness bound to the session runtime."""
    test = Test(runtime=dockside_runtime, config=dockside_config)
    yield test
    if test.report is not None:
        logger.debug(
            "Run %s finished: %s", test.report.run_id, test.report.outcome.value
        )

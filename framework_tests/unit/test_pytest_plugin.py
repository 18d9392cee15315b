"""
Unit tests for pytest_plugin/plugin.py - the dockside pytest plugin.
"""

from unittest.mock import Mock, patch

import pytest

from dockside.core.types import HarnessConfig
from dockside.pytest_plugin.plugin import (
    DocksidePlugin,
    plugin_key,
    pytest_collection_modifyitems,
)


def mock_pytest_config(options=None):
    values = {"--dockside-config": None, "--dockside-log-file": None}
    values.update(options or {})
    config = Mock()
    config.getoption.side_effect = values.get
    return config


class TestDocksidePlugin:
    """Test plugin configuration and Docker detection."""

    @patch("dockside.pytest_plugin.plugin.configure_logging")
    @patch("dockside.pytest_plugin.plugin.load_config")
    def test_pytest_configure(self, mock_load_config, mock_configure_logging):
        mock_load_config.return_value = HarnessConfig(log_level="WARNING")
        config = mock_pytest_config()
        plugin = DocksidePlugin()

        plugin.pytest_configure(config)

        assert plugin.config.log_level == "WARNING"
        mock_load_config.assert_called_once_with(config_file=None)
        mock_configure_logging.assert_called_once_with(level="WARNING", enable_console=True)
        markers = [call[0][1] for call in config.addinivalue_line.call_args_list]
        assert any(marker.startswith("requires_docker") for marker in markers)

    @patch("dockside.pytest_plugin.plugin.add_file_logging")
    @patch("dockside.pytest_plugin.plugin.configure_logging")
    @patch("dockside.pytest_plugin.plugin.load_config")
    def test_config_and_log_file_options(
        self, mock_load_config, mock_configure_logging, mock_add_file_logging
    ):
        mock_load_config.return_value = HarnessConfig()
        config = mock_pytest_config(
            {"--dockside-config": "ci.yaml", "--dockside-log-file": "out/dockside.jsonl"}
        )

        DocksidePlugin().pytest_configure(config)

        assert str(mock_load_config.call_args.kwargs["config_file"]) == "ci.yaml"
        assert str(mock_add_file_logging.call_args[0][0]) == "out/dockside.jsonl"

    @patch("dockside.pytest_plugin.plugin.DockerRuntime")
    def test_docker_available_is_cached(self, mock_runtime_cls):
        mock_runtime_cls.return_value.ping.return_value = False
        plugin = DocksidePlugin()
        plugin.config = HarnessConfig()

        assert plugin.docker_available() is False
        assert plugin.docker_available() is False
        mock_runtime_cls.return_value.ping.assert_called_once()


class TestCollection:
    """Test skipping of requires_docker tests."""

    def _item(self, needs_docker):
        item = Mock()
        item.get_closest_marker.return_value = Mock() if needs_docker else None
        return item

    def _config(self, available):
        plugin = Mock()
        plugin.docker_available.return_value = available
        config = Mock()
        config.stash = {plugin_key: plugin}
        return config, plugin

    def test_skips_when_docker_unreachable(self):
        config, _ = self._config(available=False)
        docker_item, plain_item = self._item(True), self._item(False)

        pytest_collection_modifyitems(Mock(), config, [docker_item, plain_item])

        docker_item.add_marker.assert_called_once()
        plain_item.add_marker.assert_not_called()

    def test_keeps_tests_when_docker_reachable(self):
        config, _ = self._config(available=True)
        docker_item = self._item(True)

        pytest_collection_modifyitems(Mock(), config, [docker_item])

        docker_item.add_marker.assert_not_called()

    def test_no_docker_tests_skips_the_ping(self):
        config, plugin = self._config(available=False)

        pytest_collection_modifyitems(Mock(), config, [self._item(False)])

        plugin.docker_available.assert_not_called()


class TestFixtures:
    def test_dockside_config_fixture(self, dockside_config):
        assert isinstance(dockside_config, HarnessConfig)

    def test_plugin_in_stash(self, request: pytest.FixtureRequest):
        assert isinstance(request.config.stash[plugin_key], DocksidePlugin)

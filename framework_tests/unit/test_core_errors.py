"""Tests for the dockside error hierarchy."""

import pytest

from dockside.core.errors import (
    CleanupError,
    CleanupFailure,
    ConfigurationError,
    ContainerRuntimeError,
    ContainerStartError,
    ContainerStopError,
    CyclicDependencyError,
    DocksideError,
    DuplicateKindError,
    DuplicateNameError,
    ImagePullError,
    MissingFieldError,
    NotRegisteredError,
    PortConflictError,
    ReadinessTimeoutError,
    RegistryFrozenError,
    RegistryLookupError,
    RuntimeUnavailableError,
    TypeMismatchError,
    UnknownDependencyError,
)


class TestErrorHierarchy:
    """Test that errors are grouped the way callers catch them."""

    @pytest.mark.parametrize(
        "error_cls",
        [MissingFieldError, DuplicateNameError, UnknownDependencyError, DuplicateKindError],
    )
    def test_configuration_errors(self, error_cls):
        assert issubclass(error_cls, ConfigurationError)
        assert issubclass(error_cls, DocksideError)

    @pytest.mark.parametrize(
        "error_cls",
        [NotRegisteredError, TypeMismatchError, RegistryFrozenError, DuplicateKindError],
    )
    def test_registry_errors(self, error_cls):
        assert issubclass(error_cls, RegistryLookupError)

    @pytest.mark.parametrize(
        "error_cls",
        [
            RuntimeUnavailableError,
            ImagePullError,
            ContainerStartError,
            PortConflictError,
            ContainerStopError,
        ],
    )
    def test_runtime_errors(self, error_cls):
        assert issubclass(error_cls, ContainerRuntimeError)

    def test_readiness_timeout_is_not_a_runtime_error(self):
        assert not issubclass(ReadinessTimeoutError, ContainerRuntimeError)


class TestErrorDetails:
    """Test the extra attributes carried by specific errors."""

    def test_base_error_message_and_details(self):
        error = DocksideError("boom", details={"container": "db"})

        assert str(error) == "boom"
        assert error.message == "boom"
        assert error.details == {"container": "db"}

    def test_details_default_to_empty_dict(self):
        assert DocksideError("boom").details == {}

    def test_missing_field_error(self):
        error = MissingFieldError("probe is not set", field="probe")

        assert error.field == "probe"

    def test_cyclic_dependency_error_keeps_cycle(self):
        error = CyclicDependencyError("cycle", cycle=("a", "b", "a"))

        assert error.cycle == ["a", "b", "a"]

    def test_port_conflict_error(self):
        assert PortConflictError("in use", port=8200).port == 8200

    def test_readiness_timeout_error(self):
        error = ReadinessTimeoutError(
            "not ready", container="vault", attempts=4, timeout=2.0, last_error="refused"
        )

        assert error.container == "vault"
        assert error.attempts == 4
        assert error.timeout == 2.0
        assert error.last_error == "refused"

    def test_cleanup_error_and_failure(self):
        failure = CleanupFailure("db", "stop", RuntimeError("engine gone"))
        error = CleanupError("cleanup failed", failures=[failure])

        assert error.failures == [failure]
        assert str(failure) == "stop db: engine gone"
        assert "CleanupFailure('db', 'stop'" in repr(failure)

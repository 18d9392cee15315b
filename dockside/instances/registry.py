"""Registry of ready containers, keyed by server kind."""

from dataclasses import dataclass
from typing import List, Tuple

from ..core.errors import RegistryFrozenError
from ..core.type_map import TypeMap, type_tag
from ..core.types import RunningContainer
from .server_config import ServerConfig


@dataclass(frozen=True)
class InstanceEntry:
    """A config together with the container started from it."""

    config: ServerConfig
    container: RunningContainer

    @property
    def name(self) -> str:
        return self.container.name


class InstanceRegistry:
    """Type-indexed store of ready instances for one run.

    Entries are added only after a container passed readiness. ``freeze()``
    makes the registry read-only; the harness freezes it before the test
    body runs.
    """

    def __init__(self) -> None:
        self._entries = TypeMap()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def put(self, config: ServerConfig, container: RunningContainer) -> InstanceEntry:
        """Register a ready container under its config's kind.

        Raises:
            RegistryFrozenError: The registry was frozen
            DuplicateKindError: The kind already has an entry
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {container.name}: registry is read-only while the test runs",
                details={"kind": type_tag(config.kind())},
            )
        entry = InstanceEntry(config, container)
        self._entries.put(config.kind(), entry)
        return entry

    def get(self, kind: type) -> InstanceEntry:
        """Entry registered for ``kind``.

        Raises:
            NotRegisteredError: No entry for ``kind``
            TypeMismatchError: The stored value is not an InstanceEntry
        """
        return self._entries.get(kind, InstanceEntry)

    def __contains__(self, kind: object) -> bool:
        return kind in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> List[InstanceEntry]:
        return [entry for _, entry in self._entries.items()]

    def kinds(self) -> Tuple[type, ...]:
        return tuple(self._entries)

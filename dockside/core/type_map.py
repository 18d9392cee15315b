"""Heterogeneous map keyed by type.

Values are stored under a class token rather than a string key, so callers
retrieve an entry by naming the class they registered it under.
"""

import threading
from typing import Any, Dict, Iterator, Optional, Tuple, Type, TypeVar

from .errors import DuplicateKindError, NotRegisteredError, TypeMismatchError

T = TypeVar("T")


def type_tag(kind: type) -> str:
    """Stable printable identifier for a type token."""
    return f"{kind.__module__}.{kind.__qualname__}"


class TypeMap:
    """Map from a type token to exactly one value.

    Insertion order is preserved. A second ``put`` for the same token fails.
    """

    def __init__(self) -> None:
        self._values: Dict[type, Any] = {}
        self._lock = threading.RLock()

    def put(self, kind: type, value: Any) -> None:
        """Store ``value`` under ``kind``.

        Raises:
            DuplicateKindError: If ``kind`` already has a value
        """
        if not isinstance(kind, type):
            raise TypeError(f"TypeMap keys must be types, got {kind!r}")
        with self._lock:
            if kind in self._values:
                raise DuplicateKindError(
                    f"Kind {type_tag(kind)} is already registered; only one "
                    "instance per kind is allowed",
                    details={"kind": type_tag(kind)},
                )
            self._values[kind] = value

    def get(self, kind: Type[Any], expected: Optional[Type[T]] = None) -> T:
        """Return the value stored under ``kind``.

        Args:
            kind: Type token the value was stored under
            expected: If given, the value must be an instance of this type

        Raises:
            NotRegisteredError: If nothing is stored under ``kind``
            TypeMismatchError: If the value is not an ``expected`` instance
        """
        with self._lock:
            try:
                value = self._values[kind]
            except KeyError:
                raise NotRegisteredError(
                    f"Kind {type_tag(kind)} is not registered",
                    details={"kind": type_tag(kind)},
                ) from None
        if expected is not None and not isinstance(value, expected):
            raise TypeMismatchError(
                f"Entry for {type_tag(kind)} is a {type(value).__name__}, "
                f"not a {expected.__name__}",
                details={"kind": type_tag(kind)},
            )
        return value

    def __contains__(self, kind: object) -> bool:
        with self._lock:
            return kind in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __iter__(self) -> Iterator[type]:
        with self._lock:
            return iter(list(self._values))

    def items(self) -> Tuple[Tuple[type, Any], ...]:
        with self._lock:
            return tuple(self._values.items())

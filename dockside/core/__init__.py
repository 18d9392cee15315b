"""Core framework components."""

from .value_objects import ImageRef, PortMapping
from .type_map import TypeMap

__all__ = ["ImageRef", "PortMapping", "TypeMap"]

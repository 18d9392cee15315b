"""Utility modules for the dockside harness."""

from .aio import in_event_loop, run_sync
from .crypto import new_handle, rand_string, random_id
from .ports import find_free_port, is_port_available

__all__ = [
    "in_event_loop",
    "run_sync",
    "new_handle",
    "rand_string",
    "random_id",
    "find_free_port",
    "is_port_available",
]

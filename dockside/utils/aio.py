"""Running coroutines from synchronous harness code."""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Coroutine, TypeVar

T = TypeVar("T")


def in_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run ``coro`` to completion and return its result.

    Outside an event loop this is ``asyncio.run``. When the caller is already
    inside a running loop (an async test calling the harness), the coroutine
    runs on a fresh loop in a worker thread and the caller blocks until it
    finishes.
    """
    if not in_event_loop():
        return asyncio.run(coro)
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="dockside-async") as executor:
        return executor.submit(asyncio.run, coro).result()

"""Logging setup: rich console output and optional JSON-lines files."""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from .log_formatters import DocksideRichHandler, StructuredFormatter, _log_context

ROOT_LOGGER = "dockside"


class Logger(Protocol):
    """Protocol for logger instances to enable dependency injection."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


class LogManager:
    """Owns the handlers attached to the ``dockside`` logger tree.

    All framework loggers are children of ``dockside`` so handlers are only
    attached once, to the root of that tree. Nothing is installed on the
    process root logger unless asked for.
    """

    def __init__(self) -> None:
        self._handlers: List[logging.Handler] = []
        self._configured = False
        self._lock = threading.RLock()

    @property
    def configured(self) -> bool:
        return self._configured

    def configure(
        self,
        level: Union[int, str] = logging.INFO,
        log_file: Optional[Path] = None,
        enable_console: bool = True,
        console_level: Optional[Union[int, str]] = None,
    ) -> None:
        """Install handlers. Reconfiguring replaces the previous handlers."""
        with self._lock:
            if self._configured:
                self._clear_handlers()

            root = logging.getLogger(ROOT_LOGGER)
            root.setLevel(level)
            root.propagate = False

            if enable_console:
                console = DocksideRichHandler(
                    show_time=True, show_path=False, markup=False
                )
                console.setLevel(console_level or level)
                self._attach(root, console)

            if log_file is not None:
                self._attach(root, self._file_handler(Path(log_file), level))

            self._configured = True

    def add_file_logging(
        self, log_file: Path, level: Union[int, str] = logging.DEBUG
    ) -> None:
        """Add a JSON-lines file handler without touching console output."""
        with self._lock:
            root = logging.getLogger(ROOT_LOGGER)
            self._attach(root, self._file_handler(Path(log_file), level))
            numeric = logging.getLevelName(level) if isinstance(level, str) else level
            if root.level == logging.NOTSET or root.level > numeric:
                root.setLevel(numeric)

    def get_logger(self, name: str) -> logging.Logger:
        if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
            return logging.getLogger(name)
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")

    def shutdown(self) -> None:
        with self._lock:
            self._clear_handlers()
            self._configured = False

    def _file_handler(self, log_file: Path, level: Union[int, str]) -> logging.Handler:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(StructuredFormatter(include_context=True))
        handler.setLevel(level)
        return handler

    def _attach(self, logger: logging.Logger, handler: logging.Handler) -> None:
        logger.addHandler(handler)
        self._handlers.append(handler)

    def _clear_handlers(self) -> None:
        root = logging.getLogger(ROOT_LOGGER)
        for handler in self._handlers:
            root.removeHandler(handler)
            try:
                handler.close()
            except (OSError, RuntimeError):
                pass  # closing a broken stream must not break shutdown
        self._handlers.clear()


_log_manager = LogManager()


def configure_logging(**kwargs: Any) -> None:
    """Configure the dockside logger tree."""
    _log_manager.configure(**kwargs)


def add_file_logging(log_file: Path, level: Union[int, str] = logging.DEBUG) -> None:
    _log_manager.add_file_logging(log_file, level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger inside the ``dockside`` tree."""
    return _log_manager.get_logger(name)


def shutdown_logging() -> None:
    _log_manager.shutdown()


def log_event(logger: Logger, event_type: str, message: str, **kwargs: Any) -> None:
    """Log a structured event with context."""
    logger.info(message, extra={"event_type": event_type, **kwargs})


def log_container_event(
    logger: Logger,
    event: str,
    container: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """Log a container lifecycle event (started, ready, stopped, ...)."""
    extra: Dict[str, Any] = {"event_type": "container", "container_event": event}
    if container is not None:
        extra["container"] = container
    extra.update(kwargs)
    logger.info("Container %s %s", container, event, extra=extra)


def log_run_event(logger: Logger, event: str, run_id: Optional[str] = None, **kwargs: Any) -> None:
    """Log a harness run event."""
    extra: Dict[str, Any] = {"event_type": "run", "run_event": event}
    if run_id is not None:
        extra["run_id"] = run_id
    extra.update(kwargs)
    logger.info("Run %s %s", run_id, event, extra=extra)


def set_log_context(**kwargs: Any) -> None:
    _log_context.set_context(**kwargs)


def get_log_context() -> Dict[str, Any]:
    return _log_context.get_context()


def clear_log_context() -> None:
    _log_context.clear_context()


def log_context(**kwargs: Any) -> Any:
    """Context manager for temporary logging context."""
    return _log_context.context(**kwargs)

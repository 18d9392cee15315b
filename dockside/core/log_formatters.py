"""Log formatters, the rich console handler and thread-local log context."""

import json
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text
from rich.theme import Theme

_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "taskName",
    }
)


class LogContext:
    """Thread-local key/value metadata attached to structured log lines."""

    def __init__(self) -> None:
        self._local = threading.local()

    def set_context(self, **kwargs: Any) -> None:
        if not hasattr(self._local, "context"):
            self._local.context = {}
        self._local.context.update(kwargs)

    def get_context(self) -> Dict[str, Any]:
        if not hasattr(self._local, "context"):
            return {}
        return self._local.context.copy()

    def clear_context(self) -> None:
        if hasattr(self._local, "context"):
            self._local.context.clear()

    @contextmanager
    def context(self, **kwargs: Any) -> Iterator[None]:
        """Temporarily add context variables for the current thread."""
        previous = self.get_context()
        try:
            self.set_context(**kwargs)
            yield
        finally:
            self.clear_context()
            self.set_context(**previous)


_log_context = LogContext()


class StructuredFormatter(logging.Formatter):
    """One JSON object per log record."""

    def __init__(self, include_context: bool = True) -> None:
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": self.formatException(record.exc_info),
            }

        fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS
        }
        if fields:
            entry["fields"] = fields

        if self.include_context:
            context = _log_context.get_context()
            if context:
                entry["context"] = context

        return json.dumps(entry, default=str)


class DocksideRichHandler(RichHandler):
    """Rich console handler that colors container and run events."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        theme = Theme(
            {
                "logging.level.debug": "dim cyan",
                "logging.level.info": "dim blue",
                "logging.level.warning": "yellow",
                "logging.level.error": "red",
                "logging.level.critical": "bold red",
                "dockside.container": "bright_cyan",
                "dockside.run": "bright_magenta",
                "dockside.event": "bright_green",
            }
        )
        kwargs.setdefault("console", Console(theme=theme, stderr=True))
        super().__init__(*args, **kwargs)

    def render_message(self, record: logging.LogRecord, message: str) -> Text:
        text = Text(message)
        event_type = getattr(record, "event_type", None)
        style = {
            "container": "dockside.container",
            "run": "dockside.run",
            "event": "dockside.event",
        }.get(event_type or "")
        if style:
            text.stylize(style)
        return text

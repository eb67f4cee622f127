"""
Invocation context attached to every log entry.

The context (command, project, host) is stored in a ``ContextVar`` and
merged into each structlog event by :func:`add_context_processor`, so
components never pass identifiers around just for logging.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Any

import structlog


@dataclass(frozen=True)
class LogContext:
    """
    Identifiers of the current invocation.

    command: Command name (e.g. "deploy")
    project: Project name
    host: Resolved host name, once known
    group: Resolved group name, for edit-group
    """

    command: str | None = None
    project: str | None = None
    host: str | None = None
    group: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs: Any) -> LogContext:
        """Create new context with merged values."""
        current = asdict(self)
        current.update({k: v for k, v in kwargs.items() if v is not None})
        return LogContext(**current)


_log_context: ContextVar[LogContext] = ContextVar("infractl_log_context")  # noqa: B039


def get_context() -> LogContext:
    """Get the current log context."""
    return _log_context.get(LogContext())


def set_context(
    command: str | None = None,
    project: str | None = None,
    host: str | None = None,
    group: str | None = None,
) -> LogContext:
    """Replace the current log context."""
    ctx = LogContext(command=command, project=project, host=host, group=group)
    _log_context.set(ctx)
    return ctx


def bind_context(**kwargs: Any) -> LogContext:
    """Merge values into the current context."""
    updated = get_context().merge(**kwargs)
    _log_context.set(updated)
    return updated


def clear_context() -> None:
    """Reset to an empty context."""
    _log_context.set(LogContext())


def add_context_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor adding the invocation context (existing keys win)."""
    for key, value in get_context().to_dict().items():
        event_dict.setdefault(key, value)
    return event_dict


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger."""
    return structlog.get_logger(name)

"""
infractl logging - structured, invocation-aware logging.

Usage:
    from infractl.framework.logging import configure_logging, get_logger, set_context

    configure_logging(level="DEBUG")
    log = get_logger(__name__)
    set_context(command="deploy", project="infra")
    log.info("engine.invoke", argv=["ansible-playbook", "playbook.yml"])
"""

from infractl.framework.logging.config import configure_logging, is_configured
from infractl.framework.logging.context import (
    LogContext,
    bind_context,
    clear_context,
    get_context,
    get_logger,
    set_context,
)

__all__ = [
    "configure_logging",
    "is_configured",
    "get_logger",
    "set_context",
    "clear_context",
    "get_context",
    "bind_context",
    "LogContext",
]

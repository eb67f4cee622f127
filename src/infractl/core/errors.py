"""
Structured error types for infractl.

Every failure the orchestrator can report is an :class:`InfraError`
subclass. Errors carry a category for routing, a ``fatal`` flag telling the
CLI whether to abort, and a small context mapping for structured logging.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       InfraError                             │
        │            (category, fatal, context, cause)                 │
        ├─────────────────────────────────────────────────────────────┤
        │  PROJECT             HOST               COMMAND              │
        │  ProjectNotFound     HostNotFound       UnknownCommand       │
        │  ProjectAlreadyExists HostAlreadyExists MissingCommand       │
        │  RoleNotFound        HostAmbiguous      InvalidArguments     │
        │  ProjectFileError                                            │
        │                                                              │
        │  ENVIRONMENT         SECRETS            TOOL                 │
        │  EnvironmentMismatch GeneratorUnavailable UnderlyingToolFailure│
        │  (non-fatal)         (non-fatal)                             │
        │                      VaultSecretMissing UPGRADE              │
        │                                         UpgradeAborted       │
        └─────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: ``sys.exit()`` from a component
    ✅ DO: raise the matching InfraError and let the CLI convert it

    ❌ DON'T: retry a failed tool invocation
    ✅ DO: surface UnderlyingToolFailure with the tool's exit code

Tags:
    error-handling, exception-hierarchy, exit-codes, infractl
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for log routing and reporting."""

    PROJECT = "PROJECT"  # Project directory missing / present
    HOST = "HOST"  # Host lookup and selection
    COMMAND = "COMMAND"  # CLI usage errors
    ENVIRONMENT = "ENVIRONMENT"  # Virtualenv / engine installation
    SECRETS = "SECRETS"  # Secret generation and vault handling
    TOOL = "TOOL"  # External process returned nonzero
    UPGRADE = "UPGRADE"  # Self-upgrade protocol
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


class InfraError(Exception):
    """
    Base exception for all infractl errors.

    Subclasses set ``default_category`` and ``default_fatal``. Fatal errors
    abort the invocation with exit status 1; non-fatal errors are reported
    as warnings and the command continues in a degraded mode.

    Examples:
        >>> err = ProjectNotFound("project infra does not exist")
        >>> err.fatal
        True
        >>> err.category.value
        'PROJECT'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_fatal: bool = True
    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        fatal: bool | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.fatal = fatal if fatal is not None else self.default_fatal
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> InfraError:
        """Add context to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "fatal": self.fatal,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# PROJECT / HOST
# =============================================================================


class ProjectNotFound(InfraError):
    """The project directory does not exist."""

    default_category = ErrorCategory.PROJECT


class ProjectAlreadyExists(InfraError):
    """``init-project`` was asked to create a project that already exists."""

    default_category = ErrorCategory.PROJECT


class ProjectFileError(InfraError):
    """A project file or directory cannot be written, or does not parse as expected."""

    default_category = ErrorCategory.PROJECT


class HostNotFound(InfraError):
    """A named host has no variables file in the project."""

    default_category = ErrorCategory.HOST


class HostAlreadyExists(InfraError):
    """``init-host`` was asked to create a host that already exists."""

    default_category = ErrorCategory.HOST


class HostAmbiguous(InfraError):
    """No host given and the project holds zero or several hosts."""

    default_category = ErrorCategory.HOST


# =============================================================================
# COMMAND
# =============================================================================


class UnknownCommand(InfraError):
    """The command name is not part of the command vocabulary."""

    default_category = ErrorCategory.COMMAND


class MissingCommand(InfraError):
    """No command was given on the command line."""

    default_category = ErrorCategory.COMMAND


class InvalidArguments(InfraError):
    """Too many positional arguments, or a required one is missing."""

    default_category = ErrorCategory.COMMAND


class RoleNotFound(InfraError):
    """show-defaults was asked for a role that is not vendored in the project."""

    default_category = ErrorCategory.PROJECT


# =============================================================================
# NON-FATAL
# =============================================================================


class EnvironmentMismatch(InfraError):
    """The project's virtualenv does not hold the pinned engine version.

    Raised and caught inside the bootstrapper, where it triggers recreation.
    """

    default_category = ErrorCategory.ENVIRONMENT
    default_fatal = False


class GeneratorUnavailable(InfraError):
    """No random password generator is available; placeholders are kept."""

    default_category = ErrorCategory.SECRETS
    default_fatal = False


# =============================================================================
# SECRETS / TOOLS / UPGRADE
# =============================================================================


class VaultSecretMissing(InfraError):
    """The vault master secret file does not exist."""

    default_category = ErrorCategory.SECRETS


class UnderlyingToolFailure(InfraError):
    """An external tool (ansible, ssh, rsync, git, pip...) failed.

    ``returncode`` is 127 when the binary could not be found.
    """

    default_category = ErrorCategory.TOOL

    def __init__(self, tool: str, returncode: int, message: str | None = None, **kwargs: Any):
        self.tool = tool
        self.returncode = returncode
        super().__init__(message or f"{tool} failed with exit code {returncode}", **kwargs)
        self.context.setdefault("tool", tool)
        self.context.setdefault("returncode", returncode)


class UpgradeAborted(InfraError):
    """The operator declined the self-upgrade confirmation."""

    default_category = ErrorCategory.UPGRADE

"""Core primitives shared by every infractl component: errors, settings, subprocesses."""

from infractl.core.errors import (
    EnvironmentMismatch,
    ErrorCategory,
    GeneratorUnavailable,
    HostAlreadyExists,
    HostAmbiguous,
    HostNotFound,
    InfraError,
    InvalidArguments,
    MissingCommand,
    ProjectAlreadyExists,
    ProjectFileError,
    ProjectNotFound,
    RoleNotFound,
    UnderlyingToolFailure,
    UnknownCommand,
    UpgradeAborted,
    VaultSecretMissing,
)
from infractl.core.process import ProcessRunner
from infractl.core.settings import InfraSettings, get_settings

__all__ = [
    "EnvironmentMismatch",
    "ErrorCategory",
    "GeneratorUnavailable",
    "HostAlreadyExists",
    "HostAmbiguous",
    "HostNotFound",
    "InfraError",
    "InfraSettings",
    "InvalidArguments",
    "MissingCommand",
    "ProcessRunner",
    "ProjectAlreadyExists",
    "ProjectFileError",
    "ProjectNotFound",
    "RoleNotFound",
    "UnderlyingToolFailure",
    "UnknownCommand",
    "UpgradeAborted",
    "VaultSecretMissing",
    "get_settings",
]

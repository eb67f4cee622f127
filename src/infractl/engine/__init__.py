"""Engine integration: the ConfigEngine contract, its Ansible implementation, and the virtualenv bootstrapper."""

from infractl.engine.ansible import AnsibleEngine
from infractl.engine.environment import (
    ENGINE_VERSION,
    EngineEnvironment,
    EnvironmentBootstrapper,
)
from infractl.engine.protocols import ConfigEngine, PlaybookOptions

__all__ = [
    "AnsibleEngine",
    "ConfigEngine",
    "ENGINE_VERSION",
    "EngineEnvironment",
    "EnvironmentBootstrapper",
    "PlaybookOptions",
]

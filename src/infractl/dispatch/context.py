"""
Invocation and command context values.

An :class:`Invocation` is built once by the CLI from argv, options,
settings and the process environment. The dispatcher turns it into a
:class:`CommandContext`; each pre-step returns a new context with one more
field filled in (``dataclasses.replace``). No component reads ambient
process state: everything it needs is on the context.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from infractl.cli.utils import Output
from infractl.core.process import ProcessRunner
from infractl.core.settings import InfraSettings
from infractl.engine.ansible import AnsibleEngine
from infractl.engine.environment import EngineEnvironment, EnvironmentBootstrapper
from infractl.engine.protocols import ConfigEngine
from infractl.project.layout import ProjectLayout
from infractl.secrets.generator import PasswordGenerator, get_generator
from infractl.upgrade.selfupdate import CopyReplacer, ScriptReplacer

if TYPE_CHECKING:
    from infractl.dispatch.commands import Command


@dataclass(frozen=True)
class Invocation:
    """Everything one CLI call asked for."""

    command: str | None
    args: tuple[str, ...]
    settings: InfraSettings
    environ: Mapping[str, str]
    running_script: Path
    now: datetime
    tags: str | None = None


@dataclass(frozen=True)
class Services:
    """Collaborators handed to pre-steps and handlers.

    The defaults talk to the real system; tests replace individual fields.
    """

    runner: ProcessRunner = field(default_factory=ProcessRunner)
    output: Output = field(default_factory=Output)
    prompt: Callable[[str], str] = input
    bootstrapper_factory: Callable[..., EnvironmentBootstrapper] = EnvironmentBootstrapper
    engine_factory: Callable[..., ConfigEngine] = AnsibleEngine
    replacer_factory: Callable[[ProcessRunner], ScriptReplacer] = CopyReplacer

    def generator(self, name: str) -> PasswordGenerator | None:
        return get_generator(name, self.runner)


@dataclass(frozen=True)
class CommandContext:
    """State of one command as the pre-steps fill it in."""

    invocation: Invocation
    services: Services
    command: Command
    project_name: str | None = None
    target: str | None = None
    layout: ProjectLayout | None = None
    environment: EngineEnvironment | None = None
    engine: ConfigEngine | None = None
    host: str | None = None
    group: str | None = None

    @property
    def settings(self) -> InfraSettings:
        return self.invocation.settings

    @property
    def output(self) -> Output:
        return self.services.output

    def require_layout(self) -> ProjectLayout:
        if self.layout is None:
            raise RuntimeError(f"{self.command.value}: project pre-step did not run")
        return self.layout

    def require_engine(self) -> ConfigEngine:
        if self.engine is None:
            raise RuntimeError(f"{self.command.value}: engine pre-step did not run")
        return self.engine

"""
Command registry and dispatcher.

Every CLI verb is a member of the closed :class:`Command` enum and has
exactly one :class:`CommandSpec` in :data:`COMMANDS`: the positional
arguments it accepts, the ordered pre-steps it needs, and one terminal
handler. The registry is checked at import time to cover the whole enum.

Pre-steps:
    PROJECT      resolve and validate the project directory
    ENGINE       bootstrap the virtualenv and build the ConfigEngine
    COLLECTIONS  install vendored collections if none are present
    HOST         resolve (or auto-select) the host
    GROUP        resolve the group, defaulting to ``all``

Flow::

    Invocation ──► Command lookup ──► CommandContext
                        │                  │
                  UnknownCommand      pre-steps (in order)
                  MissingCommand           │
                                      handler(ctx) ──► exit status

Tags:
    dispatcher, registry, commands, pre-steps
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from infractl.core.errors import InvalidArguments, MissingCommand, UnknownCommand
from infractl.dispatch import handlers
from infractl.dispatch.context import CommandContext, Invocation, Services
from infractl.framework.logging import bind_context, get_logger, set_context
from infractl.project.layout import DEFAULT_PROJECT
from infractl.project.resolver import resolve_group, resolve_host, resolve_project

logger = get_logger(__name__)


class Command(str, Enum):
    """The command vocabulary."""

    INIT_PROJECT = "init-project"
    INIT_HOST = "init-host"
    DEPLOY = "deploy"
    CHECK = "check"
    EDIT_PLAYBOOK = "edit-playbook"
    EDIT_INVENTORY = "edit-inventory"
    EDIT_HOST = "edit-host"
    EDIT_GROUP = "edit-group"
    EDIT_VAULT = "edit-vault"
    EDIT_REQUIREMENTS = "edit-requirements"
    EDIT_CFG = "edit-cfg"
    SHELL = "shell"
    LOGS = "logs"
    LS = "ls"
    FETCH_BACKUPS = "fetch-backups"
    UPGRADE = "upgrade"
    SHOW_DEFAULTS = "show-defaults"
    HELP_TAGS = "help-tags"
    SELF_UPGRADE = "self-upgrade"
    HELP = "help"


class PreStep(str, Enum):
    PROJECT = "project"
    ENGINE = "engine"
    COLLECTIONS = "collections"
    HOST = "host"
    GROUP = "group"


Handler = Callable[[CommandContext], int]


@dataclass(frozen=True)
class CommandSpec:
    """How one command is parsed, prepared and executed.

    ``args`` names the positional arguments for usage output. When
    ``takes_project`` is set the first one is the project name (default
    ``default``) and the second becomes ``CommandContext.target``; otherwise
    the first one is the target. A name without brackets is required.
    """

    handler: Handler
    summary: str
    args: tuple[str, ...] = ()
    pre_steps: tuple[PreStep, ...] = ()
    takes_project: bool = True

    @property
    def required_target(self) -> str | None:
        """Name of the target argument the command cannot run without."""
        names = self.args[1:] if self.takes_project else self.args
        return next((name for name in names if not name.startswith("[")), None)


_P, _E, _C, _H, _G = PreStep.PROJECT, PreStep.ENGINE, PreStep.COLLECTIONS, PreStep.HOST, PreStep.GROUP

COMMANDS: dict[Command, CommandSpec] = {
    Command.INIT_PROJECT: CommandSpec(
        handlers.init_project, "create a new project", ("[project]",)
    ),
    Command.INIT_HOST: CommandSpec(
        handlers.init_host, "add a host to a project, generate and encrypt its secrets",
        ("[project]", "host"), (_P, _E),
    ),
    Command.DEPLOY: CommandSpec(
        handlers.deploy, "apply the playbook (optionally limited to one host)",
        ("[project]", "[host]"), (_P, _E, _C),
    ),
    Command.CHECK: CommandSpec(
        handlers.check, "simulate the playbook and report changes",
        ("[project]", "[host]"), (_P, _E, _C),
    ),
    Command.EDIT_PLAYBOOK: CommandSpec(
        handlers.edit_playbook, "edit the project playbook", ("[project]",), (_P,)
    ),
    Command.EDIT_INVENTORY: CommandSpec(
        handlers.edit_inventory, "edit the project inventory", ("[project]",), (_P,)
    ),
    Command.EDIT_HOST: CommandSpec(
        handlers.edit_host, "edit host variables", ("[project]", "[host]"), (_P, _H)
    ),
    Command.EDIT_GROUP: CommandSpec(
        handlers.edit_group, "edit group variables (default group: all)",
        ("[project]", "[group]"), (_P, _G),
    ),
    Command.EDIT_VAULT: CommandSpec(
        handlers.edit_vault, "edit encrypted host secrets",
        ("[project]", "[host]"), (_P, _E, _H),
    ),
    Command.EDIT_REQUIREMENTS: CommandSpec(
        handlers.edit_requirements, "edit the list of vendored collections", ("[project]",), (_P,)
    ),
    Command.EDIT_CFG: CommandSpec(
        handlers.edit_cfg, "edit the project ansible.cfg", ("[project]",), (_P,)
    ),
    Command.SHELL: CommandSpec(
        handlers.shell, "open an ssh shell on a host", ("[project]", "[host]"), (_P, _E, _H)
    ),
    Command.LOGS: CommandSpec(
        handlers.logs, "view the system log of a host", ("[project]", "[host]"), (_P, _E, _H)
    ),
    Command.LS: CommandSpec(
        handlers.ls, "list the projects directory (or a path below it)", ("[path]",),
        takes_project=False,
    ),
    Command.FETCH_BACKUPS: CommandSpec(
        handlers.fetch_backups, "download a host's backups into the project",
        ("[project]", "[host]"), (_P, _E, _H),
    ),
    Command.UPGRADE: CommandSpec(
        handlers.upgrade, "reinstall vendored collections from requirements.yml",
        ("[project]",), (_P, _E),
    ),
    Command.SHOW_DEFAULTS: CommandSpec(
        handlers.show_defaults, "show default variables of all roles or one role",
        ("[project]", "[role]"), (_P,),
    ),
    Command.HELP_TAGS: CommandSpec(
        handlers.help_tags, "list the tags available for --tags", ("[project]",), (_P,)
    ),
    Command.SELF_UPGRADE: CommandSpec(
        handlers.self_upgrade, "upgrade infractl itself from git", takes_project=False
    ),
    Command.HELP: CommandSpec(handlers.show_help, "show this help", takes_project=False),
}


def _check_registry() -> None:
    missing = set(Command) - set(COMMANDS)
    if missing:
        raise RuntimeError(f"commands without a handler: {sorted(c.value for c in missing)}")


_check_registry()


# ── Pre-steps ────────────────────────────────────────────────────────────


def _step_project(ctx: CommandContext) -> CommandContext:
    layout = resolve_project(ctx.settings.projects_dir, ctx.project_name or DEFAULT_PROJECT)
    return dataclasses.replace(ctx, layout=layout)


def _step_engine(ctx: CommandContext) -> CommandContext:
    layout = ctx.require_layout()
    services = ctx.services
    bootstrapper = services.bootstrapper_factory(
        layout.venv_dir,
        services.runner,
        ctx.invocation.environ,
        notify=services.output.info,
    )
    environment = bootstrapper.ensure()
    engine = services.engine_factory(layout, environment, services.runner, ctx.invocation.environ)
    return dataclasses.replace(ctx, environment=environment, engine=engine)


def _step_collections(ctx: CommandContext) -> CommandContext:
    layout = ctx.require_layout()
    collections = layout.collections_dir
    if layout.requirements.is_file() and not (collections.is_dir() and any(collections.iterdir())):
        ctx.output.info(f"installing collections from {layout.requirements}")
        ctx.require_engine().install_requirements()
    return ctx


def _step_host(ctx: CommandContext) -> CommandContext:
    host = resolve_host(ctx.require_layout(), ctx.target)
    if not ctx.target:
        ctx.output.info(f"using host {host}")
    bind_context(host=host)
    return dataclasses.replace(ctx, host=host)


def _step_group(ctx: CommandContext) -> CommandContext:
    group = resolve_group(ctx.target)
    bind_context(group=group)
    return dataclasses.replace(ctx, group=group)


PRE_STEPS: dict[PreStep, Callable[[CommandContext], CommandContext]] = {
    PreStep.PROJECT: _step_project,
    PreStep.ENGINE: _step_engine,
    PreStep.COLLECTIONS: _step_collections,
    PreStep.HOST: _step_host,
    PreStep.GROUP: _step_group,
}


# ── Dispatch ─────────────────────────────────────────────────────────────


def lookup(name: str | None) -> Command:
    """Return the Command for ``name``.

    Raises
    ------
    MissingCommand
        If ``name`` is empty.
    UnknownCommand
        If ``name`` is not part of the vocabulary.
    """
    if not name:
        raise MissingCommand("no command given")
    try:
        return Command(name)
    except ValueError:
        raise UnknownCommand(f"unknown command {name}", context={"command": name}) from None


def build_context(invocation: Invocation, command: Command, services: Services) -> CommandContext:
    spec = COMMANDS[command]
    args = invocation.args
    if len(args) > len(spec.args):
        raise InvalidArguments(
            f"{command.value} takes at most {len(spec.args)} argument(s), got {len(args)}",
            context={"args": list(args)},
        )
    if spec.takes_project:
        project_name = args[0] if args else DEFAULT_PROJECT
        target = args[1] if len(args) > 1 else None
    else:
        project_name = None
        target = args[0] if args else None
    if not target and spec.required_target:
        raise InvalidArguments(
            f"{command.value} requires a {spec.required_target} name",
            context={"command": command.value},
        )
    return CommandContext(
        invocation=invocation,
        services=services,
        command=command,
        project_name=project_name,
        target=target,
    )


def dispatch(invocation: Invocation, services: Services) -> int:
    """Run one command to completion; return its exit status.

    Errors propagate as InfraError subclasses; the CLI reports them.
    """
    command = lookup(invocation.command)
    ctx = build_context(invocation, command, services)
    set_context(command=command.value, project=ctx.project_name)
    spec = COMMANDS[command]
    for step in spec.pre_steps:
        ctx = PRE_STEPS[step](ctx)
    logger.debug("dispatch.handler", pre_steps=[s.value for s in spec.pre_steps])
    return spec.handler(ctx)


def usage_rows() -> list[list[str]]:
    """Rows of (command, arguments, summary) for help output."""
    return [
        [command.value, " ".join(spec.args), spec.summary] for command, spec in COMMANDS.items()
    ]

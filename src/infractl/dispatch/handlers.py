"""
Terminal handlers, one per command.

A handler receives the :class:`~infractl.dispatch.context.CommandContext`
after its pre-steps ran, performs exactly one action and returns the exit
status. Failures are raised as :class:`~infractl.core.errors.InfraError`.
"""

from __future__ import annotations

import shlex
from pathlib import Path

import yaml

from infractl import __version__
from infractl.cli.utils import Output
from infractl.core.errors import ProjectNotFound, RoleNotFound
from infractl.dispatch.context import CommandContext
from infractl.engine.protocols import PlaybookOptions
from infractl.framework.logging import get_logger
from infractl.project import scaffold
from infractl.project.layout import ProjectLayout
from infractl.remote.executor import RemoteExecutor
from infractl.secrets.vault import VaultManager
from infractl.upgrade.selfupdate import SelfUpdater

logger = get_logger(__name__)

USAGE = "usage: infractl [OPTIONS] COMMAND [ARG1] [ARG2]"


# ── Projects and hosts ───────────────────────────────────────────────────


def init_project(ctx: CommandContext) -> int:
    layout = ProjectLayout.for_name(ctx.settings.projects_dir, ctx.project_name)
    scaffold.init_project(layout)
    ctx.output.info(f"project {layout.name} created in {layout.root}")
    ctx.output.info(f"add a host with: infractl init-host {layout.name} HOSTNAME")
    return 0


def init_host(ctx: CommandContext) -> int:
    layout = ctx.require_layout()
    vault = VaultManager(layout, ctx.require_engine())
    generate = ctx.services.generator(ctx.settings.password_generator)

    result = scaffold.init_host(layout, ctx.target, vault, generate)

    if result.warning is not None:
        ctx.output.warn(
            f"{result.warning.message}; replace CHANGEME placeholders in "
            f"{layout.host_vault_file(result.host)} manually (infractl edit-vault)"
        )
    else:
        ctx.output.info(f"generated {result.secrets_generated} secret(s) for {result.host}")
    ctx.output.info(f"host {result.host} added to project {layout.name}")
    return 0


# ── Playbook runs ────────────────────────────────────────────────────────


def _run_playbook(ctx: CommandContext, *, check: bool) -> int:
    options = PlaybookOptions(
        check=check,
        limit=ctx.target or None,
        tags=ctx.invocation.tags or ctx.settings.tags,
    )
    logger.info("playbook.run", check=check, limit=options.limit, tags=options.tags)
    return ctx.require_engine().run_playbook(options)


def deploy(ctx: CommandContext) -> int:
    return _run_playbook(ctx, check=False)


def check(ctx: CommandContext) -> int:
    return _run_playbook(ctx, check=True)


def upgrade(ctx: CommandContext) -> int:
    ctx.output.info(f"reinstalling collections from {ctx.require_layout().requirements}")
    ctx.require_engine().install_requirements(force=True)
    return 0


# ── Editors ──────────────────────────────────────────────────────────────


def _edit(ctx: CommandContext, path: Path) -> int:
    argv = shlex.split(ctx.settings.editor) + [str(path)]
    ctx.services.runner.check_call(argv, cwd=ctx.require_layout().root)
    return 0


def edit_playbook(ctx: CommandContext) -> int:
    return _edit(ctx, ctx.require_layout().playbook)


def edit_inventory(ctx: CommandContext) -> int:
    return _edit(ctx, ctx.require_layout().inventory)


def edit_requirements(ctx: CommandContext) -> int:
    return _edit(ctx, ctx.require_layout().requirements)


def edit_cfg(ctx: CommandContext) -> int:
    return _edit(ctx, ctx.require_layout().ansible_cfg)


def edit_host(ctx: CommandContext) -> int:
    return _edit(ctx, ctx.require_layout().host_vars_file(ctx.host))


def edit_group(ctx: CommandContext) -> int:
    path = ctx.require_layout().group_vars_file(ctx.group)
    path.parent.mkdir(parents=True, exist_ok=True)
    return _edit(ctx, path)


def edit_vault(ctx: CommandContext) -> int:
    layout = ctx.require_layout()
    VaultManager(layout, ctx.require_engine()).edit(
        layout.host_vault_file(ctx.host), ctx.settings.editor
    )
    return 0


# ── Remote ───────────────────────────────────────────────────────────────


def _remote(ctx: CommandContext) -> RemoteExecutor:
    return RemoteExecutor(ctx.require_layout(), ctx.require_engine(), ctx.services.runner)


def shell(ctx: CommandContext) -> int:
    _remote(ctx).shell(ctx.host)
    return 0


def logs(ctx: CommandContext) -> int:
    _remote(ctx).logs(ctx.host)
    return 0


def fetch_backups(ctx: CommandContext) -> int:
    destination = _remote(ctx).fetch_backups(ctx.host, ctx.invocation.now)
    ctx.output.info(f"backups of {ctx.host} saved to {destination}")
    return 0


# ── Roles ────────────────────────────────────────────────────────────────


def _role_dirs(layout: ProjectLayout, role: str = "*") -> list[Path]:
    return sorted(p for p in layout.collections_dir.glob(f"*/*/roles/{role}") if p.is_dir())


def show_defaults(ctx: CommandContext) -> int:
    """Page the ``defaults/main.yml`` of every vendored role, or of one role."""
    layout = ctx.require_layout()
    role = ctx.target or "*"
    files = [d / "defaults" / "main.yml" for d in _role_dirs(layout, role)]
    files = [f for f in files if f.is_file()]
    if not files:
        if ctx.target:
            raise RoleNotFound(
                f"role {ctx.target} not found in {layout.collections_dir}",
                context={"project": layout.name, "role": ctx.target},
            )
        ctx.output.info(f"no role defaults found in {layout.collections_dir}")
        return 0

    chunks = []
    for path in files:
        role_dir = path.parent.parent
        name = f"{role_dir.parent.parent.parent.name}.{role_dir.parent.parent.name}.{role_dir.name}"
        chunks.append(f"# ---- {name} ----\n{path.read_text(encoding='utf-8')}")
    text = "\n".join(chunks)
    ctx.services.runner.call(shlex.split(ctx.settings.pager), input=text)
    return 0


def _collect_tags(node: object, found: set[str]) -> None:
    if isinstance(node, list):
        for item in node:
            _collect_tags(item, found)
    elif isinstance(node, dict):
        tags = node.get("tags")
        if isinstance(tags, str):
            found.update(t.strip() for t in tags.split(",") if t.strip())
        elif isinstance(tags, list):
            found.update(str(t) for t in tags)
        for key in ("block", "rescue", "always"):
            if key in node:
                _collect_tags(node[key], found)


def help_tags(ctx: CommandContext) -> int:
    """Print the tags usable with ``--tags``, per vendored role."""
    layout = ctx.require_layout()
    rows = []
    for role_dir in _role_dirs(layout):
        found: set[str] = set()
        for tasks_file in sorted((role_dir / "tasks").glob("*.yml")):
            _collect_tags(yaml.safe_load(tasks_file.read_text(encoding="utf-8")), found)
        if found:
            rows.append([role_dir.name, ", ".join(sorted(found))])
    if not rows:
        ctx.output.info(f"no tagged tasks found in {layout.collections_dir}")
        return 0
    ctx.output.table(["role", "tags"], rows, title=f"Tags in project {layout.name}")
    return 0


# ── Misc ─────────────────────────────────────────────────────────────────


def ls(ctx: CommandContext) -> int:
    base = ctx.settings.projects_dir.resolve()
    path = (base / ctx.target).resolve() if ctx.target else base
    if not path.is_relative_to(base):
        raise ProjectNotFound(
            f"{ctx.target} is outside the projects directory {base}",
            context={"path": ctx.target},
        )
    if not path.exists():
        raise ProjectNotFound(f"{path} does not exist", context={"path": str(path)})
    if path.is_file():
        ctx.output.line(path.name)
        return 0
    for entry in sorted(path.iterdir()):
        if entry.name.startswith("."):
            continue
        ctx.output.line(f"{entry.name}/" if entry.is_dir() else entry.name)
    return 0


def self_upgrade(ctx: CommandContext) -> int:
    settings = ctx.settings
    services = ctx.services
    updater = SelfUpdater(
        source_url=settings.source_url,
        clone_dir=settings.clone_dir,
        channel=settings.upgrade_channel,
        current_version=__version__,
        running_script=ctx.invocation.running_script,
        runner=services.runner,
        replacer=services.replacer_factory(services.runner),
        prompt=services.prompt,
        echo=services.output.info,
    )
    release = updater.run()
    services.output.info(f"infractl upgraded to {release.version} ({release.commit})")
    # the launcher on disk is no longer the code running here
    raise SystemExit(0)


def print_usage(output: Output) -> None:
    from infractl.dispatch.commands import usage_rows

    output.line(USAGE)
    output.table(["command", "arguments", "description"], usage_rows())


def show_help(ctx: CommandContext) -> int:
    print_usage(ctx.output)
    return 0

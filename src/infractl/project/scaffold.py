"""
Project and host creation (``init-project``, ``init-host``).

init-project writes the skeleton of a new project and its vault master
secret. init-host registers a host in the inventory and the playbook,
writes its variables and vault files from templates, fills ``CHANGEME<N>``
placeholders and encrypts the vault file.

init-host order: host files, secret generation, vault encryption, then the
inventory and playbook. A host is registered only once its vault is
encrypted; a failure before that removes the host files again.

Tags:
    scaffold, init-project, init-host, inventory, playbook
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass

import yaml

from infractl.core.errors import (
    GeneratorUnavailable,
    HostAlreadyExists,
    ProjectAlreadyExists,
    ProjectFileError,
)
from infractl.framework.logging import get_logger
from infractl.project import templates
from infractl.project.layout import ProjectLayout
from infractl.secrets.generator import PasswordGenerator, generate_secrets
from infractl.secrets.vault import VaultManager, generate_master_secret

logger = get_logger(__name__)


@dataclass
class HostInitResult:
    """Outcome of init-host, reported by the CLI."""

    host: str
    secrets_generated: int = 0
    encrypted: bool = False
    warning: GeneratorUnavailable | None = None


def init_project(layout: ProjectLayout) -> None:
    """Create the directory tree and initial files of a new project.

    Raises
    ------
    ProjectAlreadyExists
        If the project directory already exists.
    ProjectFileError
        If the project directory cannot be created.
    """
    if layout.root.exists():
        raise ProjectAlreadyExists(
            f"project {layout.name} already exists at {layout.root}",
            context={"project": layout.name},
        )
    try:
        layout.root.mkdir(parents=True)
    except OSError as exc:
        raise ProjectFileError(
            f"cannot create project directory {layout.root}: {exc.strerror or exc}",
            context={"project": layout.name, "path": str(layout.root)},
            cause=exc,
        ) from exc
    for directory in (layout.group_vars_dir, layout.host_vars_dir, layout.backups_dir):
        directory.mkdir()

    files = {
        layout.ansible_cfg: templates.ANSIBLE_CFG,
        layout.inventory: templates.INVENTORY,
        layout.playbook: templates.PLAYBOOK,
        layout.requirements: templates.REQUIREMENTS,
        layout.gitignore: templates.GITIGNORE,
        layout.group_vars_file("all"): templates.GROUP_VARS_ALL,
    }
    for path, content in files.items():
        path.write_text(content, encoding="utf-8")

    generate_master_secret(layout)
    logger.info("project.created", project=layout.name, path=str(layout.root))


def _load_inventory(layout: ProjectLayout) -> dict:
    data = yaml.safe_load(layout.inventory.read_text(encoding="utf-8")) or {}
    all_group = (data.get("all") or {}) if isinstance(data, dict) else None
    if not isinstance(all_group, dict) or not isinstance(all_group.get("hosts") or {}, dict):
        raise ProjectFileError(
            f"{layout.inventory} has no 'all.hosts' mapping",
            context={"project": layout.name, "path": str(layout.inventory)},
        )
    return data


def _load_plays(layout: ProjectLayout) -> tuple[str, list]:
    text = layout.playbook.read_text(encoding="utf-8")
    plays = yaml.safe_load(text) or []
    if not isinstance(plays, list):
        raise ProjectFileError(
            f"{layout.playbook} is not a list of plays",
            context={"project": layout.name, "path": str(layout.playbook)},
        )
    return text, plays


def add_to_inventory(layout: ProjectLayout, host: str) -> bool:
    """Add ``host`` under ``all.hosts``. Returns False if already present."""
    data = _load_inventory(layout)
    all_group = data.get("all") or {}
    hosts = all_group.get("hosts") or {}
    if host in hosts:
        return False
    hosts[host] = None
    all_group["hosts"] = hosts
    data["all"] = all_group
    layout.inventory.write_text(
        yaml.safe_dump(data, default_flow_style=False, sort_keys=False), encoding="utf-8"
    )
    return True


def add_to_playbook(layout: ProjectLayout, host: str) -> bool:
    """Append a play for ``host``. Returns False if a play already targets it."""
    text, plays = _load_plays(layout)
    if any(isinstance(play, dict) and play.get("hosts") == host for play in plays):
        return False
    if text and not text.endswith("\n"):
        text += "\n"
    layout.playbook.write_text(text + templates.PLAY.format(host=host), encoding="utf-8")
    return True


def _discard_host(layout: ProjectLayout, host: str, *, fresh_dir: bool, fresh_vault: bool) -> None:
    """Remove what a failed init-host wrote, so that no plaintext vault remains."""
    if fresh_dir:
        shutil.rmtree(layout.host_dir(host), ignore_errors=True)
        return
    layout.host_vars_file(host).unlink(missing_ok=True)
    if fresh_vault:
        layout.host_vault_file(host).unlink(missing_ok=True)


def init_host(
    layout: ProjectLayout,
    host: str,
    vault: VaultManager,
    generate: PasswordGenerator | None,
) -> HostInitResult:
    """Create the variables and vault files of ``host`` and register it.

    If secret generation or encryption fails, the files written for the
    host are removed before the error propagates.

    Raises
    ------
    HostAlreadyExists
        If ``host_vars/<host>/<host>.yml`` already exists.
    ProjectFileError
        If the inventory or the playbook cannot take a new host.
    """
    vars_file = layout.host_vars_file(host)
    vault_file = layout.host_vault_file(host)
    if vars_file.exists():
        raise HostAlreadyExists(
            f"host {host} already exists in project {layout.name}",
            context={"project": layout.name, "host": host},
        )

    # fail before any host file is written
    _load_inventory(layout)
    _load_plays(layout)
    result = HostInitResult(host=host)
    fresh_dir = not layout.host_dir(host).exists()
    fresh_vault = not vault_file.exists()
    layout.host_dir(host).mkdir(parents=True, exist_ok=True)
    try:
        vars_file.write_text(templates.HOST_VARS.format(host=host), encoding="utf-8")
        if fresh_vault:
            vault_file.write_text(templates.HOST_VAULT.format(host=host), encoding="utf-8")
        try:
            result.secrets_generated = generate_secrets(vault_file, generate)
        except GeneratorUnavailable as warning:
            result.warning = warning
        result.encrypted = vault.encrypt(vault_file)
    except BaseException:
        logger.warning("host.rollback", project=layout.name, host=host)
        _discard_host(layout, host, fresh_dir=fresh_dir, fresh_vault=fresh_vault)
        raise

    add_to_inventory(layout, host)
    add_to_playbook(layout, host)
    logger.info("host.created", project=layout.name, host=host)
    return result

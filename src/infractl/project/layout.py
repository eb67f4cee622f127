"""
Filesystem conventions of an infractl project.

A project is a plain directory; every file infractl reads or writes lives at
a fixed path derived from the project root, the host name or the group
name. :class:`ProjectLayout` is the only place these names are spelled out.

Layout::

    <projects_dir>/<name>/
    ├── ansible.cfg
    ├── inventory.yml
    ├── playbook.yml
    ├── requirements.yml
    ├── group_vars/<group>.yml
    ├── host_vars/<host>/<host>.yml
    ├── host_vars/<host>/<host>.vault.yml
    ├── backups/
    ├── ansible_collections/
    ├── .ansible-vault-password
    └── .venv/
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_PROJECT = "default"
DEFAULT_GROUP = "all"

MASTER_SECRET_FILENAME = ".ansible-vault-password"
VENV_DIRNAME = ".venv"


@dataclass(frozen=True)
class ProjectLayout:
    """Paths of one project. Construction does not touch the filesystem."""

    name: str
    root: Path

    @classmethod
    def for_name(cls, projects_dir: Path, name: str) -> ProjectLayout:
        return cls(name=name, root=Path(projects_dir) / name)

    # ── Top-level files ──────────────────────────────────────────
    @property
    def inventory(self) -> Path:
        return self.root / "inventory.yml"

    @property
    def playbook(self) -> Path:
        return self.root / "playbook.yml"

    @property
    def requirements(self) -> Path:
        return self.root / "requirements.yml"

    @property
    def ansible_cfg(self) -> Path:
        return self.root / "ansible.cfg"

    @property
    def gitignore(self) -> Path:
        return self.root / ".gitignore"

    @property
    def master_secret(self) -> Path:
        return self.root / MASTER_SECRET_FILENAME

    # ── Directories ──────────────────────────────────────────────
    @property
    def group_vars_dir(self) -> Path:
        return self.root / "group_vars"

    @property
    def host_vars_dir(self) -> Path:
        return self.root / "host_vars"

    @property
    def backups_dir(self) -> Path:
        return self.root / "backups"

    @property
    def collections_dir(self) -> Path:
        return self.root / "ansible_collections"

    @property
    def venv_dir(self) -> Path:
        return self.root / VENV_DIRNAME

    # ── Per host / group ─────────────────────────────────────────
    def host_dir(self, host: str) -> Path:
        return self.host_vars_dir / host

    def host_vars_file(self, host: str) -> Path:
        return self.host_dir(host) / f"{host}.yml"

    def host_vault_file(self, host: str) -> Path:
        return self.host_dir(host) / f"{host}.vault.yml"

    def group_vars_file(self, group: str) -> Path:
        return self.group_vars_dir / f"{group}.yml"

    def exists(self) -> bool:
        return self.root.is_dir()

    def host_names(self) -> list[str]:
        """Names of the host directories under ``host_vars/``, sorted."""
        if not self.host_vars_dir.is_dir():
            return []
        return sorted(p.name for p in self.host_vars_dir.iterdir() if p.is_dir())

"""
Contract between infractl and the configuration-management engine.

The rest of the orchestrator talks to Ansible only through
:class:`ConfigEngine`. :class:`~infractl.engine.ansible.AnsibleEngine` is the
one concrete implementation (subprocess + output parsing); tests use a fake.

Guardrails:
    ❌ DON'T: build ``ansible-*`` argv lists outside infractl.engine
    ✅ DO: add a method here and implement it in AnsibleEngine
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class PlaybookOptions:
    """Arguments of one playbook run.

    ``limit`` and ``tags`` are omitted from the command line when ``None``.
    """

    check: bool = False
    limit: str | None = None
    tags: str | None = None

    def to_args(self) -> list[str]:
        args: list[str] = []
        if self.check:
            args += ["--check", "--diff"]
        if self.limit:
            args += ["--limit", self.limit]
        if self.tags:
            args += ["--tags", self.tags]
        return args


@runtime_checkable
class ConfigEngine(Protocol):
    """Operations infractl needs from the engine."""

    def render(self, host: str, expression: str) -> str:
        """Render a Jinja expression in the context of ``host``."""
        ...

    def run_playbook(self, options: PlaybookOptions) -> int:
        """Run the project playbook; return the engine's exit code."""
        ...

    def vault_encrypt(self, path: Path) -> None:
        """Encrypt ``path`` in place with the project master secret."""
        ...

    def vault_edit(self, path: Path, editor: str) -> None:
        """Open an encrypted file in ``editor`` through the engine."""
        ...

    def install_requirements(self, force: bool = False) -> None:
        """Install vendored collections listed in requirements.yml."""
        ...

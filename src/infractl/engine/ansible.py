"""Subprocess-backed :class:`~infractl.engine.protocols.ConfigEngine` for Ansible.

Runs ``ansible``, ``ansible-playbook``, ``ansible-vault`` and
``ansible-galaxy`` from the project's virtualenv, always from the project
directory so that ``ansible.cfg`` is picked up.

Variable rendering uses an ad-hoc ``debug`` call with the ``json`` stdout
callback and reads ``plays[0].tasks[0].hosts[<host>].msg`` from the result,
which keeps default-value expressions such as
``{{ ansible_port | default(22) }}`` working exactly as in playbooks.

Secrets never appear in argv: the master secret is passed as
``ANSIBLE_VAULT_PASSWORD_FILE`` and the editor as ``EDITOR``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from infractl.core.errors import UnderlyingToolFailure
from infractl.core.process import ProcessRunner
from infractl.engine.environment import EngineEnvironment
from infractl.engine.protocols import PlaybookOptions
from infractl.framework.logging import get_logger
from infractl.project.layout import ProjectLayout

logger = get_logger(__name__)


def parse_rendered_value(stdout: str, host: str) -> str:
    """Extract the ``msg`` of ``host`` from json-callback ad-hoc output."""
    start = stdout.find("{")
    if start == -1:
        raise UnderlyingToolFailure("ansible", 0, "no JSON document in ansible output")
    try:
        payload: dict[str, Any] = json.loads(stdout[start:])
        result = payload["plays"][0]["tasks"][0]["hosts"][host]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise UnderlyingToolFailure(
            "ansible", 0, f"unexpected ansible output while rendering a variable for {host}", cause=exc
        ) from exc
    if result.get("failed") or result.get("unreachable"):
        raise UnderlyingToolFailure(
            "ansible", 2, f"rendering a variable for {host} failed: {result.get('msg', '')}"
        )
    return str(result.get("msg", ""))


class AnsibleEngine:
    """Ansible implementation of ConfigEngine for one project."""

    def __init__(
        self,
        layout: ProjectLayout,
        environment: EngineEnvironment,
        runner: ProcessRunner,
        environ: Mapping[str, str],
    ) -> None:
        self.layout = layout
        self.environment = environment
        self.runner = runner
        self.environ = dict(environ)

    def _env(self, **extra: str) -> dict[str, str]:
        env = self.environment.env(self.environ)
        env["ANSIBLE_CONFIG"] = str(self.layout.ansible_cfg)
        env["ANSIBLE_VAULT_PASSWORD_FILE"] = str(self.layout.master_secret)
        env.update(extra)
        return env

    def _bin(self, name: str) -> str:
        return str(self.environment.executable(name))

    def render(self, host: str, expression: str) -> str:
        argv = [
            self._bin("ansible"),
            host,
            "--inventory",
            str(self.layout.inventory),
            "--module-name",
            "debug",
            "--args",
            f"msg={expression}",
        ]
        result = self.runner.run(
            argv,
            cwd=self.layout.root,
            env=self._env(ANSIBLE_LOAD_CALLBACK_PLUGINS="1", ANSIBLE_STDOUT_CALLBACK="json"),
            check=False,
        )
        value = parse_rendered_value(result.stdout, host)
        logger.debug("engine.render", host=host, expression=expression, value=value)
        return value

    def run_playbook(self, options: PlaybookOptions) -> int:
        argv = [self._bin("ansible-playbook"), self.layout.playbook.name, *options.to_args()]
        logger.info("engine.playbook", argv=argv)
        return self.runner.call(argv, cwd=self.layout.root, env=self._env())

    def vault_encrypt(self, path: Path) -> None:
        self.runner.run(
            [self._bin("ansible-vault"), "encrypt", str(path)],
            cwd=self.layout.root,
            env=self._env(),
        )

    def vault_edit(self, path: Path, editor: str) -> None:
        self.runner.check_call(
            [self._bin("ansible-vault"), "edit", str(path)],
            cwd=self.layout.root,
            env=self._env(EDITOR=editor),
        )

    def install_requirements(self, force: bool = False) -> None:
        argv = [
            self._bin("ansible-galaxy"),
            "collection",
            "install",
            "--requirements-file",
            str(self.layout.requirements),
            "--collections-path",
            str(self.layout.root),
        ]
        if force:
            argv.append("--force")
        self.runner.check_call(argv, cwd=self.layout.root, env=self._env())

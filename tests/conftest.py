"""
Shared pytest fixtures for infractl tests.

This module provides:
- FakeRunner: records subprocess invocations, never spawns anything
- FakeEngine: in-memory ConfigEngine
- Settings, Output and Services wired to the fakes and to ``tmp_path``
- An ``invocation`` factory and an initialized ``project``

No external tool, virtualenv or network access is needed by the suite.
"""

from __future__ import annotations

import io
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console

from infractl.cli.utils import Output
from infractl.core.settings import InfraSettings, get_settings
from infractl.dispatch.context import Invocation, Services
from infractl.engine.environment import EngineEnvironment
from infractl.engine.protocols import PlaybookOptions
from infractl.framework.logging import clear_context, configure_logging
from infractl.project.layout import ProjectLayout
from infractl.project.scaffold import init_project


# =============================================================================
# Fakes
# =============================================================================


class FakeRunner:
    """ProcessRunner double.

    ``results`` maps a tool name (``argv[0]`` basename) to a
    ``CompletedProcess`` returned by :meth:`run`; ``returncodes`` does the
    same for :meth:`call`.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str], dict[str, Any]]] = []
        self.results: dict[str, subprocess.CompletedProcess[str]] = {}
        self.returncodes: dict[str, int] = {}

    @staticmethod
    def _tool(argv) -> str:
        return Path(str(argv[0])).name

    def run(self, argv, *, cwd=None, env=None, check=True, input=None):
        from infractl.core.errors import UnderlyingToolFailure

        argv = [str(a) for a in argv]
        self.calls.append(("run", argv, {"cwd": cwd, "env": env, "input": input}))
        result = self.results.get(
            self._tool(argv), subprocess.CompletedProcess(argv, 0, stdout="", stderr="")
        )
        if check and result.returncode != 0:
            raise UnderlyingToolFailure(self._tool(argv), result.returncode)
        return result

    def call(self, argv, *, cwd=None, env=None, input=None) -> int:
        argv = [str(a) for a in argv]
        self.calls.append(("call", argv, {"cwd": cwd, "env": env, "input": input}))
        return self.returncodes.get(self._tool(argv), 0)

    def check_call(self, argv, *, cwd=None, env=None, input=None) -> None:
        from infractl.core.errors import UnderlyingToolFailure

        rc = self.call(argv, cwd=cwd, env=env, input=input)
        if rc != 0:
            raise UnderlyingToolFailure(self._tool(argv), rc)

    def argvs(self, tool: str | None = None) -> list[list[str]]:
        return [argv for _, argv, _ in self.calls if tool is None or self._tool(argv) == tool]


class FakeEngine:
    """In-memory ConfigEngine."""

    def __init__(self) -> None:
        self.rendered: dict[str, str] = {}
        self.playbook_rc = 0
        self.playbooks: list[PlaybookOptions] = []
        self.encrypted: list[Path] = []
        self.edited: list[tuple[Path, str]] = []
        self.installs: list[bool] = []

    def render(self, host: str, expression: str) -> str:
        for key, value in self.rendered.items():
            if key in expression:
                return value
        return ""

    def run_playbook(self, options: PlaybookOptions) -> int:
        self.playbooks.append(options)
        return self.playbook_rc

    def vault_encrypt(self, path: Path) -> None:
        self.encrypted.append(path)
        path.write_text("$ANSIBLE_VAULT;1.1;AES256\n3132333435\n", encoding="utf-8")

    def vault_edit(self, path: Path, editor: str) -> None:
        self.edited.append((path, editor))

    def install_requirements(self, force: bool = False) -> None:
        self.installs.append(force)


class FakeBootstrapper:
    """EnvironmentBootstrapper double; counts ensure() calls."""

    instances: list[FakeBootstrapper] = []

    def __init__(self, venv_dir, runner, environ, *, notify=None) -> None:
        self.environment = EngineEnvironment(Path(venv_dir))
        self.ensured = 0
        FakeBootstrapper.instances.append(self)

    def ensure(self) -> EngineEnvironment:
        self.ensured += 1
        return self.environment


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _quiet_logging():
    configure_logging(level="WARNING", format="console", force=True)


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    """Reset process-wide state between tests."""
    for var in ("EDITOR", "PAGER", "TAGS"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    clear_context()
    FakeBootstrapper.instances.clear()
    yield
    get_settings.cache_clear()
    clear_context()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def projects_dir(tmp_path) -> Path:
    path = tmp_path / "playbooks"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path, projects_dir) -> InfraSettings:
    return InfraSettings(
        _env_file=None,
        projects_dir=projects_dir,
        clone_dir=tmp_path / "clone",
        editor="vi",
        pager="cat",
        password_generator="builtin",
    )


@pytest.fixture
def output() -> Output:
    return Output(
        Console(file=io.StringIO(), width=200, color_system=None),
        Console(file=io.StringIO(), width=200, color_system=None),
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def services(fake_runner, fake_engine, output) -> Services:
    return Services(
        runner=fake_runner,
        output=output,
        prompt=lambda _question: "YES",
        bootstrapper_factory=FakeBootstrapper,
        engine_factory=lambda layout, environment, runner, environ: fake_engine,
    )


@pytest.fixture
def invocation(settings, tmp_path):
    """Factory: ``invocation("deploy", "infra", "db1", tags=None)``."""

    def make(command: str | None, *args: str, tags: str | None = None) -> Invocation:
        return Invocation(
            command=command,
            args=tuple(args),
            settings=settings,
            environ={"PATH": "/usr/bin", "USER": "operator"},
            running_script=tmp_path / "bin" / "infractl",
            now=datetime(2024, 5, 17, 9, 30, 0),
            tags=tags,
        )

    return make


@pytest.fixture
def project(projects_dir) -> ProjectLayout:
    """An initialized project named ``infra`` without hosts."""
    layout = ProjectLayout.for_name(projects_dir, "infra")
    init_project(layout)
    return layout


def add_host_dir(layout: ProjectLayout, host: str) -> None:
    layout.host_dir(host).mkdir(parents=True, exist_ok=True)
    layout.host_vars_file(host).write_text(f"ansible_host: {host}\n", encoding="utf-8")


@pytest.fixture
def add_host():
    """Factory creating a bare host directory with a variables file."""
    return add_host_dir


def text_of(console: Console) -> str:
    return console.file.getvalue()


@pytest.fixture
def stdout_text(output):
    return lambda: text_of(output.out)


@pytest.fixture
def stderr_text(output):
    return lambda: text_of(output.err)

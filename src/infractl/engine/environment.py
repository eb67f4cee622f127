"""Per-project virtualenv holding the pinned engine release.

Every project owns ``<project>/.venv``. Before any command that needs the
engine, :class:`EnvironmentBootstrapper` checks that the virtualenv exists
and that ``ansible --version`` reports exactly :data:`ENGINE_VERSION`.
Anything else (missing venv, missing binary, unreadable output, another
version) is an :class:`~infractl.core.errors.EnvironmentMismatch`, which is
never shown as an error: the virtualenv is wiped and rebuilt from scratch.

Why This Matters:
    Playbooks and vendored collections are validated against one engine
    release. Letting a project drift to whatever ``pip`` resolves today
    turns a routine ``deploy`` into an engine upgrade.

Key Concepts:
    EngineEnvironment: Paths of a virtualenv plus the subprocess environment
        that "activates" it (``VIRTUAL_ENV`` and ``PATH``).
    EnvironmentBootstrapper: ``ensure()`` verifies, and recreates on mismatch.
    ENGINE_VERSION / CRYPTO_VERSION: The pinned releases.

Architecture Decisions:
    - Activation is an environment mapping passed to subprocesses, not a
      sourced shell script.
    - Recreation order is fixed: empty venv, then ``cryptography``, then
      ``ansible-core``. A failed venv creation or install propagates as
      UnderlyingToolFailure; the half-built venv fails verification next
      time and is rebuilt again.
    - No network access happens unless recreation is triggered.

Related Modules:
    - :mod:`infractl.engine.ansible`: runs engine binaries from this venv
    - :mod:`infractl.dispatch.commands`: the ENGINE pre-step

Tags:
    virtualenv, bootstrap, pinning, ansible-core, pip
"""

from __future__ import annotations

import os
import re
import subprocess
import venv
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from infractl.core.errors import EnvironmentMismatch, UnderlyingToolFailure
from infractl.core.process import ProcessRunner
from infractl.framework.logging import get_logger

logger = get_logger(__name__)

ENGINE_PACKAGE = "ansible-core"
ENGINE_VERSION = "2.17.7"
CRYPTO_PACKAGE = "cryptography"
CRYPTO_VERSION = "44.0.0"

_CORE_VERSION_RE = re.compile(r"\[core\s+([^\]]+)\]")


@dataclass(frozen=True)
class EngineEnvironment:
    """A virtualenv directory and how to run programs inside it."""

    venv_dir: Path

    @property
    def bin_dir(self) -> Path:
        return self.venv_dir / "bin"

    @property
    def python(self) -> Path:
        return self.bin_dir / "python"

    def executable(self, name: str) -> Path:
        return self.bin_dir / name

    def env(self, base: Mapping[str, str]) -> dict[str, str]:
        """Return ``base`` with the virtualenv activated."""
        result = dict(base)
        result.pop("PYTHONHOME", None)
        result["VIRTUAL_ENV"] = str(self.venv_dir)
        result["PATH"] = os.pathsep.join(
            p for p in (str(self.bin_dir), base.get("PATH", "")) if p
        )
        return result


def parse_engine_version(output: str) -> str | None:
    """Extract ``X.Y.Z`` from ``ansible --version`` output."""
    match = _CORE_VERSION_RE.search(output)
    if match is None:
        return None
    return match.group(1).strip()


def _default_builder() -> Any:
    return venv.EnvBuilder(clear=True, with_pip=True)


class EnvironmentBootstrapper:
    """Guarantees that a project's virtualenv holds the pinned engine.

    Parameters
    ----------
    venv_dir
        Virtualenv location (``ProjectLayout.venv_dir``).
    runner
        Process runner used for ``ansible --version`` and ``pip install``.
    environ
        Base environment for subprocesses.
    builder_factory
        Returns an object with ``create(path)``; defaults to
        ``venv.EnvBuilder(clear=True, with_pip=True)``.
    notify
        Called with a human-readable message before recreation starts.
    """

    def __init__(
        self,
        venv_dir: Path,
        runner: ProcessRunner,
        environ: Mapping[str, str],
        *,
        builder_factory: Callable[[], Any] = _default_builder,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self.environment = EngineEnvironment(Path(venv_dir))
        self.runner = runner
        self.environ = dict(environ)
        self.builder_factory = builder_factory
        self.notify = notify

    def installed_version(self) -> str:
        """Return the engine version installed in the virtualenv.

        Raises
        ------
        EnvironmentMismatch
            If the venv or the binary is missing or reports no version.
        """
        env = self.environment
        ansible = env.executable("ansible")
        if not env.python.exists() or not ansible.exists():
            raise EnvironmentMismatch(f"no engine installed in {env.venv_dir}")
        try:
            result = self.runner.run(
                [str(ansible), "--version"], env=env.env(self.environ), check=False
            )
        except (UnderlyingToolFailure, OSError) as exc:
            raise EnvironmentMismatch(f"cannot run {ansible}: {exc}", cause=exc) from exc
        if result.returncode != 0:
            raise EnvironmentMismatch(f"{ansible} --version exited with {result.returncode}")
        version = parse_engine_version(result.stdout)
        if version is None:
            raise EnvironmentMismatch(f"no version string in output of {ansible} --version")
        return version

    def verify(self) -> None:
        """Raise EnvironmentMismatch unless the pinned version is installed."""
        version = self.installed_version()
        if version != ENGINE_VERSION:
            raise EnvironmentMismatch(
                f"installed {ENGINE_PACKAGE} {version} != pinned {ENGINE_VERSION}",
                context={"installed": version, "pinned": ENGINE_VERSION},
            )

    def ensure(self) -> EngineEnvironment:
        """Verify the virtualenv, recreating it on any mismatch."""
        try:
            self.verify()
        except EnvironmentMismatch as exc:
            logger.warning("environment.mismatch", reason=exc.message, **exc.context)
            self.recreate()
        else:
            logger.debug("environment.ok", venv=str(self.environment.venv_dir))
        return self.environment

    def recreate(self) -> None:
        """Build a fresh virtualenv and install the pinned packages."""
        env = self.environment
        if self.notify:
            self.notify(
                f"creating virtualenv {env.venv_dir} with {ENGINE_PACKAGE}=={ENGINE_VERSION}"
            )
        logger.info("environment.recreate", venv=str(env.venv_dir))
        try:
            self.builder_factory().create(str(env.venv_dir))
        except subprocess.CalledProcessError as exc:
            # ensurepip runs as a child of the builder
            raise UnderlyingToolFailure(
                "venv",
                exc.returncode,
                f"creating {env.venv_dir} failed (exit {exc.returncode}), is ensurepip installed?",
                cause=exc,
            ) from exc
        except OSError as exc:
            raise UnderlyingToolFailure(
                "venv", 1, f"cannot create {env.venv_dir}: {exc.strerror or exc}", cause=exc
            ) from exc
        activated = env.env(self.environ)
        for requirement in (
            f"{CRYPTO_PACKAGE}=={CRYPTO_VERSION}",
            f"{ENGINE_PACKAGE}=={ENGINE_VERSION}",
        ):
            self.runner.run(
                [str(env.python), "-m", "pip", "install", "--quiet", requirement],
                env=activated,
            )
            logger.info("environment.installed", requirement=requirement)

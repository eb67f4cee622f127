"""
Self-upgrade from the canonical git repository.

The upgrade is a three-step protocol:

1. **fetch**: clone the repository into the cache directory, or update an
   existing clone to the tip of the release channel; read the new version
   string and short commit id.
2. **confirm**: show current and new version/commit; only the literal,
   case-sensitive answer ``YES`` proceeds. Anything else, including end of
   input, raises :class:`~infractl.core.errors.UpgradeAborted` before any
   file changes.
3. **replace**: a :class:`ScriptReplacer` installs the fetched tree into the
   running interpreter with ``pip``, then copies the fetched launcher over
   the running script. The updater asks a fresh interpreter for
   ``infractl.__version__`` and fails unless it reports the fetched
   version. :class:`CopyReplacer` writes a temporary sibling of the script
   and renames it into place, and falls back to ``sudo cp`` when the target
   directory is not writable.

Related Modules:
    - :mod:`infractl.dispatch.handlers`: exits the process after replace

Tags:
    self-upgrade, git, release-channel, launcher, pip
"""

from __future__ import annotations

import os
import re
import shutil
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from infractl.core.errors import UnderlyingToolFailure, UpgradeAborted
from infractl.core.process import ProcessRunner
from infractl.framework.logging import get_logger

logger = get_logger(__name__)

CONFIRMATION = "YES"
LAUNCHER_PATH = Path("bin") / "infractl"
VERSION_FILE = Path("src") / "infractl" / "__init__.py"

_VERSION_RE = re.compile(r"""^__version__\s*=\s*["']([^"']+)["']""", re.MULTILINE)


@dataclass(frozen=True)
class Release:
    """A fetched revision of infractl."""

    version: str
    commit: str
    script: Path


class ScriptReplacer(Protocol):
    def install(self, source_tree: Path) -> None: ...

    def replace(self, source: Path, target: Path) -> None: ...


class CopyReplacer:
    """Installs with the running interpreter's pip and replaces the launcher.

    The launcher copy escalates with sudo on PermissionError.
    """

    def __init__(self, runner: ProcessRunner, python: str | None = None) -> None:
        self.runner = runner
        self.python = python or sys.executable

    def install(self, source_tree: Path) -> None:
        logger.info("selfupdate.install", source=str(source_tree), python=self.python)
        self.runner.check_call(
            [self.python, "-m", "pip", "install", "--upgrade", "--quiet", str(source_tree)]
        )

    def replace(self, source: Path, target: Path) -> None:
        staging = target.with_name(f".{target.name}.new")
        try:
            shutil.copy2(source, staging)
            os.replace(staging, target)
        except PermissionError:
            logger.info("selfupdate.escalate", target=str(target))
            self.runner.check_call(["sudo", "cp", str(source), str(target)])


def read_version(path: Path) -> str:
    match = _VERSION_RE.search(path.read_text(encoding="utf-8"))
    if match is None:
        raise UnderlyingToolFailure("git", 0, f"no __version__ found in {path}")
    return match.group(1)


class SelfUpdater:
    """Fetches, confirms and installs a new release.

    Parameters
    ----------
    source_url
        Git URL of the canonical repository.
    clone_dir
        Local cache of the clone.
    channel
        Branch or tag to check out.
    current_version
        Version of the running code.
    running_script
        Path of the launcher being executed.
    runner
        Process runner for git and the installed-version check.
    replacer
        Capability that installs the fetched tree and replaces the launcher.
    prompt
        Reads the operator's answer to the confirmation question.
    echo
        Prints informational lines.
    python
        Interpreter that receives the install; defaults to the running one.
    """

    def __init__(
        self,
        *,
        source_url: str,
        clone_dir: Path,
        channel: str,
        current_version: str,
        running_script: Path,
        runner: ProcessRunner,
        replacer: ScriptReplacer,
        prompt: Callable[[str], str],
        echo: Callable[[str], None],
        python: str | None = None,
    ) -> None:
        self.source_url = source_url
        self.clone_dir = Path(clone_dir)
        self.channel = channel
        self.current_version = current_version
        self.running_script = Path(running_script)
        self.runner = runner
        self.replacer = replacer
        self.prompt = prompt
        self.echo = echo
        self.python = python or sys.executable

    def _git(self, *args: str) -> str:
        return self.runner.run(["git", "-C", str(self.clone_dir), *args]).stdout.strip()

    def current_commit(self) -> str:
        """Commit of the cached clone before fetching, or ``unknown``."""
        if not (self.clone_dir / ".git").is_dir():
            return "unknown"
        try:
            return self._git("rev-parse", "--short", "HEAD")
        except UnderlyingToolFailure:
            return "unknown"

    def fetch(self) -> Release:
        if (self.clone_dir / ".git").is_dir():
            self._git("fetch", "--tags", "origin")
            self._git("checkout", self.channel)
            self._git("pull", "--ff-only", "origin", self.channel)
        else:
            self.clone_dir.parent.mkdir(parents=True, exist_ok=True)
            self.runner.run(
                ["git", "clone", "--branch", self.channel, self.source_url, str(self.clone_dir)]
            )
        release = Release(
            version=read_version(self.clone_dir / VERSION_FILE),
            commit=self._git("rev-parse", "--short", "HEAD"),
            script=self.clone_dir / LAUNCHER_PATH,
        )
        logger.info("selfupdate.fetched", version=release.version, commit=release.commit)
        return release

    def confirm(self, release: Release, current_commit: str) -> None:
        self.echo(f"current version: {self.current_version} (commit {current_commit})")
        self.echo(f"new version:     {release.version} (commit {release.commit})")
        question = (
            f"Replace {self.running_script} with the new version? "
            f"Type {CONFIRMATION} to confirm: "
        )
        try:
            answer = self.prompt(question)
        except (EOFError, KeyboardInterrupt) as exc:
            raise UpgradeAborted("self-upgrade aborted, no answer given, no changes made") from exc
        if answer != CONFIRMATION:
            raise UpgradeAborted("self-upgrade aborted, no changes made")

    def installed_version(self) -> str:
        """``infractl.__version__`` as seen by a fresh interpreter."""
        # src layout: the clone root has no importable infractl package
        result = self.runner.run(
            [self.python, "-c", "import infractl; print(infractl.__version__)"],
            cwd=self.clone_dir,
        )
        return result.stdout.strip()

    def run(self) -> Release:
        """Fetch, confirm, install, replace. Returns the installed release."""
        previous_commit = self.current_commit()
        release = self.fetch()
        self.confirm(release, previous_commit)
        self.replacer.install(self.clone_dir)
        installed = self.installed_version()
        if installed != release.version:
            raise UnderlyingToolFailure(
                "pip",
                0,
                f"installed infractl reports {installed or 'no version'}, expected {release.version}",
                context={"python": self.python, "clone_dir": str(self.clone_dir)},
            )
        self.replacer.replace(release.script, self.running_script)
        logger.info("selfupdate.replaced", target=str(self.running_script), version=release.version)
        return release

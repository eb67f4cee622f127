"""
Subprocess wrapper for every external tool infractl drives.

All engine, ssh, rsync, git, pip and editor invocations go through
:class:`ProcessRunner` so that (a) tool failures surface uniformly as
:class:`~infractl.core.errors.UnderlyingToolFailure`, and (b) tests can
substitute a fake runner without patching ``subprocess`` globally.

Key Concepts:
    run(): Captured execution; returns ``CompletedProcess`` with text output.
    call(): Pass-through execution; the child inherits the terminal and the
        return code is handed back verbatim (deploy/check, ssh sessions,
        editors).

Architecture Decisions:
    - subprocess only, no shell: argv lists are passed as-is so user input
      never reaches a shell parser.
    - Binary-not-found is an UnderlyingToolFailure with return code 127,
      the same status a shell would report.
    - No timeouts: interactive sessions block on human input.

Tags:
    subprocess, process, external-tools, infractl
"""

from __future__ import annotations

import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from infractl.core.errors import UnderlyingToolFailure
from infractl.framework.logging import get_logger

logger = get_logger(__name__)


def _tool_name(argv: Sequence[str]) -> str:
    return Path(argv[0]).name if argv else "<empty>"


class ProcessRunner:
    """Runs external commands synchronously."""

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        input: str | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run a command and capture its output."""
        cmd = [str(a) for a in argv]
        logger.debug("process.run", cmd=" ".join(cmd), cwd=str(cwd) if cwd else None)
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                input=input,
            )
        except FileNotFoundError as exc:
            raise UnderlyingToolFailure(
                _tool_name(cmd), 127, f"{_tool_name(cmd)} not found on PATH", cause=exc
            ) from exc
        if check and result.returncode != 0:
            raise UnderlyingToolFailure(
                _tool_name(cmd),
                result.returncode,
                f"{_tool_name(cmd)} failed (exit {result.returncode}): {result.stderr.strip()}",
            )
        return result

    def call(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> int:
        """Run a command attached to the terminal and return its exit code.

        ``input`` is fed to the child's stdin (e.g. text for a pager).
        """
        cmd = [str(a) for a in argv]
        logger.debug("process.call", cmd=" ".join(cmd), cwd=str(cwd) if cwd else None)
        try:
            return subprocess.run(
                cmd,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                input=input,
                text=input is not None,
            ).returncode
        except FileNotFoundError as exc:
            raise UnderlyingToolFailure(
                _tool_name(cmd), 127, f"{_tool_name(cmd)} not found on PATH", cause=exc
            ) from exc

    def check_call(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> None:
        """Like :meth:`call` but raise UnderlyingToolFailure on nonzero exit."""
        returncode = self.call(argv, cwd=cwd, env=env, input=input)
        if returncode != 0:
            raise UnderlyingToolFailure(_tool_name(argv), returncode)

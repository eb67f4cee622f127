"""
Remote sessions on managed hosts: ssh shells, log viewing and backups.

Connection parameters are never read from the inventory files directly:
the engine renders them (``ConfigEngine.render``) so group variables,
vault values and ``default()`` filters resolve exactly as they do during a
playbook run.

Key Concepts:
    Connection: Rendered ``user``/``port`` plus the host name.
    RemoteExecutor.shell(): Interactive ``ssh -t``.
    RemoteExecutor.logs(): ``lnav`` on the system log, elevated with sudo
        when the connecting user cannot read it.
    RemoteExecutor.fetch_backups(): ``rsync`` of the host's backup tree into
        ``backups/<host>-<timestamp>/``, run as root on the remote side.

Tags:
    ssh, rsync, remote, backups, logs
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from infractl.core.errors import UnderlyingToolFailure
from infractl.core.process import ProcessRunner
from infractl.engine.protocols import ConfigEngine
from infractl.framework.logging import get_logger
from infractl.project.layout import ProjectLayout

logger = get_logger(__name__)

USER_EXPRESSION = "{{ ansible_user | default(lookup('env', 'USER')) }}"
PORT_EXPRESSION = "{{ ansible_port | default(22) }}"

REMOTE_BACKUP_PATH = "/var/backups/rsnapshot/"
REMOTE_SYSLOG = "/var/log/syslog"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


@dataclass(frozen=True)
class Connection:
    """SSH parameters of one host."""

    host: str
    user: str
    port: int

    @property
    def target(self) -> str:
        return f"{self.user}@{self.host}" if self.user else self.host

    def ssh_argv(self, *extra: str, tty: bool = True) -> list[str]:
        argv = ["ssh"]
        if tty:
            argv.append("-t")
        argv += ["-p", str(self.port), self.target]
        return argv + list(extra)


def logs_command(path: str = REMOTE_SYSLOG) -> str:
    """Remote shell snippet opening ``lnav`` on ``path``, with sudo if needed."""
    quoted = shlex.quote(path)
    return f"if [ -r {quoted} ]; then lnav {quoted}; else sudo lnav {quoted}; fi"


def backup_destination(backups_dir: Path, host: str, now: datetime) -> Path:
    return backups_dir / f"{host}-{now.strftime(BACKUP_TIMESTAMP_FORMAT)}"


class RemoteExecutor:
    """Opens ssh/rsync sessions against hosts of one project."""

    def __init__(self, layout: ProjectLayout, engine: ConfigEngine, runner: ProcessRunner) -> None:
        self.layout = layout
        self.engine = engine
        self.runner = runner

    def connection(self, host: str) -> Connection:
        """Render the connection user and port of ``host``."""
        user = self.engine.render(host, USER_EXPRESSION).strip()
        raw_port = self.engine.render(host, PORT_EXPRESSION).strip()
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise UnderlyingToolFailure(
                "ansible", 0, f"rendered ssh port for {host} is not a number: {raw_port!r}", cause=exc
            ) from exc
        conn = Connection(host=host, user=user, port=port)
        logger.debug("remote.connection", host=host, user=user, port=port)
        return conn

    def shell(self, host: str) -> None:
        self.runner.check_call(self.connection(host).ssh_argv())

    def logs(self, host: str) -> None:
        self.runner.check_call(self.connection(host).ssh_argv(logs_command()))

    def fetch_backups(self, host: str, now: datetime) -> Path:
        """Copy the host's backups into a new timestamped local directory."""
        conn = self.connection(host)
        destination = backup_destination(self.layout.backups_dir, host, now)
        destination.mkdir(parents=True, exist_ok=False)
        argv = [
            "rsync",
            "--archive",
            "--progress",
            "--rsync-path=sudo rsync",
            "-e",
            f"ssh -p {conn.port}",
            f"{conn.target}:{REMOTE_BACKUP_PATH}",
            f"{destination}/",
        ]
        logger.info("remote.fetch_backups", host=host, destination=str(destination))
        self.runner.check_call(argv)
        return destination

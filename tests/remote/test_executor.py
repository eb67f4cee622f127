"""Tests for ssh/rsync command construction."""

from __future__ import annotations

from datetime import datetime

import pytest

from infractl.core.errors import UnderlyingToolFailure
from infractl.remote import Connection, RemoteExecutor
from infractl.remote.executor import REMOTE_BACKUP_PATH, backup_destination, logs_command

NOW = datetime(2024, 5, 17, 9, 30, 0)


@pytest.fixture
def executor(project, fake_engine, fake_runner):
    fake_engine.rendered = {"ansible_user": "deploy", "ansible_port": "2222"}
    return RemoteExecutor(project, fake_engine, fake_runner)


class TestConnection:
    def test_target(self):
        assert Connection("web1", "deploy", 22).target == "deploy@web1"
        assert Connection("web1", "", 22).target == "web1"

    def test_ssh_argv(self):
        argv = Connection("web1", "deploy", 2222).ssh_argv("uptime")
        assert argv == ["ssh", "-t", "-p", "2222", "deploy@web1", "uptime"]

    def test_rendered_through_engine(self, executor):
        assert executor.connection("web1") == Connection("web1", "deploy", 2222)

    def test_bad_port(self, executor, fake_engine):
        fake_engine.rendered["ansible_port"] = "ssh"
        with pytest.raises(UnderlyingToolFailure):
            executor.connection("web1")


class TestSessions:
    def test_shell(self, executor, fake_runner):
        executor.shell("web1")
        assert fake_runner.argvs("ssh") == [["ssh", "-t", "-p", "2222", "deploy@web1"]]

    def test_logs_uses_sudo_fallback(self, executor, fake_runner):
        executor.logs("web1")
        argv = fake_runner.argvs("ssh")[0]
        assert argv[-1] == logs_command()
        assert "sudo lnav /var/log/syslog" in argv[-1]

    def test_ssh_failure(self, executor, fake_runner):
        fake_runner.returncodes["ssh"] = 255
        with pytest.raises(UnderlyingToolFailure) as exc_info:
            executor.shell("web1")
        assert exc_info.value.returncode == 255


class TestFetchBackups:
    def test_rsync_argv(self, executor, fake_runner, project):
        destination = executor.fetch_backups("web1", NOW)
        assert destination == project.backups_dir / "web1-20240517-093000"
        assert destination.is_dir()
        argv = fake_runner.argvs("rsync")[0]
        assert "--rsync-path=sudo rsync" in argv
        assert argv[argv.index("-e") + 1] == "ssh -p 2222"
        assert argv[-2:] == [f"deploy@web1:{REMOTE_BACKUP_PATH}", f"{destination}/"]

    def test_destination_must_be_new(self, executor):
        executor.fetch_backups("web1", NOW)
        with pytest.raises(FileExistsError):
            executor.fetch_backups("web1", NOW)

    def test_backup_destination(self, tmp_path):
        assert backup_destination(tmp_path, "db1", NOW).name == "db1-20240517-093000"

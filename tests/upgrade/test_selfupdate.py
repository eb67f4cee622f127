"""Tests for the fetch / confirm / install / replace self-upgrade protocol."""

from __future__ import annotations

import shutil
import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest

from infractl.core.errors import UnderlyingToolFailure, UpgradeAborted
from infractl.core.process import ProcessRunner
from infractl.upgrade import CopyReplacer, Release, SelfUpdater
from infractl.upgrade.selfupdate import LAUNCHER_PATH, VERSION_FILE, read_version

PYTHON = "/opt/infractl/bin/python3"


@pytest.fixture
def clone_dir(tmp_path):
    """A cached clone containing release 1.5.0."""
    path = tmp_path / "clone"
    (path / ".git").mkdir(parents=True)
    (path / VERSION_FILE).parent.mkdir(parents=True)
    (path / VERSION_FILE).write_text('"""infractl."""\n\n__version__ = "1.5.0"\n')
    (path / LAUNCHER_PATH).parent.mkdir(parents=True)
    (path / LAUNCHER_PATH).write_text("#!/usr/bin/env python3\n# new launcher\n")
    return path


@pytest.fixture
def running_script(tmp_path):
    path = tmp_path / "bin" / "infractl"
    path.parent.mkdir()
    path.write_text("#!/usr/bin/env python3\n# old launcher\n")
    return path


def _updater(clone_dir, running_script, fake_runner, answer, replacer=None, installed="1.5.0"):
    fake_runner.results["git"] = subprocess.CompletedProcess([], 0, stdout="abc1234\n", stderr="")
    fake_runner.results["python3"] = subprocess.CompletedProcess(
        [], 0, stdout=f"{installed}\n", stderr=""
    )
    echoed: list[str] = []

    def prompt(_question):
        if isinstance(answer, BaseException):
            raise answer
        return answer

    updater = SelfUpdater(
        source_url="https://example.org/infractl.git",
        clone_dir=clone_dir,
        channel="release",
        current_version="1.4.0",
        running_script=running_script,
        runner=fake_runner,
        replacer=replacer or CopyReplacer(fake_runner, python=PYTHON),
        prompt=prompt,
        echo=echoed.append,
        python=PYTHON,
    )
    return updater, echoed


class TestReadVersion:
    def test_reads_dunder_version(self, clone_dir):
        assert read_version(clone_dir / VERSION_FILE) == "1.5.0"

    def test_missing_version(self, tmp_path):
        path = tmp_path / "__init__.py"
        path.write_text("x = 1\n")
        with pytest.raises(UnderlyingToolFailure):
            read_version(path)


class TestFetch:
    def test_updates_existing_clone(self, clone_dir, running_script, fake_runner):
        updater, _ = _updater(clone_dir, running_script, fake_runner, "YES")
        release = updater.fetch()
        assert release.version == "1.5.0"
        assert release.commit == "abc1234"
        subcommands = [argv[3] for argv in fake_runner.argvs("git")]
        assert subcommands[:3] == ["fetch", "checkout", "pull"]

    def test_clones_when_missing(self, tmp_path, running_script, fake_runner):
        target = tmp_path / "fresh"
        updater, _ = _updater(target, running_script, fake_runner, "YES")

        def fake_clone(argv, **kwargs):
            if argv[1] == "clone":
                (target / VERSION_FILE).parent.mkdir(parents=True)
                (target / VERSION_FILE).write_text('__version__ = "2.0.0"\n')
            return subprocess.CompletedProcess(argv, 0, stdout="def5678\n", stderr="")

        with patch.object(fake_runner, "run", side_effect=fake_clone) as run:
            release = updater.fetch()
        assert run.call_args_list[0].args[0] == [
            "git", "clone", "--branch", "release", "https://example.org/infractl.git", str(target)
        ]
        assert release.version == "2.0.0"


class TestConfirm:
    @pytest.mark.parametrize("answer", ["", "yes", "y", "YES "])
    def test_anything_but_yes_aborts(self, clone_dir, running_script, fake_runner, answer):
        updater, _ = _updater(clone_dir, running_script, fake_runner, answer)
        with pytest.raises(UpgradeAborted):
            updater.run()
        assert "old launcher" in running_script.read_text()
        assert fake_runner.argvs("python3") == []

    @pytest.mark.parametrize("interrupt", [EOFError(), KeyboardInterrupt()])
    def test_closed_input_aborts(self, clone_dir, running_script, fake_runner, interrupt):
        updater, _ = _updater(clone_dir, running_script, fake_runner, interrupt)
        with pytest.raises(UpgradeAborted):
            updater.run()
        assert "old launcher" in running_script.read_text()

    def test_versions_shown(self, clone_dir, running_script, fake_runner):
        updater, echoed = _updater(clone_dir, running_script, fake_runner, "no")
        with pytest.raises(UpgradeAborted):
            updater.run()
        assert any("1.4.0" in line for line in echoed)
        assert any("1.5.0" in line and "abc1234" in line for line in echoed)


class TestInstall:
    def test_pip_installs_fetched_tree(self, clone_dir, running_script, fake_runner):
        updater, _ = _updater(clone_dir, running_script, fake_runner, "YES")
        updater.run()
        assert fake_runner.argvs("python3")[0] == [
            PYTHON, "-m", "pip", "install", "--upgrade", "--quiet", str(clone_dir)
        ]

    def test_new_version_is_checked_in_fresh_interpreter(
        self, clone_dir, running_script, fake_runner
    ):
        updater, _ = _updater(clone_dir, running_script, fake_runner, "YES")
        release = updater.run()
        kind, argv, kwargs = [call for call in fake_runner.calls if call[1][0] == PYTHON][-1]
        assert kind == "run"
        assert argv[:2] == [PYTHON, "-c"]
        assert "infractl.__version__" in argv[2]
        assert kwargs["cwd"] == clone_dir
        assert release.version == "1.5.0"

    def test_stale_install_fails_before_replacing(self, clone_dir, running_script, fake_runner):
        updater, _ = _updater(clone_dir, running_script, fake_runner, "YES", installed="1.4.0")
        with pytest.raises(UnderlyingToolFailure, match="1.4.0.*1.5.0"):
            updater.run()
        assert "old launcher" in running_script.read_text()

    def test_pip_failure_leaves_launcher(self, clone_dir, running_script, fake_runner):
        updater, _ = _updater(clone_dir, running_script, fake_runner, "YES")
        fake_runner.returncodes["python3"] = 1
        with pytest.raises(UnderlyingToolFailure):
            updater.run()
        assert "old launcher" in running_script.read_text()


class _SiteReplacer(CopyReplacer):
    """Installs by copying the fetched package into a PYTHONPATH directory."""

    def __init__(self, runner, site_dir):
        super().__init__(runner)
        self.site_dir = site_dir

    def install(self, source_tree):
        shutil.copytree(source_tree / VERSION_FILE.parent, self.site_dir / "infractl")


class TestUpgradedCodeRuns:
    """A real interpreter must import the fetched release after the upgrade."""

    @pytest.fixture
    def site_dir(self, tmp_path, monkeypatch):
        path = tmp_path / "site"
        path.mkdir()
        monkeypatch.setenv("PYTHONPATH", str(path))
        return path

    def _run(self, clone_dir, running_script, replacer):
        updater = SelfUpdater(
            source_url="https://example.org/infractl.git",
            clone_dir=clone_dir,
            channel="release",
            current_version="1.4.0",
            running_script=running_script,
            runner=ProcessRunner(),
            replacer=replacer,
            prompt=lambda _question: "YES",
            echo=lambda _line: None,
            python=sys.executable,
        )
        release = Release(version="9.9.9", commit="def5678", script=clone_dir / LAUNCHER_PATH)
        (clone_dir / VERSION_FILE).write_text('__version__ = "9.9.9"\n')
        with patch.object(updater, "current_commit", return_value="abc1234"), patch.object(
            updater, "fetch", return_value=release
        ):
            return updater.run(), updater

    def test_fetched_version_is_imported(self, clone_dir, running_script, site_dir):
        release, updater = self._run(
            clone_dir, running_script, _SiteReplacer(ProcessRunner(), site_dir)
        )
        assert updater.installed_version() == "9.9.9" == release.version
        assert "new launcher" in running_script.read_text()

    def test_launcher_only_copy_is_rejected(self, clone_dir, running_script, site_dir):
        replacer = _SiteReplacer(ProcessRunner(), site_dir)
        with patch.object(replacer, "install"), pytest.raises(UnderlyingToolFailure):
            self._run(clone_dir, running_script, replacer)
        assert "old launcher" in running_script.read_text()


class TestReplace:
    def test_yes_replaces_script(self, clone_dir, running_script, fake_runner):
        updater, _ = _updater(clone_dir, running_script, fake_runner, "YES")
        release = updater.run()
        assert release.version == "1.5.0"
        assert "new launcher" in running_script.read_text()
        assert not running_script.with_name(".infractl.new").exists()

    def test_replacer_capability_is_used(self, clone_dir, running_script, fake_runner):
        replacer = MagicMock()
        updater, _ = _updater(clone_dir, running_script, fake_runner, "YES", replacer=replacer)
        updater.run()
        replacer.install.assert_called_once_with(clone_dir)
        replacer.replace.assert_called_once_with(clone_dir / LAUNCHER_PATH, running_script)

    @patch("infractl.upgrade.selfupdate.shutil.copy2", side_effect=PermissionError("denied"))
    def test_permission_error_uses_sudo(self, _copy, tmp_path, fake_runner):
        source, target = tmp_path / "new", tmp_path / "old"
        CopyReplacer(fake_runner).replace(source, target)
        assert fake_runner.argvs("sudo") == [["sudo", "cp", str(source), str(target)]]

"""
Tests for the command registry, argument binding and pre-steps.

Engines and bootstrappers are the fakes from conftest; no subprocess runs.
"""

from __future__ import annotations

import pytest

from infractl.core.errors import (
    HostAmbiguous,
    InvalidArguments,
    MissingCommand,
    ProjectNotFound,
    UnknownCommand,
)
from infractl.dispatch import COMMANDS, Command, PreStep, dispatch
from infractl.dispatch.commands import build_context, lookup, usage_rows
from infractl.framework.logging import get_context


class TestRegistry:
    def test_every_command_registered(self):
        assert set(COMMANDS) == set(Command)

    def test_command_names(self):
        assert Command("init-project") is Command.INIT_PROJECT
        assert Command.FETCH_BACKUPS.value == "fetch-backups"

    @pytest.mark.parametrize(
        "command, steps",
        [
            (Command.INIT_PROJECT, ()),
            (Command.INIT_HOST, (PreStep.PROJECT, PreStep.ENGINE)),
            (Command.EDIT_HOST, (PreStep.PROJECT, PreStep.HOST)),
            (Command.EDIT_GROUP, (PreStep.PROJECT, PreStep.GROUP)),
            (Command.SHELL, (PreStep.PROJECT, PreStep.ENGINE, PreStep.HOST)),
            (Command.LS, ()),
            (Command.SELF_UPGRADE, ()),
        ],
    )
    def test_pre_steps(self, command, steps):
        assert COMMANDS[command].pre_steps == steps

    def test_deploy_runs_project_before_engine(self):
        steps = COMMANDS[Command.DEPLOY].pre_steps
        assert steps.index(PreStep.PROJECT) < steps.index(PreStep.ENGINE)

    def test_usage_rows_cover_registry(self):
        assert [row[0] for row in usage_rows()] == [c.value for c in COMMANDS]


class TestLookup:
    def test_missing(self):
        with pytest.raises(MissingCommand):
            lookup(None)
        with pytest.raises(MissingCommand):
            lookup("")

    def test_unknown(self):
        with pytest.raises(UnknownCommand) as exc_info:
            lookup("dance")
        assert exc_info.value.context["command"] == "dance"


class TestBuildContext:
    def test_default_project(self, invocation, services):
        ctx = build_context(invocation("deploy"), Command.DEPLOY, services)
        assert ctx.project_name == "default"
        assert ctx.target is None

    def test_project_and_target(self, invocation, services):
        ctx = build_context(invocation("deploy", "infra", "db1"), Command.DEPLOY, services)
        assert (ctx.project_name, ctx.target) == ("infra", "db1")

    def test_projectless_command(self, invocation, services):
        ctx = build_context(invocation("ls", "infra"), Command.LS, services)
        assert ctx.project_name is None
        assert ctx.target == "infra"

    def test_too_many_arguments(self, invocation, services):
        with pytest.raises(InvalidArguments):
            build_context(invocation("edit-playbook", "infra", "extra"), Command.EDIT_PLAYBOOK, services)

    def test_required_target(self, invocation, services):
        assert COMMANDS[Command.INIT_HOST].required_target == "host"
        assert COMMANDS[Command.DEPLOY].required_target is None
        with pytest.raises(InvalidArguments, match="requires a host"):
            build_context(invocation("init-host", "infra"), Command.INIT_HOST, services)


class TestDispatch:
    def test_unknown_command(self, invocation, services):
        with pytest.raises(UnknownCommand):
            dispatch(invocation("frobnicate"), services)

    def test_missing_project(self, invocation, services):
        with pytest.raises(ProjectNotFound):
            dispatch(invocation("deploy", "nope"), services)

    def test_engine_step_bootstraps_project_venv(self, invocation, services, project, fake_engine):
        dispatch(invocation("deploy", "infra"), services)
        (bootstrapper,) = services.bootstrapper_factory.instances
        assert bootstrapper.ensured == 1
        assert bootstrapper.environment.venv_dir == project.venv_dir

    def test_usage_error_before_engine_step(self, invocation, services, project):
        with pytest.raises(InvalidArguments):
            dispatch(invocation("init-host", "infra"), services)
        assert services.bootstrapper_factory.instances == []

    def test_collections_installed_when_missing(self, invocation, services, project, fake_engine):
        dispatch(invocation("deploy", "infra"), services)
        assert fake_engine.installs == [False]

    def test_collections_present(self, invocation, services, project, fake_engine):
        (project.collections_dir / "infractl" / "roles").mkdir(parents=True)
        dispatch(invocation("deploy", "infra"), services)
        assert fake_engine.installs == []

    def test_host_step_auto_selects(self, invocation, services, project, add_host, stdout_text):
        add_host(project, "web1")
        dispatch(invocation("edit-host", "infra"), services)
        assert "using host web1" in stdout_text()
        assert get_context().host == "web1"

    def test_host_step_ambiguous(self, invocation, services, project, add_host):
        add_host(project, "web1")
        add_host(project, "web2")
        with pytest.raises(HostAmbiguous):
            dispatch(invocation("shell", "infra"), services)

    def test_log_context_bound(self, invocation, services, project):
        dispatch(invocation("edit-playbook", "infra"), services)
        ctx = get_context()
        assert (ctx.command, ctx.project) == ("edit-playbook", "infra")

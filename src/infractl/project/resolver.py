"""Map project/host/group names to concrete paths, validating existence."""

from __future__ import annotations

from pathlib import Path

from infractl.core.errors import HostAmbiguous, HostNotFound, ProjectNotFound
from infractl.framework.logging import get_logger
from infractl.project.layout import DEFAULT_GROUP, ProjectLayout

logger = get_logger(__name__)


def resolve_project(projects_dir: Path, name: str) -> ProjectLayout:
    """Return the layout of an existing project.

    Raises
    ------
    ProjectNotFound
        If ``<projects_dir>/<name>`` is not a directory.
    """
    layout = ProjectLayout.for_name(projects_dir, name)
    if not layout.exists():
        raise ProjectNotFound(
            f"project {name} does not exist in {projects_dir}, run init-project first",
            context={"project": name, "path": str(layout.root)},
        )
    return layout


def resolve_host(layout: ProjectLayout, name: str | None) -> str:
    """Validate a host name, or select the only host of the project.

    Raises
    ------
    HostNotFound
        If ``name`` is given and has no variables file.
    HostAmbiguous
        If ``name`` is empty and the project has zero or several hosts.
    """
    if name:
        if not layout.host_vars_file(name).is_file():
            raise HostNotFound(
                f"host {name} not found in project {layout.name} "
                f"(missing {layout.host_vars_file(name)})",
                context={"project": layout.name, "host": name},
            )
        return name

    hosts = layout.host_names()
    if len(hosts) == 1:
        logger.info("host.auto_selected", host=hosts[0])
        return hosts[0]
    if not hosts:
        raise HostAmbiguous(
            f"no hosts in project {layout.name}, run init-host first",
            context={"project": layout.name},
        )
    raise HostAmbiguous(
        f"project {layout.name} has {len(hosts)} hosts ({', '.join(hosts)}), please specify one",
        context={"project": layout.name, "hosts": hosts},
    )


def resolve_group(name: str | None) -> str:
    """Return the group name, defaulting to the implicit ``all`` group."""
    return name or DEFAULT_GROUP

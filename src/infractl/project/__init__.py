"""Projects and hosts: filesystem layout, name resolution and scaffolding."""

from infractl.project.layout import DEFAULT_GROUP, DEFAULT_PROJECT, ProjectLayout
from infractl.project.resolver import resolve_group, resolve_host, resolve_project

__all__ = [
    "DEFAULT_GROUP",
    "DEFAULT_PROJECT",
    "ProjectLayout",
    "resolve_group",
    "resolve_host",
    "resolve_project",
]

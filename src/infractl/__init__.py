"""
infractl: lifecycle orchestration for Ansible deployment projects.

infractl manages named **projects** (an inventory, a playbook, per-host and
per-group variables, encrypted vault files) and the **hosts** within them.
Every project carries its own virtual environment holding a pinned
``ansible-core`` release, so two projects never share engine state.

Key Concepts:
    Project: A directory under the projects root (``~/playbooks`` by default).
    Host: A managed machine with a plaintext variables file and a vault file.
    Engine: ``ansible-core``, invoked through :class:`~infractl.engine.protocols.ConfigEngine`.
    Command: One of a closed set of verbs, dispatched by :mod:`infractl.dispatch`.

Related Modules:
    - :mod:`infractl.cli.app`: Typer entry point (``infractl``)
    - :mod:`infractl.dispatch.commands`: command registry and pre-steps
    - :mod:`infractl.engine.environment`: virtualenv bootstrapper
    - :mod:`infractl.secrets`: placeholder generation and vault handling
    - :mod:`infractl.remote.executor`: ssh / rsync sessions
    - :mod:`infractl.upgrade.selfupdate`: self-upgrade from git

Tags:
    ansible, deployment, orchestration, vault, ssh, cli
"""

__version__ = "1.4.0"

__all__ = ["__version__"]

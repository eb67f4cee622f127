"""Command dispatch: registry, pre-steps and handlers."""

from infractl.dispatch.commands import COMMANDS, Command, CommandSpec, PreStep, dispatch
from infractl.dispatch.context import CommandContext, Invocation, Services

__all__ = [
    "COMMANDS",
    "Command",
    "CommandContext",
    "CommandSpec",
    "Invocation",
    "PreStep",
    "Services",
    "dispatch",
]

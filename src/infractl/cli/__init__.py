"""
CLI layer for infractl.

Provides the Typer application that parses ``COMMAND [ARG1] [ARG2]`` and
hands an :class:`~infractl.dispatch.context.Invocation` to the dispatcher.
All behaviour lives in :mod:`infractl.dispatch`; this package handles only
terminal transport: argument parsing, prefixed messages and tables.

Entry point::

    infractl help
"""

"""Remote sessions (ssh, rsync) against managed hosts."""

from infractl.remote.executor import Connection, RemoteExecutor

__all__ = ["Connection", "RemoteExecutor"]

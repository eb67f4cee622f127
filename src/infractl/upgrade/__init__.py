"""Self-upgrade of the orchestrator from its git repository."""

from infractl.upgrade.selfupdate import CopyReplacer, Release, ScriptReplacer, SelfUpdater

__all__ = ["CopyReplacer", "Release", "ScriptReplacer", "SelfUpdater"]

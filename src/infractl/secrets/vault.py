"""Vault master secret and encrypted host files.

The master secret is a single file per project (``.ansible-vault-password``).
Losing it makes every vault file of the project unrecoverable; it is
written once and never overwritten.
"""

from __future__ import annotations

import base64
import os
import secrets
from pathlib import Path

from infractl.core.errors import VaultSecretMissing
from infractl.engine.protocols import ConfigEngine
from infractl.framework.logging import get_logger
from infractl.project.layout import ProjectLayout

logger = get_logger(__name__)

MASTER_SECRET_BYTES = 48
VAULT_HEADER = "$ANSIBLE_VAULT;"


def generate_master_secret(layout: ProjectLayout) -> bool:
    """Create the master secret if absent. Returns True if a file was written."""
    path = layout.master_secret
    if path.exists():
        logger.debug("vault.master_secret.exists", path=str(path))
        return False
    value = base64.b64encode(secrets.token_bytes(MASTER_SECRET_BYTES)).decode("ascii")
    # O_EXCL: never clobber a secret created concurrently
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w", encoding="ascii") as fh:
        fh.write(value + "\n")
    logger.info("vault.master_secret.created", path=str(path))
    return True


def is_encrypted(path: Path) -> bool:
    with path.open(encoding="utf-8", errors="replace") as fh:
        return fh.readline().startswith(VAULT_HEADER)


class VaultManager:
    """Encrypts and edits vault files of one project through the engine."""

    def __init__(self, layout: ProjectLayout, engine: ConfigEngine) -> None:
        self.layout = layout
        self.engine = engine

    def _require_master_secret(self) -> None:
        if not self.layout.master_secret.is_file():
            raise VaultSecretMissing(
                f"vault master secret {self.layout.master_secret} not found",
                context={"project": self.layout.name},
            )

    def encrypt(self, path: Path) -> bool:
        """Encrypt ``path`` unless it already is. Returns True if encrypted now."""
        self._require_master_secret()
        if is_encrypted(path):
            logger.info("vault.already_encrypted", path=str(path))
            return False
        self.engine.vault_encrypt(path)
        logger.info("vault.encrypted", path=str(path))
        return True

    def edit(self, path: Path, editor: str) -> None:
        self._require_master_secret()
        self.engine.vault_edit(path, editor)

"""Secret generation (CHANGEME placeholders) and vault handling."""

from infractl.secrets.generator import (
    PLACEHOLDER_RE,
    fill_placeholders,
    generate_secrets,
    get_generator,
)
from infractl.secrets.vault import VaultManager, generate_master_secret, is_encrypted

__all__ = [
    "PLACEHOLDER_RE",
    "VaultManager",
    "fill_placeholders",
    "generate_master_secret",
    "generate_secrets",
    "get_generator",
    "is_encrypted",
]

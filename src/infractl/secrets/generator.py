"""
Placeholder-driven secret generation.

Template files ship with tokens such as ``CHANGEME32``: the number is the
length of the secret to generate. :func:`fill_placeholders` replaces every
token with fresh random characters and leaves all other text untouched.

Key Concepts:
    fill_placeholders(): Pure function over a sequence of lines.
    generate_secrets(): Applies it to a file in place.
    get_generator(): ``builtin`` (Python ``secrets``), ``pwgen`` (external
        binary) or ``none``. Returns ``None`` when unavailable.

Guardrails:
    ❌ DON'T: run generation twice on a fresh template; each run creates
       different secrets
    ✅ DO: run it once, right after the template is written

Tags:
    secrets, passwords, placeholders, templates
"""

from __future__ import annotations

import re
import secrets
import shutil
import string
from collections.abc import Callable, Sequence
from pathlib import Path

from infractl.core.errors import GeneratorUnavailable, UnderlyingToolFailure
from infractl.core.process import ProcessRunner
from infractl.framework.logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_RE = re.compile(r"CHANGEME(\d+)")
ALPHABET = string.ascii_letters + string.digits

PasswordGenerator = Callable[[int], str]


def builtin_generator(length: int) -> str:
    """Return ``length`` random alphanumeric characters."""
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def _pwgen_generator(binary: str, runner: ProcessRunner) -> PasswordGenerator:
    def generate(length: int) -> str:
        result = runner.run([binary, "--secure", "--capitalize", "--numerals", str(length), "1"])
        value = result.stdout.strip()
        if len(value) != length:
            raise UnderlyingToolFailure(
                "pwgen", 0, f"pwgen returned {len(value)} characters, expected {length}"
            )
        return value

    return generate


def get_generator(name: str, runner: ProcessRunner | None = None) -> PasswordGenerator | None:
    """Return the named generator, or None if it is not available here."""
    if name == "builtin":
        return builtin_generator
    if name == "pwgen":
        binary = shutil.which("pwgen")
        return _pwgen_generator(binary, runner or ProcessRunner()) if binary else None
    if name == "none":
        return None
    raise ValueError(f"unknown password generator {name!r} (expected builtin, pwgen or none)")


def fill_placeholders(lines: Sequence[str], generate: PasswordGenerator) -> list[str]:
    """Replace every ``CHANGEME<N>`` token with an N-character secret.

    Lines without a token are returned unchanged, in the same order.
    """
    return [PLACEHOLDER_RE.sub(lambda m: generate(int(m.group(1))), line) for line in lines]


def count_placeholders(lines: Sequence[str]) -> int:
    return sum(len(PLACEHOLDER_RE.findall(line)) for line in lines)


def generate_secrets(path: Path, generate: PasswordGenerator | None) -> int:
    """Fill the placeholders of ``path`` in place; return the number replaced.

    Raises
    ------
    GeneratorUnavailable
        Non-fatal. Raised before touching the file when ``generate`` is None.
    """
    if generate is None:
        raise GeneratorUnavailable(
            f"no password generator available, replace CHANGEME placeholders in {path} manually",
            context={"path": str(path)},
        )
    lines = path.read_text(encoding="utf-8").splitlines(keepends=True)
    replaced = count_placeholders(lines)
    if replaced:
        path.write_text("".join(fill_placeholders(lines, generate)), encoding="utf-8")
    logger.info("secrets.generated", path=str(path), count=replaced)
    return replaced

"""Six digit share code issuance."""

from __future__ import annotations

import re
import secrets
from collections.abc import Callable

from receipt_split.domain.errors import CodeSpaceExhaustedError

SHARE_CODE_PATTERN = re.compile(r"^\d{6}$")
SHARE_CODE_LENGTH = 6
MAX_SHARE_CODE_ATTEMPTS = 20


def is_valid_share_code(value: str | None) -> bool:
    return value is not None and SHARE_CODE_PATTERN.match(value) is not None


def draw_share_code(randbelow: Callable[[int], int] = secrets.randbelow) -> str:
    """Draw one uniformly random zero-padded code."""

    return f"{randbelow(10**SHARE_CODE_LENGTH):0{SHARE_CODE_LENGTH}d}"


def generate_share_code(
    *,
    exists: Callable[[str], bool],
    randbelow: Callable[[int], int] = secrets.randbelow,
    max_attempts: int = MAX_SHARE_CODE_ATTEMPTS,
) -> str:
    """Return a code for which ``exists`` is false, retrying on collision.

    ``exists`` must consider archived receipts too, since issued codes are
    never handed out again.
    """

    for _ in range(max_attempts):
        candidate = draw_share_code(randbelow)
        if not exists(candidate):
            return candidate
    raise CodeSpaceExhaustedError(details={"attempts": max_attempts})

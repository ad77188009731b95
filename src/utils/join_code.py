"""Utilities for generating and validating class join codes.

Join codes are short, easy-to-type codes that students use to enroll in a
teacher's class. Everything here is free of database access so both the
preview and the redemption path share exactly the same rules.
"""

import secrets
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

import pytz

from config import (
    JOIN_CODE_ALPHABET,
    JOIN_CODE_LENGTH,
    JOIN_CODE_MAX_ATTEMPTS,
    UNLIMITED_USES,
)
from core.exceptions import (
    CodeDeactivated,
    CodeExpired,
    GenerationExhausted,
    UsageLimitReached,
)


class JoinCodeStatus(str, Enum):
    """Outcome of checking a join code's validity predicates."""

    VALID = "valid"
    DEACTIVATED = "deactivated"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    EXPIRED = "expired"


_STATUS_ERRORS = {
    JoinCodeStatus.DEACTIVATED: CodeDeactivated,
    JoinCodeStatus.USAGE_LIMIT_REACHED: UsageLimitReached,
    JoinCodeStatus.EXPIRED: CodeExpired,
}


def generate_code(length: int = JOIN_CODE_LENGTH, alphabet: str = JOIN_CODE_ALPHABET) -> str:
    """Generate a random code drawn uniformly from ``alphabet``.

    Examples:
        "AB12CD34"
        "P3XW8R0Q"

    Args:
        length: Length of the code (default 8).
        alphabet: Characters to draw from (default A-Z and 0-9).

    Returns:
        Randomly generated code.
    """
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_unique_code(
    exists: Callable[[str], bool],
    length: int = JOIN_CODE_LENGTH,
    max_attempts: int = JOIN_CODE_MAX_ATTEMPTS,
) -> str:
    """Draw codes until one does not collide with an existing code.

    Args:
        exists: Callback returning True if a code is already taken.
        length: Length of the code.
        max_attempts: Number of draws before giving up.

    Returns:
        A code for which ``exists`` returned False.

    Raises:
        GenerationExhausted: If every draw collided.
    """
    for _ in range(max_attempts):
        code = generate_code(length)
        if not exists(code):
            return code
    raise GenerationExhausted()


def normalize_code(code: Optional[str]) -> str:
    """Strip whitespace and uppercase a code typed by a user."""
    if not code:
        return ""
    return code.strip().upper()


def parse_timestamp(value: str) -> datetime:
    """Parse a stored ISO timestamp, treating naive values as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = pytz.utc.localize(parsed)
    return parsed


def check_join_code_validity(join_code, now: datetime) -> JoinCodeStatus:
    """Evaluate the validity predicates of a join code.

    Predicates are checked in order and the first failure wins: the code must
    be active, below its usage cap (unless unlimited), and not past its
    expiry. Membership is not checked here.

    Args:
        join_code: Object exposing ``is_active``, ``max_uses``,
            ``current_uses`` and ``expires_at``.
        now: Timezone-aware current time.

    Returns:
        JoinCodeStatus.VALID or the first failing predicate.
    """
    if not join_code.is_active:
        return JoinCodeStatus.DEACTIVATED
    if join_code.max_uses != UNLIMITED_USES and join_code.current_uses >= join_code.max_uses:
        return JoinCodeStatus.USAGE_LIMIT_REACHED
    if join_code.expires_at and parse_timestamp(join_code.expires_at) <= now:
        return JoinCodeStatus.EXPIRED
    return JoinCodeStatus.VALID


def ensure_join_code_valid(join_code, now: datetime) -> None:
    """Raise the matching StateConflict if the join code is not usable."""
    status = check_join_code_validity(join_code, now)
    if status is not JoinCodeStatus.VALID:
        raise _STATUS_ERRORS[status]()

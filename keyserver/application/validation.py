"""Input validation for key creation.

Candidates that fail a check are skipped with a log line rather than rejected
one by one; callers decide what an empty result means.
"""

from collections.abc import Iterable
from typing import TypeGuard

from ..domain.entities import is_valid_key_format
from ..domain.exceptions import ValidationError
from ..logging_config import get_logger

logger = get_logger(__name__)


def collect_candidates(candidates: str | Iterable[object] | None) -> list[object]:
    """Normalize a single key or a list of keys into a list.

    Raises:
        ValidationError: If no candidate was supplied at all
    """
    if isinstance(candidates, str):
        incoming: list[object] = [candidates]
    elif candidates is None:
        incoming = []
    else:
        incoming = list(candidates)

    if not incoming:
        logger.warning("Key creation failed - no key in request")
        raise ValidationError("No key supplied in request body", code="key_missing")
    return incoming


def has_valid_format(candidate: object) -> TypeGuard[str]:
    """Check the key format, logging candidates that get skipped."""
    if is_valid_key_format(candidate):
        return True
    logger.warning(
        "Skipping key with invalid format",
        attempted_key=repr(candidate)[:60],
    )
    return False

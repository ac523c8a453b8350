"""Shareable 6-character deck ids.

Ids use uppercase letters and digits (36^6, about 2.18 billion values).
Collisions are retried a bounded number of times.
"""

import logging
import secrets
import string
from collections.abc import Awaitable, Callable

from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt

from backend.config import settings
from backend.errors import IdSpaceExhausted

logger = logging.getLogger(__name__)

PUBLIC_ID_ALPHABET = string.ascii_uppercase + string.digits
PUBLIC_ID_LENGTH = 6


class _PublicIdTaken(Exception):
    pass


def generate_public_id() -> str:
    return "".join(secrets.choice(PUBLIC_ID_ALPHABET) for _ in range(PUBLIC_ID_LENGTH))


def is_valid_public_id(value: str) -> bool:
    return len(value) == PUBLIC_ID_LENGTH and all(c in PUBLIC_ID_ALPHABET for c in value.upper())


async def generate_unique_public_id(
    exists: Callable[[str], Awaitable[bool]],
    max_attempts: int | None = None,
) -> str:
    """Draw ids until ``exists`` reports one as free.

    Raises:
        IdSpaceExhausted: every one of ``max_attempts`` candidates was taken.
    """
    if max_attempts is None:
        max_attempts = settings.public_id_max_attempts
    if max_attempts < 1:
        raise IdSpaceExhausted(f"No public id attempts allowed (max_attempts={max_attempts})")
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            retry=retry_if_exception_type(_PublicIdTaken),
        ):
            with attempt:
                candidate = generate_public_id()
                if await exists(candidate):
                    logger.debug("Public id %s already taken", candidate)
                    raise _PublicIdTaken(candidate)
    except RetryError as exc:
        raise IdSpaceExhausted(
            f"Failed to generate a unique public id after {max_attempts} attempts"
        ) from exc
    return candidate

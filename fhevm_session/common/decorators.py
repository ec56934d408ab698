"""Decorators guarding and retrying client coroutines.
"""

from __future__ import annotations

import asyncio
import logging
from functools import wraps
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

from fhevm_session.common.exceptions import AuthorizationError

logger = logging.getLogger(__name__)


def requires_signer(
    error_message: str = "Signer required for user decryption",
) -> Callable:
    """Decorator that refuses to run a client method without a signer.

    The wrapped coroutine belongs to an object exposing a ``signer`` attribute.
    AuthorizationError is raised before the body runs, so nothing is signed or
    sent when no signer is configured.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            if getattr(self, "signer", None) is None:
                raise AuthorizationError(error_message)
            return await func(self, *args, **kwargs)

        return wrapper

    return decorator


def retry_on(
    exceptions: tuple[type[BaseException], ...],
    attempts: int | str = 3,
    delay_ms: float | str = 1000,
) -> Callable:
    """Decorator that retries a coroutine method with exponential backoff.

    Args:
        exceptions: Exception types that trigger another attempt
        attempts: Retries after the first call (attempts + 1 calls in total),
            or the name of an attribute on self holding it
        delay_ms: Initial delay in milliseconds, or an attribute name on self

    Returns:
        Decorated coroutine; the last exception propagates once retries run out
    """

    def resolve(owner: Any, setting: int | float | str) -> Any:
        # Attribute name - read from self at call time
        if isinstance(setting, str):
            return getattr(owner, setting)
        return setting

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            retries = int(resolve(self, attempts))
            backoff = float(resolve(self, delay_ms)) / 1000
            for attempt in range(retries + 1):
                try:
                    return await func(self, *args, **kwargs)
                except exceptions as e:
                    if attempt >= retries:
                        raise
                    logger.warning(
                        "%s failed (%s), retry %s/%s in %.3fs",
                        func.__name__,
                        e,
                        attempt + 1,
                        retries,
                        backoff,
                    )
                    await asyncio.sleep(backoff)
                    backoff *= 2
            return None

        return wrapper

    return decorator

"""HTTP utilities providing retry/backoff semantics."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    """Attempt budget with exponential backoff: ``backoff_base ** attempt`` seconds."""

    def __init__(
        self,
        *,
        attempts: int = 3,
        backoff_base: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {attempts}")
        self.attempts = attempts
        self.backoff_base = backoff_base
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:
        return self.backoff_base ** attempt


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args,
    retry_config: RetryConfig | None = None,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    is_retryable: Callable[[BaseException], bool] = lambda exc: True,
    **kwargs,
) -> T:
    """Await ``func`` until it succeeds, a non-retryable error occurs or attempts run out.

    Attempts run one after another, never in parallel.
    """
    config = retry_config or RetryConfig()
    attempt = 0
    last_exception: BaseException | None = None

    while attempt < config.attempts:
        try:
            return await func(*args, **kwargs)
        except retry_on as exc:
            if not is_retryable(exc):
                raise
            last_exception = exc
            attempt += 1
            if attempt >= config.attempts:
                break
            delay = config.delay_for(attempt)
            logger.warning(
                "Attempt %d/%d failed (%s); retrying in %.0fs",
                attempt,
                config.attempts,
                exc,
                delay,
            )
            await config.sleep(delay)

    if last_exception is not None:
        raise last_exception
    raise RuntimeError("Request failed without raising an exception")


__all__ = ["RetryConfig", "call_with_retry"]

"""Retry policy for calls to the external reasoning service.

Only overload and rate-limit failures are retried. Everything else is
raised on the first attempt. Waits go through ``asyncio.sleep`` so a
cancelled run stops mid-wait instead of finishing its retry loop.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from stakeholder.errors import (
    ExternalServiceFatal,
    ExternalServiceOverloaded,
    ExternalServiceRateLimited,
    ProfilerError,
)
from stakeholder.llm_client import ErrorKind, classify_error
from stakeholder.services import logger as log_service

T = TypeVar("T")

EXPONENTIAL = "exponential"
FIXED = "fixed"
RETRY_MODES = (EXPONENTIAL, FIXED)


@dataclass
class RetryState:
    attempt: int
    max_attempts: int
    next_delay: float


RetryCallback = Callable[[RetryState, BaseException], Awaitable[None] | None]
Sleeper = Callable[[float], Awaitable[None]]


class RetryPolicy:
    """Retries retryable failures with exponential or fixed-window waits."""

    def __init__(
        self,
        *,
        mode: str = EXPONENTIAL,
        max_attempts: int = 5,
        delay_seconds: float = 3.0,
        classify: Callable[[BaseException], ErrorKind] = classify_error,
        sleep: Sleeper | None = None,
        name: str = "call",
    ):
        mode = (mode or EXPONENTIAL).lower().strip()
        if mode not in RETRY_MODES:
            raise ValueError(f"Unknown retry mode: {mode}")
        self.mode = mode
        self.max_attempts = max(int(max_attempts), 1)
        self.delay_seconds = max(float(delay_seconds), 0.0)
        self.classify = classify
        self._sleep = sleep or asyncio.sleep
        self.name = name

    def delay_for(self, attempt: int) -> float:
        """Wait before the attempt following ``attempt`` (1-based)."""
        if self.mode == FIXED:
            return self.delay_seconds
        return self.delay_seconds * (2 ** (attempt - 1))

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        on_retry: RetryCallback | None = None,
    ) -> T:
        state = RetryState(attempt=0, max_attempts=self.max_attempts, next_delay=self.delay_for(1))
        while True:
            state.attempt += 1
            try:
                return await operation()
            except ProfilerError as exc:
                kind = self.classify(exc)
                if not kind.retryable:
                    raise
                last_error: BaseException = exc
            except Exception as exc:
                kind = self.classify(exc)
                if not kind.retryable:
                    raise ExternalServiceFatal(str(exc) or type(exc).__name__) from exc
                last_error = exc

            if state.attempt >= state.max_attempts:
                raise self._exhausted(kind, last_error, state.attempt) from last_error

            state.next_delay = self.delay_for(state.attempt)
            log_service.log_event(
                event_type="retry_scheduled",
                message=f"{self.name} failed ({kind.value}), retrying",
                level=logging.WARNING,
                attempt=state.attempt,
                max_attempts=state.max_attempts,
                delay_seconds=state.next_delay,
                error=str(last_error),
            )
            if on_retry is not None:
                notified = on_retry(state, last_error)
                if notified is not None:
                    await notified
            await self._sleep(state.next_delay)

    def _exhausted(self, kind: ErrorKind, error: BaseException, attempts: int) -> ProfilerError:
        detail = str(error) or type(error).__name__
        message = f"{self.name} failed after {attempts} attempts: {detail}"
        if kind is ErrorKind.RATE_LIMITED:
            return ExternalServiceRateLimited(message, attempts=attempts)
        return ExternalServiceOverloaded(message, attempts=attempts)


def policy_from_settings(prefix: str, config, **kwargs) -> RetryPolicy:
    """Build the policy for one call site (``research`` or ``synthesis``)."""
    return RetryPolicy(
        mode=getattr(config, f"{prefix}_retry_mode"),
        max_attempts=getattr(config, f"{prefix}_max_attempts"),
        delay_seconds=getattr(config, f"{prefix}_retry_delay_seconds"),
        name=prefix,
        **kwargs,
    )

"""Bounded retry of a single collaborator call.

The policy only re-attempts transient failures. Degenerate output and
contract violations are deterministic, so they are classified at once.
"""

import asyncio
from collections.abc import Awaitable, Callable
import dataclasses
import logging

from intent_pipeline.core.exceptions import (
    CancelledRunError,
    DegradedResultError,
    InvariantViolationError,
    StageContractError,
    ValidationError,
    is_transient,
)
from intent_pipeline.core.types import Fatal, Ok, Recoverable, StageResult

log = logging.getLogger(__name__)

type Sleep = Callable[[float], Awaitable[None]]
type RetryHook = Callable[[int, BaseException], None]

_FATAL_ERRORS = (
    StageContractError,
    ValidationError,
    CancelledRunError,
    InvariantViolationError,
)


@dataclasses.dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Fixed-count, fixed-delay retry with an injectable sleep.

    Attributes:
        max_attempts: Total attempts including the first.
        delay: Seconds to wait between attempts.
        timeout: Upper bound in seconds for each attempt; None disables it.
            A timed-out attempt counts as a transient failure.
        sleep: Awaitable sleep used between attempts. Defaults to
            `asyncio.sleep`, resolved at call time.
    """

    max_attempts: int = 3
    delay: float = 0.5
    timeout: float | None = None
    sleep: Sleep | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0 or None")

    async def execute[T](
        self,
        call: Callable[[], Awaitable[T]],
        *,
        on_retry: RetryHook | None = None,
    ) -> StageResult[T]:
        """Run `call` until it succeeds or the policy gives up.

        Returns:
            `Ok` with the first successful value; `Recoverable` for degenerate
            output, non-transient failures and exhausted retries (carrying the
            last error); `Fatal` for contract, validation and cancellation
            errors.
        """
        sleep = self.sleep or asyncio.sleep
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                async with asyncio.timeout(self.timeout):
                    value = await call()
                return Ok(value)
            except DegradedResultError as e:
                return Recoverable(e, partial=e.partial)
            except _FATAL_ERRORS as e:
                return Fatal(e)
            except Exception as e:
                if not is_transient(e):
                    return Recoverable(e)
                last_error = e

            if attempt < self.max_attempts:
                log.debug(
                    "Transient failure on attempt %d/%d, retrying in %.3fs: %s",
                    attempt,
                    self.max_attempts,
                    self.delay,
                    last_error,
                )
                if on_retry is not None:
                    on_retry(attempt, last_error)
                await sleep(self.delay)

        if last_error is None:
            raise InvariantViolationError("Retry loop ended without an attempt")
        return Recoverable(last_error)

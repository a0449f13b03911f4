import asyncio

import pytest

from intent_pipeline.core.exceptions import (
    CancelledRunError,
    DegradedResultError,
    StageContractError,
    TransientStageError,
    ValidationError,
)
from intent_pipeline.core.types import Fatal, Ok, Recoverable
from intent_pipeline.pipeline.retry import RetryPolicy

pytestmark = pytest.mark.unit


class Flaky:
    """Fails with the given errors in order, then returns `value`."""

    def __init__(self, *errors, value="done"):
        self.errors = list(errors)
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.value


@pytest.fixture
def policy(fake_sleep):
    return RetryPolicy(max_attempts=3, delay=0.1, sleep=fake_sleep)


@pytest.mark.asyncio
async def test_first_success_returns_ok_without_sleeping(policy, fake_sleep):
    call = Flaky()

    result = await policy.execute(call)

    assert result == Ok("done")
    assert call.calls == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_transient_errors_are_retried_with_fixed_delay(policy, fake_sleep):
    call = Flaky(TransientStageError("busy"), ConnectionError("reset"))
    seen = []

    result = await policy.execute(call, on_retry=lambda n, e: seen.append((n, type(e))))

    assert result == Ok("done")
    assert call.calls == 3
    assert fake_sleep.delays == [0.1, 0.1]
    assert seen == [(1, TransientStageError), (2, ConnectionError)]


@pytest.mark.asyncio
async def test_exhausted_retries_return_last_error_as_recoverable(policy, fake_sleep):
    last = TimeoutError("third")
    call = Flaky(TimeoutError("first"), TimeoutError("second"), last)

    result = await policy.execute(call)

    assert isinstance(result, Recoverable)
    assert result.error is last
    assert result.partial is None
    assert call.calls == 3
    assert len(fake_sleep.delays) == 2


@pytest.mark.asyncio
async def test_non_transient_error_is_recoverable_immediately(policy):
    call = Flaky(KeyError("missing"))

    result = await policy.execute(call)

    assert isinstance(result, Recoverable)
    assert isinstance(result.error, KeyError)
    assert call.calls == 1


@pytest.mark.asyncio
async def test_degenerate_output_carries_partial_value(policy):
    call = Flaky(DegradedResultError("empty", partial={"items": []}))

    result = await policy.execute(call)

    assert isinstance(result, Recoverable)
    assert result.partial == {"items": []}
    assert call.calls == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        StageContractError("broken"),
        ValidationError("bad", field_name="intent"),
        CancelledRunError("stop"),
    ],
)
async def test_contract_errors_are_fatal_and_not_retried(policy, error):
    call = Flaky(error)

    result = await policy.execute(call)

    assert result == Fatal(error)
    assert call.calls == 1


@pytest.mark.asyncio
async def test_attempt_timeout_counts_as_transient(fake_sleep):
    policy = RetryPolicy(max_attempts=2, delay=0, timeout=0.01, sleep=fake_sleep)
    calls = 0

    async def hang():
        nonlocal calls
        calls += 1
        await asyncio.sleep(5)

    result = await policy.execute(hang)

    assert isinstance(result, Recoverable)
    assert isinstance(result.error, TimeoutError)
    assert calls == 2


@pytest.mark.parametrize(
    "kwargs",
    [{"max_attempts": 0}, {"delay": -1}, {"timeout": 0}],
)
def test_invalid_policy_is_rejected(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)

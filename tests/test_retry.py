"""Tests for the bounded retry loop (codegen/retry.py)."""

from __future__ import annotations

import asyncio

import pytest

from codegen.errors import ExternalServiceError
from codegen.retry import RetryPolicy, call_with_retry


class Flaky:
    """Fails with the given errors in turn, then returns "ok"."""

    def __init__(self, *errors: Exception, hang: float = 0.0):
        self.errors = list(errors)
        self.hang = hang
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.hang:
            await asyncio.sleep(self.hang)
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


FAST = RetryPolicy(max_retries=2, retry_delay=0, timeout=1.0)


class TestRetryPolicy:

    def test_attempts(self):
        assert RetryPolicy(max_retries=0).attempts == 1
        assert RetryPolicy(max_retries=3).attempts == 4

    @pytest.mark.parametrize("kwargs", [
        {"max_retries": -1}, {"retry_delay": -0.5}, {"timeout": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)


class TestCallWithRetry:

    @pytest.mark.asyncio
    async def test_first_try(self):
        fn = Flaky()
        assert await call_with_retry(fn, FAST) == "ok"
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_transient_then_success(self):
        retries = []
        fn = Flaky(ExternalServiceError("503", transient=True))
        result = await call_with_retry(fn, FAST, on_retry=lambda n, e: retries.append(n))
        assert result == "ok"
        assert fn.calls == 2
        assert retries == [1]

    @pytest.mark.asyncio
    async def test_budget_exhausted(self):
        fn = Flaky(*[ExternalServiceError("429", transient=True, status_code=429)] * 5)
        with pytest.raises(ExternalServiceError) as exc_info:
            await call_with_retry(fn, FAST, label="embed")
        assert fn.calls == 3
        assert exc_info.value.transient is False
        assert exc_info.value.status_code == 429
        assert "embed failed after 3 attempts" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_transient_not_retried(self):
        fn = Flaky(ExternalServiceError("401", status_code=401))
        with pytest.raises(ExternalServiceError) as exc_info:
            await call_with_retry(fn, FAST)
        assert fn.calls == 1
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        fn = Flaky(KeyError("boom"))
        with pytest.raises(KeyError):
            await call_with_retry(fn, FAST)
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_timeout_counts_as_transient(self):
        fn = Flaky(hang=1.0)
        policy = RetryPolicy(max_retries=1, retry_delay=0, timeout=0.01)
        with pytest.raises(ExternalServiceError) as exc_info:
            await call_with_retry(fn, policy, label="slow call")
        assert fn.calls == 2
        assert "timed out" in str(exc_info.value)

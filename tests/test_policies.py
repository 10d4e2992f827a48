import email.utils
import time

import pytest

from ascgate import (
    Action,
    ApiError,
    AuthFailed,
    RateLimited,
    RetryConfig,
    RetryPolicy,
    TransportError,
)
from ascgate.policies import parse_retry_after


def test_backoff_strictly_increasing_until_cap():
    policy = RetryPolicy(RetryConfig(backoff_base=1.0, backoff_growth=2.0, backoff_cap=5.0))
    assert [policy.backoff(a) for a in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_success():
    assert RetryPolicy().classify(1, status=200).action is Action.SUCCEED
    assert RetryPolicy().classify(1, status=204).action is Action.SUCCEED


@pytest.mark.parametrize("status", [500, 502, 503])
def test_server_errors_retry_then_fail(status):
    policy = RetryPolicy(RetryConfig(max_attempts=3))
    d = policy.classify(1, status=status)
    assert d.action is Action.RETRY
    assert d.delay == 1.0
    assert policy.classify(2, status=status).delay == 2.0  # noqa: PLR2004
    last = policy.classify(3, status=status)
    assert last.action is Action.FAIL
    assert isinstance(last.error, ApiError)
    assert last.error.status == status


@pytest.mark.parametrize("status", [401, 403])
def test_auth_failures_never_retried(status):
    d = RetryPolicy().classify(1, status=status, errors=[{"detail": "bad token"}])
    assert d.action is Action.FAIL
    assert isinstance(d.error, AuthFailed)
    assert d.error.status == status
    assert "bad token" in str(d.error)


def test_client_error_carries_payload():
    errors = [{"status": "409", "code": "ENTITY_ERROR", "title": "Conflict", "detail": "dup"}]
    d = RetryPolicy().classify(1, status=409, errors=errors)
    assert d.action is Action.FAIL
    assert str(d.error) == "Conflict: dup"
    assert d.error.errors == errors


def test_429_within_cap_retries_with_server_delay():
    d = RetryPolicy().classify(1, status=429, headers={"Retry-After": "30"})
    assert d.action is Action.RETRY
    assert d.delay == 30.0  # noqa: PLR2004
    assert d.cooldown == 30.0  # noqa: PLR2004
    assert isinstance(d.error, RateLimited)


def test_429_over_cap_or_out_of_attempts_fails():
    policy = RetryPolicy(RetryConfig(max_attempts=2, retry_after_cap=10))
    over = policy.classify(1, status=429, headers={"retry-after": "30"})
    assert over.action is Action.FAIL
    assert over.cooldown == 30.0  # noqa: PLR2004
    assert over.error.retry_after == 30  # noqa: PLR2004
    last = policy.classify(2, status=429, headers={"Retry-After": "5"})
    assert last.action is Action.FAIL


def test_network_error_retried_like_5xx():
    boom = ConnectionError("reset")
    policy = RetryPolicy(RetryConfig(max_attempts=2))
    d = policy.classify(1, error=boom)
    assert d.action is Action.RETRY
    assert d.delay == 1.0
    last = policy.classify(2, error=boom)
    assert last.action is Action.FAIL
    assert isinstance(last.error, TransportError)
    assert last.error.__cause__ is boom


def test_parse_retry_after_forms():
    now = time.time()
    assert parse_retry_after({"Retry-After": "12"}, now, 60.0) == 12.0  # noqa: PLR2004
    assert parse_retry_after({}, now, 60.0) == 60.0  # noqa: PLR2004
    assert parse_retry_after({"Retry-After": "soon"}, now, 60.0) == 60.0  # noqa: PLR2004
    future = email.utils.formatdate(now + 20, usegmt=True)
    assert 18 <= parse_retry_after({"Retry-After": future}, now, 60.0) <= 21  # noqa: PLR2004


@pytest.mark.parametrize("value", ["inf", "-inf", "nan", "1e400"])
def test_parse_retry_after_non_finite_uses_default(value):
    assert parse_retry_after({"Retry-After": value}, time.time(), 60.0) == 60.0  # noqa: PLR2004


def test_429_with_infinite_retry_after_is_classified():
    d = RetryPolicy().classify(1, status=429, headers={"Retry-After": "inf"})
    assert d.action is Action.RETRY
    assert d.delay == 60.0  # noqa: PLR2004
    assert d.error.retry_after == 60  # noqa: PLR2004

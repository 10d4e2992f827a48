import email.utils as eut
import enum
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from .errors import ApiError, ASCError, AuthFailed, RateLimited, TransportError
from .types import RetryConfig


def parse_retry_after(headers: Mapping[str, str], now: float, default: float) -> float:
    ra = None
    for k, v in headers.items():
        if k.lower() == "retry-after":
            ra = v
            break
    if ra is None or not str(ra).strip():
        return default
    try:
        seconds = float(ra)
    except ValueError:
        pass
    else:
        # "inf" and "nan" parse as floats but are not usable delays
        if not math.isfinite(seconds):
            return default
        return max(0.0, seconds)
    # Try HTTP-date per RFC7231
    try:
        ts = eut.parsedate_to_datetime(ra)
    except (TypeError, ValueError):
        return default
    if ts is None:
        return default
    # Round up to the next whole second to avoid truncation
    # making short delays appear too short
    return max(0.0, float(math.ceil(ts.timestamp() - now)))


class Action(enum.Enum):
    SUCCEED = "succeed"
    RETRY = "retry"
    FAIL = "fail"


@dataclass(frozen=True)
class Decision:
    action: Action
    delay: float = 0.0
    error: Union[ASCError, None] = None
    # server-imposed cool-down to record in the shared budget, if any
    cooldown: Union[float, None] = None


class RetryPolicy:
    """Maps the outcome of one attempt to succeed / retry-after-delay / fail.

    Kept free of I/O so both transports share it and it can be tested on its own.
    """

    def __init__(self, config: Union[RetryConfig, None] = None):
        self.config = config or RetryConfig()

    @property
    def max_attempts(self) -> int:
        return max(1, self.config.max_attempts)

    def backoff(self, attempt: int) -> float:
        """Delay before the retry that follows 1-based ``attempt``."""
        c = self.config
        return min(c.backoff_cap, c.backoff_base * (c.backoff_growth ** (attempt - 1)))

    def classify(
        self,
        attempt: int,
        status: Union[int, None] = None,
        headers: Union[Mapping[str, str], None] = None,
        errors: Union[list[dict[str, Any]], None] = None,
        error: Union[BaseException, None] = None,
        now: float = 0.0,
    ) -> Decision:
        can_retry = attempt < self.max_attempts

        if error is not None:
            failure = TransportError(f"Request failed: {error}")
            failure.__cause__ = error
            if can_retry:
                return Decision(Action.RETRY, self.backoff(attempt), failure)
            return Decision(Action.FAIL, error=failure)

        if status is None:
            raise ValueError("classify() needs a status or an error")

        if status == 429:  # noqa: PLR2004, http status code can be constant
            retry_after = parse_retry_after(
                headers or {}, now, self.config.default_retry_after
            )
            limited = RateLimited(retry_after)
            if can_retry and retry_after <= self.config.retry_after_cap:
                return Decision(Action.RETRY, retry_after, limited, cooldown=retry_after)
            return Decision(Action.FAIL, error=limited, cooldown=retry_after)

        if status in (401, 403):
            detail = (errors or [{}])[0].get("detail") or "Authentication failed"
            return Decision(Action.FAIL, error=AuthFailed(detail, status=status))

        if status >= 500:  # noqa: PLR2004
            server = ApiError(f"Server error: {status}", status, errors)
            if can_retry:
                return Decision(Action.RETRY, self.backoff(attempt), server)
            return Decision(Action.FAIL, error=server)

        if not 200 <= status < 300:  # noqa: PLR2004
            return Decision(Action.FAIL, error=ApiError.from_response(status, errors))

        return Decision(Action.SUCCEED)

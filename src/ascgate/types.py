import time
from dataclasses import dataclass, field

BASE_URL = "https://api.appstoreconnect.apple.com/v1"


@dataclass(frozen=True)
class Credentials:
    key_id: str
    issuer_id: str
    private_key: str = field(repr=False)


@dataclass(frozen=True)
class AccessToken:
    value: str = field(repr=False)
    # unix seconds; always equal to the token's "exp" claim
    expires_at: float

    def remaining(self, now: float) -> float:
        return self.expires_at - now


@dataclass(frozen=True)
class AuthConfig:
    header: str = "Authorization"
    scheme: str = "Bearer"
    audience: str = "appstoreconnect-v1"
    # Service ceiling is 20 minutes; stay well under it.
    token_validity: int = 15 * 60
    refresh_threshold: int = 2 * 60


@dataclass(frozen=True)
class BudgetConfig:
    capacity: int = 500
    window_seconds: float = 3600.0


@dataclass(frozen=True)
class RetryConfig:
    # total attempts per send(), first try included
    max_attempts: int = 4

    # 5xx / transport errors
    backoff_base: float = 1.0
    backoff_growth: float = 2.0
    backoff_cap: float = 30.0

    # 429 handling
    default_retry_after: float = 60.0
    retry_after_cap: float = 60.0

    # per HTTP call, seconds
    timeout: float = 30.0


class Deadline:
    """Absolute cut-off shared by every attempt and page of one logical operation."""

    def __init__(self, expires_at: float):
        self.expires_at = expires_at

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining():.2f}s)"

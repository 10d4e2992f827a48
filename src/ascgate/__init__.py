from .auth import BearerAuth
from .env import CredentialResolver, has_credentials, load_credentials_from_env
from .errors import (
    ApiError,
    AppNotFound,
    ASCError,
    AuthFailed,
    CredentialsMalformed,
    CredentialsNotConfigured,
    DeadlineExceeded,
    RateLimited,
    SigningFailed,
    TransportError,
)
from .pagination import DEFAULT_MAX_PAGES, acollect_all, collect_all
from .policies import Action, Decision, RetryPolicy
from .state import RateBudget
from .tokens import TokenIssuer
from .transport import AsyncTransport, Transport
from .types import (
    BASE_URL,
    AccessToken,
    AuthConfig,
    BudgetConfig,
    Credentials,
    Deadline,
    RetryConfig,
)

__all__ = [
    "BASE_URL",
    "Credentials",
    "AccessToken",
    "AuthConfig",
    "BudgetConfig",
    "RetryConfig",
    "Deadline",
    "CredentialResolver",
    "has_credentials",
    "load_credentials_from_env",
    "TokenIssuer",
    "RateBudget",
    "RetryPolicy",
    "Action",
    "Decision",
    "BearerAuth",
    "Transport",
    "AsyncTransport",
    "collect_all",
    "acollect_all",
    "DEFAULT_MAX_PAGES",
    "ASCError",
    "CredentialsNotConfigured",
    "CredentialsMalformed",
    "SigningFailed",
    "AuthFailed",
    "RateLimited",
    "ApiError",
    "TransportError",
    "DeadlineExceeded",
    "AppNotFound",
]

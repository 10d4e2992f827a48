"""Error taxonomy for the App Store Connect access layer.

Every error carries a stable ``code`` for machine consumption and a
``retryable`` flag telling callers whether trying again later can help.
"""

import math
from typing import Any, Union


class ASCError(Exception):
    code = "asc-error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CredentialsNotConfigured(ASCError):
    code = "asc-credentials-not-configured"
    # Remote validation is optional: callers treat this as "skip", not "fail".
    integration_disabled = True

    def __init__(self, message: Union[str, None] = None):
        super().__init__(
            message
            or "App Store Connect credentials not configured. Set ASC_KEY_ID, ASC_ISSUER_ID, "
            "and ASC_PRIVATE_KEY_PATH (or ASC_PRIVATE_KEY) environment variables."
        )


class CredentialsMalformed(ASCError):
    code = "asc-credentials-malformed"


class SigningFailed(ASCError):
    code = "asc-signing-failed"


class AuthFailed(ASCError):
    code = "asc-auth-error"

    def __init__(self, message: str = "Authentication failed", status: Union[int, None] = None):
        super().__init__(message)
        self.status = status


class RateLimited(ASCError):
    code = "asc-rate-limited"
    retryable = True

    def __init__(self, retry_after: Union[float, None] = None):
        self.retry_after = None if retry_after is None else max(0, math.ceil(retry_after))
        msg = "App Store Connect API rate limit exceeded."
        if self.retry_after:
            msg += f" Retry after {self.retry_after} seconds."
        super().__init__(msg)


class ApiError(ASCError):
    code = "asc-api-error"

    def __init__(
        self, message: str, status: int, errors: Union[list[dict[str, Any]], None] = None
    ):
        super().__init__(message)
        self.status = status
        self.errors = errors or []

    @classmethod
    def from_response(
        cls, status: int, errors: Union[list[dict[str, Any]], None] = None
    ) -> "ApiError":
        if errors:
            first = errors[0]
            title = first.get("title", "Error")
            detail = first.get("detail", "")
            return cls(f"{title}: {detail}", status, errors)
        return cls(f"API request failed with status {status}", status, errors)


class TransportError(ASCError):
    code = "asc-transport-error"
    retryable = True


class DeadlineExceeded(ASCError):
    code = "asc-deadline-exceeded"


class AppNotFound(ASCError):
    code = "asc-app-not-found"

    def __init__(self, bundle_id: str):
        super().__init__(
            f'App with bundle ID "{bundle_id}" not found in your App Store Connect account.'
        )
        self.bundle_id = bundle_id

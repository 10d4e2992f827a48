import logging
import threading
import time
from typing import Union

import jwt

from .env import CredentialResolver
from .errors import SigningFailed
from .types import AccessToken, AuthConfig, Credentials


class TokenIssuer:
    """Mints short-lived ES256 tokens and caches one until it nears expiry.

    The check-and-refresh runs under a single lock, so concurrent callers that
    find the token stale trigger exactly one signing operation and never see a
    value paired with the wrong expiry.
    """

    def __init__(
        self,
        resolver: Union[CredentialResolver, None] = None,
        auth_config: Union[AuthConfig, None] = None,
    ):
        self.resolver = resolver or CredentialResolver()
        self.auth_config = auth_config or AuthConfig()
        self._lock = threading.Lock()
        self._token: Union[AccessToken, None] = None
        self._logger = logging.getLogger("ascgate")

    def _now(self) -> float:
        return time.time()

    def _needs_refresh(self, now: float) -> bool:
        if self._token is None:
            return True
        return self._token.remaining(now) <= self.auth_config.refresh_threshold

    def _sign(self, credentials: Credentials, issued_at: int, expires_at: int) -> str:
        payload = {
            "iss": credentials.issuer_id,
            "iat": issued_at,
            "exp": expires_at,
            "aud": self.auth_config.audience,
        }
        try:
            # PyJWT encodes ES256 as raw r||s (64 bytes), not DER
            return jwt.encode(
                payload,
                credentials.private_key,
                algorithm="ES256",
                headers={"kid": credentials.key_id, "typ": "JWT"},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise SigningFailed(f"Failed to sign JWT: {e}") from e

    def get_valid_token(self) -> AccessToken:
        with self._lock:
            now = self._now()
            if self._needs_refresh(now):
                credentials = self.resolver.resolve()
                issued_at = int(now)
                expires_at = issued_at + self.auth_config.token_validity
                value = self._sign(credentials, issued_at, expires_at)
                self._token = AccessToken(value=value, expires_at=float(expires_at))
                self._logger.info(
                    f"issued token key_id={credentials.key_id} "
                    f"valid_for={self.auth_config.token_validity}s"
                )
            return self._token

    def get_token(self) -> str:
        return self.get_valid_token().value

    def reset(self):
        """Drop the cached token and the resolved credentials together."""
        with self._lock:
            self._token = None
            self.resolver.clear()

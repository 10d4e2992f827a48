from typing import Union

from .tokens import TokenIssuer
from .types import AuthConfig


class BearerAuth:
    """One object that plugs a fresh App Store Connect token into requests + httpx.

    - requests: used as ``auth=`` via the ``__call__(request)`` protocol.
    - httpx: any callable taking a request is accepted as ``auth=`` (sync and async clients).
    - transports: ``headers()`` returns the header dict to merge into a call.

    Each call asks the issuer for a valid token, so a stale one is never attached.
    """

    def __init__(self, issuer: TokenIssuer, auth_config: Union[AuthConfig, None] = None):
        self.issuer = issuer
        self.auth_config = auth_config or issuer.auth_config

    def headers(self) -> dict[str, str]:
        token = self.issuer.get_token()
        return {self.auth_config.header: f"{self.auth_config.scheme} {token}".strip()}

    def __call__(self, r):
        r.headers.update(self.headers())
        return r

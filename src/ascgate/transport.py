import asyncio
import contextlib
import logging
import time
from typing import Any, Union

import httpx
import requests

from .auth import BearerAuth
from .env import CredentialResolver
from .errors import ApiError, DeadlineExceeded, RateLimited
from .policies import Action, Decision, RetryPolicy
from .state import RateBudget
from .tokens import TokenIssuer
from .types import BASE_URL, AuthConfig, BudgetConfig, Deadline, RetryConfig


# ---------- Base transport (shared logic; HTTP client handled by subclasses) ----------


class _BaseTransport:
    def __init__(
        self,
        issuer: TokenIssuer,
        budget: Union[RateBudget, None] = None,
        base_url: str = BASE_URL,
        log_level: Union[int, None] = None,
        **kwargs,
    ):
        """Initialize a transport.

        Args:
            issuer (TokenIssuer): source of bearer tokens
            budget (RateBudget | None): shared request budget; a fresh one if omitted
            base_url (str): prefix for relative paths
            log_level (int | None): level for the "ascgate" logger
            kwargs:
            - retry_config: RetryConfig object
            - max_attempts: int
            - timeout: float
            - budget_config: BudgetConfig object (ignored when budget is given)
        """
        rconf = kwargs.get("retry_config")
        if rconf is None:
            rconf = RetryConfig(
                max_attempts=kwargs.get("max_attempts", RetryConfig.max_attempts),
                timeout=kwargs.get("timeout", RetryConfig.timeout),
            )
        self.retry_config: RetryConfig = rconf
        self.policy = RetryPolicy(rconf)
        self.issuer = issuer
        self.auth = BearerAuth(issuer)
        self.budget = budget or RateBudget(kwargs.get("budget_config") or BudgetConfig())
        self.base_url = base_url.rstrip("/")
        self._logger = logging.getLogger("ascgate")
        if log_level is not None:
            self._logger.setLevel(log_level)

    def _now(self) -> float:
        return time.time()

    def _url(self, path: str) -> str:
        # next-page links come back absolute
        if path.startswith("http"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    @staticmethod
    def _clean_params(params: Union[dict[str, Any], None]) -> dict[str, str]:
        if not params:
            return {}
        out = {}
        for k, v in params.items():
            if v is None:
                continue
            if isinstance(v, bool):
                v = "true" if v else "false"
            out[k] = str(v)
        return out

    def _acquire(self, deadline: Union[Deadline, None]):
        if deadline is not None and deadline.expired:
            raise DeadlineExceeded("Deadline passed before the request could be sent")
        wait = self.budget.try_acquire()
        if wait > 0:
            raise RateLimited(wait)

    def _request_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", **self.auth.headers()}

    def _timeout(self, deadline: Union[Deadline, None]) -> float:
        if deadline is None:
            return self.retry_config.timeout
        return max(0.001, min(self.retry_config.timeout, deadline.remaining()))

    @staticmethod
    def _error_payload(resp) -> list[dict[str, Any]]:
        try:
            payload = resp.json()
        except ValueError:
            return []
        if isinstance(payload, dict) and isinstance(payload.get("errors"), list):
            return payload["errors"]
        return []

    @staticmethod
    def _decode(resp) -> Any:
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON in response: {e}", resp.status_code) from e

    def _decide(self, attempt: int, resp=None, error=None) -> Decision:
        if error is not None:
            decision = self.policy.classify(attempt, error=error)
        else:
            status = resp.status_code
            errors = None if 200 <= status < 300 else self._error_payload(resp)  # noqa: PLR2004
            decision = self.policy.classify(
                attempt, status=status, headers=resp.headers, errors=errors, now=self._now()
            )
        if decision.cooldown is not None:
            self.budget.record_cooldown(decision.cooldown)
        return decision

    def _retry_delay(
        self,
        decision: Decision,
        deadline: Union[Deadline, None],
        method: str,
        url: str,
        attempt: int,
    ) -> float:
        if decision.action is Action.FAIL:
            raise decision.error
        delay = decision.delay
        if deadline is not None and delay >= deadline.remaining():
            raise DeadlineExceeded(
                f"Retry in {delay:.2f}s would pass the deadline"
            ) from decision.error
        self._logger.warning(
            f"retrying method={method} url={url} attempt={attempt}/{self.policy.max_attempts} "
            f"in {delay:.2f}s: {decision.error}"
        )
        return delay

    def reset(self):
        """Clear cached credentials and token; next call re-resolves and re-signs."""
        self.issuer.reset()


# ---------- Sync transport (requests) ----------


class Transport(_BaseTransport):
    def __init__(
        self,
        issuer: TokenIssuer,
        budget: Union[RateBudget, None] = None,
        base_url: str = BASE_URL,
        log_level: Union[int, None] = None,
        session: Union[requests.Session, None] = None,
        **kwargs,
    ):
        super().__init__(issuer, budget, base_url, log_level, **kwargs)
        if session is None:
            self.session = requests.Session()
            self._own_session = True
        else:
            self.session = session
            self._own_session = False

    @classmethod
    def from_env(cls, env_path: Union[str, None] = None, **kwargs):
        """Build a Transport whose credentials come from the environment (and .env file)."""
        auth_config = kwargs.pop("auth_config", None) or AuthConfig()
        issuer = TokenIssuer(CredentialResolver(env_path=env_path), auth_config)
        return cls(issuer, **kwargs)

    def close(self):
        if self._own_session:
            with contextlib.suppress(Exception):
                self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _sleep(self, seconds: float):
        time.sleep(seconds)

    def send(
        self,
        path: str,
        method: str = "GET",
        body: Union[Any, None] = None,
        params: Union[dict[str, Any], None] = None,
        deadline: Union[Deadline, None] = None,
    ) -> Any:
        method = method.upper()
        url = self._url(path)
        query = self._clean_params(params)
        attempt = 0
        while True:
            attempt += 1
            self._acquire(deadline)
            headers = self._request_headers()
            self._logger.debug(f"req start method={method} url={url} attempt={attempt}")
            try:
                resp = self.session.request(
                    method,
                    url,
                    headers=headers,
                    params=query,
                    json=body,
                    timeout=self._timeout(deadline),
                )
            except requests.RequestException as e:
                decision = self._decide(attempt, error=e)
            else:
                self._logger.debug(
                    f"req done method={method} url={url} status={resp.status_code}"
                )
                decision = self._decide(attempt, resp=resp)
                if decision.action is Action.SUCCEED:
                    return self._decode(resp)
            self._sleep(self._retry_delay(decision, deadline, method, url, attempt))

    # sugar
    def get(
        self,
        path: str,
        params: Union[dict[str, Any], None] = None,
        deadline: Union[Deadline, None] = None,
    ) -> Any:
        return self.send(path, "GET", params=params, deadline=deadline)

    def get_all_pages(
        self,
        path: str,
        params: Union[dict[str, Any], None] = None,
        max_pages: Union[int, None] = None,
        deadline: Union[Deadline, None] = None,
    ) -> list:
        from .pagination import DEFAULT_MAX_PAGES, collect_all  # noqa: PLC0415

        if max_pages is None:
            max_pages = DEFAULT_MAX_PAGES
        return collect_all(self, path, params, max_pages=max_pages, deadline=deadline)


# ---------- Async transport (httpx) ----------


class AsyncTransport(_BaseTransport):
    def __init__(
        self,
        issuer: TokenIssuer,
        budget: Union[RateBudget, None] = None,
        base_url: str = BASE_URL,
        log_level: Union[int, None] = None,
        client: Union[httpx.AsyncClient, None] = None,
        **kwargs,
    ):
        super().__init__(issuer, budget, base_url, log_level, **kwargs)
        if client is None:
            self.client = httpx.AsyncClient()
            self._own_client = True
        else:
            self.client = client
            self._own_client = False

    @classmethod
    def from_env(cls, env_path: Union[str, None] = None, **kwargs):
        auth_config = kwargs.pop("auth_config", None) or AuthConfig()
        issuer = TokenIssuer(CredentialResolver(env_path=env_path), auth_config)
        return cls(issuer, **kwargs)

    async def aclose(self):
        if self._own_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False

    async def _sleep(self, seconds: float):
        await asyncio.sleep(seconds)

    async def send(
        self,
        path: str,
        method: str = "GET",
        body: Union[Any, None] = None,
        params: Union[dict[str, Any], None] = None,
        deadline: Union[Deadline, None] = None,
    ) -> Any:
        method = method.upper()
        url = self._url(path)
        query = self._clean_params(params)
        attempt = 0
        while True:
            attempt += 1
            self._acquire(deadline)
            headers = self._request_headers()
            self._logger.debug(f"req start method={method} url={url} attempt={attempt}")
            try:
                resp = await self.client.request(
                    method,
                    url,
                    headers=headers,
                    params=query,
                    json=body,
                    timeout=self._timeout(deadline),
                )
            except httpx.TransportError as e:
                decision = self._decide(attempt, error=e)
            else:
                self._logger.debug(
                    f"req done method={method} url={url} status={resp.status_code}"
                )
                decision = self._decide(attempt, resp=resp)
                if decision.action is Action.SUCCEED:
                    return self._decode(resp)
            await self._sleep(self._retry_delay(decision, deadline, method, url, attempt))

    async def get(
        self,
        path: str,
        params: Union[dict[str, Any], None] = None,
        deadline: Union[Deadline, None] = None,
    ) -> Any:
        return await self.send(path, "GET", params=params, deadline=deadline)

    async def get_all_pages(
        self,
        path: str,
        params: Union[dict[str, Any], None] = None,
        max_pages: Union[int, None] = None,
        deadline: Union[Deadline, None] = None,
    ) -> list:
        from .pagination import DEFAULT_MAX_PAGES, acollect_all  # noqa: PLC0415

        if max_pages is None:
            max_pages = DEFAULT_MAX_PAGES
        return await acollect_all(self, path, params, max_pages=max_pages, deadline=deadline)

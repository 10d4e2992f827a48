import json
import time
from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ascgate import AuthConfig, RateBudget, Transport


class FakeClock:
    """Wall clock that only moves when sleep() is called."""

    def __init__(self, start: float | None = None):
        self.t = float(int(start if start is not None else time.time()))
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.t

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.t += seconds


def make_response(status, body=None, headers=None):
    r = MagicMock()
    r.status_code = status
    r.headers = headers or {}
    if body is None:
        r.content = b""
        r.json.side_effect = ValueError("no body")
    else:
        r.content = json.dumps(body).encode()
        r.json.return_value = body
    return r


def stub_issuer(token: str = "tok"):
    issuer = MagicMock()
    issuer.get_token.return_value = token
    issuer.auth_config = AuthConfig()
    return issuer


@pytest.fixture(scope="session")
def pem() -> str:
    key = ec.generate_private_key(ec.SECP256R1())
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def environ(pem) -> dict[str, str]:
    return {"ASC_KEY_ID": "KEY123", "ASC_ISSUER_ID": "issuer-uuid", "ASC_PRIVATE_KEY": pem}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def make_transport(clock, session):
    def _make(budget_config=None, **kwargs):
        budget = RateBudget(budget_config)
        budget._now = clock
        budget.reset()
        issuer = kwargs.pop("issuer", None) or stub_issuer()
        t = Transport(issuer, budget=budget, session=session, **kwargs)
        t._now = clock
        t._sleep = clock.sleep
        return t

    return _make


@pytest.fixture
def respond():
    return make_response

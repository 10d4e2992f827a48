import httpx
import pytest

from ascgate import AsyncTransport, BearerAuth, CredentialResolver, TokenIssuer, Transport


def test_construct_sync(environ):
    Transport(TokenIssuer(CredentialResolver(environ=environ))).close()


@pytest.mark.asyncio
async def test_construct_async(environ):
    t = AsyncTransport(TokenIssuer(CredentialResolver(environ=environ)))
    await t.aclose()


def test_bearer_auth_plugs_into_httpx(environ):
    auth = BearerAuth(TokenIssuer(CredentialResolver(environ=environ)))
    seen = []

    def handler(request):
        seen.append(request.headers["Authorization"])
        return httpx.Response(200)

    with httpx.Client(transport=httpx.MockTransport(handler), auth=auth) as client:
        client.get("https://example.com")
    assert seen[0].startswith("Bearer ")
    assert seen[0].count(".") == 2  # noqa: PLR2004


def test_bearer_auth_plugs_into_requests(environ):
    import requests  # noqa: PLC0415

    auth = BearerAuth(TokenIssuer(CredentialResolver(environ=environ)))
    prepared = requests.Request("GET", "https://example.com", auth=auth).prepare()
    assert prepared.headers["Authorization"].startswith("Bearer ey")

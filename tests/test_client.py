"""ApiClient.execute: headers, envelope decoding and status mapping."""

import asyncio
from decimal import Decimal

import pytest

from tastybroker.backend.broker.client import Endpoint, obfuscate_account_url
from tastybroker.backend.broker.errors import (
    ApiError,
    AuthenticationFailed,
    NotFound,
    RateLimited,
    SchemaMismatch,
    TransportError,
)
from tastybroker.backend.broker.session import resolve_by_token
from tastybroker.config import Settings
from tastybroker.domain.interfaces import HttpResponse
from tests.fakes import FakeTransport, json_response

PING = Endpoint("GET", "customers/me")


def test_obfuscate_account_url():
    assert obfuscate_account_url("accounts/123ABC") == "accounts/******"
    assert obfuscate_account_url("foo/accounts/123AB/bar") == "foo/accounts/*****/bar"
    assert obfuscate_account_url("https://api.test/accounts/5WT1?x=1") == "https://api.test/accounts/****?x=1"
    assert obfuscate_account_url("https://api.test/customers/me/accounts") == "https://api.test/customers/me/accounts"


async def test_execute_attaches_token_and_returns_data(token_session):
    transport = FakeTransport(json_response(200, {"data": {"id": "me"}}))
    session = token_session(transport)

    data = await session.api.execute(PING, session)

    assert data == {"id": "me"}
    assert len(transport.calls) == 1
    call = transport.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://api.test/customers/me"
    assert call["headers"]["Authorization"] == "tok-123"
    assert call["headers"]["User-Agent"] == "tests/1.0"
    assert call["body"] is None


async def test_auth_scheme_prefix():
    cfg = Settings(_env_file=None, TASTY_API_BASE_URL="https://api.test", TASTY_AUTH_SCHEME="Bearer")
    transport = FakeTransport(json_response(200, {"data": {}}))
    session = resolve_by_token("tok-123", transport=transport, cfg=cfg)

    await session.api.execute(PING, session)

    assert transport.calls[0]["headers"]["Authorization"] == "Bearer tok-123"


async def test_query_params_and_body(token_session):
    transport = FakeTransport(json_response(200, {"data": {}}))
    session = token_session(transport)

    await session.api.execute(Endpoint("POST", "/things", params={"page-offset": 2}, body={"a": 1}), session)

    assert transport.calls[0]["url"] == "https://api.test/things?page-offset=2"
    assert transport.calls[0]["body"] == {"a": 1}


async def test_json_floats_stay_decimal(token_session):
    transport = FakeTransport(json_response(200, {"data": {"price": 1.1}}))
    session = token_session(transport)

    data = await session.api.execute(PING, session)

    assert data["price"] == Decimal("1.1")


async def test_empty_body_returns_none(token_session):
    session = token_session(FakeTransport(HttpResponse(status=204)))
    assert await session.api.execute(PING, session) is None


@pytest.mark.parametrize(
    "status, error",
    [(401, AuthenticationFailed), (404, NotFound), (429, RateLimited), (500, ApiError), (403, ApiError)],
)
async def test_status_mapping(token_session, status, error):
    transport = FakeTransport(json_response(status, {"error": {"code": "x", "message": "nope"}}))
    session = token_session(transport)

    with pytest.raises(error) as excinfo:
        await session.api.execute(PING, session)

    assert excinfo.value.status == status
    assert excinfo.value.message == "nope"
    assert excinfo.value.code == "x"
    assert len(transport.calls) == 1


async def test_rate_limited_is_not_retried(token_session):
    transport = FakeTransport(json_response(429, headers={"Retry-After": "2"}))
    session = token_session(transport)

    with pytest.raises(RateLimited) as excinfo:
        await session.api.execute(PING, session)

    assert excinfo.value.retry_after == 2.0
    assert len(transport.calls) == 1


@pytest.mark.parametrize("value", ["nan", "inf", "-inf", "-3", "Wed, 21 Oct 2026 07:28:00 GMT"])
async def test_unusable_retry_after_is_dropped(token_session, value):
    session = token_session(FakeTransport(json_response(429, headers={"Retry-After": value})))

    with pytest.raises(RateLimited) as excinfo:
        await session.api.execute(PING, session)

    assert excinfo.value.retry_after is None


async def test_zero_retry_after_is_kept(token_session):
    session = token_session(FakeTransport(json_response(429, headers={"retry-after": "0"})))

    with pytest.raises(RateLimited) as excinfo:
        await session.api.execute(PING, session)

    assert excinfo.value.retry_after == 0.0


async def test_api_error_keeps_plain_text_body(token_session):
    session = token_session(FakeTransport(HttpResponse(status=502, body=b"Bad Gateway")))

    with pytest.raises(ApiError) as excinfo:
        await session.api.execute(PING, session)

    assert excinfo.value.status == 502
    assert excinfo.value.message == "Bad Gateway"


async def test_missing_envelope_is_schema_mismatch(token_session):
    session = token_session(FakeTransport(json_response(200, {"items": []})))
    with pytest.raises(SchemaMismatch):
        await session.api.execute(PING, session)


async def test_wrong_shape_is_schema_mismatch(token_session):
    session = token_session(FakeTransport(json_response(200, {"data": {"items": "nope"}})))
    with pytest.raises(SchemaMismatch):
        await session.api.execute(PING, session, shape=dict[str, list])


async def test_unreadable_body_is_transport_error(token_session):
    session = token_session(FakeTransport(HttpResponse(status=200, body=b"<html>oops</html>")))
    with pytest.raises(TransportError):
        await session.api.execute(PING, session)


async def test_transport_failure_carries_masked_url(token_session):
    session = token_session(FakeTransport(TransportError("connection reset")))

    with pytest.raises(TransportError) as excinfo:
        await session.api.execute(Endpoint("GET", "accounts/5WT1/positions"), session)

    assert excinfo.value.url == "https://api.test/accounts/****/positions"


async def test_errors_never_show_account_number(token_session):
    session = token_session(FakeTransport(json_response(404)))

    with pytest.raises(NotFound) as excinfo:
        await session.api.execute(Endpoint("GET", "accounts/5WT00001/positions"), session)

    assert "5WT00001" not in str(excinfo.value)


async def test_cancellation_propagates_to_transport(token_session):
    started = asyncio.Event()
    cancelled = asyncio.Event()

    async def hang(method, url, headers, body):
        started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    session = token_session(FakeTransport(handler=hang))
    task = asyncio.create_task(session.api.execute(PING, session))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert cancelled.is_set()

"""Tests for the GOV.UK Notify client, against a mocked transport."""

from datetime import datetime, timedelta, timezone
import json

import httpx
import jwt
import pytest

from court_publications.services.notify_client import (
    CachedToken,
    GovNotifyClient,
    NotifyClientError,
    NotifyCredentials,
)

from conftest import NOTIFY_API_KEY, NOTIFY_SECRET, NOTIFY_SERVICE_ID

START = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_client(handler, clock=None) -> tuple[GovNotifyClient, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = GovNotifyClient(
        NOTIFY_API_KEY,
        base_url="https://notify.test/",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(record)),
        clock=clock or Clock(),
    )
    return client, requests


def accepted(request: httpx.Request) -> httpx.Response:
    return httpx.Response(201, json={"id": "740e5834-3a29-46b4-9a6f-16142fde533a"})


class TestCredentials:
    def test_key_is_split(self):
        credentials = NotifyCredentials.from_api_key(NOTIFY_API_KEY)

        assert credentials.service_id == NOTIFY_SERVICE_ID
        assert credentials.secret == NOTIFY_SECRET

    @pytest.mark.parametrize("key", ["", "too-short"])
    def test_invalid_key(self, key):
        with pytest.raises(NotifyClientError):
            NotifyCredentials.from_api_key(key)


class TestSendEmail:
    async def test_posts_email_request(self):
        client, requests = make_client(accepted)

        response = await client.send_email(
            "template-1", "jane@example.com", {"ListType": "Daily"}, reference="ref-1"
        )

        assert response["id"] == "740e5834-3a29-46b4-9a6f-16142fde533a"
        request = requests[0]
        assert str(request.url) == "https://notify.test/v2/notifications/email"
        assert json.loads(request.content) == {
            "template_id": "template-1",
            "email_address": "jane@example.com",
            "personalisation": {"ListType": "Daily"},
            "reference": "ref-1",
        }

        token = request.headers["Authorization"].removeprefix("Bearer ")
        claims = jwt.decode(token, NOTIFY_SECRET, algorithms=["HS256"])
        assert claims == {"iss": NOTIFY_SERVICE_ID, "iat": int(START.timestamp())}
        await client.close()

    async def test_error_response_raises(self):
        def rejected(request):
            return httpx.Response(
                400,
                json={
                    "status_code": 400,
                    "errors": [{"error": "BadRequestError", "message": "Missing personalisation"}],
                },
            )

        client, _ = make_client(rejected)

        with pytest.raises(NotifyClientError) as exc_info:
            await client.send_email("template-1", "jane@example.com", {})

        assert exc_info.value.status_code == 400
        assert "BadRequestError: Missing personalisation" in str(exc_info.value)

    async def test_transport_error_raises(self):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = make_client(unreachable)

        with pytest.raises(NotifyClientError, match="Notify request failed"):
            await client.send_email("template-1", "jane@example.com", {})

    async def test_non_json_response_raises(self):
        client, _ = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(NotifyClientError, match="non-JSON"):
            await client.send_email("template-1", "jane@example.com", {})


class TestTokenCache:
    async def test_token_reused_while_valid(self):
        clock = Clock()
        client, requests = make_client(accepted, clock)

        await client.send_email("t", "a@example.com", {})
        clock.now = START + timedelta(seconds=10)
        await client.send_email("t", "b@example.com", {})

        assert requests[0].headers["Authorization"] == requests[1].headers["Authorization"]

    async def test_token_reissued_after_expiry(self):
        clock = Clock()
        client, requests = make_client(accepted, clock)

        await client.send_email("t", "a@example.com", {})
        clock.now = START + timedelta(seconds=30)
        await client.send_email("t", "b@example.com", {})

        assert requests[0].headers["Authorization"] != requests[1].headers["Authorization"]

    def test_cached_token_validity(self):
        token = CachedToken("abc", expires_at=START)

        assert token.is_valid(START - timedelta(seconds=1)) is True
        assert token.is_valid(START) is False

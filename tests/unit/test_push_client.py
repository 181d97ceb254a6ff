# tests/unit/test_push_client.py
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from remindd.core.clients.push import PushClient
from remindd.core.constants import DeliveryStatus


@pytest.fixture
def client():
    return PushClient(timeout_seconds=1.0)


def _make_aiohttp_mock(status: int, json_data=None, text: str = ""):
    mock_resp = AsyncMock()
    mock_resp.status = status
    mock_resp.json = AsyncMock(return_value=json_data)
    mock_resp.text = AsyncMock(return_value=text)

    mock_post_cm = AsyncMock()
    mock_post_cm.__aenter__ = AsyncMock(return_value=mock_resp)
    mock_post_cm.__aexit__ = AsyncMock(return_value=False)

    mock_http = AsyncMock()
    mock_http.post = MagicMock(return_value=mock_post_cm)

    mock_session_cm = AsyncMock()
    mock_session_cm.__aenter__ = AsyncMock(return_value=mock_http)
    mock_session_cm.__aexit__ = AsyncMock(return_value=False)

    return MagicMock(return_value=mock_session_cm), mock_http


def _result(successful=(), invalid=(), rate_limited=()):
    return {
        "result": {
            "successfulTokens": list(successful),
            "invalidTokens": list(invalid),
            "rateLimitedTokens": list(rate_limited),
        }
    }


async def _send(client):
    return await client.send("https://push.example", "id-1", "Title", "Body", "https://app", "tok")


async def test_send_posts_expected_payload(client):
    mock_session, mock_http = _make_aiohttp_mock(200, _result(successful=["tok"]))

    with patch("aiohttp.ClientSession", mock_session):
        status = await _send(client)

    assert status is DeliveryStatus.DELIVERED
    args, kwargs = mock_http.post.call_args
    assert args[0] == "https://push.example"
    assert kwargs["json"] == {
        "notificationId": "id-1",
        "title": "Title",
        "body": "Body",
        "targetUrl": "https://app",
        "tokens": ["tok"],
    }


@pytest.mark.parametrize(
    "payload, expected",
    [
        (_result(invalid=["tok"]), DeliveryStatus.INVALID_TARGET),
        (_result(rate_limited=["tok"]), DeliveryStatus.THROTTLED),
        (_result(), DeliveryStatus.ERROR),
        ({"unexpected": True}, DeliveryStatus.ERROR),
        (["not", "a", "dict"], DeliveryStatus.ERROR),
    ],
)
async def test_send_interprets_result_lists(client, payload, expected):
    mock_session, _ = _make_aiohttp_mock(200, payload)

    with patch("aiohttp.ClientSession", mock_session):
        assert await _send(client) is expected


async def test_send_http_error_returns_error(client):
    mock_session, _ = _make_aiohttp_mock(500, text="upstream down")

    with patch("aiohttp.ClientSession", mock_session):
        assert await _send(client) is DeliveryStatus.ERROR


async def test_send_network_exception_returns_error(client):
    with patch("aiohttp.ClientSession", side_effect=Exception("network error")):
        assert await _send(client) is DeliveryStatus.ERROR


async def test_send_timeout_returns_error(client):
    with patch("aiohttp.ClientSession", side_effect=asyncio.TimeoutError()):
        assert await _send(client) is DeliveryStatus.ERROR

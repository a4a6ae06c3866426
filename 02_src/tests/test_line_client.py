"""Tests for LineClient and ImageFetcher."""

import base64
import json
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from gateway.channel import ImageFetcher, LineClient
from gateway.errors import ConfigurationError, ImageUnavailableError, ReplyDeliveryError


def line_client(handler, token: str = "line-token") -> LineClient:
    return LineClient(
        access_token=token,
        api_base_url="https://api.line.test",
        data_api_base_url="https://data.line.test",
        transport=httpx.MockTransport(handler),
    )


class TestReply:

    async def test_reply_payload(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        client = line_client(handler)

        assert await client.reply("tok1", "สวัสดีค่ะ") is True

        request = seen[0]
        assert request.url.path == "/v2/bot/message/reply"
        assert request.headers["Authorization"] == "Bearer line-token"
        assert json.loads(request.content) == {
            "replyToken": "tok1",
            "messages": [{"type": "text", "text": "สวัสดีค่ะ"}],
        }
        await client.close()

    async def test_empty_text_not_sent(self):
        handler = Mock()
        client = line_client(handler)

        assert await client.reply("tok1", "") is False
        handler.assert_not_called()
        await client.close()

    async def test_rejected_reply_raises(self):
        client = line_client(lambda request: httpx.Response(400, text="Invalid reply token"))

        with pytest.raises(ReplyDeliveryError):
            await client.reply("expired", "สวัสดีค่ะ")
        await client.close()

    async def test_missing_token(self):
        client = line_client(lambda request: httpx.Response(200), token="")

        with pytest.raises(ConfigurationError):
            await client.reply("tok1", "สวัสดีค่ะ")
        await client.close()


class TestContent:

    async def test_get_content(self):
        def handler(request):
            assert request.url.host == "data.line.test"
            assert request.url.path == "/v2/bot/message/m1/content"
            return httpx.Response(200, content=b"\x89PNG", headers={"Content-Type": "image/png"})

        client = line_client(handler)

        assert await client.get_content("m1") == (b"\x89PNG", "image/png")
        await client.close()

    async def test_get_content_error(self):
        client = line_client(lambda request: httpx.Response(404))

        with pytest.raises(httpx.HTTPStatusError):
            await client.get_content("m1")
        await client.close()


class TestImageFetcher:

    async def test_data_url(self):
        source = Mock()
        source.get_content = AsyncMock(return_value=(b"abc", "image/jpeg"))

        url = await ImageFetcher(source).resolve("m1")

        assert url == "data:image/jpeg;base64," + base64.b64encode(b"abc").decode()

    async def test_too_large(self):
        source = Mock()
        source.get_content = AsyncMock(return_value=(b"x" * 11, "image/jpeg"))

        with pytest.raises(ImageUnavailableError):
            await ImageFetcher(source, max_bytes=10).resolve("m1")

    async def test_empty(self):
        source = Mock()
        source.get_content = AsyncMock(return_value=(b"", "image/jpeg"))

        with pytest.raises(ImageUnavailableError):
            await ImageFetcher(source).resolve("m1")

    async def test_fetch_failure(self):
        client = line_client(lambda request: httpx.Response(500))

        with pytest.raises(ImageUnavailableError):
            await ImageFetcher(client).resolve("m1")
        await client.close()

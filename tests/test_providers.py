"""Tests for provider integrations and provider selection."""
import base64
import json
import random

import httpx
import pydantic
import pytest

from marketplace_checkout.config import DispatchSettings
from marketplace_checkout.errors import ProviderNotImplemented
from marketplace_checkout.notifications import NotificationMessage, get_provider
from marketplace_checkout.notifications.mock import MockProvider
from marketplace_checkout.notifications.registry import resolve_provider_name, ProviderName
from marketplace_checkout.notifications.resend import RESEND_URL, ResendProvider
from marketplace_checkout.notifications.schema import Attachment
from marketplace_checkout.notifications.sendgrid import SENDGRID_URL, SendGridProvider
from marketplace_checkout.notifications.ses import SESProvider


@pytest.fixture
def keyed_settings():
    return DispatchSettings(provider="sendgrid", api_key="test-key", from_email="shop@example.com", from_name="Shop")


@pytest.fixture
def message():
    return NotificationMessage(
        recipients=["buyer@example.com"],
        subject="Your receipt",
        html_body="<p>Thanks</p>",
        text_body="Thanks",
        cc="cc@example.com",
        tags=["receipt"],
        metadata={"order_id": 7},
        attachments=[Attachment(filename="receipt.txt", content="paid", content_type="text/plain")],
    )


def _client(handler, seen=None):
    def _record(request):
        if seen is not None:
            seen.append(request)
        return handler(request)
    return httpx.AsyncClient(transport=httpx.MockTransport(_record))


class TestMessageSchema:
    def test_single_recipient_string(self):
        msg = NotificationMessage(recipients="a@example.com", subject="s")
        assert msg.recipients == ["a@example.com"]

    def test_recipients_required(self):
        with pytest.raises(pydantic.ValidationError):
            NotificationMessage(recipients=[], subject="s")


class TestSendGrid:
    @pytest.mark.asyncio
    async def test_success_reads_message_id_header(self, keyed_settings, message):
        seen = []
        client = _client(lambda r: httpx.Response(202, headers={"X-Message-Id": "sg-123"}), seen)
        async with client:
            result = await SendGridProvider(keyed_settings, client).send(message)

        assert result.success
        assert result.message_id == "sg-123"
        assert result.provider == "sendgrid"

        request = seen[0]
        assert str(request.url) == SENDGRID_URL
        assert request.headers["Authorization"] == "Bearer test-key"
        body = json.loads(request.content)
        assert body["personalizations"][0]["to"] == [{"email": "buyer@example.com"}]
        assert body["personalizations"][0]["cc"] == [{"email": "cc@example.com"}]
        assert body["from"] == {"email": "shop@example.com", "name": "Shop"}
        assert body["categories"] == ["receipt"]
        assert body["custom_args"] == {"order_id": "7"}
        assert base64.b64decode(body["attachments"][0]["content"]) == b"paid"

    @pytest.mark.asyncio
    async def test_error_message_from_body(self, keyed_settings, message):
        client = _client(lambda r: httpx.Response(400, json={"errors": [{"message": "Invalid from address"}]}))
        async with client:
            result = await SendGridProvider(keyed_settings, client).send(message)
        assert not result.success
        assert result.error == "Invalid from address"

    @pytest.mark.asyncio
    async def test_error_without_body(self, keyed_settings, message):
        client = _client(lambda r: httpx.Response(500, text="oops"))
        async with client:
            result = await SendGridProvider(keyed_settings, client).send(message)
        assert result.error == "SendGrid API error: 500"

    @pytest.mark.asyncio
    async def test_network_error(self, keyed_settings, message):
        def _fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(_fail)
        async with client:
            result = await SendGridProvider(keyed_settings, client).send(message)
        assert not result.success
        assert "connection refused" in result.error

    @pytest.mark.asyncio
    async def test_custom_endpoint(self, keyed_settings, message):
        seen = []
        settings = keyed_settings.model_copy(update={"api_endpoint": "http://localhost:8025/send"})
        client = _client(lambda r: httpx.Response(202), seen)
        async with client:
            await SendGridProvider(settings, client).send(message)
        assert str(seen[0].url) == "http://localhost:8025/send"


class TestResend:
    @pytest.mark.asyncio
    async def test_success_returns_id(self, keyed_settings, message):
        seen = []
        client = _client(lambda r: httpx.Response(200, json={"id": "re-abc"}), seen)
        async with client:
            result = await ResendProvider(keyed_settings, client).send(message)

        assert result.success
        assert result.message_id == "re-abc"
        assert str(seen[0].url) == RESEND_URL
        body = json.loads(seen[0].content)
        assert body["from"] == "Shop <shop@example.com>"
        assert body["to"] == ["buyer@example.com"]
        assert body["tags"] == [{"name": "receipt", "value": "true"}]

    @pytest.mark.asyncio
    async def test_error_message(self, keyed_settings, message):
        client = _client(lambda r: httpx.Response(422, json={"message": "Invalid `to` field"}))
        async with client:
            result = await ResendProvider(keyed_settings, client).send(message)
        assert not result.success
        assert result.error == "Invalid `to` field"

    @pytest.mark.asyncio
    async def test_error_without_json(self, keyed_settings, message):
        client = _client(lambda r: httpx.Response(503, text="unavailable"))
        async with client:
            result = await ResendProvider(keyed_settings, client).send(message)
        assert result.error == "Resend API error: 503"


class TestSESAndMock:
    @pytest.mark.asyncio
    async def test_ses_always_fails(self, fast_settings, message):
        result = await SESProvider(fast_settings).send(message)
        assert not result.success
        assert result.provider == "aws-ses"
        assert result.error == "AWS SES integration not implemented"

    @pytest.mark.asyncio
    async def test_mock_success(self, fast_settings, message):
        provider = MockProvider(fast_settings, failure_rate=0.0, latency=(0, 0))
        result = await provider.send(message)
        assert result.success
        assert result.provider == "mock"
        assert result.message_id.startswith("mock_")

    @pytest.mark.asyncio
    async def test_mock_failure(self, fast_settings, message):
        provider = MockProvider(fast_settings, failure_rate=1.0, latency=(0, 0))
        result = await provider.send(message)
        assert not result.success
        assert result.error == "Mock email provider failure"

    @pytest.mark.asyncio
    async def test_mock_default_failure_rate(self, fast_settings, message):
        provider = MockProvider(fast_settings, latency=(0, 0), rng=random.Random(1234))
        results = [await provider.send(message) for _ in range(400)]
        failures = sum(not r.success for r in results)
        assert 0 < failures < 60


class TestRegistry:
    @pytest.mark.parametrize("name,cls", [
        ("sendgrid", SendGridProvider),
        ("resend", ResendProvider),
        ("ses", SESProvider),
        ("aws-ses", SESProvider),
        ("mock", MockProvider),
        ("  MOCK ", MockProvider),
    ])
    def test_get_provider(self, name, cls):
        settings = DispatchSettings(provider=name, api_key="k")
        assert isinstance(get_provider(settings), cls)

    def test_unknown_provider(self):
        with pytest.raises(ProviderNotImplemented, match="Unknown email provider 'postmark'"):
            get_provider(DispatchSettings(provider="postmark"))

    @pytest.mark.parametrize("name", ["sendgrid", "resend"])
    def test_api_key_required(self, name):
        with pytest.raises(ValueError, match="EMAIL_API_KEY"):
            get_provider(DispatchSettings(provider=name, api_key=""))

    def test_mock_and_ses_need_no_key(self):
        assert get_provider(DispatchSettings(provider="mock")).name == "mock"
        assert get_provider(DispatchSettings(provider="ses")).name == "aws-ses"

    def test_resolve_aliases(self):
        assert resolve_provider_name("aws_ses") is ProviderName.SES
        assert resolve_provider_name("Resend") is ProviderName.RESEND

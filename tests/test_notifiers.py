"""
Notifier tests.

Run with: pytest tests/test_notifiers.py -v
"""

import asyncio
import json

import httpx
import pytest


@pytest.fixture
def message():
    from models.notification import NotificationMessage

    return NotificationMessage(
        job_id="job-1",
        application_id="app-1",
        candidate_name="Ana",
        candidate_email="ana@example.com",
    )


@pytest.fixture
def smtp_config():
    from config.settings import Settings

    return Settings(
        notifier="email",
        smtp_host="smtp.example.com",
        smtp_port=2525,
        smtp_from_email="jobs@example.com",
        notification_recipient="hiring@example.com",
    )


class TestLogNotifier:

    def test_notify_succeeds(self, message):
        from notifiers.base import LogNotifier

        async def scenario():
            async with LogNotifier() as notifier:
                await notifier.notify(message)

        asyncio.run(scenario())


class TestWebhookNotifier:
    """Test webhook delivery against a mock transport."""

    def test_posts_message_json(self, message):
        from notifiers.webhook import WebhookNotifier

        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(204)

        async def scenario():
            async with WebhookNotifier(
                url="https://hooks.example.com/new-application",
                transport=httpx.MockTransport(handler),
            ) as notifier:
                await notifier.notify(message)

        asyncio.run(scenario())

        assert len(requests) == 1
        assert requests[0].method == "POST"
        assert str(requests[0].url) == "https://hooks.example.com/new-application"
        body = json.loads(requests[0].content)
        assert body["application_id"] == "app-1"
        assert body["candidate_email"] == "ana@example.com"

    def test_error_status_raises_transport_error(self, message):
        from exceptions import TransportError
        from notifiers.webhook import WebhookNotifier

        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="boom")

        async def scenario():
            async with WebhookNotifier(
                url="https://hooks.example.com/new-application",
                transport=httpx.MockTransport(handler),
            ) as notifier:
                await notifier.notify(message)

        with pytest.raises(TransportError):
            asyncio.run(scenario())

        # Status errors are not retried
        assert len(calls) == 1

    @pytest.mark.slow
    def test_connect_error_is_retried(self, message):
        from exceptions import TransportError
        from notifiers.webhook import WebhookNotifier

        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        async def scenario():
            async with WebhookNotifier(
                url="https://hooks.example.com/new-application",
                transport=httpx.MockTransport(handler),
            ) as notifier:
                await notifier.notify(message)

        with pytest.raises(TransportError):
            asyncio.run(scenario())

        assert len(calls) == 3

    def test_requires_url(self, monkeypatch):
        from config.settings import settings
        from notifiers.webhook import WebhookNotifier

        monkeypatch.setattr(settings, "notification_webhook_url", None)

        with pytest.raises(ValueError):
            WebhookNotifier()


class TestEmailNotifier:
    """Test email composition and SMTP error mapping."""

    def test_build_email(self, smtp_config, message):
        from notifiers.smtp import EmailNotifier

        email = EmailNotifier(smtp_config).build_email(message)

        assert email["To"] == "hiring@example.com"
        assert email["From"] == "jobs@example.com"
        assert email["Reply-To"] == "ana@example.com"
        assert "job-1" in email["Subject"]
        body = email.get_payload(decode=True).decode("utf-8")
        assert "Name: Ana" in body
        assert "Email: ana@example.com" in body

    def test_notify_sends_via_smtp(self, smtp_config, message, monkeypatch):
        import aiosmtplib
        from notifiers.smtp import EmailNotifier

        sent = []

        async def fake_send(email, **kwargs):
            sent.append((email, kwargs))

        monkeypatch.setattr(aiosmtplib, "send", fake_send)

        asyncio.run(EmailNotifier(smtp_config).notify(message))

        assert len(sent) == 1
        assert sent[0][1]["hostname"] == "smtp.example.com"
        assert sent[0][1]["port"] == 2525

    def test_smtp_failure_raises_transport_error(self, smtp_config, message, monkeypatch):
        import aiosmtplib
        from exceptions import TransportError
        from notifiers.smtp import EmailNotifier

        async def failing_send(email, **kwargs):
            raise aiosmtplib.SMTPException("relay denied")

        monkeypatch.setattr(aiosmtplib, "send", failing_send)

        with pytest.raises(TransportError):
            asyncio.run(EmailNotifier(smtp_config).notify(message))

    def test_missing_config_rejected(self):
        from config.settings import Settings
        from notifiers.smtp import EmailNotifier

        with pytest.raises(ValueError):
            EmailNotifier(Settings(smtp_host=None, notification_recipient=None))


class TestBuildNotifier:
    """Test notifier selection from settings."""

    def test_default_is_log(self):
        from config.settings import Settings
        from notifiers import build_notifier
        from notifiers.base import LogNotifier

        assert isinstance(build_notifier(Settings(notifier="log")), LogNotifier)

    def test_email(self, smtp_config):
        from notifiers import build_notifier
        from notifiers.smtp import EmailNotifier

        assert isinstance(build_notifier(smtp_config), EmailNotifier)

    def test_webhook(self):
        from config.settings import Settings
        from notifiers import build_notifier
        from notifiers.webhook import WebhookNotifier

        notifier = build_notifier(Settings(notifier="webhook", notification_webhook_url="https://example.com/hook"))
        try:
            assert isinstance(notifier, WebhookNotifier)
            assert notifier.url == "https://example.com/hook"
        finally:
            asyncio.run(notifier.close())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

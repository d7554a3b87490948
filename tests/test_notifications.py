"""
Unit tests for supplier WhatsApp notifications.

The Twilio HTTP call is replaced with a fake `requests.post`.
"""

from __future__ import annotations

import asyncio
from datetime import date

import pytest
import requests

from karigar.core.settings import AppSettings
from karigar.services import notifications
from karigar.services.notifications import WhatsAppClient, build_approval_message, normalize_phone


def _settings(**overrides) -> AppSettings:
    values = dict(
        WHATSAPP_ENABLED=True,
        TWILIO_ACCOUNT_SID="AC123",
        TWILIO_AUTH_TOKEN="secret",
        TWILIO_WHATSAPP_NUMBER="+1 415 523 8886",
    )
    values.update(overrides)
    return AppSettings(**values)


class _FakeResponse:
    def __init__(self, status_code: int, payload: dict) -> None:
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> dict:
        return self._payload


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+91 98111-11111", "+919811111111"),
        ("(919) 811 111 111", "+919811111111"),
        ("", None),
        (None, None),
        (" + ", None),
    ],
)
def test_normalize_phone(raw, expected) -> None:
    assert normalize_phone(raw) == expected


def test_approval_message_lists_request_details() -> None:
    body = build_approval_message(
        supplier_name="Shree Bullion Traders",
        request_number="PR000004",
        material_name="Gold 22K",
        quantity=50.0,
        unit="grams",
        eta=date(2024, 3, 9),
    )
    assert "Dear Shree Bullion Traders," in body
    assert "*Request #:* PR000004" in body
    assert "*Quantity:* 50 grams" in body
    assert "*Expected Delivery:* 09 Mar 2024" in body


def test_approval_message_without_eta() -> None:
    body = build_approval_message(
        supplier_name="S", request_number="PR000001", material_name="Ruby", quantity=2.5, unit="pieces"
    )
    assert "*Quantity:* 2.5 pieces" in body
    assert "Expected Delivery" not in body


class TestWhatsAppClient:
    def test_disabled_never_calls_provider(self, monkeypatch) -> None:
        def _fail(*args, **kwargs):
            raise AssertionError("requests.post must not be called")

        monkeypatch.setattr(notifications.requests, "post", _fail)
        result = asyncio.run(WhatsAppClient(_settings(WHATSAPP_ENABLED=False)).send("+919811111111", "hi"))
        assert not result.ok
        assert "disabled" in result.error

    def test_missing_credentials(self) -> None:
        result = asyncio.run(WhatsAppClient(_settings(TWILIO_AUTH_TOKEN=None)).send("+919811111111", "hi"))
        assert not result.ok
        assert result.error == "Missing Twilio credentials"

    def test_missing_recipient(self) -> None:
        result = asyncio.run(WhatsAppClient(_settings()).send(None, "hi"))
        assert not result.ok
        assert result.error == "Supplier has no WhatsApp number"

    def test_successful_send(self, monkeypatch) -> None:
        calls = []

        def _post(url, data, auth, timeout):
            calls.append((url, data, auth))
            return _FakeResponse(201, {"sid": "SM1", "status": "queued"})

        monkeypatch.setattr(notifications.requests, "post", _post)
        result = asyncio.run(WhatsAppClient(_settings()).send("98111 11111", "hello"))

        assert result.ok
        assert result.provider_message_id == "SM1"
        assert result.delivery_status == "queued"
        url, data, auth = calls[0]
        assert url.endswith("/Accounts/AC123/Messages.json")
        assert data["To"] == "whatsapp:+9811111111"
        assert data["From"] == "whatsapp:+14155238886"
        assert auth == ("AC123", "secret")

    def test_provider_error(self, monkeypatch) -> None:
        monkeypatch.setattr(
            notifications.requests,
            "post",
            lambda *a, **k: _FakeResponse(400, {"message": "Invalid 'To' number"}),
        )
        result = asyncio.run(WhatsAppClient(_settings()).send("+919811111111", "hello"))
        assert not result.ok
        assert result.error == "Invalid 'To' number"
        assert result.delivery_status == "unknown"

    def test_network_error(self, monkeypatch) -> None:
        def _boom(*args, **kwargs):
            raise requests.ConnectionError("unreachable")

        monkeypatch.setattr(notifications.requests, "post", _boom)
        result = asyncio.run(WhatsAppClient(_settings()).send("+919811111111", "hello"))
        assert not result.ok
        assert "unreachable" in result.error

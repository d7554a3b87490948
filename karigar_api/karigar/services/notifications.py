"""
Supplier WhatsApp notifications sent through the Twilio Messages API.

The HTTP call is made with `requests` in the thread pool so the event loop is
never blocked. Every attempt, successful or not, is recorded as a
whatsapp_notifications row by the caller.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

import requests
from starlette.concurrency import run_in_threadpool

from karigar.core.settings import AppSettings, get_app_settings
from karigar.db.models.procurement import WhatsAppNotification

logger = logging.getLogger(__name__)

_PHONE_NOISE = re.compile(r"[\s\-().]")


# PUBLIC_INTERFACE
def normalize_phone(number: Optional[str]) -> Optional[str]:
    """Strip formatting and make sure the number starts with '+'; None when empty."""
    if not number:
        return None
    cleaned = _PHONE_NOISE.sub("", number.strip())
    if not cleaned or cleaned == "+":
        return None
    return cleaned if cleaned.startswith("+") else f"+{cleaned}"


def _format_quantity(quantity: float) -> str:
    value = float(quantity)
    return str(int(value)) if value.is_integer() else f"{value:g}"


# PUBLIC_INTERFACE
def build_approval_message(
    *,
    supplier_name: str,
    request_number: str,
    material_name: str,
    quantity: float,
    unit: str,
    eta: Optional[date] = None,
) -> str:
    """Body of the message telling a supplier that a procurement request was approved."""
    lines = [
        "*Procurement Request Approved*",
        "",
        f"Dear {supplier_name},",
        "",
        "Your procurement request has been approved:",
        "",
        f"*Request #:* {request_number}",
        f"*Material:* {material_name}",
        f"*Quantity:* {_format_quantity(quantity)} {unit}",
    ]
    if eta is not None:
        lines.append(f"*Expected Delivery:* {eta.strftime('%d %b %Y')}")
    lines += [
        "",
        "Please confirm receipt of this message and provide your expected dispatch date.",
        "",
        "Thank you for your partnership!",
    ]
    return "\n".join(lines)


@dataclass
class SendResult:
    ok: bool
    provider_message_id: Optional[str] = None
    delivery_status: Optional[str] = None
    error: Optional[str] = None


class WhatsAppClient:
    """Thin Twilio client; credentials come from AppSettings."""

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or get_app_settings()

    @property
    def is_configured(self) -> bool:
        s = self.settings
        return bool(s.TWILIO_ACCOUNT_SID and s.TWILIO_AUTH_TOKEN and s.TWILIO_WHATSAPP_NUMBER)

    def _messages_url(self) -> str:
        return f"{self.settings.TWILIO_API_BASE}/Accounts/{self.settings.TWILIO_ACCOUNT_SID}/Messages.json"

    def _post(self, to: str, body: str) -> SendResult:
        s = self.settings
        try:
            response = requests.post(
                self._messages_url(),
                data={
                    "From": f"whatsapp:{normalize_phone(s.TWILIO_WHATSAPP_NUMBER)}",
                    "To": f"whatsapp:{to}",
                    "Body": body,
                },
                auth=(s.TWILIO_ACCOUNT_SID, s.TWILIO_AUTH_TOKEN),
                timeout=s.HTTP_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            return SendResult(ok=False, error=str(exc))

        try:
            data: Dict[str, Any] = response.json()
        except ValueError:
            data = {}

        if response.ok:
            return SendResult(ok=True, provider_message_id=data.get("sid"), delivery_status=data.get("status"))
        return SendResult(
            ok=False,
            delivery_status=data.get("status") or "unknown",
            error=data.get("message") or f"HTTP {response.status_code}",
        )

    # PUBLIC_INTERFACE
    async def send(self, to: Optional[str], body: str) -> SendResult:
        """Send `body` to the WhatsApp number `to`; never raises."""
        if not self.settings.WHATSAPP_ENABLED:
            return SendResult(ok=False, error="WhatsApp notifications are disabled")
        if not self.is_configured:
            return SendResult(ok=False, error="Missing Twilio credentials")
        recipient = normalize_phone(to)
        if recipient is None:
            return SendResult(ok=False, error="Supplier has no WhatsApp number")
        return await run_in_threadpool(self._post, recipient, body)


# PUBLIC_INTERFACE
async def notify_supplier_of_approval(
    client: WhatsAppClient, request: Any, supplier: Any
) -> WhatsAppNotification:
    """
    Send the approval message for a procurement request and build the record of the attempt.

    The returned row is not added to any session; the caller adds it to its transaction.
    """
    body = build_approval_message(
        supplier_name=supplier.contact_person or supplier.company_name,
        request_number=request.request_number,
        material_name=request.raw_material.name if request.raw_material is not None else "",
        quantity=request.quantity_requested,
        unit=request.unit,
        eta=request.eta,
    )
    recipient = normalize_phone(supplier.whatsapp_number)
    result = await client.send(recipient, body)
    if result.ok:
        logger.info("WhatsApp approval sent for %s to %s", request.request_number, recipient)
    else:
        logger.warning("WhatsApp approval for %s failed: %s", request.request_number, result.error)
    return WhatsAppNotification(
        procurement_request_id=request.id,
        supplier_id=supplier.id,
        recipient=recipient,
        message_content=body,
        status="sent" if result.ok else "failed",
        delivery_status=result.delivery_status,
        provider_message_id=result.provider_message_id,
        error_message=result.error,
        sent_at=datetime.now(timezone.utc) if result.ok else None,
    )

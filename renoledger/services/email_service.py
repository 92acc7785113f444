"""Transactional email through the Resend HTTP API."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field

import requests

from renoledger.core.config import Config, get_config
from renoledger.core.exceptions import DependencyError, ProviderNotConfiguredError
from renoledger.database.models import Invoice
from renoledger.utils.money import format_currency
from renoledger.utils.validators import sanitize_text

logger = logging.getLogger(__name__)


@dataclass
class EmailTemplate:
    subject: str
    text_body: str


@dataclass
class EmailAttachment:
    filename: str
    content: bytes = field(repr=False)

    def as_payload(self) -> dict[str, str]:
        return {"filename": self.filename, "content": base64.b64encode(self.content).decode("ascii")}


def build_invoice_email(invoice: Invoice, custom_message: str | None = None, config: Config | None = None) -> EmailTemplate:
    cfg = config or get_config()
    lines = [
        f"Dear {invoice.customer_name},",
        "",
        f"Please find attached Invoice #{invoice.invoice_number} for your renovation project.",
        "",
        f"Total: {format_currency(invoice.total)}",
        f"Balance Due: {format_currency(invoice.balance_due)}",
        f"Due Date: {invoice.due_date.isoformat() if invoice.due_date else 'N/A'}",
        "",
    ]
    message = sanitize_text(custom_message, 1000)
    if message:
        lines.extend([f"Note from {cfg.COMPANY_NAME}: {message}", ""])
    lines.extend(
        [
            f"Payment can be made via E-Transfer to {cfg.PAYMENT_EMAIL}",
            "",
            f"Thank you for choosing {cfg.COMPANY_NAME}!",
            "",
            cfg.COMPANY_NAME,
            cfg.COMPANY_ADDRESS,
            f"Tel: {cfg.COMPANY_PHONE}",
        ]
    )
    return EmailTemplate(
        subject=f"Invoice #{invoice.invoice_number} from {cfg.COMPANY_NAME}",
        text_body="\n".join(lines),
    )


class ResendEmailClient:
    """Thin client for Resend's `POST /emails` endpoint."""

    def __init__(self, config: Config | None = None, session: requests.Session | None = None) -> None:
        self.config = config or get_config()
        self._owns_session = session is None
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return self.config.email_configured

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def send(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        attachments: list[EmailAttachment] | None = None,
    ) -> str | None:
        """Send one message and return the provider's message id.

        Raises ProviderNotConfiguredError without an API key and
        DependencyError on transport errors or non-2xx responses.
        """
        if not self.is_configured:
            raise ProviderNotConfiguredError("Email service not configured (RESEND_API_KEY missing)")

        payload = {
            "from": self.config.EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "text": text_body,
        }
        if attachments:
            payload["attachments"] = [attachment.as_payload() for attachment in attachments]

        try:
            response = self.session.post(
                self.config.RESEND_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.config.RESEND_API_KEY}"},
                timeout=(5, self.config.EMAIL_TIMEOUT_SECONDS),
            )
        except requests.exceptions.RequestException as exc:
            logger.error(
                "email.send.failed",
                extra={"event": "email.send.failed", "error": str(exc)},
            )
            raise DependencyError("Failed to send email") from exc

        if not response.ok:
            logger.error(
                "email.send.rejected",
                extra={
                    "event": "email.send.rejected",
                    "status_code": response.status_code,
                    "error": sanitize_text(response.text, 2000),
                },
            )
            raise DependencyError("Failed to send email")

        try:
            body = response.json()
        except ValueError:
            body = None
        message_id = body.get("id") if isinstance(body, dict) else None
        logger.info("email.sent", extra={"event": "email.sent", "status_code": response.status_code})
        return message_id

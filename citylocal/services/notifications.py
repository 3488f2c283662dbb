"""
Notifier -- best-effort email delivery through an HTTP mail relay.

The relay receives ``{"from", "to", "subject", "html"}`` as JSON with a bearer
API key (Resend / Postmark style). When MAIL_API_URL is not configured the
message is only logged.

Configuration:
    MAIL_API_URL, MAIL_API_KEY, MAIL_FROM, ADMIN_EMAIL env vars
"""

from __future__ import annotations

import logging
from html import escape
from typing import Optional

import httpx

from citylocal import config

logger = logging.getLogger(__name__)


class Notifier:
    """Async mail relay client. ``send`` never raises."""

    def __init__(
        self,
        api_url: str = "",
        api_key: str = "",
        sender: str = "",
        admin_email: str = "",
        frontend_url: str = "",
        timeout: float = config.MAIL_TIMEOUT,
    ):
        self._api_url = api_url
        self._api_key = api_key
        self.sender = sender
        self.admin_email = admin_email
        self.frontend_url = frontend_url.rstrip("/")
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
            self._client = httpx.AsyncClient(timeout=self._timeout, headers=headers)
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def send(self, recipient: Optional[str], subject: str, body_html: str) -> bool:
        if not recipient:
            logger.debug("No recipient for %r, skipping", subject)
            return False
        if not self._api_url:
            logger.info("Mail relay not configured; would send %r to %s", subject, recipient)
            return False

        payload = {"from": self.sender, "to": recipient, "subject": subject, "html": body_html}
        try:
            client = await self._get_client()
            resp = await client.post(self._api_url, json=payload)
            resp.raise_for_status()
            return True
        except httpx.HTTPStatusError as e:
            logger.warning("Mail relay error %d for %s: %s", e.response.status_code, recipient, e.response.text)
        except Exception as e:
            logger.warning("Mail delivery to %s failed: %s", recipient, e)
        return False

    async def notify_admin(self, subject: str, body_html: str) -> bool:
        return await self.send(self.admin_email, subject, body_html)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def _wrap(title: str, inner: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f"<h2>{escape(title)}</h2>{inner}</div>"
    )


def submission_email(business, category_name: str, owner_name: str, owner_email: str, admin_url: str) -> str:
    return _wrap(
        "New Business Submission",
        "<p>A new business listing has been submitted and is awaiting approval:</p>"
        f"<h3>{escape(business.name)}</h3>"
        f"<p><strong>Category:</strong> {escape(category_name)}</p>"
        f"<p><strong>Location:</strong> {escape(business.city)}, {escape(business.state)}</p>"
        f"<p><strong>Owner:</strong> {escape(owner_name)} ({escape(owner_email)})</p>"
        f"<p><strong>Phone:</strong> {escape(business.phone)}</p>"
        f'<p><a href="{escape(admin_url)}">Review in Admin Panel</a></p>',
    )


def claim_email(business, claimer_name: str, claimer_email: str) -> str:
    return _wrap(
        "Business Claim Request",
        f"<p><strong>{escape(claimer_name)}</strong> ({escape(claimer_email)}) has claimed the business listing:</p>"
        f"<h3>{escape(business.name)}</h3>"
        f"<p>{escape(business.address)}, {escape(business.city)}, {escape(business.state)}</p>"
        "<p>Please review and approve this claim in the admin dashboard.</p>",
    )


def contact_email(business, sender_name: str, sender_email: str, sender_phone, message: str) -> str:
    phone = f"<p><strong>Phone:</strong> {escape(sender_phone)}</p>" if sender_phone else ""
    body = escape(message).replace("\n", "<br>")
    return _wrap(
        "New Customer Inquiry",
        f"<p>You have received a new inquiry for <strong>{escape(business.name)}</strong>:</p>"
        f"<p><strong>Name:</strong> {escape(sender_name)}</p>"
        f"<p><strong>Email:</strong> {escape(sender_email)}</p>"
        f"{phone}"
        f"<p><strong>Message:</strong></p><p>{body}</p>"
        "<p>Please respond to this inquiry as soon as possible.</p>",
    )


def approval_email(business) -> str:
    return _wrap(
        "Your listing is live",
        f"<p>Good news! <strong>{escape(business.name)}</strong> has been approved "
        "and is now visible in the directory.</p>",
    )


def rejection_email(business, reason: str) -> str:
    return _wrap(
        "Your listing needs changes",
        f"<p><strong>{escape(business.name)}</strong> was not approved.</p>"
        f"<p><strong>Reason:</strong> {escape(reason)}</p>"
        "<p>Update the listing or resubmit it for review from your dashboard.</p>",
    )


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        _notifier = Notifier(
            api_url=config.MAIL_API_URL,
            api_key=config.MAIL_API_KEY,
            sender=config.MAIL_FROM,
            admin_email=config.ADMIN_EMAIL,
            frontend_url=config.FRONTEND_URL,
        )
    return _notifier

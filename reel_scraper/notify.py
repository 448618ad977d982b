"""Pause notifications: stored in the database, logged, and optionally pushed
to a webhook and e-mail."""

import logging
from typing import Optional

import httpx

from .config import NotificationConfig
from .db import Database
from .models import ErrorCode, Notification

logger = logging.getLogger("reel_scraper")


def build_message(source: str, url: str, error_type: str) -> str:
    if error_type == ErrorCode.CAPTCHA:
        return f"Captcha detected for {source} at {url}. Please solve manually."
    if error_type == ErrorCode.BLOCKED:
        return (f"IP blocked for {source} at {url}. "
                f"Check the rendering backend and refresh credentials.")
    return f"{error_type} for {source} at {url}."


class NotificationDispatcher:
    def __init__(self, config: NotificationConfig, db: Database,
                 client: Optional[httpx.Client] = None):
        self.config = config
        self.db = db
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(timeout=httpx.Timeout(15, connect=10))
        return self._client

    def close(self):
        if self._client and not self._client.is_closed:
            self._client.close()

    def dispatch(self, source: str, url: str, error_type: str) -> Notification:
        notification = Notification(
            source=source,
            url=url,
            error_type=error_type,
            message=build_message(source, url, error_type),
        )
        notification.id = self.db.insert_notification(notification)
        logger.warning(f"NOTIFICATION: {notification.message}")

        if self.config.webhook_url:
            self._send_webhook(notification)
        if self.config.email_enabled and self.config.email_to and self.config.email_api_key:
            self._send_email(notification)
        return notification

    def _send_webhook(self, n: Notification):
        payload = {
            "text": (f"*Scraping Alert*\n*Source:* {n.source}\n*Error:* {n.error_type}\n"
                     f"*URL:* {n.url}\n*Message:* {n.message}")
        }
        try:
            resp = self.client.post(self.config.webhook_url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send webhook for {n.source}: {e}")

    def _send_email(self, n: Notification):
        body = {
            "from": self.config.email_from,
            "to": self.config.email_to,
            "subject": f"Scraping Alert: {n.error_type} - {n.source}",
            "html": (
                "<h2>Scraping Alert</h2>"
                f"<p><strong>Source:</strong> {n.source}</p>"
                f"<p><strong>Error Type:</strong> {n.error_type}</p>"
                f"<p><strong>URL:</strong> <a href=\"{n.url}\">{n.url}</a></p>"
                f"<p><strong>Message:</strong> {n.message}</p>"
                "<p>Please resolve this issue and resume the scraping job.</p>"
            ),
        }
        try:
            resp = self.client.post(
                self.config.email_api_url,
                json=body,
                headers={"Authorization": f"Bearer {self.config.email_api_key}"},
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send email for {n.source}: {e}")

"""
IMAP mailbox fetcher.

imaplib is blocking, so the whole session runs in a worker thread. Messages
are read with BODY.PEEK so fetching never marks them as seen.
"""

import asyncio
import email
import imaplib
import logging
from datetime import timedelta, timezone
from email import policy
from email.message import EmailMessage
from typing import List

from digest_agent.ingestion.base import FetchError, FetcherAdapter, clean_html
from digest_agent.types import FetchedItem, MailboxConfig, SourceType, utcnow

logger = logging.getLogger(__name__)

_IMAP_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def imap_since(days: int) -> str:
    """IMAP SEARCH date (DD-Mon-YYYY) for `days` ago, independent of locale."""
    since = utcnow() - timedelta(days=days)
    return f"{since.day:02d}-{_IMAP_MONTHS[since.month - 1]}-{since.year}"


def _part_text(part: EmailMessage) -> str:
    """Decode a text part, reading the raw payload as UTF-8 when its charset is unusable."""
    try:
        return part.get_content()
    except (LookupError, UnicodeError) as e:
        logger.warning(f"Undecodable {part.get_content_type()} part ({e}), reading as UTF-8")
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", "replace")


def _message_body(msg: EmailMessage) -> str:
    """Prefer the plain-text part, falling back to stripped HTML."""
    part = msg.get_body(preferencelist=("plain",))
    if part is not None:
        return _part_text(part).strip()
    part = msg.get_body(preferencelist=("html",))
    if part is not None:
        return clean_html(_part_text(part))
    return ""


def parse_message(raw: bytes) -> FetchedItem:
    """
    Normalize a raw RFC 822 message.

    Args:
        raw: Message bytes as returned by IMAP FETCH

    Returns:
        FetchedItem with subject as title and the message body as content
    """
    msg = email.message_from_bytes(raw, policy=policy.default)

    published_at = utcnow()
    date_header = msg["date"]
    if date_header is not None and getattr(date_header, "datetime", None) is not None:
        published_at = date_header.datetime
        if published_at.tzinfo is None:
            published_at = published_at.replace(tzinfo=timezone.utc)

    sender = msg["from"]
    return FetchedItem(
        title=(str(msg["subject"] or "")).strip() or "No Subject",
        content=_message_body(msg),
        author=str(sender) if sender else None,
        published_at=published_at,
        url=None,
    )


class MailboxFetcher(FetcherAdapter):
    """Fetches unseen recent messages from the configured IMAP folders."""

    source_type = SourceType.MAILBOX

    def __init__(self, connect_timeout: float = 30):
        self.connect_timeout = connect_timeout

    async def fetch(self, config: MailboxConfig) -> List[FetchedItem]:
        return await asyncio.to_thread(self._fetch_sync, config)

    def _connect(self, config: MailboxConfig) -> imaplib.IMAP4:
        if config.tls:
            return imaplib.IMAP4_SSL(config.host, config.port, timeout=self.connect_timeout)
        return imaplib.IMAP4(config.host, config.port, timeout=self.connect_timeout)

    def _fetch_sync(self, config: MailboxConfig) -> List[FetchedItem]:
        items: List[FetchedItem] = []
        since = imap_since(config.lookback_days)

        try:
            client = self._connect(config)
        except (OSError, imaplib.IMAP4.error) as e:
            raise FetchError(f"Failed to connect to {config.host}:{config.port}: {e}") from e

        try:
            client.login(config.username, config.password)
            for folder in config.folders:
                status, _ = client.select(folder, readonly=True)
                if status != "OK":
                    logger.warning(f"Cannot open folder '{folder}' on {config.host}")
                    continue

                status, data = client.search(None, "UNSEEN", "SINCE", since)
                if status != "OK" or not data or not data[0]:
                    continue

                for message_id in data[0].split():
                    status, parts = client.fetch(message_id, "(BODY.PEEK[])")
                    if status != "OK":
                        continue
                    for part in parts:
                        if not isinstance(part, tuple):
                            continue
                        try:
                            items.append(parse_message(part[1]))
                        except (LookupError, UnicodeError, ValueError) as e:
                            logger.warning(f"Skipping unreadable message {message_id!r} in '{folder}': {e}")

            logger.info(f"Fetched {len(items)} messages from {config.host}")
            return items

        except (OSError, imaplib.IMAP4.error) as e:
            raise FetchError(f"Mailbox error on {config.host}: {e}") from e
        finally:
            try:
                client.logout()
            except (OSError, imaplib.IMAP4.error) as e:
                logger.debug(f"Ignoring logout error: {e}")

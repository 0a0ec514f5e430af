"""Inbox message fetching with pagination and rate limiting."""

import logging
import os
import time
from email.utils import parseaddr
from typing import Any, Callable

from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from labelsweep.auth import get_gmail_service
from labelsweep.models import Message

logger = logging.getLogger(__name__)

MAX_RETRIES = 5


def get_inbox_query() -> str:
    """Get the Gmail search query that selects the default view."""
    return os.getenv("INBOX_QUERY", "label:INBOX")


def parse_sender(raw: str) -> tuple[str, str]:
    """
    Split a From header into display name and normalized address.

    Returns:
        (name, email) with the email trimmed and lowercased.
    """
    raw = (raw or "").strip()
    name, email = parseaddr(raw)
    email = (email or raw).strip().lower()
    return name.strip(), email


def get_header_value(headers: list[dict], name: str) -> str:
    """Get a header value by name."""
    name_lower = name.lower()
    for header in headers:
        if header.get("name", "").lower() == name_lower:
            return header.get("value", "")
    return ""


def extract_message(message: dict[str, Any]) -> Message:
    """
    Reduce a Gmail API message resource to a Message.

    Args:
        message: Raw message from Gmail API (metadata or full format).
    """
    headers = message.get("payload", {}).get("headers", [])
    sender_name, sender_email = parse_sender(get_header_value(headers, "From"))

    return Message(
        id=message.get("id"),
        subject=get_header_value(headers, "Subject"),
        sender_email=sender_email,
        sender_name=sender_name,
    )


def list_inbox_message_ids(
    service: Resource | None = None,
    query: str | None = None,
    max_messages: int | None = None,
    max_results_per_page: int = 500,
) -> list[str]:
    """
    List ids of messages in the default view, in listing order.

    Args:
        service: Gmail API service. Created if not provided.
        query: Gmail search query. Defaults to INBOX_QUERY env var.
        max_messages: Stop after this many ids. Zero or less lists nothing.
        max_results_per_page: Maximum results per API page (max 500).

    Returns:
        Message ids with duplicates across pages removed.

    Raises:
        googleapiclient.errors.HttpError: On any failure other than rate limiting.
    """
    if max_messages is not None and max_messages <= 0:
        return []

    if service is None:
        service = get_gmail_service()

    if query is None:
        query = get_inbox_query()

    message_ids: list[str] = []
    seen: set[str] = set()
    page_token = None
    retries = 0

    while True:
        try:
            results = (
                service.users()
                .messages()
                .list(
                    userId="me",
                    q=query,
                    maxResults=max_results_per_page,
                    pageToken=page_token,
                )
                .execute()
            )
        except HttpError as e:
            if e.resp.status == 429 and retries < MAX_RETRIES:
                retries += 1
                _handle_rate_limit(retries)
                continue
            raise

        retries = 0
        for ref in results.get("messages", []):
            message_id = ref.get("id")
            if not message_id or message_id in seen:
                continue
            seen.add(message_id)
            message_ids.append(message_id)

            if max_messages is not None and len(message_ids) >= max_messages:
                return message_ids

        page_token = results.get("nextPageToken")
        if not page_token:
            break

    logger.debug("Listed %d messages for query %r", len(message_ids), query)
    return message_ids


def fetch_inbox_messages(
    service: Resource | None = None,
    query: str | None = None,
    max_messages: int | None = None,
    progress_callback: Callable[[int, int], None] | None = None,
) -> list[Message]:
    """
    Fetch sender and subject for every message in the default view.

    Messages that cannot be fetched or parsed are logged and left out;
    a failure to list the inbox at all propagates.

    Args:
        service: Gmail API service. Created if not provided.
        query: Gmail search query. Defaults to INBOX_QUERY env var.
        max_messages: Maximum number of messages to fetch.
        progress_callback: Optional callback for progress updates (current, total).

    Returns:
        Messages in listing order.
    """
    if service is None:
        service = get_gmail_service()

    message_ids = list_inbox_message_ids(
        service=service, query=query, max_messages=max_messages
    )
    if not message_ids:
        logger.info("No messages found in inbox")
        return []

    logger.info("Found %d messages in inbox", len(message_ids))

    messages = []
    total = len(message_ids)

    for index, message_id in enumerate(message_ids, start=1):
        message = _fetch_single_message(service, message_id)
        if message is not None:
            messages.append(message)

        if progress_callback:
            progress_callback(index, total)

    return messages


def _fetch_single_message(service: Resource, message_id: str) -> Message | None:
    """Fetch one message's headers; None if it cannot be read."""
    retries = 0

    while True:
        try:
            raw = (
                service.users()
                .messages()
                .get(
                    userId="me",
                    id=message_id,
                    format="metadata",
                    metadataHeaders=["From", "Subject"],
                )
                .execute()
            )
            break
        except HttpError as e:
            if e.resp.status == 429 and retries < MAX_RETRIES:
                retries += 1
                _handle_rate_limit(retries)
                continue
            logger.error("Error fetching details for message %s: %s", message_id, e)
            return None

    try:
        message = extract_message({**raw, "id": raw.get("id") or message_id})
    except (AttributeError, TypeError) as e:
        logger.error("Could not parse message %s: %s", message_id, e)
        return None

    logger.debug(
        "Fetched message %s: %s from %s",
        message_id,
        message.display_subject,
        message.sender_email,
    )
    return message


def _handle_rate_limit(retry_count: int) -> None:
    """Handle rate limiting with exponential backoff."""
    wait_time = min(2**retry_count, 60)
    logger.warning("Rate limited by Gmail, retrying in %ss", wait_time)
    time.sleep(wait_time)

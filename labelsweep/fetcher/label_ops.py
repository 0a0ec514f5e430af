"""Gmail label operations - reclassify, create."""

import logging
from typing import Any

from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from labelsweep.auth import get_gmail_service

logger = logging.getLogger(__name__)

INBOX_LABEL_ID = "INBOX"


def reclassify_message(
    message_id: str,
    label_id: str,
    service: Resource | None = None,
) -> None:
    """
    Add a label to a message and remove it from the inbox.

    Issues exactly one modify call. Not retried: the caller decides what a
    failure means.

    Args:
        message_id: ID of the message to move.
        label_id: ID of the label to add.
        service: Gmail API service. Created if not provided.

    Raises:
        googleapiclient.errors.HttpError: If Gmail rejects the call.
    """
    if service is None:
        service = get_gmail_service()

    service.users().messages().modify(
        userId="me",
        id=message_id,
        body={
            "addLabelIds": [label_id],
            "removeLabelIds": [INBOX_LABEL_ID],
        },
    ).execute()
    logger.debug("Message %s labeled %s and removed from inbox", message_id, label_id)


def create_label(
    label_name: str,
    service: Resource | None = None,
) -> dict[str, Any]:
    """
    Create a new Gmail label.

    Args:
        label_name: Name for the new label.
        service: Gmail API service.

    Returns:
        Dictionary with created label info or error.
    """
    if service is None:
        service = get_gmail_service()

    try:
        label_body = {
            "name": label_name,
            "labelListVisibility": "labelShow",
            "messageListVisibility": "show",
        }
        result = service.users().labels().create(userId="me", body=label_body).execute()
        logger.info("Created label %r with id %s", label_name, result.get("id"))
        return {
            "success": True,
            "label_id": result.get("id"),
            "label_name": result.get("name"),
        }
    except HttpError as e:
        logger.error("Error creating label %r: %s", label_name, e)
        error_msg = str(e)
        if e.resp.status == 409 or "already exists" in error_msg.lower():
            return {"success": False, "error": f"Label '{label_name}' already exists"}
        return {"success": False, "error": error_msg}

"""Shared fixtures: a stand-in Gmail service and real HttpError instances."""

import json
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from labelsweep.models import Message, SenderRule


def make_http_error(status: int = 500, message: str = "Backend Error") -> HttpError:
    """Build an HttpError the way googleapiclient raises it."""
    resp = httplib2.Response({"status": status})
    content = json.dumps({"error": {"code": status, "message": message}}).encode("utf-8")
    return HttpError(resp, content)


def make_gmail_service(
    labels: list[dict] | None = None,
    pages: list | None = None,
    messages: dict | None = None,
    modify_errors: dict | None = None,
) -> MagicMock:
    """
    Build a MagicMock shaped like the Gmail API resource.

    Args:
        labels: Result of labels().list(), or an exception to raise.
        pages: Successive results (or exceptions) of messages().list().
        messages: message id -> raw message resource (or exception) for get().
        modify_errors: message id -> exception raised by modify().
    """
    service = MagicMock()
    users = service.users.return_value

    labels_request = users.labels.return_value.list.return_value
    if isinstance(labels, Exception):
        labels_request.execute.side_effect = labels
    else:
        labels_request.execute.return_value = {"labels": labels or []}

    users.messages.return_value.list.return_value.execute.side_effect = (
        pages if pages is not None else [{"resultSizeEstimate": 0}]
    )

    def get(userId, id, **kwargs):
        request = MagicMock()
        value = (messages or {}).get(id, make_http_error(404, "Not Found"))
        if isinstance(value, Exception):
            request.execute.side_effect = value
        else:
            request.execute.return_value = value
        return request

    def modify(userId, id, body):
        request = MagicMock()
        error = (modify_errors or {}).get(id)
        if error is not None:
            request.execute.side_effect = error
        else:
            request.execute.return_value = {"id": id, "labelIds": body["addLabelIds"]}
        return request

    users.messages.return_value.get.side_effect = get
    users.messages.return_value.modify.side_effect = modify
    return service


def raw_message(message_id: str, sender: str, subject: str = "Hello") -> dict:
    """Gmail metadata-format message resource."""
    return {
        "id": message_id,
        "threadId": f"thread-{message_id}",
        "labelIds": ["INBOX"],
        "payload": {
            "headers": [
                {"name": "From", "value": sender},
                {"name": "Subject", "value": subject},
            ]
        },
    }


@pytest.fixture
def http_error():
    return make_http_error


@pytest.fixture
def gmail_service():
    return make_gmail_service


@pytest.fixture
def labels():
    return [
        {"id": "INBOX", "name": "INBOX", "type": "system"},
        {"id": "Label_1", "name": "Receipts", "type": "user"},
        {"id": "Label_2", "name": "Newsletters", "type": "user"},
        {"id": "Label_3", "name": "Work/Projects", "type": "user"},
    ]


@pytest.fixture
def id_to_name():
    return {
        "INBOX": "INBOX",
        "Label_1": "Receipts",
        "Label_2": "Newsletters",
        "Label_3": "Work/Projects",
    }


@pytest.fixture
def rule_table():
    return {
        "Label_1": [SenderRule("shop@store.com", "Store"), SenderRule("billing@cloud.io")],
        "Label_2": [SenderRule("news@paper.com", "Daily Paper")],
    }


@pytest.fixture
def inbox():
    return [
        Message(id="m1", subject="Your receipt", sender_email="shop@store.com"),
        Message(id="m2", subject="Morning edition", sender_email="news@paper.com"),
        Message(id="m3", subject="Hi there", sender_email="friend@home.net"),
    ]


@pytest.fixture(name="raw_message")
def raw_message_fixture():
    return raw_message

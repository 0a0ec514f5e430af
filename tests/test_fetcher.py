"""Tests for the fetcher module."""

from unittest.mock import MagicMock, patch

import pytest
from googleapiclient.errors import HttpError

from labelsweep.fetcher import (
    CategoryDirectory,
    create_label,
    fetch_inbox_messages,
    fetch_labels,
    filter_rule_targets,
    list_inbox_message_ids,
    reclassify_message,
)
from labelsweep.fetcher.messages import extract_message, get_header_value, parse_sender
from labelsweep.models import Category, Message


class TestMessageParsing:
    """Tests for message parsing functions."""

    def test_parse_sender(self):
        assert parse_sender("test@example.com") == ("", "test@example.com")
        assert parse_sender("Test User <test@example.com>") == ("Test User", "test@example.com")
        assert parse_sender('"Shop, Inc." <Orders@Shop.COM>') == ("Shop, Inc.", "orders@shop.com")
        assert parse_sender("  TEST@EXAMPLE.COM ") == ("", "test@example.com")
        assert parse_sender("") == ("", "")

    def test_get_header_value(self):
        headers = [
            {"name": "From", "value": "sender@example.com"},
            {"name": "Subject", "value": "Test Subject"},
        ]

        assert get_header_value(headers, "From") == "sender@example.com"
        assert get_header_value(headers, "subject") == "Test Subject"
        assert get_header_value(headers, "NonExistent") == ""

    def test_extract_message(self, raw_message):
        msg = extract_message(raw_message("m1", "Store <Shop@Store.com>", "Receipt"))

        assert msg == Message(
            id="m1",
            subject="Receipt",
            sender_email="shop@store.com",
            sender_name="Store",
        )

    def test_extract_message_without_headers(self):
        msg = extract_message({"id": "m1"})

        assert msg.sender_email == ""
        assert msg.display_subject == "No Subject"


class TestCategoryDirectory:
    """Tests for the label name/id directory."""

    def test_both_directions(self, labels):
        directory = CategoryDirectory.from_labels(labels)

        assert directory.get_id("Receipts") == "Label_1"
        assert directory.get_name("Label_1") == "Receipts"
        assert directory.name_to_id["Work/Projects"] == "Label_3"
        assert directory.id_to_name["Label_2"] == "Newsletters"
        assert len(directory) == 4
        assert "Label_1" in directory
        assert "Receipts" not in directory

    def test_unknown_lookups(self, labels):
        directory = CategoryDirectory.from_labels(labels)

        assert directory.get_id("Nope") is None
        assert directory.get_name("Label_99") is None

    def test_ignores_incomplete_labels(self):
        directory = CategoryDirectory.from_labels(
            [{"id": "Label_1"}, {"name": "Orphan"}, {"id": "Label_2", "name": "Ok"}]
        )

        assert directory.categories() == [Category("Label_2", "Ok")]

    def test_duplicate_names_keep_first(self):
        directory = CategoryDirectory(
            [Category("Label_1", "Same"), Category("Label_2", "Same")]
        )

        assert directory.get_id("Same") == "Label_1"
        assert directory.get_name("Label_2") == "Same"

    def test_empty(self):
        directory = CategoryDirectory.from_labels([])

        assert len(directory) == 0
        assert directory.id_to_name == {}

    def test_load_uses_single_list_call(self, gmail_service, labels):
        service = gmail_service(labels=labels)

        directory = CategoryDirectory.load(service=service)

        assert directory.get_id("Newsletters") == "Label_2"
        service.users.return_value.labels.return_value.list.assert_called_once_with(userId="me")

    def test_load_propagates_api_errors(self, gmail_service, http_error):
        service = gmail_service(labels=http_error(401, "Invalid Credentials"))

        with pytest.raises(HttpError):
            CategoryDirectory.load(service=service)


class TestLabels:
    """Tests for label listing helpers."""

    def test_fetch_labels(self, gmail_service):
        service = gmail_service(
            labels=[{"id": "Label_1", "name": "Receipts", "type": "user", "color": {}}]
        )

        assert fetch_labels(service=service) == [
            {"id": "Label_1", "name": "Receipts", "type": "user"}
        ]

    def test_filter_rule_targets(self):
        labels = [
            {"id": "INBOX", "name": "INBOX", "type": "system"},
            {"id": "UNREAD", "name": "UNREAD", "type": "system"},
            {"id": "CATEGORY_SOCIAL", "name": "CATEGORY_SOCIAL", "type": "system"},
            {"id": "Label_1", "name": "Receipts", "type": "user"},
        ]

        assert [label["id"] for label in filter_rule_targets(labels)] == ["INBOX", "Label_1"]


class TestInboxListing:
    """Tests for listing and fetching inbox messages."""

    def test_paginates_and_dedupes(self, gmail_service):
        service = gmail_service(
            pages=[
                {"messages": [{"id": "a"}, {"id": "b"}], "nextPageToken": "p2"},
                {"messages": [{"id": "b"}, {"id": "c"}]},
            ]
        )

        assert list_inbox_message_ids(service=service) == ["a", "b", "c"]

        list_mock = service.users.return_value.messages.return_value.list
        assert list_mock.call_args_list[0].kwargs["q"] == "label:INBOX"
        assert list_mock.call_args_list[1].kwargs["pageToken"] == "p2"

    def test_query_from_environment(self, gmail_service, monkeypatch):
        monkeypatch.setenv("INBOX_QUERY", "in:inbox -is:starred")
        service = gmail_service(pages=[{}])

        assert list_inbox_message_ids(service=service) == []
        list_mock = service.users.return_value.messages.return_value.list
        assert list_mock.call_args.kwargs["q"] == "in:inbox -is:starred"

    def test_max_messages(self, gmail_service):
        service = gmail_service(
            pages=[{"messages": [{"id": "a"}, {"id": "b"}, {"id": "c"}], "nextPageToken": "p2"}]
        )

        assert list_inbox_message_ids(service=service, max_messages=2) == ["a", "b"]

    def test_retries_rate_limit(self, gmail_service, http_error):
        service = gmail_service(pages=[http_error(429, "Rate Limit"), {"messages": [{"id": "a"}]}])

        with patch("labelsweep.fetcher.messages.time.sleep") as sleep:
            assert list_inbox_message_ids(service=service) == ["a"]

        sleep.assert_called_once_with(2)

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_max_messages_lists_nothing(self, gmail_service, limit):
        service = gmail_service(pages=[{"messages": [{"id": "a"}, {"id": "b"}]}])

        assert list_inbox_message_ids(service=service, max_messages=limit) == []
        service.users.return_value.messages.return_value.list.assert_not_called()

    def test_other_errors_propagate(self, gmail_service, http_error):
        service = gmail_service(pages=[http_error(500)])

        with pytest.raises(HttpError):
            list_inbox_message_ids(service=service)

    def test_fetch_skips_unreadable_messages(self, gmail_service, http_error, raw_message):
        service = gmail_service(
            pages=[{"messages": [{"id": "a"}, {"id": "b"}, {"id": "c"}]}],
            messages={
                "a": raw_message("a", "Shop <SHOP@store.com>", "Receipt"),
                "b": http_error(404, "Not Found"),
                "c": raw_message("c", "news@paper.com", "News"),
            },
        )
        progress = MagicMock()

        messages = fetch_inbox_messages(service=service, progress_callback=progress)

        assert [(m.id, m.sender_email) for m in messages] == [
            ("a", "shop@store.com"),
            ("c", "news@paper.com"),
        ]
        assert progress.call_count == 3

    def test_fetch_requests_metadata_only(self, gmail_service, raw_message):
        service = gmail_service(
            pages=[{"messages": [{"id": "a"}]}],
            messages={"a": raw_message("a", "x@y.com")},
        )

        fetch_inbox_messages(service=service)

        get_mock = service.users.return_value.messages.return_value.get
        assert get_mock.call_args.kwargs["format"] == "metadata"
        assert get_mock.call_args.kwargs["metadataHeaders"] == ["From", "Subject"]

    def test_fetch_empty_inbox(self, gmail_service):
        service = gmail_service(pages=[{"resultSizeEstimate": 0}])

        assert fetch_inbox_messages(service=service) == []


class TestLabelOps:
    """Tests for label mutations."""

    def test_reclassify_message(self, gmail_service):
        service = gmail_service()

        reclassify_message("m1", "Label_1", service=service)

        service.users.return_value.messages.return_value.modify.assert_called_once_with(
            userId="me",
            id="m1",
            body={"addLabelIds": ["Label_1"], "removeLabelIds": ["INBOX"]},
        )

    def test_reclassify_raises_without_retry(self, gmail_service, http_error):
        service = gmail_service(modify_errors={"m1": http_error(500)})

        with pytest.raises(HttpError):
            reclassify_message("m1", "Label_1", service=service)

        assert service.users.return_value.messages.return_value.modify.call_count == 1

    def test_create_label(self):
        service = MagicMock()
        create = service.users.return_value.labels.return_value.create
        create.return_value.execute.return_value = {"id": "Label_9", "name": "Bills"}

        result = create_label("Bills", service=service)

        assert result == {"success": True, "label_id": "Label_9", "label_name": "Bills"}
        body = create.call_args.kwargs["body"]
        assert body["name"] == "Bills"
        assert body["labelListVisibility"] == "labelShow"

    def test_create_label_conflict(self, http_error):
        service = MagicMock()
        create = service.users.return_value.labels.return_value.create
        create.return_value.execute.side_effect = http_error(409, "Label name exists or conflicts")

        result = create_label("Bills", service=service)

        assert result["success"] is False
        assert "already exists" in result["error"]

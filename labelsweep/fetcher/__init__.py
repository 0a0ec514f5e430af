"""Fetcher module for Gmail labels, inbox messages and label changes."""

from .label_ops import create_label, reclassify_message
from .labels import CategoryDirectory, fetch_labels, filter_rule_targets
from .messages import fetch_inbox_messages, list_inbox_message_ids

__all__ = [
    "CategoryDirectory",
    "create_label",
    "fetch_inbox_messages",
    "fetch_labels",
    "filter_rule_targets",
    "list_inbox_message_ids",
    "reclassify_message",
]

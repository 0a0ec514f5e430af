"""
Sender rule matching.

Match order is part of the contract: categories are tried in rule table
iteration order, and rules inside a category in stored order. The first
rule whose address equals the message sender (case-insensitively) decides
the category. A sender mapped to several categories therefore always lands
in the one that appears first in the table.
"""

import logging
from typing import Mapping

from labelsweep.models import Message, RuleTable, SenderRule

logger = logging.getLogger(__name__)


def _valid_category_id(category_id: object) -> bool:
    return isinstance(category_id, str) and bool(category_id.strip())


def match_category(
    message: Message,
    rule_table: RuleTable,
    id_to_name: Mapping[str, str],
) -> str | None:
    """
    Find the category a message should move into.

    Args:
        message: Message with a normalized sender address.
        rule_table: Category id -> ordered sender rules. Not modified.
        id_to_name: Category directory, id -> display name.

    Returns:
        The id of the first matching category, or None.
    """
    sender = (message.sender_email or "").strip().lower()
    if not sender:
        return None

    for category_id, rules in rule_table.items():
        if not _valid_category_id(category_id):
            logger.error("Invalid category id %r in rule table, skipping its rules", category_id)
            continue

        # Stale ids (label deleted in Gmail) are inert.
        if category_id not in id_to_name:
            logger.debug("Category %s not in directory, skipping", category_id)
            continue

        for rule in rules:
            if not isinstance(rule, SenderRule) or not rule.sender_email.strip():
                logger.error("Invalid rule %r for category %s, skipping", rule, category_id)
                continue
            if rule.matches(sender):
                return category_id

    return None


def find_stale_categories(
    rule_table: RuleTable,
    id_to_name: Mapping[str, str],
) -> list[str]:
    """List rule table category ids the directory no longer knows."""
    return [category_id for category_id in rule_table if category_id not in id_to_name]

"""Apply sender rules to a batch of inbox messages."""

import logging
from typing import Callable, Mapping, Sequence

from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from labelsweep.auth import get_gmail_service
from labelsweep.fetcher.label_ops import reclassify_message
from labelsweep.models import Message, ProcessedRecord, RuleTable
from labelsweep.rules.matcher import find_stale_categories, match_category

logger = logging.getLogger(__name__)


def apply_rules(
    messages: Sequence[Message],
    rule_table: RuleTable,
    id_to_name: Mapping[str, str],
    service: Resource | None = None,
    dry_run: bool = False,
    progress_callback: Callable[[int, int], None] | None = None,
) -> list[ProcessedRecord]:
    """
    Move every message with a matching sender rule into its category.

    Messages are handled one at a time in batch order. Each matched message
    gets exactly one reclassify call; a failed call is logged and the
    message left where it is, without a retry in this pass.

    Args:
        messages: Inbox messages in listing order.
        rule_table: Category id -> ordered sender rules. Read only.
        id_to_name: Category directory, id -> display name.
        service: Gmail API service. Created if not provided.
        dry_run: If True, record matches without calling Gmail.
        progress_callback: Optional callback for progress updates (current, total).

    Returns:
        One record per message that was moved, in batch order.
    """
    if not messages:
        logger.info("No messages to process")
        return []

    if not rule_table:
        logger.info("No sender rules configured")
        return []

    for category_id in find_stale_categories(rule_table, id_to_name):
        logger.warning(
            "Category id %r found in rules but not in Gmail labels. Skipping.",
            category_id,
        )

    if service is None and not dry_run:
        service = get_gmail_service()

    processed: list[ProcessedRecord] = []
    seen: set[str] = set()
    failed = 0
    total = len(messages)

    logger.info("Processing %d messages", total)

    for index, message in enumerate(messages, start=1):
        if progress_callback:
            _report_progress(progress_callback, index, total)

        if message.id in seen:
            logger.debug("Message %s already handled in this run", message.id)
            continue
        seen.add(message.id)

        category_id = match_category(message, rule_table, id_to_name)
        if category_id is None:
            continue

        category_name = id_to_name[category_id]
        subject = message.display_subject

        logger.debug(
            "Applying label %r (%s) to %r from %s",
            category_name,
            category_id,
            subject,
            message.sender_email,
        )

        if not dry_run:
            try:
                reclassify_message(message.id, category_id, service=service)
            except HttpError as e:
                failed += 1
                logger.error(
                    "Failed to modify message %s (%r) for label %s: %s",
                    message.id,
                    subject,
                    category_name,
                    e,
                )
                continue
            except Exception:
                failed += 1
                logger.exception(
                    "Unexpected error modifying message %s (%r) for label %s",
                    message.id,
                    subject,
                    category_name,
                )
                continue

        logger.info("Labeled %r as %s and removed from inbox", subject, category_name)
        processed.append(
            ProcessedRecord(
                message_id=message.id,
                subject=subject,
                category_applied=category_name,
            )
        )

    logger.info(
        "Moved %d of %d messages (%d failed)%s",
        len(processed),
        total,
        failed,
        " [dry run]" if dry_run else "",
    )
    return processed


def _report_progress(callback: Callable[[int, int], None], current: int, total: int) -> None:
    # Progress display errors never stop the sweep.
    try:
        callback(current, total)
    except Exception:
        logger.exception("Progress callback failed at %d/%d", current, total)

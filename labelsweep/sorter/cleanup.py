"""One inbox cleanup run, from authentication to report."""

import logging
from typing import Callable

from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from labelsweep.auth import get_gmail_service
from labelsweep.fetcher.labels import CategoryDirectory
from labelsweep.fetcher.messages import fetch_inbox_messages
from labelsweep.models import CleanupResult, RunStage
from labelsweep.rules.store import RuleStore

from .driver import apply_rules

logger = logging.getLogger(__name__)


def run_cleanup(
    service: Resource | None = None,
    store: RuleStore | None = None,
    query: str | None = None,
    max_messages: int | None = None,
    dry_run: bool = False,
    progress_callback: Callable[[int, int], None] | None = None,
) -> CleanupResult:
    """
    Sweep the inbox once with the stored sender rules.

    Every piece of state (label directory, rule snapshot, inbox batch) is
    rebuilt on each call. Nothing raises out of this function: a run that
    cannot start returns an empty result carrying the error description,
    and a run with nothing to do returns an empty result without one.

    Args:
        service: Gmail API service. Created if not provided.
        store: Rule store. Uses the default database if not provided.
        query: Gmail search query selecting the inbox.
        max_messages: Maximum number of inbox messages to look at.
        dry_run: If True, report matches without moving anything.
        progress_callback: Optional callback for progress updates (current, total).

    Returns:
        CleanupResult with the processed records, or the start-up error.
    """
    logger.info("Starting inbox cleanup%s", " (dry run)" if dry_run else "")
    stage = RunStage.IDLE

    try:
        if service is None:
            service = get_gmail_service()

        directory = CategoryDirectory.load(service=service)
        id_to_name = directory.id_to_name
        stage = RunStage.DIRECTORY_LOADED

        if store is None:
            store = RuleStore()
        rule_table = store.load()
        stage = RunStage.TABLE_LOADED

        if not rule_table:
            logger.info("No sender rules configured. Cleanup finished.")
            return CleanupResult(processed=(), stage=RunStage.REPORTED)

        messages = fetch_inbox_messages(
            service=service, query=query, max_messages=max_messages
        )
        stage = RunStage.BATCH_FETCHED
    except FileNotFoundError as e:
        return _failed(stage, str(e))
    except GoogleAuthError as e:
        return _failed(stage, f"Authentication failed: {e}")
    except HttpError as e:
        return _failed(stage, f"Gmail API request failed: {e}")
    except Exception as e:
        logger.exception("Unexpected error before any message was modified")
        return _failed(stage, f"Unexpected error: {e}")

    try:
        processed = apply_rules(
            messages,
            rule_table,
            id_to_name,
            service=service,
            dry_run=dry_run,
            progress_callback=progress_callback,
        )
    except Exception as e:
        logger.exception("Unexpected error while applying sender rules")
        return _failed(stage, f"Unexpected error: {e}")

    logger.info("Cleanup finished: %d message(s) moved", len(processed))
    return CleanupResult(processed=tuple(processed), stage=RunStage.REPORTED)


def _failed(stage: RunStage, error: str) -> CleanupResult:
    logger.error("Cleanup aborted after stage %s: %s", stage.value, error)
    return CleanupResult(processed=(), error=error, stage=stage)

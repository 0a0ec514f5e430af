"""Gmail label listing and the name/id category directory."""

import logging
from typing import Any, Iterable, Iterator

from googleapiclient.discovery import Resource

from labelsweep.auth import get_gmail_service
from labelsweep.models import Category

logger = logging.getLogger(__name__)

# System labels a sender rule may still target.
RULE_TARGET_SYSTEM_LABELS = {"INBOX", "SENT", "DRAFT", "SPAM", "TRASH"}


def fetch_labels(service: Resource | None = None) -> list[dict[str, Any]]:
    """
    Fetch all Gmail labels with a single list call.

    Args:
        service: Gmail API service. Created if not provided.

    Returns:
        List of label dictionaries with id, name and type.

    Raises:
        googleapiclient.errors.HttpError: If the listing call fails.
    """
    if service is None:
        service = get_gmail_service()

    results = service.users().labels().list(userId="me").execute()

    labels = [
        {
            "id": label.get("id"),
            "name": label.get("name"),
            "type": label.get("type"),
        }
        for label in results.get("labels", [])
    ]
    logger.debug("Fetched %d labels", len(labels))
    return labels


def filter_rule_targets(labels: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Keep user labels plus the few system labels rules may point at."""
    return [
        label
        for label in labels
        if label.get("type") == "user" or label.get("id") in RULE_TARGET_SYSTEM_LABELS
    ]


class CategoryDirectory:
    """
    Bidirectional mapping between label names and label ids.

    Built once per run from a label listing and never cached across runs.
    Label names are unique in Gmail; if a listing ever repeats a name, the
    first label listed keeps the name slot.
    """

    def __init__(self, categories: Iterable[Category] = ()):
        self._by_id: dict[str, Category] = {}
        self._name_to_id: dict[str, str] = {}

        for category in categories:
            if not category.id or not category.name:
                logger.debug("Ignoring label without id or name: %r", category)
                continue
            self._by_id[category.id] = category
            if category.name in self._name_to_id:
                logger.warning(
                    "Label name %r listed twice (ids %s, %s); keeping the first",
                    category.name,
                    self._name_to_id[category.name],
                    category.id,
                )
                continue
            self._name_to_id[category.name] = category.id

    @classmethod
    def from_labels(cls, labels: Iterable[dict[str, Any]]) -> "CategoryDirectory":
        """Build a directory from Gmail label dictionaries."""
        return cls(
            Category(id=label.get("id") or "", name=label.get("name") or "")
            for label in labels
        )

    @classmethod
    def load(cls, service: Resource | None = None) -> "CategoryDirectory":
        """
        Build a directory from a fresh label listing.

        Raises:
            googleapiclient.errors.HttpError: If the listing call fails.
        """
        directory = cls.from_labels(fetch_labels(service=service))
        logger.info("Loaded %d categories", len(directory))
        return directory

    @property
    def name_to_id(self) -> dict[str, str]:
        return dict(self._name_to_id)

    @property
    def id_to_name(self) -> dict[str, str]:
        return {category_id: c.name for category_id, c in self._by_id.items()}

    def get_id(self, name: str) -> str | None:
        return self._name_to_id.get(name)

    def get_name(self, category_id: str) -> str | None:
        category = self._by_id.get(category_id)
        return category.name if category else None

    def categories(self) -> list[Category]:
        return list(self._by_id.values())

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._by_id

    def __iter__(self) -> Iterator[Category]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

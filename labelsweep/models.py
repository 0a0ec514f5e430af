"""
Data models for the inbox sweep.

Value types passed between the fetcher, the rule matcher and the sorter.
All of them are immutable; a run builds fresh instances every time.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

NO_SUBJECT = "No Subject"


class RunStage(Enum):
    """Stages a cleanup run moves through, in order."""

    IDLE = "idle"
    DIRECTORY_LOADED = "directory_loaded"
    TABLE_LOADED = "table_loaded"
    BATCH_FETCHED = "batch_fetched"
    REPORTED = "reported"


@dataclass(frozen=True)
class Category:
    """A Gmail label: stable id plus display name."""

    id: str
    name: str


@dataclass(frozen=True)
class SenderRule:
    """
    Binds a sender address to the category that owns the rule.

    Attributes:
        sender_email: Address to match, compared case-insensitively.
        sender_name: Display name, informational only.
    """

    sender_email: str
    sender_name: str = ""

    @classmethod
    def create(cls, sender_email: str, sender_name: Optional[str] = None) -> "SenderRule":
        """Build a rule with a trimmed, lowercased address."""
        return cls(
            sender_email=(sender_email or "").strip().lower(),
            sender_name=(sender_name or "").strip(),
        )

    def matches(self, sender_email: str) -> bool:
        """Case-insensitive exact address comparison."""
        return self.sender_email.strip().lower() == (sender_email or "").strip().lower()


# category id -> ordered rules; dict order is the match order
RuleTable = dict[str, list[SenderRule]]


@dataclass(frozen=True)
class Message:
    """An inbox message reduced to the fields the rules look at."""

    id: str
    subject: str
    sender_email: str
    sender_name: str = ""

    @property
    def display_subject(self) -> str:
        return self.subject or NO_SUBJECT


@dataclass(frozen=True)
class ProcessedRecord:
    """One successfully reclassified message."""

    message_id: str
    subject: str
    category_applied: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "subject": self.subject,
            "category_applied": self.category_applied,
        }


@dataclass(frozen=True)
class CleanupResult:
    """
    Outcome of a cleanup run.

    A run that could not start has an empty ``processed`` tuple and an
    ``error`` description. A run with nothing to do has neither.
    """

    processed: tuple[ProcessedRecord, ...] = field(default_factory=tuple)
    error: Optional[str] = None
    stage: RunStage = RunStage.IDLE

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "success" if self.success else "error",
            "stage": self.stage.value,
            "error": self.error,
            "processed": [record.to_dict() for record in self.processed],
        }

"""SQLite persistence for the sender rule table."""

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator, Optional

from labelsweep.models import RuleTable, SenderRule

logger = logging.getLogger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS rule_categories (
        category_id TEXT PRIMARY KEY,
        position INTEGER NOT NULL,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sender_rules (
        rule_id INTEGER PRIMARY KEY AUTOINCREMENT,
        category_id TEXT NOT NULL,
        sender_email TEXT NOT NULL,
        sender_name TEXT,
        created_at TEXT,
        UNIQUE (category_id, sender_email)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_sender_rules_category
    ON sender_rules(category_id)
    """,
)


def get_store_path() -> Path:
    """Get the path for the SQLite rule database."""
    data_dir = Path(os.getenv("DATA_DIR", "./data"))
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "labelsweep.db"


class RuleStore:
    """
    SQLite-backed store for the category id -> sender rules table.

    Category order is the order categories were first given a rule; rule
    order inside a category is insertion order. Both orders decide which
    rule wins when a sender is mapped more than once, so they are kept
    exactly as written.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize the rule store.

        Args:
            db_path: Path to the SQLite database. Uses default if not provided.
        """
        self.db_path = db_path or get_store_path()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with the schema in place."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            for statement in SCHEMA:
                conn.execute(statement)
            yield conn
        finally:
            conn.close()

    def load(self) -> RuleTable:
        """
        Read the whole rule table.

        A missing or unreadable database is treated as "no rules configured"
        and yields an empty table.
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    SELECT c.category_id, r.sender_email, r.sender_name
                    FROM rule_categories c
                    JOIN sender_rules r ON r.category_id = c.category_id
                    ORDER BY c.position, r.rule_id
                    """
                )
                table: RuleTable = {}
                for row in cursor:
                    table.setdefault(row["category_id"], []).append(
                        SenderRule(
                            sender_email=row["sender_email"],
                            sender_name=row["sender_name"] or "",
                        )
                    )
        except sqlite3.Error as e:
            logger.error("Error loading rule table from %s, using empty table: %s", self.db_path, e)
            return {}

        logger.debug("Loaded rules for %d categories", len(table))
        return table

    def save(self, table: RuleTable) -> None:
        """
        Replace the stored table with ``table``, keeping its order.

        Rules without an address, categories without an id, and repeated
        addresses within a category are dropped.
        """
        created_at = datetime.now(timezone.utc).isoformat()

        with self._get_connection() as conn:
            conn.execute("DELETE FROM sender_rules")
            conn.execute("DELETE FROM rule_categories")

            position = 0
            for category_id, rules in table.items():
                if not category_id or not str(category_id).strip():
                    logger.warning("Skipping rules stored under an empty category id")
                    continue

                inserted = 0
                for rule in rules:
                    normalized = SenderRule.create(rule.sender_email, rule.sender_name)
                    if not normalized.sender_email:
                        logger.warning("Skipping rule without sender email in %s", category_id)
                        continue
                    cursor = conn.execute(
                        """
                        INSERT OR IGNORE INTO sender_rules
                        (category_id, sender_email, sender_name, created_at)
                        VALUES (?, ?, ?, ?)
                        """,
                        (category_id, normalized.sender_email, normalized.sender_name, created_at),
                    )
                    inserted += cursor.rowcount

                if inserted:
                    conn.execute(
                        """
                        INSERT INTO rule_categories (category_id, position, created_at)
                        VALUES (?, ?, ?)
                        """,
                        (category_id, position, created_at),
                    )
                    position += 1

            conn.commit()

        logger.info("Saved rules for %d categories", position)

    def add_rule(
        self,
        category_id: str,
        sender_email: str,
        sender_name: str = "",
    ) -> bool:
        """
        Append a sender rule to a category.

        Args:
            category_id: Label id the rule moves mail into.
            sender_email: Sender address to match.
            sender_name: Optional display name, informational only.

        Returns:
            True if added, False if the address is already mapped to the category.

        Raises:
            ValueError: If the category id or address is empty.
        """
        rule = SenderRule.create(sender_email, sender_name)
        if not category_id or not category_id.strip():
            raise ValueError("Category id is required")
        if not rule.sender_email:
            raise ValueError("Sender email is required")

        created_at = datetime.now(timezone.utc).isoformat()

        with self._get_connection() as conn:
            existing = conn.execute(
                """
                SELECT 1 FROM sender_rules
                WHERE category_id = ? AND lower(sender_email) = ?
                """,
                (category_id, rule.sender_email),
            ).fetchone()
            if existing:
                return False

            conn.execute(
                """
                INSERT OR IGNORE INTO rule_categories (category_id, position, created_at)
                VALUES (?, (SELECT COALESCE(MAX(position), -1) + 1 FROM rule_categories), ?)
                """,
                (category_id, created_at),
            )
            conn.execute(
                """
                INSERT INTO sender_rules (category_id, sender_email, sender_name, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (category_id, rule.sender_email, rule.sender_name, created_at),
            )
            conn.commit()

        logger.info("Added rule %s -> %s", rule.sender_email, category_id)
        return True

    def remove_rule(self, category_id: str, sender_email: str) -> bool:
        """
        Remove a sender rule; drops the category entry once it has no rules.

        Returns:
            True if a rule was removed.
        """
        email = (sender_email or "").strip().lower()

        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                DELETE FROM sender_rules
                WHERE category_id = ? AND lower(sender_email) = ?
                """,
                (category_id, email),
            )
            removed = cursor.rowcount > 0

            conn.execute(
                """
                DELETE FROM rule_categories
                WHERE category_id = ?
                AND NOT EXISTS (
                    SELECT 1 FROM sender_rules WHERE sender_rules.category_id = ?
                )
                """,
                (category_id, category_id),
            )
            conn.commit()

        if removed:
            logger.info("Removed rule %s -> %s", email, category_id)
        return removed

    def rule_counts(self) -> dict[str, int]:
        """Get the number of rules per category id."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT category_id, COUNT(*) AS count FROM sender_rules GROUP BY category_id"
            )
            return {row["category_id"]: row["count"] for row in cursor}

    def clear(self) -> None:
        """Delete every rule."""
        with self._get_connection() as conn:
            conn.execute("DELETE FROM sender_rules")
            conn.execute("DELETE FROM rule_categories")
            conn.commit()

    def export_json(self, path: Path) -> int:
        """
        Write the table as ``{category_id: [{"senderEmail", "senderName"}]}``.

        Returns:
            Number of rules written.
        """
        table = self.load()
        data = {
            category_id: [
                {"senderEmail": rule.sender_email, "senderName": rule.sender_name}
                for rule in rules
            ]
            for category_id, rules in table.items()
        }
        Path(path).write_text(json.dumps(data, indent=2), encoding="utf-8")
        return sum(len(rules) for rules in table.values())

    def import_json(self, path: Path) -> int:
        """
        Replace the table with the contents of an exported JSON file.

        Returns:
            Number of rules stored.

        Raises:
            ValueError: If the file is not a category -> rule list mapping.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        table = table_from_dict(data)
        self.save(table)
        return sum(len(rules) for rules in self.load().values())


def table_from_dict(data: Any) -> RuleTable:
    """Build a RuleTable from the exported JSON shape."""
    if not isinstance(data, dict):
        raise ValueError("Rule file must map category ids to lists of rules")

    table: RuleTable = {}
    for category_id, entries in data.items():
        if not isinstance(entries, list):
            raise ValueError(f"Rules for {category_id!r} must be a list")
        rules = []
        for entry in entries:
            if not isinstance(entry, dict):
                logger.warning("Skipping malformed rule in %s: %r", category_id, entry)
                continue
            email = entry.get("senderEmail", entry.get("sender_email", ""))
            name = entry.get("senderName", entry.get("sender_name", ""))
            rules.append(SenderRule.create(str(email or ""), str(name or "")))
        table[category_id] = rules
    return table

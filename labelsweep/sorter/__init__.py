"""Inbox sorting: apply sender rules and run cleanups."""

from .cleanup import run_cleanup
from .driver import apply_rules

__all__ = [
    "apply_rules",
    "run_cleanup",
]

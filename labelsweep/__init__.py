"""labelsweep - move inbox mail into Gmail labels by sender rules."""

__version__ = "0.1.0"

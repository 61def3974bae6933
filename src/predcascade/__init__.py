"""PredCascade - hierarchical prediction markets with cascading spawn rules."""

__version__ = "0.1.0"

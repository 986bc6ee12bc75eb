"""KSEF judging engine: judge assignment, scoring, ranking and promotion."""

__version__ = "0.1.0"

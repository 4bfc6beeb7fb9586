"""TruthLens backend: event schedule and admin recovery services."""

__version__ = "1.0.0"

"""Scheduled fetch -> normalize -> load pipeline for a JSON endpoint."""

__version__ = "1.0.0"

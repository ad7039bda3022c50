"""Hierarchical markup and hospitality resolution for sports-ticket pricing."""

__version__ = "0.1.0"

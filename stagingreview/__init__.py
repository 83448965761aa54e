"""Staging review console for scraped product records."""

__version__ = "0.1.0"

"""Discogs Value Tracker — collection pricing history and analytics."""

__version__ = "0.1.0"

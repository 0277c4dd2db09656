"""Feedwire data models and SQLite database management."""

"""Feedwire configuration."""

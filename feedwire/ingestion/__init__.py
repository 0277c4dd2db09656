"""
Feedwire Ingestion Module
========================

Feed definitions, retrieval and content cleaning.

This module handles:
- Static feed registry lookups
- RSS/Atom fetching with caching and rate limiting
- Draft title, body and excerpt derivation
"""

"""
Feedwire Services
================

Operational surface shared by the CLI and any web layer.
"""

from .ingestion_service import IngestionService, create_ingestion_service

__all__ = [
    'IngestionService',
    'create_ingestion_service',
]

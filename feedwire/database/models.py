"""
Feedwire Data Models
===================

Pydantic data models shared by the ingestion engine: static feed
configuration, raw feed entries and the draft articles persisted for review.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any
import uuid

from pydantic import BaseModel, Field, field_validator

from ..utils.exceptions import ValidationError
from ..utils.validators import URLValidator, FeedValidator


class ArticleStatus(str, Enum):
    """Publication state of a stored article."""
    DRAFT = "draft"


class FeedConfig(BaseModel):
    """Configured external feed. Immutable once loaded."""
    name: str = Field(..., description="Unique human key, joins runs to stored drafts")
    url: str = Field(..., description="RSS/Atom document URL")
    enabled: bool = Field(default=True, description="Included in batch runs")
    max_items: int = Field(default=10, ge=1, description="Import cap per run")
    keywords: List[str] = Field(default_factory=list, description="Include keywords, any must match")
    exclude_keywords: List[str] = Field(default_factory=list, description="Any match disqualifies")
    priority_keywords: List[str] = Field(default_factory=list, description="Bypass the include requirement")
    category: str = Field(default="news", min_length=1, description="Category label for created drafts")

    model_config = {"frozen": True}

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        try:
            return FeedValidator.validate_feed_name(v)
        except ValidationError as e:
            raise ValueError(str(e)) from e

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        try:
            return URLValidator.validate_feed_url(v)
        except ValidationError as e:
            raise ValueError(str(e)) from e

    @field_validator('keywords', 'exclude_keywords', 'priority_keywords')
    @classmethod
    def validate_keywords(cls, v):
        """Normalize keywords to lower-case, trimmed, unique values."""
        try:
            return FeedValidator.normalize_keywords(v)
        except ValidationError as e:
            raise ValueError(str(e)) from e

    def __str__(self) -> str:
        return f"Feed({self.name}:{self.url})"


class RawEntry(BaseModel):
    """One parsed feed item, alive for a single pipeline run."""
    external_id: str = Field(..., min_length=1, description="Feed GUID, or the link when absent")
    title: str = Field(default="Untitled")
    link: str = Field(default="")
    summary: str = Field(default="")
    content: Optional[str] = Field(default=None, description="Full body when the feed carries one")
    published_at: Optional[datetime] = Field(default=None)
    source_feed_name: str = Field(default="")

    def __str__(self) -> str:
        return f"RawEntry({self.title[:50]})"


class ImportedArticle(BaseModel):
    """Draft article created from a feed entry."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique article ID")
    slug: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=1000)
    content: str = Field(default="")
    excerpt: str = Field(default="")
    status: ArticleStatus = Field(default=ArticleStatus.DRAFT)
    category: str = Field(default="news")
    source_feed_name: str = Field(..., min_length=1)
    external_id: str = Field(..., min_length=1)
    external_url: Optional[str] = Field(default=None)
    published_at: Optional[datetime] = Field(default=None)
    created_at: Optional[datetime] = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_db_row(cls, row: Dict[str, Any]) -> "ImportedArticle":
        return cls(**dict(row))

    def __str__(self) -> str:
        return f"ImportedArticle({self.title[:50]}...)"

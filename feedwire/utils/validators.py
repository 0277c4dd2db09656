"""
Feedwire Input Validators
========================

Validation utilities for feed URLs, feed names and keyword lists with
sanitization and basic security checks.
"""

import re
from urllib.parse import urlparse, urlunparse
from typing import Iterable, List

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation and sanitization utilities."""

    # Allowed schemes for RSS feeds
    ALLOWED_SCHEMES = {'http', 'https'}

    SUSPICIOUS_PATTERNS = [
        r'javascript:',
        r'data:',
        r'file:',
        r'ftp:',
        r'localhost',
        r'127\.0\.0\.1',
        r'10\.\d+\.\d+\.\d+',
        r'192\.168\.\d+\.\d+',
    ]

    @classmethod
    def validate_feed_url(cls, url: str) -> str:
        """Validate and normalize RSS feed URL.

        Args:
            url: URL to validate

        Returns:
            Normalized URL

        Raises:
            ValidationError: If URL is invalid
        """
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url"
            )

        url = url.strip()

        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise ValidationError(
                f"Invalid URL format: {str(e)}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url"
            ) from e

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                f"URL scheme must be {' or '.join(sorted(cls.ALLOWED_SCHEMES))}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url"
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url"
            )

        if cls._has_suspicious_patterns(url):
            raise ValidationError(
                "URL contains suspicious patterns",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url"
            )

        return urlunparse(parsed._replace(
            scheme=parsed.scheme.lower(),
            netloc=parsed.netloc.lower(),
            path=parsed.path or '/',
            fragment=''
        ))

    @classmethod
    def _has_suspicious_patterns(cls, url: str) -> bool:
        url_lower = url.lower()
        return any(re.search(pattern, url_lower) for pattern in cls.SUSPICIOUS_PATTERNS)


class FeedValidator:
    """Feed name and keyword validation."""

    MAX_FEED_NAME_LENGTH = 100
    MAX_KEYWORD_LENGTH = 100

    @classmethod
    def validate_feed_name(cls, name: str) -> str:
        """Validate a feed name, the join key between runs and stored drafts."""
        if not name or not isinstance(name, str) or not name.strip():
            raise ValidationError(
                "Feed name is required",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="name"
            )

        name = re.sub(r'\s+', ' ', name).strip()

        if len(name) > cls.MAX_FEED_NAME_LENGTH:
            raise ValidationError(
                f"Feed name cannot exceed {cls.MAX_FEED_NAME_LENGTH} characters",
                error_code=ErrorCode.VALIDATION_OUT_OF_RANGE,
                field_name="name"
            )

        return name

    @classmethod
    def normalize_keywords(cls, keywords: Iterable[str]) -> List[str]:
        """Lower-case, trim and de-duplicate keywords keeping first-seen order."""
        normalized = []
        seen = set()
        for keyword in keywords or []:
            if not isinstance(keyword, str):
                continue
            cleaned = re.sub(r'\s+', ' ', keyword).strip().lower()
            if not cleaned or cleaned in seen:
                continue
            if len(cleaned) > cls.MAX_KEYWORD_LENGTH:
                raise ValidationError(
                    f"Keyword '{cleaned[:20]}...' exceeds {cls.MAX_KEYWORD_LENGTH} characters",
                    error_code=ErrorCode.VALIDATION_OUT_OF_RANGE,
                    field_name="keywords"
                )
            seen.add(cleaned)
            normalized.append(cleaned)
        return normalized

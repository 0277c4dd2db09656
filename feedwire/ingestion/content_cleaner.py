"""
Content Cleaner
===============

Derives the draft article fields (title, body, excerpt) from a raw feed entry.

Feed bodies are usually WordPress or CMS exports full of embeds, download
buttons and builder markup. The cleaner strips that clutter with
BeautifulSoup, keeps the readable paragraphs and re-wraps them as plain
``<p>`` blocks so every draft starts from the same simple markup.
"""

import html
import re
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Comment

from ..database.models import RawEntry
from ..utils.logging import get_logger_for_component


class ContentCleaner:
    """HTML cleaner producing draft-ready body and excerpt text."""

    # Elements removed together with their content
    REMOVED_ELEMENTS = {
        "script",
        "style",
        "iframe",
        "embed",
        "object",
        "noscript",
        "form",
        "button",
    }

    # Class fragments marking CMS widgets rather than article text
    WIDGET_CLASS_PATTERN = re.compile(r"wp-block-file|wp-block-button|themify_builder", re.IGNORECASE)

    BLOCK_ELEMENTS = ["p", "li", "blockquote", "h1", "h2", "h3", "h4", "h5", "h6", "pre"]

    WHITESPACE_PATTERN = re.compile(r"\s+")
    UI_TEXT_PATTERN = re.compile(
        r"\b(download|more info|read more|click here|view pdf|embed of)\b", re.IGNORECASE
    )
    FILE_REFERENCE_PATTERN = re.compile(r"\b[a-z0-9-]+\.(pdf|doc|docx|jpg|png|gif)\b", re.IGNORECASE)
    URL_PATTERN = re.compile(r"\bhttps?://\S+", re.IGNORECASE)
    SENTENCE_SPLIT_PATTERN = re.compile(r"[.!?]+")

    MAX_TITLE_LENGTH = 200
    MIN_ARTICLE_TEXT = 50
    MIN_BODY_TEXT = 20
    MIN_PARAGRAPH_TEXT = 10
    EXCERPT_LENGTH = 150

    def __init__(self):
        self.logger = get_logger_for_component("content_cleaner")
        self.parser = "html.parser"

    def build_draft_fields(self, entry: RawEntry, feed_name: str) -> Tuple[str, str, str]:
        """Derive the title, body and excerpt of a draft from a feed entry.

        Args:
            entry: Parsed feed entry
            feed_name: Source feed name, used in fallback text

        Returns:
            Tuple of (title, body_html, excerpt)
        """
        title = self.clean_title(entry.title)

        body = self.clean_content(entry.content or entry.summary)
        if len(self.extract_text(body, minimum=0)) < self.MIN_ARTICLE_TEXT and entry.content:
            summary_body = self.clean_content(entry.summary)
            if len(summary_body) > len(body):
                body = summary_body

        excerpt = self.generate_excerpt(body, title)

        if len(self.extract_text(body, minimum=0)) < self.MIN_BODY_TEXT:
            self.logger.debug(f"Thin body for '{title[:50]}', using fallback content")
            body = self._fallback_body(title, excerpt, entry.link, feed_name)

        return title, body, excerpt

    def clean_title(self, title: str) -> str:
        title = self.WHITESPACE_PATTERN.sub(" ", title or "").strip()
        return title[:self.MAX_TITLE_LENGTH] or "Untitled"

    def clean_content(self, html_content: Optional[str]) -> str:
        """Strip clutter from feed HTML and re-wrap the text as paragraphs.

        Returns:
            Paragraph HTML, or an empty string when nothing readable remains
        """
        if not html_content or not html_content.strip():
            return ""

        soup = BeautifulSoup(html_content, self.parser)
        self._remove_clutter(soup)

        paragraphs = self._collect_paragraphs(soup)
        if paragraphs:
            return "\n".join(f"<p>{html.escape(p, quote=False)}</p>" for p in paragraphs)

        text = self._filter_text(soup.get_text(" ", strip=True))
        if len(text) > self.MIN_PARAGRAPH_TEXT:
            return f"<p>{html.escape(text, quote=False)}</p>"
        return ""

    def plain_text(self, html_content: Optional[str]) -> str:
        """Tag-free text of an HTML fragment, whitespace collapsed."""
        if not html_content:
            return ""
        text = BeautifulSoup(html_content, self.parser).get_text(" ", strip=True)
        return self.WHITESPACE_PATTERN.sub(" ", text)

    def extract_text(self, html_content: Optional[str], minimum: Optional[int] = None) -> str:
        """Readable plain text of an HTML fragment.

        Args:
            html_content: HTML to reduce
            minimum: Return an empty string when the text is not longer than
                this (default: the minimum article length)
        """
        if not html_content:
            return ""

        minimum = self.MIN_ARTICLE_TEXT if minimum is None else minimum
        soup = BeautifulSoup(html_content, self.parser)
        self._remove_clutter(soup)
        text = self._filter_text(soup.get_text(" ", strip=True))
        return text if len(text) > minimum else ""

    def generate_excerpt(self, content: str, title: str) -> str:
        """Short teaser: the first sentence, or the first ~150 characters."""
        text = self.extract_text(content, minimum=0)

        if len(text) > 20:
            first_sentence = self.SENTENCE_SPLIT_PATTERN.split(text)[0].strip()
            if 20 < len(first_sentence) <= 200:
                return first_sentence + "."

            excerpt = text[:self.EXCERPT_LENGTH].strip()
            last_space = excerpt.rfind(" ")
            if last_space > 100:
                excerpt = excerpt[:last_space]
            return excerpt + "..."

        if title and len(title) > 10:
            return f"Article from RSS feed: {title[:self.EXCERPT_LENGTH]}..."

        return "Article imported from RSS feed."

    def _remove_clutter(self, soup: BeautifulSoup) -> None:
        # Skip nodes already destroyed along with a removed ancestor
        for element in soup(list(self.REMOVED_ELEMENTS)):
            if not element.decomposed:
                element.decompose()

        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

        for element in soup.find_all(class_=self.WIDGET_CLASS_PATTERN):
            if not element.decomposed:
                element.decompose()

        for link in soup.find_all("a"):
            if link.decomposed:
                continue
            href = link.get("href", "") or ""
            if link.has_attr("download") or href.lower().endswith(".pdf"):
                link.decompose()

    def _collect_paragraphs(self, soup: BeautifulSoup) -> List[str]:
        paragraphs = []
        for block in soup.find_all(self.BLOCK_ELEMENTS):
            # Only leaf blocks, so nested text is not emitted twice
            if block.find(self.BLOCK_ELEMENTS):
                continue
            text = self._filter_text(block.get_text(" ", strip=True))
            if len(text) > self.MIN_PARAGRAPH_TEXT:
                paragraphs.append(text)
        return paragraphs

    def _filter_text(self, text: str) -> str:
        text = self.UI_TEXT_PATTERN.sub("", text)
        text = self.FILE_REFERENCE_PATTERN.sub("", text)
        text = self.URL_PATTERN.sub("", text)
        return self.WHITESPACE_PATTERN.sub(" ", text).strip()

    def _fallback_body(self, title: str, excerpt: str, link: str, feed_name: str) -> str:
        lead = excerpt if len(excerpt) > 10 else f"{title} - Article from {feed_name}"
        parts = [
            f"<p>{html.escape(lead, quote=False)}</p>",
            "<p>This article may contain media content, documents, or interactive "
            "elements that are best viewed on the original site.</p>",
        ]
        if link:
            parts.append(
                f'<p><a href="{html.escape(link)}" target="_blank" rel="noopener">'
                f"Read the full article at {html.escape(feed_name, quote=False)}</a></p>"
            )
        return "".join(parts)

"""Utility functions for sanitization and pagination."""

from typing import Optional, Sequence, Tuple

import bleach

from learning_platform import config

RICH_TEXT_TAGS = ["b", "i", "u", "em", "strong", "p", "br", "code", "pre", "ul", "ol", "li", "blockquote"]


def sanitize_text(text: Optional[str]) -> str:
    """Strip all HTML from user-supplied plain text (titles, comments)."""
    if text is None:
        return ""
    return bleach.clean(text, tags=[], strip=True).strip()


def sanitize_rich_text(text: Optional[str]) -> str:
    """Sanitize longer bodies such as news articles.

    Allows basic formatting tags but removes script/dangerous content.
    """
    if text is None:
        return ""
    return bleach.clean(text, tags=RICH_TEXT_TAGS, attributes={}, strip=True).strip()


def sanitize_tags(tags: Optional[Sequence[str]]) -> list[str]:
    """Clean a tag list, dropping empties and duplicates while keeping order."""
    cleaned: list[str] = []
    for tag in tags or []:
        value = sanitize_text(tag)
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


def get_pagination_params(limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
    """Clamp limit/offset query values into the configured bounds."""
    if not limit or limit < 1:
        limit = config.PAGINATION_DEFAULT_LIMIT
    limit = min(limit, config.PAGINATION_MAX_LIMIT)
    offset = max(offset or 0, 0)
    return limit, offset

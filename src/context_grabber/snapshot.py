"""
Page snapshot sanitization: loosely typed in-page snapshot to ExtractionInput.
"""

import re
from collections.abc import Mapping
from typing import Any, Optional

from context_grabber.errors import ProtocolError
from context_grabber.models.envelope import Heading, Link
from context_grabber.responder import ExtractionInput

MAX_LINKS = 200


def as_string(value: Any) -> Optional[str]:
    """Trimmed string, or None for non-strings and blank strings."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_text(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    value = re.sub(r"\r\n?", "\n", value)
    value = re.sub(r"[ \t]+\n", "\n", value)
    value = re.sub(r"\n{3,}", "\n\n", value)
    return value.strip()


def sanitize_headings(value: Any) -> list[Heading]:
    if not isinstance(value, list):
        return []

    headings: list[Heading] = []
    for item in value:
        if not isinstance(item, Mapping):
            continue
        level = item.get("level")
        text = as_string(item.get("text"))
        if isinstance(level, bool) or not isinstance(level, int) or not 1 <= level <= 6 or not text:
            continue
        headings.append(Heading(level=level, text=text))
    return headings


def sanitize_links(value: Any) -> list[Link]:
    """Drop incomplete links, deduplicate on (text, href), cap at MAX_LINKS."""
    if not isinstance(value, list):
        return []

    seen: set[tuple[str, str]] = set()
    links: list[Link] = []
    for item in value:
        if not isinstance(item, Mapping):
            continue
        text = as_string(item.get("text"))
        href = as_string(item.get("href"))
        if not text or not href or (text, href) in seen:
            continue
        seen.add((text, href))
        links.append(Link(text=text, href=href))
        if len(links) >= MAX_LINKS:
            break
    return links


def to_extraction_input(raw_snapshot: Any, include_selection_text: bool, browser_label: str) -> ExtractionInput:
    if not isinstance(raw_snapshot, Mapping):
        raise ProtocolError(f"{browser_label} extraction snapshot is not an object.")

    url = as_string(raw_snapshot.get("url"))
    title = as_string(raw_snapshot.get("title"))
    if not url or not title:
        raise ProtocolError(f"{browser_label} extraction is missing required url/title fields.")

    selection_text = as_string(raw_snapshot.get("selectionText")) if include_selection_text else None

    return ExtractionInput(
        url=url,
        title=title,
        full_text=normalize_text(raw_snapshot.get("fullText")),
        headings=sanitize_headings(raw_snapshot.get("headings")),
        links=sanitize_links(raw_snapshot.get("links")),
        meta_description=as_string(raw_snapshot.get("metaDescription")),
        site_name=as_string(raw_snapshot.get("siteName")),
        language=as_string(raw_snapshot.get("language")),
        author=as_string(raw_snapshot.get("author")),
        published_time=as_string(raw_snapshot.get("publishedTime")),
        selection_text=selection_text,
    )

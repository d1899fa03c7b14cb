"""
Content normalizer: raw capture payload to NormalizedContext.

Pure and deterministic: identical payload and options always produce an
identical record. Summarization is extractive; sentences are scored on length,
heading overlap, position and structure, never by a model.
"""

import re
from typing import NamedTuple, Optional, Union

import httpx

from context_grabber.models.context import ContentChunk, NormalizedContext, NormalizeOptions
from context_grabber.models.envelope import BrowserContextPayload, DesktopContextPayload, Heading
from context_grabber.models.events import (
    HARD_CHUNK_TOKENS,
    MAX_FULL_TEXT_CHARS,
    MAX_KEY_POINTS,
    MAX_RAW_EXCERPT_CHARS,
    MAX_SUMMARY_SENTENCES,
    TARGET_CHUNK_TOKENS,
    ExtractionMethod,
)

UNTITLED = "(untitled)"
NEAR_DUPLICATE_OVERLAP = 0.7

CONFIDENCE_BY_METHOD = {
    ExtractionMethod.BROWSER_EXTENSION: 0.92,
    ExtractionMethod.ACCESSIBILITY: 0.75,
    ExtractionMethod.OCR: 0.60,
    ExtractionMethod.METADATA_ONLY: 0.45,
}

_WORD_RE = re.compile(r"[a-z0-9]+")
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")
_PARAGRAPH_BOUNDARY_RE = re.compile(r"\n{2,}")


class ScoredSentence(NamedTuple):
    index: int
    sentence: str
    score: float
    words: frozenset[str]


# -- text primitives ---------------------------------------------------------

def to_words(text: str) -> list[str]:
    return _WORD_RE.findall(text.lower())


def estimate_tokens(text: str) -> int:
    """ceil(len/4) of the trimmed text; 0 for blank text."""
    trimmed = text.strip()
    if not trimmed:
        return 0
    return (len(trimmed) + 3) // 4


def sanitize_text(text: str) -> str:
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[\t ]+", " ", text)
    text = re.sub(r" \n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def split_sentences(text: str) -> list[str]:
    parts = (part.strip() for part in _SENTENCE_BOUNDARY_RE.split(text))
    return [part for part in parts if part]


def word_set_overlap(left: frozenset[str], right: frozenset[str]) -> float:
    if not left or not right:
        return 0.0
    return len(left & right) / min(len(left), len(right))


def unique_in_order(values: list[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        unique.append(value)
    return unique


# -- summarization -----------------------------------------------------------

def score_sentences(text: str, headings: list[Heading]) -> list[ScoredSentence]:
    heading_words = {word for heading in headings for word in to_words(heading.text)}
    scored: list[ScoredSentence] = []

    for index, sentence in enumerate(split_sentences(text)):
        words = frozenset(to_words(sentence))
        heading_overlap = len(words & heading_words)
        score = (
            min(len(words) / 24, 1)
            + min(heading_overlap, 4) * 0.6
            + 1 / (index + 1)
            + (0.2 if ":" in sentence else 0)
        )
        scored.append(ScoredSentence(index, sentence, score, words))

    return scored


def _by_score(scored: list[ScoredSentence]) -> list[ScoredSentence]:
    return sorted(scored, key=lambda entry: (-entry.score, entry.index))


def select_summary(scored: list[ScoredSentence]) -> list[str]:
    """Top sentences by score, returned in document order."""
    top = _by_score(scored)[:MAX_SUMMARY_SENTENCES]
    return [entry.sentence for entry in sorted(top, key=lambda entry: entry.index)]


def select_key_points(scored: list[ScoredSentence]) -> list[str]:
    selected: list[ScoredSentence] = []

    for candidate in _by_score(scored):
        if any(word_set_overlap(current.words, candidate.words) >= NEAR_DUPLICATE_OVERLAP for current in selected):
            continue
        selected.append(candidate)
        if len(selected) >= MAX_KEY_POINTS:
            break

    return [entry.sentence for entry in sorted(selected, key=lambda entry: entry.index)]


# -- chunking ----------------------------------------------------------------

def split_long_paragraph(paragraph: str) -> list[str]:
    """Split a paragraph above the hard token limit by sentences, else by characters."""
    sentences = split_sentences(paragraph)

    if len(sentences) <= 1:
        size = HARD_CHUNK_TOKENS * 4
        slices = (paragraph[offset:offset + size].strip() for offset in range(0, len(paragraph), size))
        return [piece for piece in slices if piece]

    parts: list[str] = []
    current: list[str] = []
    current_tokens = 0

    for sentence in sentences:
        sentence_tokens = estimate_tokens(sentence)
        if current_tokens > 0 and current_tokens + sentence_tokens > HARD_CHUNK_TOKENS:
            parts.append(" ".join(current))
            current = []
            current_tokens = 0
        current.append(sentence)
        current_tokens += sentence_tokens

    if current:
        parts.append(" ".join(current))
    return parts


class _ChunkBuilder:
    """Greedy paragraph packer: target size for normal flushes, hard size as a ceiling."""

    def __init__(self) -> None:
        self.chunks: list[ContentChunk] = []
        self._parts: list[str] = []
        self._tokens = 0

    def flush(self) -> None:
        if not self._parts:
            return
        text = "\n\n".join(self._parts).strip()
        self.chunks.append(ContentChunk(
            chunk_id=f"chunk-{len(self.chunks) + 1:03d}",
            token_estimate=estimate_tokens(text),
            text=text,
        ))
        self._parts = []
        self._tokens = 0

    def add(self, paragraph: str) -> None:
        tokens = estimate_tokens(paragraph)
        if self._tokens > 0 and self._tokens + tokens > TARGET_CHUNK_TOKENS:
            self.flush()
        self._parts.append(paragraph)
        self._tokens += tokens
        if self._tokens >= HARD_CHUNK_TOKENS:
            self.flush()


def create_chunks(text: str) -> list[ContentChunk]:
    paragraphs = (part.strip() for part in _PARAGRAPH_BOUNDARY_RE.split(text))
    builder = _ChunkBuilder()

    for paragraph in paragraphs:
        if not paragraph:
            continue
        if estimate_tokens(paragraph) <= HARD_CHUNK_TOKENS:
            builder.add(paragraph)
            continue
        for piece in split_long_paragraph(paragraph):
            builder.add(piece)

    builder.flush()
    return builder.chunks


# -- normalization -----------------------------------------------------------

def url_host(url: str) -> Optional[str]:
    try:
        parsed = httpx.URL(url)
        host, port = parsed.host, parsed.port
    except (httpx.InvalidURL, UnicodeError):
        return None
    if not host:
        return None
    return f"{host}:{port}" if port else host


def _truncate(text: str, warnings: list[str]) -> tuple[str, bool]:
    if len(text) <= MAX_FULL_TEXT_CHARS:
        return text, False
    warnings.append(f"Capture text exceeded {MAX_FULL_TEXT_CHARS} characters and was truncated.")
    return text[:MAX_FULL_TEXT_CHARS], True


def _build_context(
    *,
    text: str,
    headings: list[Heading],
    warnings: list[str],
    options: NormalizeOptions,
    source_type: str,
    title: str,
    origin: str,
    app_or_site: str,
    metadata: dict[str, str],
) -> NormalizedContext:
    normalized_text, truncated = _truncate(sanitize_text(text), warnings)
    scored = score_sentences(normalized_text, headings)

    return NormalizedContext(
        id=options.id,
        captured_at=options.captured_at,
        source_type=source_type,
        title=title.strip() or UNTITLED,
        origin=origin,
        app_or_site=app_or_site,
        extraction_method=options.extraction_method,
        confidence=CONFIDENCE_BY_METHOD[options.extraction_method],
        truncated=truncated,
        token_estimate=estimate_tokens(normalized_text),
        metadata=dict(sorted(metadata.items())),
        capture_warnings=unique_in_order(warnings),
        summary="\n".join(select_summary(scored)),
        key_points=select_key_points(scored),
        chunks=create_chunks(normalized_text),
        raw_excerpt=normalized_text[:MAX_RAW_EXCERPT_CHARS],
    )


def normalize_browser_context(payload: BrowserContextPayload, options: NormalizeOptions) -> NormalizedContext:
    warnings = [*(options.warnings or []), *(payload.extraction_warnings or [])]

    metadata = {"browser": payload.browser, "url": payload.url}
    optional_fields = {
        "meta_description": payload.meta_description,
        "site_name": payload.site_name,
        "language": payload.language,
        "author": payload.author,
        "published_time": payload.published_time,
    }
    metadata.update({key: value for key, value in optional_fields.items() if value})

    return _build_context(
        text=payload.full_text,
        headings=payload.headings,
        warnings=warnings,
        options=options,
        source_type="webpage",
        title=payload.title,
        origin=payload.url,
        app_or_site=payload.site_name or url_host(payload.url) or payload.browser,
        metadata=metadata,
    )


def normalize_desktop_context(payload: DesktopContextPayload, options: NormalizeOptions) -> NormalizedContext:
    """Desktop captures prefer accessibility text and fall back to OCR text."""
    warnings = [*(options.warnings or []), *(payload.extraction_warnings or [])]

    text = payload.accessibility_text or ""
    if not text.strip():
        text = payload.ocr_text or ""

    metadata = {
        "app_bundle_id": payload.app_bundle_id,
        "app_name": payload.app_name,
        "used_ocr": "true" if payload.used_ocr else "false",
    }
    if payload.window_title:
        metadata["window_title"] = payload.window_title
    if payload.ocr_confidence is not None:
        metadata["ocr_confidence"] = f"{payload.ocr_confidence:.2f}"

    return _build_context(
        text=text,
        headings=[],
        warnings=warnings,
        options=options,
        source_type="desktop_app",
        title=(payload.window_title or "").strip() or payload.app_name,
        origin=f"app://{payload.app_bundle_id or 'unknown'}",
        app_or_site=payload.app_name.strip() or payload.app_bundle_id,
        metadata=metadata,
    )


def normalize_context(
    payload: Union[BrowserContextPayload, DesktopContextPayload],
    options: NormalizeOptions,
) -> NormalizedContext:
    if isinstance(payload, DesktopContextPayload):
        return normalize_desktop_context(payload, options)
    return normalize_browser_context(payload, options)

"""
Normalized capture record: the canonical output consumed by the renderer.
"""

from typing import Literal, Optional

from pydantic import Field

from context_grabber.models.envelope import WireModel

SourceType = Literal["webpage", "desktop_app"]
ExtractionMethodLiteral = Literal["browser_extension", "accessibility", "ocr", "metadata_only"]


class ContentChunk(WireModel):
    chunk_id: str
    token_estimate: int
    text: str


class NormalizedContext(WireModel):
    id: str
    captured_at: str
    source_type: SourceType
    title: str
    origin: str
    app_or_site: str
    extraction_method: ExtractionMethodLiteral
    confidence: float = Field(ge=0, le=1)
    truncated: bool
    token_estimate: int
    metadata: dict[str, str]
    capture_warnings: list[str]
    summary: str
    key_points: list[str]
    chunks: list[ContentChunk]
    raw_excerpt: str


class NormalizeOptions(WireModel):
    """Caller-supplied identity and provenance for one normalization."""
    id: str
    captured_at: str
    extraction_method: ExtractionMethodLiteral
    warnings: Optional[list[str]] = None

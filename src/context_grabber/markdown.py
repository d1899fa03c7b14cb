"""
Markdown renderer: NormalizedContext to the fixed-schema capture document.

Frontmatter key order and body section order never vary; empty sections emit
placeholders instead of being omitted.
"""

from typing import Union

from context_grabber.models.context import NormalizedContext
from context_grabber.models.envelope import BrowserContextPayload, DesktopContextPayload

FRONTMATTER_KEYS = (
    "id",
    "captured_at",
    "source_type",
    "origin",
    "title",
    "app_or_site",
    "extraction_method",
    "confidence",
    "truncated",
    "token_estimate",
    "warnings",
)

SECTION_HEADINGS = (
    "## Summary",
    "## Key Points",
    "## Content Chunks",
    "## Raw Excerpt",
    "## Links & Metadata",
)


def yaml_quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def render_frontmatter(context: NormalizedContext) -> list[str]:
    lines = [
        "---",
        f"id: {yaml_quote(context.id)}",
        f"captured_at: {yaml_quote(context.captured_at)}",
        f"source_type: {yaml_quote(context.source_type)}",
        f"origin: {yaml_quote(context.origin)}",
        f"title: {yaml_quote(context.title)}",
        f"app_or_site: {yaml_quote(context.app_or_site)}",
        f"extraction_method: {yaml_quote(context.extraction_method)}",
        f"confidence: {context.confidence:.2f}",
        f"truncated: {'true' if context.truncated else 'false'}",
        f"token_estimate: {context.token_estimate}",
        "warnings:",
    ]

    if context.capture_warnings:
        lines.extend(f"  - {yaml_quote(warning)}" for warning in context.capture_warnings)
    else:
        lines.append('  - ""')

    lines.extend(["---", ""])
    return lines


def render_markdown(
    context: NormalizedContext,
    payload: Union[BrowserContextPayload, DesktopContextPayload],
) -> str:
    """Render the capture document. Body text is inserted verbatim."""
    key_points = "\n".join(f"- {point}" for point in context.key_points) or "- (none)"

    chunks = "\n\n".join(
        f"### {chunk.chunk_id} (tokens: {chunk.token_estimate})\n{chunk.text}"
        for chunk in context.chunks
    ) or "(none)"

    links = payload.links if isinstance(payload, BrowserContextPayload) else []
    link_lines = "\n".join(f"- [{link.text}]({link.href})" for link in links) or "- (none)"

    metadata_lines = "\n".join(
        f"- {key}: {value}" for key, value in sorted(context.metadata.items())
    ) or "- (none)"

    return "\n".join([
        *render_frontmatter(context),
        "## Summary",
        context.summary,
        "",
        "## Key Points",
        key_points,
        "",
        "## Content Chunks",
        chunks,
        "",
        "## Raw Excerpt",
        "```text",
        context.raw_excerpt,
        "```",
        "",
        "## Links & Metadata",
        "### Links",
        link_lines,
        "",
        "### Metadata",
        metadata_lines,
        "",
    ])

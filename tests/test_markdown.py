"""Unit tests for the markdown renderer."""

from context_grabber.markdown import SECTION_HEADINGS, render_markdown, yaml_quote
from context_grabber.models.context import NormalizeOptions
from context_grabber.models.envelope import BrowserContextPayload, DesktopContextPayload
from context_grabber.normalizer import normalize_context

OPTIONS = NormalizeOptions(id="cap-1", captured_at="2026-01-01T00:00:00.000Z", extraction_method="browser_extension")


def _render(payload, options=OPTIONS) -> str:
    return render_markdown(normalize_context(payload, options), payload)


def test_full_document():
    payload = BrowserContextPayload(
        source="browser",
        browser="chrome",
        url="https://example.com/a",
        title="Example",
        full_text="Hello world. Second sentence here.",
        headings=[],
        links=[{"text": "Docs", "href": "https://example.com/docs"}],
    )
    expected = "\n".join([
        "---",
        'id: "cap-1"',
        'captured_at: "2026-01-01T00:00:00.000Z"',
        'source_type: "webpage"',
        'origin: "https://example.com/a"',
        'title: "Example"',
        'app_or_site: "example.com"',
        'extraction_method: "browser_extension"',
        "confidence: 0.92",
        "truncated: false",
        "token_estimate: 9",
        "warnings:",
        '  - ""',
        "---",
        "",
        "## Summary",
        "Hello world.",
        "Second sentence here.",
        "",
        "## Key Points",
        "- Hello world.",
        "- Second sentence here.",
        "",
        "## Content Chunks",
        "### chunk-001 (tokens: 9)",
        "Hello world. Second sentence here.",
        "",
        "## Raw Excerpt",
        "```text",
        "Hello world. Second sentence here.",
        "```",
        "",
        "## Links & Metadata",
        "### Links",
        "- [Docs](https://example.com/docs)",
        "",
        "### Metadata",
        "- browser: chrome",
        "- url: https://example.com/a",
        "",
    ])
    assert _render(payload) == expected


def test_empty_capture_uses_placeholders():
    payload = BrowserContextPayload(
        source="browser",
        browser="safari",
        url="about:blank",
        title="(untitled)",
        full_text="",
        headings=[],
        links=[],
        extraction_warnings=["Timed out waiting for extension response."],
    )
    options = NormalizeOptions(
        id="cap-2",
        captured_at="2026-01-01T00:00:00.000Z",
        extraction_method="metadata_only",
        warnings=["Timed out waiting for extension response."],
    )
    markdown = _render(payload, options)

    assert 'warnings:\n  - "Timed out waiting for extension response."\n---' in markdown
    assert "confidence: 0.45" in markdown
    assert "## Summary\n\n\n## Key Points\n- (none)\n" in markdown
    assert "## Content Chunks\n(none)\n" in markdown
    assert "### Links\n- (none)\n" in markdown
    assert "```text\n\n```" in markdown


def test_sections_in_fixed_order(browser_payload):
    markdown = _render(BrowserContextPayload.model_validate(browser_payload()))
    positions = [markdown.index(f"\n{heading}\n") for heading in SECTION_HEADINGS]
    assert positions == sorted(positions)


def test_desktop_document_has_no_links():
    payload = DesktopContextPayload(
        source="desktop",
        app_bundle_id="com.apple.Notes",
        app_name="Notes",
        used_ocr=False,
        accessibility_text="Buy milk.",
    )
    options = NormalizeOptions(id="cap-3", captured_at="2026-01-01T00:00:00.000Z", extraction_method="accessibility")
    markdown = _render(payload, options)
    assert 'origin: "app://com.apple.Notes"' in markdown
    assert "### Links\n- (none)\n" in markdown
    assert "- used_ocr: false" in markdown


def test_yaml_quote_escapes():
    assert yaml_quote('say "hi"') == '"say \\"hi\\""'
    assert yaml_quote("C:\\path") == '"C:\\\\path"'


def test_title_with_quotes_is_escaped(browser_payload):
    markdown = _render(BrowserContextPayload.model_validate(browser_payload(title='The "best" guide')))
    assert 'title: "The \\"best\\" guide"' in markdown


def test_render_is_deterministic(browser_payload):
    payload = BrowserContextPayload.model_validate(browser_payload())
    assert _render(payload) == _render(payload)

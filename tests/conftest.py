"""Shared builders for wire-format payloads and envelopes."""

import pytest

from context_grabber.models.events import PROTOCOL_VERSION

REQUEST_ID = "req-0001"
TIMESTAMP = "2026-03-01T09:30:00.000Z"

ARTICLE_TEXT = (
    "Native messaging connects the extension to the desktop host. "
    "The host sends a capture request and waits for a bounded time.\n\n"
    "Protocol versions must match exactly: a mismatch is reported as an error. "
    "Large payloads are rejected before they are rendered."
)


def make_browser_payload(**overrides) -> dict:
    payload = {
        "source": "browser",
        "browser": "chrome",
        "url": "https://example.com/articles/native-messaging",
        "title": "Native Messaging Guide",
        "fullText": ARTICLE_TEXT,
        "headings": [{"level": 1, "text": "Native Messaging Guide"}],
        "links": [{"text": "Docs", "href": "https://example.com/docs"}],
    }
    payload.update(overrides)
    return payload


def make_response_message(capture=None, protocol_version=PROTOCOL_VERSION, id=REQUEST_ID, **overrides) -> dict:
    message = {
        "id": id,
        "type": "extension.capture.result",
        "timestamp": TIMESTAMP,
        "payload": {
            "protocolVersion": protocol_version,
            "capture": capture if capture is not None else make_browser_payload(),
        },
    }
    message.update(overrides)
    return message


def make_error_message(code="ERR_PAYLOAD_INVALID", message="Extraction failed.", id=REQUEST_ID, recoverable=True) -> dict:
    return {
        "id": id,
        "type": "extension.error",
        "timestamp": TIMESTAMP,
        "payload": {
            "protocolVersion": PROTOCOL_VERSION,
            "code": code,
            "message": message,
            "recoverable": recoverable,
        },
    }


def make_host_request(id=REQUEST_ID, protocol_version=PROTOCOL_VERSION, include_selection_text=True, timeout_ms=1200) -> dict:
    return {
        "id": id,
        "type": "host.capture.request",
        "timestamp": TIMESTAMP,
        "payload": {
            "protocolVersion": protocol_version,
            "requestId": id,
            "mode": "manual_hotkey",
            "requestedAt": TIMESTAMP,
            "timeoutMs": timeout_ms,
            "includeSelectionText": include_selection_text,
        },
    }


@pytest.fixture
def browser_payload():
    return make_browser_payload


@pytest.fixture
def response_message():
    return make_response_message


@pytest.fixture
def error_message():
    return make_error_message


@pytest.fixture
def host_request():
    return make_host_request

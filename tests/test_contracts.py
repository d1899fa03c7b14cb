"""Unit tests for protocol guards, response validation and factories."""

import pytest
from pydantic import ValidationError

from context_grabber.contracts import (
    ValidationIssue,
    create_capture_request,
    create_envelope,
    is_browser_context_payload,
    is_capture_message,
    is_capture_request_payload,
    is_desktop_context_payload,
    is_envelope,
    is_error_code,
    is_error_message,
    is_extension_message,
    is_host_request_message,
    is_protocol_version,
    parse_extension_message,
    parse_extension_response_message,
    parse_host_request_message,
    serialized_length,
    validate_browser_payload_size,
    validate_response,
)
from context_grabber.errors import ProtocolError
from context_grabber.models.envelope import (
    BrowserContextPayload,
    ErrorMessage,
    ExtensionResponseMessage,
)

TIMESTAMP = "2026-03-01T09:30:00.000Z"


def _desktop_payload(**overrides):
    payload = {
        "source": "desktop",
        "appBundleId": "com.apple.TextEdit",
        "appName": "TextEdit",
        "usedOcr": False,
        "accessibilityText": "Meeting notes.",
    }
    payload.update(overrides)
    return payload


class TestPrimitiveGuards:
    def test_protocol_version(self):
        assert is_protocol_version("1")
        assert not is_protocol_version("2")
        assert not is_protocol_version(1)

    def test_error_code(self):
        assert is_error_code("ERR_TIMEOUT")
        assert not is_error_code("ERR_UNKNOWN")
        assert not is_error_code(None)

    def test_envelope(self):
        assert is_envelope({"id": "a", "type": "t", "timestamp": TIMESTAMP, "payload": None})
        assert not is_envelope({"id": "a", "type": "t", "timestamp": TIMESTAMP})
        assert not is_envelope({"id": 1, "type": "t", "timestamp": TIMESTAMP, "payload": {}})
        assert not is_envelope("not an envelope")
        assert not is_envelope(None)


class TestPayloadGuards:
    def test_browser_payload(self, browser_payload):
        assert is_browser_context_payload(browser_payload())
        assert is_browser_context_payload(browser_payload(metaDescription=None, siteName="Example"))
        assert not is_browser_context_payload(browser_payload(browser="firefox"))
        assert not is_browser_context_payload(browser_payload(source="desktop"))
        assert not is_browser_context_payload(browser_payload(headings=[{"level": 7, "text": "Too deep"}]))
        assert not is_browser_context_payload(browser_payload(headings=[{"level": True, "text": "Bool"}]))
        assert not is_browser_context_payload(browser_payload(links=[{"text": "No href"}]))
        assert not is_browser_context_payload(browser_payload(extractionWarnings=[1]))

    def test_browser_payload_requires_source(self, browser_payload):
        payload = browser_payload()
        del payload["source"]
        assert not is_browser_context_payload(payload)

    def test_browser_payload_rejects_snake_case_keys(self, browser_payload):
        payload = browser_payload()
        payload["full_text"] = payload.pop("fullText")
        assert not is_browser_context_payload(payload)

    def test_desktop_payload(self):
        assert is_desktop_context_payload(_desktop_payload())
        assert is_desktop_context_payload(_desktop_payload(usedOcr=True, ocrText="Scanned", ocrConfidence=0.8))
        assert not is_desktop_context_payload(_desktop_payload(ocrConfidence=1.5))
        assert not is_desktop_context_payload(_desktop_payload(usedOcr="yes"))

    def test_capture_request_payload(self, host_request):
        payload = host_request()["payload"]
        assert is_capture_request_payload(payload)
        assert not is_capture_request_payload({**payload, "protocolVersion": "2"})
        assert not is_capture_request_payload({**payload, "timeoutMs": 0})
        assert not is_capture_request_payload({**payload, "timeoutMs": float("inf")})
        assert not is_capture_request_payload({**payload, "timeoutMs": "1200"})
        assert not is_capture_request_payload({**payload, "mode": "automatic"})


class TestMessageGuards:
    def test_host_request(self, host_request):
        assert is_host_request_message(host_request())
        assert not is_host_request_message({**host_request(), "type": "extension.error"})

    def test_extension_messages(self, response_message, error_message):
        assert is_extension_message(response_message())
        assert is_extension_message(error_message())
        assert is_error_message(error_message())
        assert not is_error_message(response_message())
        assert not is_error_message(error_message(code="ERR_SOMETHING_ELSE"))

    def test_capture_messages(self, browser_payload):
        browser = create_envelope("cap-1", "browser.capture", TIMESTAMP, browser_payload())
        desktop = create_envelope("cap-2", "desktop.capture", TIMESTAMP, _desktop_payload())
        mismatched = create_envelope("cap-3", "desktop.capture", TIMESTAMP, browser_payload())
        assert is_capture_message(browser)
        assert is_capture_message(desktop)
        assert not is_capture_message(mismatched)


class TestValidateResponse:
    def test_valid_response(self, response_message):
        result = validate_response(response_message())
        assert result.ok
        assert result.issues == []
        assert isinstance(result.value, ExtensionResponseMessage)
        assert result.value.payload.capture.title == "Native Messaging Guide"

    def test_accepts_model_instances(self, response_message):
        message = ExtensionResponseMessage.model_validate(response_message())
        assert validate_response(message).ok

    def test_not_an_envelope(self):
        result = validate_response("hello")
        assert not result.ok
        assert [issue.code for issue in result.issues] == ["ERR_PAYLOAD_INVALID"]

    def test_unserializable_message(self, response_message):
        message = response_message()
        message["payload"]["capture"]["extra"] = {1, 2}
        result = validate_response(message)
        assert [issue.code for issue in result.issues] == ["ERR_PAYLOAD_INVALID"]

    def test_version_mismatch_is_first_issue(self, response_message):
        result = validate_response(response_message(capture={"unexpected": True}, protocol_version="2"))
        assert [issue.code for issue in result.issues] == ["ERR_PROTOCOL_VERSION"]

    def test_wrong_type(self, response_message):
        result = validate_response(response_message(type="extension.error"))
        assert result.issues[0].code == "ERR_PAYLOAD_INVALID"
        assert "extension.error" in result.issues[0].message

    def test_invalid_shape(self, response_message, browser_payload):
        capture = browser_payload()
        del capture["title"]
        result = validate_response(response_message(capture=capture))
        assert [issue.code for issue in result.issues] == ["ERR_PAYLOAD_INVALID"]

    def test_full_text_over_limit(self, response_message, browser_payload):
        result = validate_response(response_message(capture=browser_payload(fullText="a" * 200_001)))
        assert [issue.code for issue in result.issues] == ["ERR_PAYLOAD_TOO_LARGE"]
        assert "fullText" in result.issues[0].message

    def test_full_text_at_limit_is_accepted(self, response_message, browser_payload):
        assert validate_response(response_message(capture=browser_payload(fullText="a" * 200_000))).ok

    def test_oversized_reports_both_size_issues(self, response_message, browser_payload):
        result = validate_response(response_message(capture=browser_payload(fullText="a" * 260_000)))
        assert [issue.code for issue in result.issues] == ["ERR_PAYLOAD_TOO_LARGE", "ERR_PAYLOAD_TOO_LARGE"]
        assert "fullText" in result.issues[0].message
        assert "Serialized" in result.issues[1].message

    def test_shape_issue_precedes_size_issue(self, response_message, browser_payload):
        capture = browser_payload(fullText="a" * 260_000)
        del capture["title"]
        result = validate_response(response_message(capture=capture))
        assert [issue.code for issue in result.issues] == ["ERR_PAYLOAD_INVALID", "ERR_PAYLOAD_TOO_LARGE"]

    def test_snake_case_keys_are_invalid_not_raised(self, response_message, browser_payload):
        capture = browser_payload()
        capture["full_text"] = capture.pop("fullText")
        message = response_message(capture=capture)
        message["payload"]["protocol_version"] = message["payload"].pop("protocolVersion")

        result = validate_response(message)

        assert not result.ok
        assert result.value is None
        assert [issue.code for issue in result.issues] == ["ERR_PAYLOAD_INVALID"]

    def test_snake_case_capture_is_invalid(self, response_message, browser_payload):
        capture = browser_payload()
        capture["full_text"] = capture.pop("fullText")
        result = validate_response(response_message(capture=capture))
        assert [issue.code for issue in result.issues] == ["ERR_PAYLOAD_INVALID"]

    def test_issue_code_must_be_known(self):
        with pytest.raises(ValidationError):
            ValidationIssue(code="ERR_BOGUS", message="Unknown.")


class TestPayloadSize:
    def test_small_payload(self, browser_payload):
        payload = BrowserContextPayload.model_validate(browser_payload())
        result = validate_browser_payload_size(payload)
        assert result.ok
        assert result.value == payload

    def test_large_payload(self, browser_payload):
        result = validate_browser_payload_size(browser_payload(fullText="a" * 200_001))
        assert [issue.code for issue in result.issues] == ["ERR_PAYLOAD_TOO_LARGE"]

    def test_serialized_length(self):
        assert serialized_length({"a": "é"}) == len('{"a":"é"}')
        assert serialized_length({"a": object()}) is None


class TestFactoriesAndParsers:
    def test_create_capture_request(self):
        request = create_capture_request("req-9", "manual_menu", 1200, TIMESTAMP, include_selection_text=False)
        assert request.to_wire() == {
            "id": "req-9",
            "type": "host.capture.request",
            "timestamp": TIMESTAMP,
            "payload": {
                "protocolVersion": "1",
                "requestId": "req-9",
                "mode": "manual_menu",
                "requestedAt": TIMESTAMP,
                "timeoutMs": 1200,
                "includeSelectionText": False,
            },
        }
        assert is_host_request_message(request)

    def test_parse_extension_message(self, response_message, error_message):
        assert isinstance(parse_extension_message(response_message()), ExtensionResponseMessage)
        parsed = parse_extension_message(error_message(code="ERR_TIMEOUT"))
        assert isinstance(parsed, ErrorMessage)
        assert parsed.payload.code == "ERR_TIMEOUT"
        with pytest.raises(ProtocolError):
            parse_extension_message({"id": "x"})

    def test_parse_host_request_message(self, host_request):
        assert parse_host_request_message(host_request()).payload.timeout_ms == 1200
        with pytest.raises(ProtocolError):
            parse_host_request_message(host_request(protocol_version="2"))

    def test_parse_extension_response_carries_first_issue_code(self, response_message):
        with pytest.raises(ProtocolError) as exc_info:
            parse_extension_response_message(response_message(protocol_version="0"))
        assert exc_info.value.code == "ERR_PROTOCOL_VERSION"

"""
Protocol contracts: structural guards and size validation for native messages.

Guards and validators never raise: malformed input is reported through a
boolean or a `ValidationResult`. Issue ordering in `validate_response` is part
of the contract, because the capture orchestrator falls back using the first
issue:

1. not an envelope, or not serializable (single issue, short-circuit)
2. shape issues: protocol version, message type, payload shape
3. size issues: `fullText` length, then serialized envelope length
"""

import json
from collections.abc import Mapping
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from context_grabber.errors import ProtocolError
from context_grabber.models.envelope import (
    BrowserContextPayload,
    CaptureRequestPayload,
    DesktopContextPayload,
    Envelope,
    ErrorCodeLiteral,
    ErrorMessage,
    ErrorPayload,
    ExtensionResponseMessage,
    ExtensionResponsePayload,
    HostRequestMessage,
)
from context_grabber.models.events import (
    MAX_ENVELOPE_CHARS,
    MAX_FULL_TEXT_CHARS,
    PROTOCOL_VERSION,
    ErrorCode,
    MessageType,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ValidationIssue(BaseModel):
    model_config = {"frozen": True}

    code: ErrorCodeLiteral
    message: str


class ValidationResult(BaseModel):
    """`ok=True` carries the parsed `value`; `ok=False` carries ordered `issues`."""

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    ok: bool
    value: Optional[Any] = None
    issues: list[ValidationIssue] = []

    @classmethod
    def success(cls, value: Any) -> "ValidationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, issues: list[ValidationIssue]) -> "ValidationResult":
        return cls(ok=False, issues=issues)


def _to_raw(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    return value


def _from_wire(model: type[ModelT], value: Any) -> ModelT:
    """Validate wire data; only camelCase aliases are accepted as keys."""
    return model.model_validate(_to_raw(value), by_alias=True, by_name=False)


def _parse(model: type[ModelT], value: Any) -> Optional[ModelT]:
    try:
        return _from_wire(model, value)
    except ValidationError:
        return None


def serialized_length(value: Any) -> Optional[int]:
    """Length of the compact JSON form of `value`, or None if it cannot be serialized."""
    try:
        return len(json.dumps(_to_raw(value), ensure_ascii=False, separators=(",", ":")))
    except (TypeError, ValueError, RecursionError):
        return None


# -- primitive guards --------------------------------------------------------

def is_protocol_version(value: Any) -> bool:
    return isinstance(value, str) and value == PROTOCOL_VERSION


def is_error_code(value: Any) -> bool:
    return isinstance(value, str) and value in ErrorCode.ALL


# -- payload guards ----------------------------------------------------------

def is_envelope(value: Any) -> bool:
    raw = _to_raw(value)
    if not isinstance(raw, Mapping):
        return False
    return (
        isinstance(raw.get("id"), str)
        and isinstance(raw.get("type"), str)
        and isinstance(raw.get("timestamp"), str)
        and "payload" in raw
    )


def is_browser_context_payload(value: Any) -> bool:
    return _parse(BrowserContextPayload, value) is not None


def is_desktop_context_payload(value: Any) -> bool:
    return _parse(DesktopContextPayload, value) is not None


def is_capture_request_payload(value: Any) -> bool:
    payload = _parse(CaptureRequestPayload, value)
    return payload is not None and is_protocol_version(payload.protocol_version)


def is_extension_response_payload(value: Any) -> bool:
    payload = _parse(ExtensionResponsePayload, value)
    return payload is not None and is_protocol_version(payload.protocol_version)


def is_error_payload(value: Any) -> bool:
    payload = _parse(ErrorPayload, value)
    return payload is not None and is_protocol_version(payload.protocol_version)


# -- message guards ----------------------------------------------------------

def _is_typed_message(value: Any, message_type: str) -> bool:
    return is_envelope(value) and _to_raw(value)["type"] == message_type


def is_host_request_message(value: Any) -> bool:
    return (
        _is_typed_message(value, MessageType.HOST_CAPTURE_REQUEST)
        and is_capture_request_payload(_to_raw(value)["payload"])
    )


def is_extension_response_message(value: Any) -> bool:
    return (
        _is_typed_message(value, MessageType.EXTENSION_CAPTURE_RESULT)
        and is_extension_response_payload(_to_raw(value)["payload"])
    )


def is_error_message(value: Any) -> bool:
    return (
        _is_typed_message(value, MessageType.EXTENSION_ERROR)
        and is_error_payload(_to_raw(value)["payload"])
    )


def is_extension_message(value: Any) -> bool:
    return is_extension_response_message(value) or is_error_message(value)


def is_capture_message(value: Any) -> bool:
    """browser.capture / desktop.capture envelopes with a matching payload."""
    if not is_envelope(value):
        return False
    raw = _to_raw(value)
    if raw["type"] == MessageType.BROWSER_CAPTURE:
        return is_browser_context_payload(raw["payload"])
    if raw["type"] == MessageType.DESKTOP_CAPTURE:
        return is_desktop_context_payload(raw["payload"])
    return False


# -- validators --------------------------------------------------------------

def validate_browser_payload_size(payload: Any) -> ValidationResult:
    """Check a browser payload against the full-text and serialized-size bounds."""
    raw = _to_raw(payload)
    issues: list[ValidationIssue] = []

    full_text = raw.get("fullText", "") if isinstance(raw, Mapping) else ""
    if isinstance(full_text, str) and len(full_text) > MAX_FULL_TEXT_CHARS:
        issues.append(ValidationIssue(
            code=ErrorCode.PAYLOAD_TOO_LARGE,
            message=f"fullText length ({len(full_text)}) exceeds {MAX_FULL_TEXT_CHARS}.",
        ))

    length = serialized_length(raw)
    if length is None:
        issues.append(ValidationIssue(
            code=ErrorCode.PAYLOAD_INVALID,
            message="Browser payload could not be serialized.",
        ))
    elif length > MAX_ENVELOPE_CHARS:
        issues.append(ValidationIssue(
            code=ErrorCode.PAYLOAD_TOO_LARGE,
            message=f"Serialized payload length ({length}) exceeds {MAX_ENVELOPE_CHARS}.",
        ))

    if issues:
        return ValidationResult.failure(issues)
    return ValidationResult.success(payload)


def _shape_issues(raw: Mapping[str, Any]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    payload = raw["payload"]

    version = payload.get("protocolVersion") if isinstance(payload, Mapping) else None
    version_mismatch = version is not None and not is_protocol_version(version)
    if version_mismatch:
        issues.append(ValidationIssue(
            code=ErrorCode.PROTOCOL_VERSION,
            message=f"Protocol version mismatch: expected {PROTOCOL_VERSION}, got {version!r}.",
        ))

    if raw["type"] != MessageType.EXTENSION_CAPTURE_RESULT:
        issues.append(ValidationIssue(
            code=ErrorCode.PAYLOAD_INVALID,
            message=f"Unexpected message type: {raw['type']}.",
        ))

    # a mismatched version means the payload shape is unknown; do not inspect it
    if not version_mismatch and not is_extension_response_payload(payload):
        issues.append(ValidationIssue(
            code=ErrorCode.PAYLOAD_INVALID,
            message="Message payload does not match extension capture response shape.",
        ))

    return issues


def validate_response(value: Any) -> ValidationResult:
    """Validate an extension capture response envelope.

    Returns `ValidationResult.success(ExtensionResponseMessage)` or a failure
    whose issues are ordered shape-before-size.
    """
    raw = _to_raw(value)
    if not is_envelope(raw):
        return ValidationResult.failure([ValidationIssue(
            code=ErrorCode.PAYLOAD_INVALID,
            message="Message is not a valid envelope.",
        )])

    length = serialized_length(raw)
    if length is None:
        return ValidationResult.failure([ValidationIssue(
            code=ErrorCode.PAYLOAD_INVALID,
            message="Extension response message could not be serialized.",
        )])

    issues = _shape_issues(raw)

    response = _parse(ExtensionResponseMessage, raw) if not issues else None
    if not issues and response is None:
        issues.append(ValidationIssue(
            code=ErrorCode.PAYLOAD_INVALID,
            message="Message does not match extension capture response envelope.",
        ))

    if response is not None:
        full_text = response.payload.capture.full_text
        if len(full_text) > MAX_FULL_TEXT_CHARS:
            issues.append(ValidationIssue(
                code=ErrorCode.PAYLOAD_TOO_LARGE,
                message=f"fullText length ({len(full_text)}) exceeds {MAX_FULL_TEXT_CHARS}.",
            ))

    if length > MAX_ENVELOPE_CHARS:
        issues.append(ValidationIssue(
            code=ErrorCode.PAYLOAD_TOO_LARGE,
            message=f"Serialized message length ({length}) exceeds {MAX_ENVELOPE_CHARS}.",
        ))

    if issues:
        return ValidationResult.failure(issues)
    return ValidationResult.success(response)


# -- factories ---------------------------------------------------------------

def create_envelope(id: str, type: str, timestamp: str, payload: Any) -> Envelope[Any]:
    return Envelope[Any](id=id, type=type, timestamp=timestamp, payload=payload)


def create_capture_request(
    request_id: str,
    mode: str,
    timeout_ms: float,
    timestamp: str,
    include_selection_text: bool = True,
) -> HostRequestMessage:
    """Build the host.capture.request envelope sent to the extension backend."""
    return HostRequestMessage(
        id=request_id,
        timestamp=timestamp,
        payload=CaptureRequestPayload(
            protocol_version=PROTOCOL_VERSION,
            request_id=request_id,
            mode=mode,
            requested_at=timestamp,
            timeout_ms=timeout_ms,
            include_selection_text=include_selection_text,
        ),
    )


# -- raising parsers ---------------------------------------------------------

def parse_extension_message(value: Any) -> Any:
    """Return a typed ExtensionResponseMessage or ErrorMessage; raise ProtocolError otherwise."""
    if is_error_message(value):
        return _from_wire(ErrorMessage, value)
    if is_extension_response_message(value):
        return _from_wire(ExtensionResponseMessage, value)
    raise ProtocolError("Invalid extension message envelope.")


def parse_host_request_message(value: Any) -> HostRequestMessage:
    if not is_host_request_message(value):
        raise ProtocolError("Invalid host request message envelope.")
    return _from_wire(HostRequestMessage, value)


def parse_extension_response_message(value: Any) -> ExtensionResponseMessage:
    result = validate_response(value)
    if not result.ok:
        messages = "; ".join(issue.message for issue in result.issues)
        raise ProtocolError(
            f"Invalid extension response message: {messages}",
            code=result.issues[0].code,
        )
    return result.value

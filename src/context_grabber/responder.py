"""
Extension-side handler for host capture requests.

The backend half of the protocol: accept a host.capture.request, load the
active tab through an injected loader, and answer with either an
extension.capture.result or an extension.error envelope. Never raises for bad
requests or loader failures.
"""

import logging
import uuid
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel

from context_grabber.capture import utc_now_iso
from context_grabber.contracts import is_host_request_message, parse_host_request_message, validate_browser_payload_size
from context_grabber.models.envelope import (
    BrowserContextPayload,
    ErrorMessage,
    ErrorPayload,
    ExtensionResponseMessage,
    ExtensionResponsePayload,
    Heading,
    HostRequestMessage,
    Link,
    WireModel,
)
from context_grabber.models.events import PROTOCOL_VERSION, ErrorCode

logger = logging.getLogger(__name__)


class ExtractionInput(WireModel):
    """Browser-agnostic page snapshot produced by a tab extractor."""

    url: str
    title: str
    full_text: str
    headings: list[Heading] = []
    links: list[Link] = []
    meta_description: Optional[str] = None
    site_name: Optional[str] = None
    language: Optional[str] = None
    author: Optional[str] = None
    published_time: Optional[str] = None
    selection_text: Optional[str] = None
    extraction_warnings: Optional[list[str]] = None


LoadCaptureFn = Callable[[HostRequestMessage], Awaitable[ExtractionInput]]


def create_browser_payload(extraction: ExtractionInput, browser: str) -> BrowserContextPayload:
    return BrowserContextPayload(
        source="browser",
        browser=browser,
        **extraction.model_dump(exclude_none=True),
    )


def create_capture_response_message(capture: BrowserContextPayload, id: str, timestamp: str) -> ExtensionResponseMessage:
    return ExtensionResponseMessage(
        id=id,
        timestamp=timestamp,
        payload=ExtensionResponsePayload(protocol_version=PROTOCOL_VERSION, capture=capture),
    )


def create_error_message(
    code: str,
    message: str,
    id: str,
    timestamp: str,
    recoverable: bool = True,
    details: Optional[dict[str, str]] = None,
) -> ErrorMessage:
    return ErrorMessage(
        id=id,
        timestamp=timestamp,
        payload=ErrorPayload(
            protocol_version=PROTOCOL_VERSION,
            code=code,
            message=message,
            recoverable=recoverable,
            details=details,
        ),
    )


def _raw(request: Any) -> Any:
    if isinstance(request, BaseModel):
        return request.model_dump(mode="json", by_alias=True)
    return request


def _infer_request_id(request: Any) -> str:
    raw = _raw(request)
    if isinstance(raw, Mapping) and isinstance(raw.get("id"), str):
        return raw["id"]
    return str(uuid.uuid4())


def _infer_protocol_version(request: Any) -> Optional[str]:
    raw = _raw(request)
    payload = raw.get("payload") if isinstance(raw, Mapping) else None
    if isinstance(payload, Mapping) and isinstance(payload.get("protocolVersion"), str):
        return payload["protocolVersion"]
    return None


async def handle_host_capture_request(
    request: Any,
    load_capture: LoadCaptureFn,
    browser: str,
    now: Optional[Callable[[], str]] = None,
) -> Union[ExtensionResponseMessage, ErrorMessage]:
    timestamp = now() if now else utc_now_iso()
    request_id = _infer_request_id(request)

    if not is_host_request_message(request):
        version = _infer_protocol_version(request)
        if version is not None and version != PROTOCOL_VERSION:
            return create_error_message(
                ErrorCode.PROTOCOL_VERSION,
                f"Protocol version mismatch. Expected {PROTOCOL_VERSION}.",
                request_id, timestamp, recoverable=False,
            )
        return create_error_message(
            ErrorCode.PAYLOAD_INVALID,
            "Host capture request payload is invalid.",
            request_id, timestamp, recoverable=False,
        )

    host_request = parse_host_request_message(request)
    try:
        extraction = await load_capture(host_request)
    except Exception as e:
        logger.error(f"Active tab load failed for {host_request.id}: {e}")
        return create_error_message(
            ErrorCode.EXTENSION_UNAVAILABLE,
            f"Failed to load active tab context: {e}",
            host_request.id, timestamp, recoverable=True,
        )

    payload = create_browser_payload(extraction, browser)
    if not host_request.payload.include_selection_text and payload.selection_text is not None:
        payload = payload.model_copy(update={"selection_text": None})

    size = validate_browser_payload_size(payload)
    if not size.ok:
        issue = size.issues[0]
        return create_error_message(issue.code, issue.message, host_request.id, timestamp, recoverable=True)

    return create_capture_response_message(payload, host_request.id, timestamp)

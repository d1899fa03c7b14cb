"""
Native message envelope and payload models.

Wire names are camelCase (`protocolVersion`, `fullText`); Python attributes are
snake_case. Primitive fields are strict (no coercion) and models are frozen.
"""

import math
from typing import Any, Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator
from pydantic.alias_generators import to_camel

from context_grabber.models.events import MessageType

PayloadT = TypeVar("PayloadT")

ErrorCodeLiteral = Literal[
    "ERR_PROTOCOL_VERSION",
    "ERR_PAYLOAD_INVALID",
    "ERR_TIMEOUT",
    "ERR_EXTENSION_UNAVAILABLE",
    "ERR_PAYLOAD_TOO_LARGE",
]

StrictNumber = Union[StrictInt, StrictFloat]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Heading(WireModel):
    level: StrictInt = Field(ge=1, le=6)
    text: StrictStr


class Link(WireModel):
    text: StrictStr
    href: StrictStr


class BrowserContextPayload(WireModel):
    source: Literal["browser"]
    browser: Literal["chrome", "safari"]
    url: StrictStr
    title: StrictStr
    full_text: StrictStr
    headings: list[Heading]
    links: list[Link]
    meta_description: Optional[StrictStr] = None
    site_name: Optional[StrictStr] = None
    language: Optional[StrictStr] = None
    author: Optional[StrictStr] = None
    published_time: Optional[StrictStr] = None
    selection_text: Optional[StrictStr] = None
    extraction_warnings: Optional[list[StrictStr]] = None


class DesktopContextPayload(WireModel):
    source: Literal["desktop"]
    app_bundle_id: StrictStr
    app_name: StrictStr
    used_ocr: StrictBool
    window_title: Optional[StrictStr] = None
    accessibility_text: Optional[StrictStr] = None
    ocr_text: Optional[StrictStr] = None
    ocr_confidence: Optional[StrictNumber] = None
    extraction_warnings: Optional[list[StrictStr]] = None

    @field_validator("ocr_confidence")
    @classmethod
    def _unit_interval(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not 0 <= value <= 1:
            raise ValueError("ocrConfidence must be within [0, 1]")
        return value


class CaptureRequestPayload(WireModel):
    protocol_version: StrictStr
    request_id: StrictStr
    mode: Literal["manual_hotkey", "manual_menu"]
    requested_at: StrictStr
    timeout_ms: StrictNumber
    include_selection_text: StrictBool

    @field_validator("timeout_ms")
    @classmethod
    def _positive_finite(cls, value: float) -> float:
        if not math.isfinite(value) or value <= 0:
            raise ValueError("timeoutMs must be a positive finite number")
        return value


class ExtensionResponsePayload(WireModel):
    protocol_version: StrictStr
    capture: BrowserContextPayload


class ErrorPayload(WireModel):
    protocol_version: StrictStr
    code: ErrorCodeLiteral
    message: StrictStr
    recoverable: StrictBool
    details: Optional[dict[StrictStr, StrictStr]] = None


class Envelope(BaseModel, Generic[PayloadT]):
    """Outer wrapper shared by every protocol message."""

    model_config = ConfigDict(frozen=True)

    id: StrictStr
    type: StrictStr
    timestamp: StrictStr
    payload: PayloadT

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class HostRequestMessage(Envelope[CaptureRequestPayload]):
    type: Literal["host.capture.request"] = MessageType.HOST_CAPTURE_REQUEST


class ExtensionResponseMessage(Envelope[ExtensionResponsePayload]):
    type: Literal["extension.capture.result"] = MessageType.EXTENSION_CAPTURE_RESULT


class ErrorMessage(Envelope[ErrorPayload]):
    type: Literal["extension.error"] = MessageType.EXTENSION_ERROR


class BrowserCaptureMessage(Envelope[BrowserContextPayload]):
    type: Literal["browser.capture"] = MessageType.BROWSER_CAPTURE


class DesktopCaptureMessage(Envelope[DesktopContextPayload]):
    type: Literal["desktop.capture"] = MessageType.DESKTOP_CAPTURE


ExtensionMessage = Union[ExtensionResponseMessage, ErrorMessage]

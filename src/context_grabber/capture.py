"""
Capture orchestrator: one timeout-bounded browser capture attempt.

Flow:
  build host.capture.request -> send() raced against timeout_ms -> validate
  -> success (browser_extension) or metadata-only fallback -> normalize -> render

Every branch goes through the same normalize/render path, so callers always
get a complete markdown document. Protocol and transport failures never raise;
they surface as `extraction_method == "metadata_only"` plus `error_code`.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Literal, Optional, Union

from pydantic import BaseModel

from context_grabber.contracts import (
    create_capture_request,
    is_error_message,
    is_extension_message,
    parse_extension_message,
    validate_response,
)
from context_grabber.markdown import render_markdown
from context_grabber.models.context import ExtractionMethodLiteral, NormalizedContext, NormalizeOptions
from context_grabber.models.envelope import (
    BrowserContextPayload,
    ErrorCodeLiteral,
    ErrorMessage,
    ExtensionResponseMessage,
    HostRequestMessage,
)
from context_grabber.models.events import DEFAULT_TIMEOUT_MS, ErrorCode, ExtractionMethod
from context_grabber.normalizer import UNTITLED, normalize_browser_context

logger = logging.getLogger(__name__)

SendFn = Callable[[HostRequestMessage], Awaitable[Any]]

BLANK_URL = "about:blank"
TIMEOUT_WARNING = "Timed out waiting for extension response."
UNAVAILABLE_WARNING = "Extension transport is unavailable."


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BrowserCaptureMetadata(BaseModel):
    """What the host already knows about the tab, used for metadata-only fallbacks."""

    model_config = {"frozen": True}

    browser: Literal["chrome", "safari"]
    url: Optional[str] = None
    title: Optional[str] = None
    site_name: Optional[str] = None


class CaptureAttempt(BaseModel):
    model_config = {"frozen": True}

    request: HostRequestMessage
    response: Optional[Union[ExtensionResponseMessage, ErrorMessage]] = None
    extraction_method: ExtractionMethodLiteral
    warnings: list[str]
    error_code: Optional[ErrorCodeLiteral] = None
    payload: BrowserContextPayload
    normalized_context: NormalizedContext
    markdown: str

    @property
    def succeeded(self) -> bool:
        return self.error_code is None


def create_metadata_only_payload(metadata: BrowserCaptureMetadata, warnings: list[str]) -> BrowserContextPayload:
    return BrowserContextPayload(
        source="browser",
        browser=metadata.browser,
        url=metadata.url if metadata.url is not None else BLANK_URL,
        title=metadata.title if metadata.title is not None else UNTITLED,
        full_text="",
        headings=[],
        links=[],
        site_name=metadata.site_name,
        extraction_warnings=warnings,
    )


def _finalize(
    request: HostRequestMessage,
    payload: BrowserContextPayload,
    extraction_method: str,
    warnings: list[str],
    error_code: Optional[str] = None,
    response: Optional[Union[ExtensionResponseMessage, ErrorMessage]] = None,
) -> CaptureAttempt:
    normalized = normalize_browser_context(payload, NormalizeOptions(
        id=request.payload.request_id,
        captured_at=request.timestamp,
        extraction_method=extraction_method,
        warnings=warnings,
    ))
    return CaptureAttempt(
        request=request,
        response=response,
        extraction_method=extraction_method,
        warnings=warnings,
        error_code=error_code,
        payload=payload,
        normalized_context=normalized,
        markdown=render_markdown(normalized, payload),
    )


def _consume_late_outcome(task: "asyncio.Future[Any]") -> None:
    # the attempt already fell back; retrieve the outcome so it is never reported or applied
    if not task.cancelled():
        task.exception()


async def request_browser_capture(
    *,
    metadata: BrowserCaptureMetadata,
    send: SendFn,
    request_id: Optional[str] = None,
    mode: str = "manual_menu",
    timeout_ms: float = DEFAULT_TIMEOUT_MS,
    include_selection_text: bool = True,
    now: Optional[Callable[[], str]] = None,
) -> CaptureAttempt:
    """Run one capture attempt against `send` and return a rendered result.

    `send` must return an awaitable; a `send` that raises synchronously is a
    contract violation and propagates.
    """
    request = create_capture_request(
        request_id or str(uuid.uuid4()),
        mode,
        timeout_ms,
        now() if now else utc_now_iso(),
        include_selection_text,
    )
    request_id = request.payload.request_id

    def fallback(
        warning: str,
        error_code: str,
        response: Optional[Union[ExtensionResponseMessage, ErrorMessage]] = None,
    ) -> CaptureAttempt:
        logger.warning(f"Capture {request_id} fell back to metadata only: {error_code}: {warning}")
        warnings = [warning]
        payload = create_metadata_only_payload(metadata, warnings)
        return _finalize(request, payload, ExtractionMethod.METADATA_ONLY, warnings, error_code, response)

    pending = asyncio.ensure_future(send(request))
    try:
        done, _ = await asyncio.wait({pending}, timeout=timeout_ms / 1000)
    except asyncio.CancelledError:
        pending.cancel()
        raise

    if pending not in done:
        pending.cancel()
        pending.add_done_callback(_consume_late_outcome)
        return fallback(TIMEOUT_WARNING, ErrorCode.TIMEOUT)

    try:
        raw_response = pending.result()
    except (Exception, asyncio.CancelledError) as e:
        logger.debug(f"Capture {request_id} transport failed: {e!r}")
        return fallback(UNAVAILABLE_WARNING, ErrorCode.EXTENSION_UNAVAILABLE)

    extension_message = parse_extension_message(raw_response) if is_extension_message(raw_response) else None

    if is_error_message(raw_response):
        error_payload = extension_message.payload
        return fallback(error_payload.message, error_payload.code, extension_message)

    validation = validate_response(raw_response)
    if not validation.ok:
        issue = validation.issues[0]
        return fallback(issue.message, issue.code, extension_message)

    response: ExtensionResponseMessage = validation.value
    capture = response.payload.capture
    logger.debug(f"Capture {request_id} succeeded via {capture.browser} extension")
    return _finalize(
        request,
        capture,
        ExtractionMethod.BROWSER_EXTENSION,
        list(capture.extraction_warnings or []),
        response=response,
    )

"""
context-grabber: capture the active browser tab as LLM-ready markdown.

Native-messaging protocol contracts, a timeout-bounded capture orchestrator
with metadata-only fallback, and a deterministic normalizer/renderer.
"""

__version__ = "0.1.0"

from context_grabber.capture import BrowserCaptureMetadata, CaptureAttempt, request_browser_capture
from context_grabber.contracts import ValidationIssue, ValidationResult, validate_response
from context_grabber.errors import ConfigError, ContextGrabberError, ProtocolError, TransportError
from context_grabber.markdown import render_markdown
from context_grabber.models.events import ErrorCode, ExtractionMethod, MessageType, PROTOCOL_VERSION
from context_grabber.normalizer import normalize_browser_context, normalize_context, normalize_desktop_context
from context_grabber.responder import handle_host_capture_request

__all__ = [
    "BrowserCaptureMetadata",
    "CaptureAttempt",
    "request_browser_capture",
    "ValidationIssue",
    "ValidationResult",
    "validate_response",
    "ContextGrabberError",
    "ProtocolError",
    "TransportError",
    "ConfigError",
    "render_markdown",
    "normalize_context",
    "normalize_browser_context",
    "normalize_desktop_context",
    "handle_host_capture_request",
    "ErrorCode",
    "ExtractionMethod",
    "MessageType",
    "PROTOCOL_VERSION",
]

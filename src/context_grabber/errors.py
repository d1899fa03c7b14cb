"""
Context Grabber error types: protocol error codes carried as `code`.
"""

from typing import Any, Optional


class ContextGrabberError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class ProtocolError(ContextGrabberError):
    """Raised by the parse_* helpers when a message fails validation."""

    def __init__(self, message: str, code: str = "ERR_PAYLOAD_INVALID", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class TransportError(ContextGrabberError):
    def __init__(self, message: str, code: str = "ERR_EXTENSION_UNAVAILABLE", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class ConfigError(ContextGrabberError):
    def __init__(self, message: str):
        super().__init__("config_error", message)

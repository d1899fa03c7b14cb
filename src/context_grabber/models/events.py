"""
Protocol constants: message types, error codes, extraction methods, limits.
"""

PROTOCOL_VERSION = "1"

MAX_FULL_TEXT_CHARS = 200_000
MAX_ENVELOPE_CHARS = 250_000
MAX_RAW_EXCERPT_CHARS = 8_000
TARGET_CHUNK_TOKENS = 1_500
HARD_CHUNK_TOKENS = 2_000
MAX_SUMMARY_SENTENCES = 6
MAX_KEY_POINTS = 8
DEFAULT_TIMEOUT_MS = 1_200


class MessageType:
    """Envelope `type` tags."""
    HOST_CAPTURE_REQUEST = "host.capture.request"
    EXTENSION_CAPTURE_RESULT = "extension.capture.result"
    EXTENSION_ERROR = "extension.error"
    BROWSER_CAPTURE = "browser.capture"
    DESKTOP_CAPTURE = "desktop.capture"


class ErrorCode:
    PROTOCOL_VERSION = "ERR_PROTOCOL_VERSION"
    PAYLOAD_INVALID = "ERR_PAYLOAD_INVALID"
    TIMEOUT = "ERR_TIMEOUT"
    EXTENSION_UNAVAILABLE = "ERR_EXTENSION_UNAVAILABLE"
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"

    ALL = frozenset({
        PROTOCOL_VERSION,
        PAYLOAD_INVALID,
        TIMEOUT,
        EXTENSION_UNAVAILABLE,
        PAYLOAD_TOO_LARGE,
    })


class ExtractionMethod:
    BROWSER_EXTENSION = "browser_extension"
    ACCESSIBILITY = "accessibility"
    OCR = "ocr"
    METADATA_ONLY = "metadata_only"


class CaptureMode:
    MANUAL_HOTKEY = "manual_hotkey"
    MANUAL_MENU = "manual_menu"

"""Error kinds raised by ananke operations.

Each kind also derives from the closest builtin so callers that only know
about ``ValueError`` or ``LookupError`` still catch it.
"""

from __future__ import annotations


class AnankeError(Exception):
    """Base class for every error surfaced to the caller as a message."""


class InputValidationError(AnankeError, ValueError):
    """Malformed user input: URL, JSON or TOML."""


class NotFoundError(AnankeError, LookupError):
    """Unknown source/target identifier, missing skill or server entry."""


class TransportError(AnankeError):
    """Request failure, non-success status or unreadable response body."""


class ContentEncodingError(AnankeError, ValueError):
    """Non UTF-8 text, bad base64 or an unsupported content encoding."""


class StructuralError(AnankeError, ValueError):
    """A document or response does not have the expected shape."""


class PathSafetyError(AnankeError, PermissionError):
    """A computed path escapes its declared root."""

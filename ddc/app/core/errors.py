"""
Domain error taxonomy.

Every failure a caller can provoke is a ``DDCError`` subclass. The RPC
layer reports these as the ``Error`` string of a successful response;
anything else escaping a handler is treated as an internal error.
"""


class DDCError(Exception):
    """Base class for caller-visible failures."""


class SessionNotFoundError(DDCError):
    """Raised for unknown, expired or dropped session identifiers."""

    def __init__(self, message: str = "unknown id") -> None:
        super().__init__(message)


class InvalidStateError(DDCError):
    """Raised when an operation is called out of sequence."""


class InvalidInputError(DDCError):
    """Raised when a required field is missing or malformed."""


class ScanRejectedError(DDCError):
    """Raised when clamd reports anything but a clean stream."""


class ScanTransportError(DDCError):
    """Raised when clamd cannot be reached or the stream breaks."""


class RenderError(DDCError):
    """Raised when a card cannot be rendered."""


class ParseError(DDCError):
    """Raised when attachments cannot be extracted from a card."""

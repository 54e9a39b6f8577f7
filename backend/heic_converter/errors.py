"""Error taxonomy for the conversion service.

Every error the service raises on purpose derives from :class:`ConverterError`
and carries the HTTP status it maps to. The handlers in ``main.py`` turn them
into JSON bodies; ``CleanupError`` is the exception: it is only ever logged.
"""
import re
from typing import Iterable

# POSIX paths not glued to a word, URL scheme or placeholder, and drive paths.
_ABSOLUTE_PATH = re.compile(r"""(?<![\w.:/>])(?:/[^\s'"/:<>]+)+/?|\b[A-Za-z]:\\[^\s'"]+""")


class ConverterError(Exception):
    """Base exception for conversion service errors."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(ConverterError):
    """Raised when an upload is missing, of the wrong type, or too large."""
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class CodecError(ConverterError):
    """Raised by a codec when input bytes cannot be decoded or encoded."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class ConversionError(ConverterError):
    """Raised by the conversion worker when the codec rejects an input."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class NotFoundError(ConverterError):
    """Raised when an artifact id is unknown or has already expired."""
    def __init__(self, message: str = "File not found"):
        super().__init__(message, status_code=404)


class CleanupError(ConverterError):
    """A temporary file could not be deleted. Logged, never propagated."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)


def redact_paths(message: str, roots: Iterable[str] = ()) -> str:
    """Strip filesystem paths out of a client-facing message.

    Storage directories become ``<tmp>``; any other absolute path becomes
    ``<path>``.
    """
    for root in roots:
        if root:
            message = message.replace(root, "<tmp>")
    return _ABSOLUTE_PATH.sub("<path>", message)

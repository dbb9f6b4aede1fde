"""
Domain errors raised by the key-value store and the rotation engine.
Route handlers translate them into HTTP responses.
"""


class FrameError(Exception):
    """Base class for all picture frame errors."""


class NotFoundError(FrameError):
    """An image id is unknown or the display order is empty."""


class CorruptRecordError(FrameError):
    """A singleton record (configuration or status) is missing or cannot be decoded."""


class ImageIOError(FrameError):
    """Storing or removing an image file on disk failed."""


class ValidationFailedError(FrameError):
    """Input rejected before anything was written (e.g. a reorder that is not a permutation)."""

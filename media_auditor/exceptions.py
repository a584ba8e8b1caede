"""
Custom exception hierarchy for the media auditor.

Everything except EnumerationError is caught at the per-file boundary and
recorded on that file's outcome; the batch keeps going.
"""


class MediaAuditorError(Exception):
    """Base exception for all media auditor errors."""
    pass


class ReadError(MediaAuditorError):
    """Raised when header bytes or file metadata cannot be read."""
    pass


class ProviderError(MediaAuditorError):
    """Raised inside a timestamp provider; never escapes the provider."""
    pass


class WriteError(MediaAuditorError):
    """Raised when a timestamp write or a rename fails."""
    pass


class RenameCollisionExhausted(MediaAuditorError):
    """Raised when every collision suffix (001-999) is already taken."""
    pass


class PathTooLong(MediaAuditorError):
    """Raised when a path exceeds the OS tagging provider's limit."""
    pass


class EnumerationError(MediaAuditorError):
    """Raised when the root path cannot be enumerated at all."""
    pass

"""Remote store exceptions."""

from typing import Optional


class SourceError(Exception):
    """Base exception for remote store errors."""

    def __init__(self, message: str, collection: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.collection = collection


class SourceConnectionError(SourceError):
    """Exception raised when the remote store cannot be reached."""


class SourceTimeoutError(SourceError):
    """Exception raised when a remote operation times out."""


class SourceNotFoundError(SourceError):
    """Exception raised when a requested document does not exist remotely."""


class SourceDataError(SourceError):
    """Exception raised when remote data is invalid or corrupted."""


class SourcePermissionError(SourceError):
    """Exception raised when the remote store rejects an operation for this user."""

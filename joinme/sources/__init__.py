"""Remote store clients and contracts."""

from .base import MembershipRemoteStore, RemoteStore
from .exceptions import (
    SourceConnectionError,
    SourceDataError,
    SourceError,
    SourceNotFoundError,
    SourcePermissionError,
    SourceTimeoutError,
)
from .http_store import HTTPDocumentStore, HTTPGroupStore
from .memory import MemoryDocumentStore, MemoryGroupStore

__all__ = [
    "HTTPDocumentStore",
    "HTTPGroupStore",
    "MembershipRemoteStore",
    "MemoryDocumentStore",
    "MemoryGroupStore",
    "RemoteStore",
    "SourceConnectionError",
    "SourceDataError",
    "SourceError",
    "SourceNotFoundError",
    "SourcePermissionError",
    "SourceTimeoutError",
]

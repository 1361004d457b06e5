"""pyremsync - keep a reMarkable cloud folder in sync with a source folder tree."""

from .api import RemarkableClient
from .exceptions import (
    RemSyncAPIError,
    RemSyncAuthenticationError,
    RemSyncConfigError,
    RemSyncError,
    RemSyncInvalidResponseError,
    RemSyncNetworkError,
    RemSyncRateLimitError,
    RemSyncSourceError,
    RemSyncUploadError,
)
from .source import LocalFolderSource, SourceStorage
from .store import JsonFileStore, KeyValueStore

__all__ = [
    "RemarkableClient",
    "LocalFolderSource",
    "SourceStorage",
    "JsonFileStore",
    "KeyValueStore",
    "RemSyncError",
    "RemSyncAPIError",
    "RemSyncAuthenticationError",
    "RemSyncConfigError",
    "RemSyncInvalidResponseError",
    "RemSyncNetworkError",
    "RemSyncRateLimitError",
    "RemSyncSourceError",
    "RemSyncUploadError",
]

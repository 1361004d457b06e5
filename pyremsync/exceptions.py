"""Exceptions raised by pyremsync."""


class RemSyncError(Exception):
    """Base exception for all pyremsync errors."""

    pass


class RemSyncConfigError(RemSyncError):
    """Raised when the sync cannot be configured.

    Covers an unresolvable source folder or target root, an unsupported
    sync mode and a device that is neither paired nor given a one-time code.
    Always raised before any sync state is mutated.
    """

    pass


class RemSyncAPIError(RemSyncError):
    """Raised when a call to the target cloud fails."""

    pass


class RemSyncAuthenticationError(RemSyncAPIError):
    """Raised when pairing or token renewal is rejected."""

    pass


class RemSyncNetworkError(RemSyncAPIError):
    """Raised when the target cloud cannot be reached."""

    pass


class RemSyncRateLimitError(RemSyncAPIError):
    """Raised when the target cloud throttles requests."""

    pass


class RemSyncInvalidResponseError(RemSyncAPIError):
    """Raised when the target cloud returns something that is not expected JSON."""

    pass


class RemSyncUploadError(RemSyncError):
    """Raised when transferring one item's content fails."""

    pass


class RemSyncSourceError(RemSyncError):
    """Raised when the source storage cannot provide an item."""

    pass

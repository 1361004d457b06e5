"""Sync modes and per-run settings."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from ..exceptions import RemSyncConfigError
from .comparator import ForceUpdatePredicate


class SyncMode(str, Enum):
    """How the target is reconciled with the source."""

    UPDATE = "update"
    """Push new and changed items; never delete"""

    MIRROR = "mirror"
    """Push new and changed items and delete items gone from the source"""

    @property
    def allows_remote_delete(self) -> bool:
        return self == SyncMode.MIRROR

    @classmethod
    def from_string(cls, value: Union[str, "SyncMode"]) -> "SyncMode":
        """Parse a mode name.

        Raises:
            RemSyncConfigError: If the mode is not supported
        """
        if isinstance(value, SyncMode):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            available = ", ".join(m.value for m in cls)
            raise RemSyncConfigError(
                f"Sync mode '{value}' not supported, try one from: {available}"
            ) from None


@dataclass
class SyncSettings:
    """Everything one sync run is configured with."""

    source: str
    """Source folder id, path or search string"""

    root: str
    """Target root folder id (UUID) or display name"""

    mode: SyncMode = SyncMode.UPDATE

    skip: list[str] = field(default_factory=list)
    """Source folder names to leave out, with their subtrees"""

    one_time_code: Optional[str] = None
    """Pairing code; only needed while the device is unpaired"""

    force_update: Optional[ForceUpdatePredicate] = None

    def __post_init__(self) -> None:
        self.mode = SyncMode.from_string(self.mode)

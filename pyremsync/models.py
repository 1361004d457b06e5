"""Data models for source items and target documents."""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class SourceKind(str, Enum):
    """Kinds of nodes found in the source tree."""

    FILE = "file"
    FOLDER = "folder"


class DocType(str, Enum):
    """Record types in the target's document tree."""

    DOCUMENT = "DocumentType"
    """A file with uploaded content"""

    COLLECTION = "CollectionType"
    """A folder"""


class UploadOutcome(str, Enum):
    """What happened to a candidate inside the upload pipeline."""

    PENDING = "pending"
    UPLOADED = "uploaded"
    REJECTED = "rejected"
    """The target refused an upload slot"""

    FAILED = "failed"
    """Content fetch or transfer failed; scheduled for deletion"""


@dataclass
class SourceItem:
    """A file or folder observed during one walk of the source tree."""

    source_id: str
    """Source-native identifier, unique within the source system"""

    name: str
    """Display name including extension"""

    kind: SourceKind

    size: int = 0
    """Size in bytes (files only)"""

    parent_id: Optional[str] = None
    """Source id of the containing folder"""

    is_shortcut: bool = False
    """True for alias nodes that must be resolved before use"""

    path: Any = None
    """Collaborator-private locator (e.g. a filesystem path)"""

    @property
    def is_folder(self) -> bool:
        return self.kind == SourceKind.FOLDER


@dataclass
class TargetDocEntry:
    """A document or folder record in the target's flat tree.

    Observed entries come from the target's document list; candidate
    entries are computed fresh from the source walk.
    """

    id: str
    """Stable id (UUID v4)"""

    type: DocType

    parent: str
    """Stable id of the parent folder, or the root folder id"""

    visible_name: str

    version: int = 1
    """Monotonically increasing per id, starting at 1"""

    source_size: int = 0
    """Size of the source content in bytes (candidates only)"""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "TargetDocEntry":
        """Create an entry from one item of the target's document list.

        Args:
            data: Raw dictionary with ``ID``, ``Type``, ``Parent``,
                ``VissibleName`` and ``Version`` keys

        Returns:
            TargetDocEntry instance
        """
        try:
            doc_type = DocType(data.get("Type", DocType.DOCUMENT.value))
        except ValueError:
            doc_type = DocType.DOCUMENT
        return cls(
            id=data["ID"],
            type=doc_type,
            parent=data.get("Parent") or "",
            visible_name=data.get("VissibleName", ""),
            version=int(data.get("Version", 1)),
        )

    def with_version(self, version: int) -> "TargetDocEntry":
        return replace(self, version=version)

    def to_upload_request(self) -> dict[str, Any]:
        return {"ID": self.id, "Type": self.type.value, "Version": self.version}

    def to_status_update(self, modified: Optional[datetime] = None) -> dict[str, Any]:
        if modified is None:
            modified = datetime.now(timezone.utc)
        return {
            "ID": self.id,
            "Parent": self.parent,
            "VissibleName": self.visible_name,
            "Type": self.type.value,
            "Version": self.version,
            "ModifiedClient": modified.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
        }

    def to_delete_request(self) -> dict[str, Any]:
        return {"ID": self.id, "Version": self.version}


@dataclass
class UploadCandidate:
    """A freshly computed entry on its way through one run."""

    entry: TargetDocEntry

    source_id: str
    """Source id of the node providing the content (shortcuts resolved)"""

    next_version: int = 1
    """Version to commit; decided by the diff engine"""

    outcome: UploadOutcome = UploadOutcome.PENDING

    @property
    def id(self) -> str:
        return self.entry.id

    @property
    def is_folder(self) -> bool:
        return self.entry.type == DocType.COLLECTION

    def versioned_entry(self) -> TargetDocEntry:
        """The entry carrying the version that will be committed."""
        return self.entry.with_version(self.next_version)


@dataclass
class SlotResult:
    """Result of requesting an upload slot for one candidate."""

    id: str
    success: bool
    upload_url: Optional[str] = None
    message: str = ""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "SlotResult":
        return cls(
            id=data.get("ID", ""),
            success=bool(data.get("Success", False)),
            upload_url=data.get("BlobURLPut") or None,
            message=data.get("Message", ""),
        )


@dataclass
class CommitResult:
    """Result of committing metadata (or deleting) one entry."""

    id: str
    success: bool
    message: str = ""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "CommitResult":
        return cls(
            id=data.get("ID", ""),
            success=bool(data.get("Success", False)),
            message=data.get("Message", ""),
        )


@dataclass
class SourceMetadata:
    """Metadata the source reports for a single file.

    The mime type is informational; only the file extension decides what
    gets uploaded.
    """

    name: str
    size: int
    mime_type: str = "application/octet-stream"

"""Source storage collaborators.

The sync core only talks to the :class:`SourceStorage` protocol.
:class:`LocalFolderSource` implements it on top of a local directory tree,
where symbolic links play the role of shortcuts.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Optional, Protocol

from .exceptions import RemSyncSourceError
from .models import SourceItem, SourceKind, SourceMetadata

logger = logging.getLogger(__name__)


class SourceStorage(Protocol):
    """Operations the sync core needs from a source storage system."""

    def resolve_folder(self, locator: str) -> SourceItem:
        """Find the folder to sync from an id, path or search string."""
        ...

    def list_files(self, folder: SourceItem) -> list[SourceItem]: ...

    def list_subfolders(self, folder: SourceItem) -> list[SourceItem]: ...

    def resolve_shortcut(self, item: SourceItem) -> SourceItem:
        """Return the real node behind an alias; other nodes are returned as-is."""
        ...

    def get_content_bytes(self, source_id: str) -> bytes: ...

    def get_metadata(self, source_id: str) -> SourceMetadata: ...


class LocalFolderSource:
    """Source storage backed by the local filesystem.

    Source ids combine device and inode numbers, so they survive renames
    and moves within one filesystem.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        """Initialize the source.

        Args:
            base_dir: Directory relative locators and folder searches start
                from. Defaults to the current working directory.
        """
        self.base_dir = (base_dir or Path.cwd()).expanduser()
        self._paths: dict[str, Path] = {}

    def _make_item(self, path: Path, parent_id: Optional[str]) -> SourceItem:
        stat = path.lstat()
        source_id = f"{stat.st_dev}:{stat.st_ino}"
        is_shortcut = path.is_symlink()
        kind = (
            SourceKind.FOLDER if path.is_dir() and not is_shortcut else SourceKind.FILE
        )
        self._paths[source_id] = path
        return SourceItem(
            source_id=source_id,
            name=path.name,
            kind=kind,
            size=stat.st_size if kind == SourceKind.FILE else 0,
            parent_id=parent_id,
            is_shortcut=is_shortcut,
            path=path,
        )

    def resolve_folder(self, locator: str) -> SourceItem:
        """Resolve a folder by path, or search for a folder with that name.

        Args:
            locator: Absolute path, path relative to the base directory, or
                the name of a folder somewhere below the base directory

        Returns:
            SourceItem for the folder

        Raises:
            RemSyncSourceError: If no matching folder exists
        """
        candidate = Path(locator).expanduser()
        if not candidate.is_absolute():
            candidate = self.base_dir / candidate
        if candidate.is_dir():
            return self._make_item(candidate.resolve(), parent_id=None)

        logger.debug(f"'{locator}' is not a path, searching below {self.base_dir}")
        try:
            for match in sorted(self.base_dir.rglob(locator)):
                if match.is_dir():
                    return self._make_item(match.resolve(), parent_id=None)
        except (OSError, ValueError) as e:
            raise RemSyncSourceError(
                f"Folder search for '{locator}' failed: {e}"
            ) from e

        raise RemSyncSourceError(f"Could not find source folder '{locator}'")

    def _iter_children(self, folder: SourceItem) -> list[Path]:
        try:
            return sorted(Path(folder.path).iterdir())
        except PermissionError as e:
            logger.warning(f"Permission denied: {e}")
            return []

    def list_files(self, folder: SourceItem) -> list[SourceItem]:
        """List files and shortcuts directly inside a folder."""
        return [
            self._make_item(child, folder.source_id)
            for child in self._iter_children(folder)
            if child.is_symlink() or child.is_file()
        ]

    def list_subfolders(self, folder: SourceItem) -> list[SourceItem]:
        """List real (non-link) directories directly inside a folder."""
        return [
            self._make_item(child, folder.source_id)
            for child in self._iter_children(folder)
            if child.is_dir() and not child.is_symlink()
        ]

    def resolve_shortcut(self, item: SourceItem) -> SourceItem:
        if not item.is_shortcut:
            return item
        try:
            target = Path(item.path).resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise RemSyncSourceError(
                f"Cannot resolve shortcut '{item.name}': {e}"
            ) from e
        logger.debug(f"Resolved shortcut '{item.name}' to {target}")
        return self._make_item(target, item.parent_id)

    def _path_for(self, source_id: str) -> Path:
        path = self._paths.get(source_id)
        if path is None:
            raise RemSyncSourceError(f"Unknown source item {source_id}")
        return path

    def get_content_bytes(self, source_id: str) -> bytes:
        path = self._path_for(source_id)
        try:
            return path.read_bytes()
        except OSError as e:
            raise RemSyncSourceError(f"Failed to read {path}: {e}") from e

    def get_metadata(self, source_id: str) -> SourceMetadata:
        path = self._path_for(source_id)
        try:
            size = path.stat().st_size
        except OSError as e:
            raise RemSyncSourceError(f"Failed to stat {path}: {e}") from e
        mime_type, _ = mimetypes.guess_type(path.name)
        return SourceMetadata(
            name=path.name,
            size=size,
            mime_type=mime_type or "application/octet-stream",
        )

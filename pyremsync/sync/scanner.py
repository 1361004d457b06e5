"""Source tree walking for sync operations."""

import logging
from collections.abc import Iterable
from typing import Optional

from ..exceptions import RemSyncSourceError
from ..models import DocType, SourceItem, TargetDocEntry, UploadCandidate
from ..source import SourceStorage
from .registry import IdentifierRegistry

logger = logging.getLogger(__name__)


class SourceTreeWalker:
    """Walks the source tree and emits one candidate per file and folder.

    Candidates carry the stable id of the source node, a parent pointer into
    the target tree and a provisional version of 1. Folders named in the
    skip list are left out together with everything below them.

    Examples:
        >>> walker = SourceTreeWalker(source, registry, skip_list=["Archive"])
        >>> candidates = walker.walk(source.resolve_folder("Books"), root_id)
    """

    def __init__(
        self,
        source: SourceStorage,
        registry: IdentifierRegistry,
        skip_list: Optional[Iterable[str]] = None,
    ):
        """Initialize the walker.

        Args:
            source: Source storage to enumerate
            registry: Registry assigning stable ids
            skip_list: Folder names to leave out, matched exactly
        """
        self.source = source
        self.registry = registry
        self.skip_list = set(skip_list or [])
        self.skipped_ids: set[str] = set()
        """Stable ids of skip-listed folders that were synced before"""

    def walk(self, folder: SourceItem, parent_id: str) -> list[UploadCandidate]:
        """Enumerate a folder and everything below it.

        Uses an explicit worklist so arbitrarily deep trees do not hit the
        interpreter's recursion limit. A folder reached a second time (via a
        shortcut loop) is not expanded again.

        Args:
            folder: Folder to walk; it is not emitted itself
            parent_id: Target id its direct children are placed under

        Returns:
            List of candidates in walk order
        """
        candidates: list[UploadCandidate] = []
        self.skipped_ids = set()
        expanded: set[str] = set()
        worklist: list[tuple[SourceItem, str]] = [(folder, parent_id)]

        while worklist:
            current, current_parent = worklist.pop()
            if current.source_id in expanded:
                logger.warning(
                    f"Source folder '{current.name}' was already scanned, "
                    "not descending again"
                )
                continue
            expanded.add(current.source_id)
            logger.info(f"Scanning source folder '{current.name}'")

            subfolders: list[tuple[SourceItem, SourceItem]] = []
            for item in self.source.list_files(current):
                resolved = self._resolve(item)
                if resolved is None:
                    continue
                if resolved.is_folder:
                    subfolders.append((item, resolved))
                else:
                    candidates.append(self._document(item, resolved, current_parent))

            for item in self.source.list_subfolders(current):
                resolved = self._resolve(item)
                if resolved is not None:
                    subfolders.append((item, resolved))

            pending: list[tuple[SourceItem, str]] = []
            for item, resolved in subfolders:
                if item.name in self.skip_list:
                    logger.info(f"Skipping source folder '{item.name}'")
                    known_id = self.registry.lookup(item.source_id)
                    if known_id is not None:
                        self.skipped_ids.add(known_id)
                    continue
                candidate = self._collection(item, resolved, current_parent)
                candidates.append(candidate)
                pending.append((resolved, candidate.id))

            # reversed so folders come off the stack in listing order
            worklist.extend(reversed(pending))

        logger.debug(f"Walk produced {len(candidates)} candidate(s)")
        return candidates

    def _resolve(self, item: SourceItem) -> Optional[SourceItem]:
        try:
            return self.source.resolve_shortcut(item)
        except RemSyncSourceError as e:
            logger.warning(f"Skipping '{item.name}': {e}")
            return None

    def _document(
        self, item: SourceItem, resolved: SourceItem, parent_id: str
    ) -> UploadCandidate:
        entry = TargetDocEntry(
            id=self.registry.get_or_create(item.source_id),
            type=DocType.DOCUMENT,
            parent=parent_id,
            visible_name=item.name,
            version=1,
            source_size=resolved.size,
        )
        return UploadCandidate(entry=entry, source_id=resolved.source_id)

    def _collection(
        self, item: SourceItem, resolved: SourceItem, parent_id: str
    ) -> UploadCandidate:
        entry = TargetDocEntry(
            id=self.registry.get_or_create(item.source_id),
            type=DocType.COLLECTION,
            parent=parent_id,
            visible_name=item.name,
            version=1,
        )
        return UploadCandidate(entry=entry, source_id=resolved.source_id)

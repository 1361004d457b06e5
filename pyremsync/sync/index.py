"""In-memory view of the documents already stored on the target."""

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator
from typing import Optional

from ..models import TargetDocEntry

logger = logging.getLogger(__name__)


class RemoteDocumentIndex:
    """Indexes the target's flat document list by id and by parent.

    The index is a read-only snapshot taken once at the start of a run.
    """

    def __init__(self, entries: Iterable[TargetDocEntry]):
        self._by_id: dict[str, TargetDocEntry] = {}
        self._children: dict[str, list[TargetDocEntry]] = defaultdict(list)
        for entry in entries:
            if entry.id in self._by_id:
                logger.warning(f"Duplicate document id {entry.id} in target list")
                continue
            self._by_id[entry.id] = entry
            self._children[entry.parent].append(entry)

    def get(
        self, doc_id: str, default: Optional[TargetDocEntry] = None
    ) -> Optional[TargetDocEntry]:
        return self._by_id.get(doc_id, default)

    def children_of(self, parent_id: str) -> list[TargetDocEntry]:
        return list(self._children.get(parent_id, []))

    def find_by_name(self, visible_name: str) -> Optional[TargetDocEntry]:
        """Return the first entry with the given visible name, in list order."""
        for entry in self._by_id.values():
            if entry.visible_name == visible_name:
                return entry
        return None

    def descendants_of(self, root_id: str) -> set[str]:
        """Collect the ids of every entry below ``root_id``.

        The root itself is not included. Parent pointers are followed with
        an explicit stack and a visited set, so an accidental cycle in the
        target's tree is reported once and then ignored.

        Args:
            root_id: Id of the folder to start from

        Returns:
            Set of descendant ids
        """
        visited: set[str] = {root_id}
        stack = [root_id]
        descendants: set[str] = set()

        while stack:
            parent_id = stack.pop()
            for child in self._children.get(parent_id, []):
                if child.id in visited:
                    logger.warning(
                        f"Cycle in target tree: {child.id} reached again "
                        f"from {parent_id}"
                    )
                    continue
                visited.add(child.id)
                descendants.add(child.id)
                stack.append(child.id)

        return descendants

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[TargetDocEntry]:
        return iter(self._by_id.values())

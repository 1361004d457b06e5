"""Decides which candidates need to be pushed to the target."""

import logging
from collections.abc import Iterable
from typing import Callable, Optional

from ..models import DocType, TargetDocEntry, UploadCandidate
from ..utils import MAX_DOCUMENT_SIZE, SUPPORTED_EXTENSIONS
from .index import RemoteDocumentIndex

logger = logging.getLogger(__name__)

ForceUpdatePredicate = Callable[[TargetDocEntry, TargetDocEntry], bool]
"""Called with (candidate entry, observed entry); True forces a version bump."""


class DiffEngine:
    """Compares fresh candidates with the observed target index.

    Content bytes are never inspected. For known items a changed name or
    parent is the change signal; callers that want more (content hashes,
    sizes, timestamps) plug in a force-update predicate.
    """

    def __init__(
        self,
        index: RemoteDocumentIndex,
        force_update: Optional[ForceUpdatePredicate] = None,
    ):
        """Initialize the diff engine.

        Args:
            index: Snapshot of the target's documents
            force_update: Optional predicate forcing an update of known items
        """
        self.index = index
        self.force_update = force_update

    def needs_update(self, candidate: UploadCandidate) -> bool:
        """Decide whether a candidate must be uploaded.

        Sets ``candidate.next_version`` as a side effect: new items keep 1,
        updated items get the observed version plus one.

        Args:
            candidate: Candidate from the source walk

        Returns:
            True if the candidate should go through the upload pipeline
        """
        entry = candidate.entry
        observed = self.index.get(entry.id)

        # Case 1: Not on the target yet
        if observed is None:
            if entry.type == DocType.COLLECTION:
                return True
            return is_uploadable_document(entry)

        # Case 2: Caller forces an update
        if self.force_update is not None and self.force_update(entry, observed):
            candidate.next_version = observed.version + 1
            logger.debug(f"Forced update of '{entry.visible_name}'")
            return True

        # Case 3: Moved or renamed
        if (
            observed.parent != entry.parent
            or observed.visible_name != entry.visible_name
        ):
            candidate.next_version = observed.version + 1
            logger.debug(
                f"'{observed.visible_name}' changed, bumping to version "
                f"{candidate.next_version}"
            )
            return True

        return False

    def filter(self, candidates: Iterable[UploadCandidate]) -> list[UploadCandidate]:
        """Return the candidates that need an upload, in their original order."""
        return [c for c in candidates if self.needs_update(c)]


def is_uploadable_document(entry: TargetDocEntry) -> bool:
    """Check the extension and size gate for documents new to the target.

    Extensions are matched case-sensitively, so ``a.PDF`` is not accepted.
    """
    return (
        entry.visible_name.endswith(SUPPORTED_EXTENSIONS)
        and entry.source_size <= MAX_DOCUMENT_SIZE
    )

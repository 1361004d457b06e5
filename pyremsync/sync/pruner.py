"""Mirror-mode pruning of target items that left the source tree."""

import logging
from collections.abc import Iterable

from ..api import RemarkableClient
from ..models import TargetDocEntry, UploadCandidate
from .index import RemoteDocumentIndex

logger = logging.getLogger(__name__)


class MirrorPruner:
    """Finds and deletes target items no longer reachable from the source."""

    def __init__(self, client: RemarkableClient, index: RemoteDocumentIndex):
        """Initialize the pruner.

        Args:
            client: Target cloud client
            index: Snapshot of the target taken before this run
        """
        self.client = client
        self.index = index

    def plan(
        self,
        root_id: str,
        candidates: Iterable[UploadCandidate],
        protected_ids: Iterable[str] = (),
    ) -> list[TargetDocEntry]:
        """Compute the entries to delete.

        Args:
            root_id: Target folder the sync is rooted at
            candidates: Every candidate produced by this run's walk
            protected_ids: Ids whose subtree must be kept even though they
                are absent from the walk (skip-listed folders)

        Returns:
            Observed entries below the root that the walk did not produce
        """
        keep = {c.id for c in candidates}
        for protected_id in protected_ids:
            if protected_id in self.index:
                keep.add(protected_id)
                keep |= self.index.descendants_of(protected_id)

        doomed = self.index.descendants_of(root_id) - keep
        return [entry for entry in self.index if entry.id in doomed]

    def prune(
        self,
        root_id: str,
        candidates: Iterable[UploadCandidate],
        protected_ids: Iterable[str] = (),
    ) -> int:
        """Delete target items that are gone from the source.

        A failing delete call stops pruning for this run but is not raised;
        the rest of the sync still proceeds.

        Returns:
            Number of entries the target reported as deleted
        """
        delete_list = self.plan(root_id, candidates, protected_ids)
        for entry in delete_list:
            logger.info(f"Adding for deletion: {entry.visible_name}")

        if not delete_list:
            return 0

        logger.info(
            f"Deleting {len(delete_list)} doc(s) that no longer exist in the source"
        )
        try:
            results = self.client.delete_documents(delete_list)
        except Exception as e:
            logger.error(f"Pruning aborted, delete request failed: {e}")
            return 0

        deleted = 0
        for result in results:
            if result.success:
                deleted += 1
            else:
                logger.warning(f"Failed to delete '{result.id}': {result.message}")
        return deleted

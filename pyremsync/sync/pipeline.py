"""Chunked upload pipeline with per-item failure containment."""

import logging
from collections.abc import Sequence
from typing import Callable, Optional

from ..api import RemarkableClient
from ..models import UploadCandidate, UploadOutcome
from ..source import SourceStorage
from ..utils import UPLOAD_CHUNK_SIZE, chunked, format_size
from .packaging import build_document_archive, build_folder_archive

logger = logging.getLogger(__name__)


class UploadPipeline:
    """Pushes candidates to the target in fixed-size chunks.

    Each chunk goes through four strictly ordered steps:

    1. one batched upload-slot request
    2. content fetch, packaging and transfer for every granted slot
    3. one batched metadata commit covering the whole chunk
    4. deletion of the items whose transfer failed

    A failure in step 2 only affects its own item. Failures of the batched
    calls propagate and stop the pipeline; chunks already processed stay
    committed.
    """

    def __init__(
        self,
        client: RemarkableClient,
        source: SourceStorage,
        chunk_size: int = UPLOAD_CHUNK_SIZE,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ):
        """Initialize the pipeline.

        Args:
            client: Target cloud client
            source: Source storage providing the content
            chunk_size: Candidates per batch (default: 5)
            progress_callback: Optional callback function(done, total) called
                after each chunk
        """
        self.client = client
        self.source = source
        self.chunk_size = chunk_size
        self.progress_callback = progress_callback

    def run(
        self,
        candidates: Sequence[UploadCandidate],
        stats: Optional[dict] = None,
    ) -> dict:
        """Upload all candidates, one chunk at a time.

        Args:
            candidates: Candidates the diff engine selected, with versions set
            stats: Statistics dictionary updated in place after every chunk,
                so counts survive an aborted run

        Returns:
            Dictionary with ``chunks``, ``uploads``, ``failed`` and ``rejected``
        """
        if stats is None:
            stats = {}
        for key in ("chunks", "uploads", "failed", "rejected"):
            stats.setdefault(key, 0)
        total = len(candidates)
        done = 0

        for chunk in chunked(candidates, self.chunk_size):
            logger.info(f"Processing chunk of size {len(chunk)}..")
            chunk_stats = self.process_chunk(chunk)
            stats["chunks"] += 1
            for key in ("uploads", "failed", "rejected"):
                stats[key] += chunk_stats[key]
            done += len(chunk)
            if self.progress_callback:
                self.progress_callback(done, total)
            logger.info("Finished processing chunk.")

        return stats

    def process_chunk(self, chunk: Sequence[UploadCandidate]) -> dict:
        """Run one chunk through slot request, transfer, commit and cleanup.

        Args:
            chunk: Up to ``chunk_size`` candidates

        Returns:
            Dictionary with ``uploads``, ``failed`` and ``rejected`` counts
        """
        by_id = {c.id: c for c in chunk}
        stats = {"uploads": 0, "failed": 0, "rejected": 0}

        slots = self.client.request_upload_slots(chunk)

        failed: list[UploadCandidate] = []
        for slot in slots:
            candidate = by_id.get(slot.id)
            if candidate is None:
                logger.warning(f"Upload slot for unknown document '{slot.id}'")
                continue
            if not slot.success or not slot.upload_url:
                candidate.outcome = UploadOutcome.REJECTED
                stats["rejected"] += 1
                logger.warning(
                    f"No upload slot for '{candidate.entry.visible_name}': "
                    f"{slot.message}"
                )
                continue
            try:
                self._transfer(candidate, slot.upload_url)
            except Exception as e:
                logger.error(f"Failed to upload '{candidate.id}': {e}")
                candidate.outcome = UploadOutcome.FAILED
                failed.append(candidate)
                stats["failed"] += 1
            else:
                candidate.outcome = UploadOutcome.UPLOADED
                stats["uploads"] += 1

        # Metadata is committed for the whole chunk, failed items included,
        # so their versions match what the delete below expects
        logger.info("Updating meta data for chunk")
        for result in self.client.commit_metadata(chunk):
            if not result.success:
                candidate = by_id.get(result.id)
                name = candidate.entry.visible_name if candidate else result.id
                logger.warning(f"Failed to update status '{name}': {result.message}")

        if failed:
            logger.info(f"Deleting {len(failed)} doc(s) that failed to upload")
            self.client.delete_documents([c.versioned_entry() for c in failed])

        return stats

    def _transfer(self, candidate: UploadCandidate, upload_url: str) -> None:
        if candidate.is_folder:
            blob = build_folder_archive(candidate.id)
        else:
            metadata = self.source.get_metadata(candidate.source_id)
            logger.info(
                f"Attempting to upload '{metadata.name}' "
                f"({metadata.mime_type}, {format_size(metadata.size)})"
            )
            content = self.source.get_content_bytes(candidate.source_id)
            blob = build_document_archive(candidate.id, metadata.name, content)
        self.client.put_content(upload_url, blob)
        logger.info(f"Uploaded '{candidate.entry.visible_name}'")

"""Tests for the chunked upload pipeline."""

import io
import logging
import zipfile
from unittest.mock import Mock

import pytest

from pyremsync.api import RemarkableClient
from pyremsync.exceptions import RemSyncAPIError, RemSyncUploadError
from pyremsync.models import (
    CommitResult,
    DocType,
    SlotResult,
    TargetDocEntry,
    UploadCandidate,
    UploadOutcome,
)
from pyremsync.sync.pipeline import UploadPipeline


def _candidate(source_id: str, name: str, doc_type=DocType.DOCUMENT, version=1):
    entry = TargetDocEntry(
        id=f"id-{source_id}", type=doc_type, parent="root", visible_name=name
    )
    return UploadCandidate(entry=entry, source_id=source_id, next_version=version)


def _call_names(mock):
    return [c[0] for c in mock.mock_calls]


@pytest.fixture
def mock_client():
    """Create a mock target client that grants every slot."""
    client = Mock(spec=RemarkableClient)
    client.request_upload_slots.side_effect = lambda chunk: [
        SlotResult(id=c.id, success=True, upload_url=f"https://blob/{c.id}")
        for c in chunk
    ]
    client.commit_metadata.side_effect = lambda chunk: [
        CommitResult(id=c.id, success=True) for c in chunk
    ]
    client.delete_documents.side_effect = lambda entries: [
        CommitResult(id=e.id, success=True) for e in entries
    ]
    return client


class TestUploadPipeline:
    """Tests for UploadPipeline."""

    def test_chunks_of_five(self, mock_client, fake_source):
        """Twelve candidates are sent as chunks of 5, 5 and 2."""
        candidates = []
        for n in range(12):
            fake_source.add_file(f"f{n}", f"doc{n}.pdf")
            candidates.append(_candidate(f"f{n}", f"doc{n}.pdf"))
        progress = []
        pipeline = UploadPipeline(
            mock_client, fake_source, progress_callback=lambda d, t: progress.append(d)
        )

        stats = pipeline.run(candidates)

        sizes = [
            len(c.args[0]) for c in mock_client.request_upload_slots.call_args_list
        ]
        assert sizes == [5, 5, 2]
        assert mock_client.commit_metadata.call_count == 3
        assert stats["chunks"] == 3
        assert stats["uploads"] == 12
        assert progress == [5, 10, 12]
        mock_client.delete_documents.assert_not_called()

    def test_partial_failure_is_contained(self, mock_client, fake_source):
        """A failed item is committed with the chunk and then deleted."""
        for sid in ("a", "b", "c"):
            fake_source.add_file(sid, f"{sid}.pdf")
        fake_source.broken_content.add("b")
        candidates = [_candidate(sid, f"{sid}.pdf", version=3) for sid in "abc"]

        stats = UploadPipeline(mock_client, fake_source).run(candidates)

        assert _call_names(mock_client) == [
            "request_upload_slots",
            "put_content",
            "put_content",
            "commit_metadata",
            "delete_documents",
        ]
        (committed,) = mock_client.commit_metadata.call_args.args
        assert [c.id for c in committed] == ["id-a", "id-b", "id-c"]
        (deleted,) = mock_client.delete_documents.call_args.args
        assert [(e.id, e.version) for e in deleted] == [("id-b", 3)]
        assert [c.outcome for c in candidates] == [
            UploadOutcome.UPLOADED,
            UploadOutcome.FAILED,
            UploadOutcome.UPLOADED,
        ]
        assert stats["uploads"] == 2
        assert stats["failed"] == 1

    def test_transfer_failure_is_contained(self, mock_client, fake_source):
        """A failed blob upload only affects its own item."""
        fake_source.add_file("a", "a.pdf")
        fake_source.add_file("b", "b.pdf")

        def put_content(url, blob):
            if url.endswith("id-a"):
                raise RemSyncUploadError("connection reset")

        mock_client.put_content.side_effect = put_content
        candidates = [_candidate("a", "a.pdf"), _candidate("b", "b.pdf")]

        stats = UploadPipeline(mock_client, fake_source).run(candidates)

        assert stats == {"chunks": 1, "uploads": 1, "failed": 1, "rejected": 0}
        (deleted,) = mock_client.delete_documents.call_args.args
        assert [e.id for e in deleted] == ["id-a"]

    def test_rejected_slot_is_not_transferred(self, mock_client, fake_source):
        """A refused slot is reported but neither uploaded nor deleted."""
        fake_source.add_file("a", "a.pdf")
        fake_source.add_file("b", "b.pdf")
        mock_client.request_upload_slots.side_effect = lambda chunk: [
            SlotResult(id="id-a", success=False, message="quota"),
            SlotResult(id="id-b", success=True, upload_url="https://blob/id-b"),
        ]
        candidates = [_candidate("a", "a.pdf"), _candidate("b", "b.pdf")]

        stats = UploadPipeline(mock_client, fake_source).run(candidates)

        mock_client.put_content.assert_called_once()
        mock_client.delete_documents.assert_not_called()
        assert candidates[0].outcome == UploadOutcome.REJECTED
        assert stats["rejected"] == 1
        assert stats["uploads"] == 1

    def test_folder_is_packaged_without_content(self, mock_client, fake_source):
        """Folders never ask the source for content."""
        fake_source.get_content_bytes = Mock()
        candidate = _candidate("d", "Folder", doc_type=DocType.COLLECTION)

        UploadPipeline(mock_client, fake_source).run([candidate])

        fake_source.get_content_bytes.assert_not_called()
        url, blob = mock_client.put_content.call_args.args
        assert url == "https://blob/id-d"
        assert zipfile.ZipFile(io.BytesIO(blob)).namelist() == ["id-d.content"]

    def test_transfer_logs_mime_type(self, mock_client, fake_source, caplog):
        """Each document transfer is logged with its mime type and size."""
        fake_source.add_file("f1", "a.pdf", size=2048)

        with caplog.at_level(logging.INFO, logger="pyremsync.sync.pipeline"):
            UploadPipeline(mock_client, fake_source).run([_candidate("f1", "a.pdf")])

        assert "'a.pdf' (application/pdf, 2.0 KB)" in caplog.text

    def test_slot_request_failure_propagates(self, mock_client, fake_source):
        """A failing batch call stops the pipeline."""
        fake_source.add_file("a", "a.pdf")
        mock_client.request_upload_slots.side_effect = RemSyncAPIError("down")

        with pytest.raises(RemSyncAPIError):
            UploadPipeline(mock_client, fake_source).run([_candidate("a", "a.pdf")])

        mock_client.commit_metadata.assert_not_called()

    def test_commit_failure_propagates_after_earlier_chunks(
        self, mock_client, fake_source
    ):
        """Chunks finished before a failing commit stay counted."""
        candidates = []
        for n in range(7):
            fake_source.add_file(f"f{n}", f"doc{n}.pdf")
            candidates.append(_candidate(f"f{n}", f"doc{n}.pdf"))
        mock_client.commit_metadata.side_effect = [
            [CommitResult(id=c.id, success=True) for c in candidates[:5]],
            RemSyncAPIError("down"),
        ]
        stats = {}

        with pytest.raises(RemSyncAPIError):
            UploadPipeline(mock_client, fake_source).run(candidates, stats)

        assert stats["chunks"] == 1
        assert stats["uploads"] == 5

    def test_empty_run_makes_no_calls(self, mock_client, fake_source):
        """Nothing to upload means no target traffic."""
        stats = UploadPipeline(mock_client, fake_source).run([])

        assert mock_client.mock_calls == []
        assert stats["chunks"] == 0

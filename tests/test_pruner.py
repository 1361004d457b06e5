"""Tests for mirror-mode pruning."""

from unittest.mock import Mock

import pytest

from pyremsync.api import RemarkableClient
from pyremsync.exceptions import RemSyncAPIError
from pyremsync.models import CommitResult, DocType, TargetDocEntry, UploadCandidate
from pyremsync.sync.index import RemoteDocumentIndex
from pyremsync.sync.pruner import MirrorPruner


def _entry(doc_id: str, parent: str, doc_type: DocType = DocType.DOCUMENT):
    return TargetDocEntry(id=doc_id, type=doc_type, parent=parent, visible_name=doc_id)


def _candidate(doc_id: str, parent: str = "root") -> UploadCandidate:
    return UploadCandidate(entry=_entry(doc_id, parent), source_id=f"src-{doc_id}")


class TestMirrorPruner:
    """Tests for MirrorPruner."""

    @pytest.fixture
    def mock_client(self):
        """Create a mock target client."""
        client = Mock(spec=RemarkableClient)
        client.delete_documents.side_effect = lambda entries: [
            CommitResult(id=e.id, success=True) for e in entries
        ]
        return client

    @pytest.fixture
    def index(self):
        """Target tree: root -> [X, Y], plus an unrelated top-level doc."""
        return RemoteDocumentIndex(
            [
                _entry("root", "", DocType.COLLECTION),
                _entry("X", "root"),
                _entry("Y", "root"),
                _entry("outside", ""),
            ]
        )

    def test_plan_deletes_items_missing_from_walk(self, mock_client, index):
        """Only descendants of the root that the walk did not produce go."""
        pruner = MirrorPruner(mock_client, index)

        plan = pruner.plan("root", [_candidate("X")])

        assert [e.id for e in plan] == ["Y"]

    def test_prune_issues_one_delete_call(self, mock_client, index):
        """Deletion is requested once for the whole set."""
        pruner = MirrorPruner(mock_client, index)

        deleted = pruner.prune("root", [_candidate("X")])

        assert deleted == 1
        mock_client.delete_documents.assert_called_once()
        (entries,) = mock_client.delete_documents.call_args.args
        assert [e.id for e in entries] == ["Y"]

    def test_nothing_to_delete_makes_no_call(self, mock_client, index):
        """When the walk covers everything, the target is not touched."""
        pruner = MirrorPruner(mock_client, index)

        assert pruner.prune("root", [_candidate("X"), _candidate("Y")]) == 0
        mock_client.delete_documents.assert_not_called()

    def test_delete_failure_is_contained(self, mock_client, index):
        """A failing delete call aborts pruning without raising."""
        mock_client.delete_documents.side_effect = RemSyncAPIError("boom")
        pruner = MirrorPruner(mock_client, index)

        assert pruner.prune("root", [_candidate("X")]) == 0

    def test_per_item_failures_not_counted(self, mock_client, index):
        """Items the target refuses to delete are not counted."""
        mock_client.delete_documents.side_effect = lambda entries: [
            CommitResult(id=e.id, success=False, message="locked") for e in entries
        ]
        pruner = MirrorPruner(mock_client, index)

        assert pruner.prune("root", []) == 0

    def test_skip_listed_subtree_is_protected(self, mock_client):
        """A skipped folder and everything below it survive mirroring."""
        index = RemoteDocumentIndex(
            [
                _entry("root", "", DocType.COLLECTION),
                _entry("skipped", "root", DocType.COLLECTION),
                _entry("inner", "skipped"),
                _entry("gone", "root"),
            ]
        )
        pruner = MirrorPruner(mock_client, index)

        plan = pruner.plan("root", [], protected_ids={"skipped"})

        assert [e.id for e in plan] == ["gone"]

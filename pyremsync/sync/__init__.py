"""Sync engine for pyremsync - one-way reconciliation into the device cloud."""

from .comparator import DiffEngine, ForceUpdatePredicate, is_uploadable_document
from .engine import SyncEngine, pair_device
from .index import RemoteDocumentIndex
from .modes import SyncMode, SyncSettings
from .packaging import build_document_archive, build_folder_archive
from .pipeline import UploadPipeline
from .pruner import MirrorPruner
from .registry import BijectiveMap, IdentifierRegistry
from .scanner import SourceTreeWalker

__all__ = [
    "SyncEngine",
    "SyncMode",
    "SyncSettings",
    "pair_device",
    "DiffEngine",
    "ForceUpdatePredicate",
    "is_uploadable_document",
    "RemoteDocumentIndex",
    "MirrorPruner",
    "UploadPipeline",
    "BijectiveMap",
    "IdentifierRegistry",
    "SourceTreeWalker",
    "build_document_archive",
    "build_folder_archive",
]

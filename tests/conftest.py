"""Shared fixtures for pyremsync tests."""

from typing import Optional

import pytest

from pyremsync.exceptions import RemSyncSourceError
from pyremsync.models import SourceItem, SourceKind, SourceMetadata
from pyremsync.store import JsonFileStore


class FakeSource:
    """In-memory source tree implementing the SourceStorage protocol."""

    def __init__(self) -> None:
        self.items: dict[str, SourceItem] = {}
        self.children: dict[str, list[str]] = {}
        self.shortcuts: dict[str, str] = {}
        self.content: dict[str, bytes] = {}
        self.root = self._add("root", "Root", SourceKind.FOLDER, parent_id=None)
        self.broken_content: set[str] = set()

    def _add(
        self,
        source_id: str,
        name: str,
        kind: SourceKind,
        parent_id: Optional[str],
        size: int = 0,
        is_shortcut: bool = False,
    ) -> SourceItem:
        item = SourceItem(
            source_id=source_id,
            name=name,
            kind=kind,
            size=size,
            parent_id=parent_id,
            is_shortcut=is_shortcut,
        )
        self.items[source_id] = item
        self.children.setdefault(source_id, [])
        if parent_id is not None:
            self.children[parent_id].append(source_id)
        return item

    def add_folder(self, source_id: str, name: str, parent: str = "root") -> SourceItem:
        return self._add(source_id, name, SourceKind.FOLDER, parent)

    def add_file(
        self,
        source_id: str,
        name: str,
        parent: str = "root",
        size: int = 100,
        content: bytes = b"%PDF-1.4",
    ) -> SourceItem:
        self.content[source_id] = content
        return self._add(source_id, name, SourceKind.FILE, parent, size=size)

    def add_shortcut(
        self, source_id: str, name: str, target: str, parent: str = "root"
    ) -> SourceItem:
        self.shortcuts[source_id] = target
        return self._add(source_id, name, SourceKind.FILE, parent, is_shortcut=True)

    def rename(self, source_id: str, name: str) -> None:
        self.items[source_id].name = name

    def remove(self, source_id: str) -> None:
        item = self.items.pop(source_id)
        self.children[item.parent_id].remove(source_id)

    def resolve_folder(self, locator: str) -> SourceItem:
        if locator in self.items and self.items[locator].is_folder:
            return self.items[locator]
        for item in self.items.values():
            if item.is_folder and item.name == locator:
                return item
        raise RemSyncSourceError(f"Could not find source folder '{locator}'")

    def list_files(self, folder: SourceItem) -> list[SourceItem]:
        return [
            self.items[i]
            for i in self.children[folder.source_id]
            if not self.items[i].is_folder
        ]

    def list_subfolders(self, folder: SourceItem) -> list[SourceItem]:
        return [
            self.items[i]
            for i in self.children[folder.source_id]
            if self.items[i].is_folder
        ]

    def resolve_shortcut(self, item: SourceItem) -> SourceItem:
        if not item.is_shortcut:
            return item
        target = self.shortcuts.get(item.source_id)
        if target not in self.items:
            raise RemSyncSourceError(f"Broken shortcut '{item.name}'")
        return self.items[target]

    def get_content_bytes(self, source_id: str) -> bytes:
        if source_id in self.broken_content:
            raise RemSyncSourceError(f"Cannot read {source_id}")
        return self.content[source_id]

    def get_metadata(self, source_id: str) -> SourceMetadata:
        item = self.items[source_id]
        return SourceMetadata(
            name=item.name, size=item.size, mime_type="application/pdf"
        )


@pytest.fixture
def fake_source():
    """Provide an empty in-memory source tree."""
    return FakeSource()


@pytest.fixture
def store(tmp_path):
    """Provide a store backed by a temporary JSON file."""
    return JsonFileStore(tmp_path / "store.json")

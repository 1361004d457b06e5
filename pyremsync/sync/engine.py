"""Core sync engine that drives one reconciliation run."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..api import RemarkableClient
from ..exceptions import RemSyncConfigError, RemSyncSourceError
from ..models import SourceItem, UploadCandidate
from ..output import OutputFormatter
from ..source import SourceStorage
from ..store import DEVICE_ID_KEY, DEVICE_TOKEN_KEY, KeyValueStore
from ..utils import is_uuid
from .comparator import DiffEngine
from .index import RemoteDocumentIndex
from .modes import SyncSettings
from .pipeline import UploadPipeline
from .pruner import MirrorPruner
from .registry import IdentifierRegistry
from .scanner import SourceTreeWalker

logger = logging.getLogger(__name__)


def pair_device(
    client: RemarkableClient,
    store: KeyValueStore,
    one_time_code: Optional[str] = None,
    force: bool = False,
) -> bool:
    """Make sure the client holds a device token.

    Stored credentials are reused unless ``force`` is set. Otherwise the
    one-time code is exchanged for a device token, which is saved under the
    reserved store keys. The stored credentials are only replaced once the
    exchange succeeded.

    Args:
        client: Target cloud client
        store: Store holding the pairing credentials
        one_time_code: Pairing code, required only for an unpaired device
        force: Register again even if credentials are already present

    Returns:
        True if a new pairing was performed

    Raises:
        RemSyncConfigError: If the device is unpaired and no code was given
    """
    if not force:
        if client.is_paired:
            return False

        device_token = store.get(DEVICE_TOKEN_KEY)
        if device_token:
            client.device_token = device_token
            return False

    if not one_time_code:
        raise RemSyncConfigError(
            "Device is not paired. Provide a one-time code from "
            "https://my.remarkable.com/device/desktop/connect"
        )

    device_id, device_token = client.register_device(one_time_code)
    store.update({DEVICE_TOKEN_KEY: device_token, DEVICE_ID_KEY: device_id})
    logger.info(f"Paired new device {device_id}")
    return True


@dataclass
class _RunContext:
    """State resolved during initialization, owned by a single run."""

    folder: SourceItem
    registry: IdentifierRegistry
    index: RemoteDocumentIndex
    root_id: str


class SyncEngine:
    """Orchestrates one sync pass from the source tree to the target cloud."""

    def __init__(
        self,
        client: RemarkableClient,
        source: SourceStorage,
        store: KeyValueStore,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Target cloud client
            source: Source storage to read from
            store: Durable store for the id mapping and pairing credentials
            output: Output formatter for displaying progress/status
        """
        self.client = client
        self.source = source
        self.store = store
        self.output = output or OutputFormatter()

    def sync(
        self,
        settings: SyncSettings,
        dry_run: bool = False,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> dict:
        """Run one sync pass.

        Runs Init, Walk, Persist, Prune (mirror mode only), Diff and Upload in
        that order. Configuration errors are raised before anything is
        changed. Any other error is logged and ends the run without raising;
        the persisted id mapping and chunks already uploaded are kept.

        Args:
            settings: Run settings
            dry_run: If True, only show what would be done
            progress_callback: Optional callback function(done, total) called
                after each upload chunk

        Returns:
            Dictionary with sync statistics; ``error`` is set when the run
            ended early

        Raises:
            RemSyncConfigError: If the source folder or target root cannot be
                resolved, or the device is unpaired

        Examples:
            >>> engine = SyncEngine(client, LocalFolderSource(), store)
            >>> stats = engine.sync(SyncSettings(source="Books", root="Books"))
            >>> print(f"Uploaded {stats['uploads']} item(s)")
        """
        stats = self._create_empty_stats()
        start_time = time.time()

        if not self.output.quiet:
            self.output.info(f"Syncing: {settings.source} -> {settings.root}")
            self.output.info(f"Mode: {settings.mode.value}")
            if dry_run:
                self.output.info("Dry run: No changes will be made")
            self.output.print("")

        try:
            context = self._initialize(settings)
            self._run(context, settings, dry_run, progress_callback, stats)
            logger.info("Finished running!")
        except RemSyncConfigError:
            raise
        except Exception as e:
            logger.exception(f"Finished run with error: {e}")
            stats["error"] = str(e)
            self.output.error(f"Sync stopped: {e}")

        logger.debug(f"Sync took {time.time() - start_time:.2f}s")
        if not self.output.quiet:
            self._display_summary(stats, dry_run)
        return stats

    def _create_empty_stats(self) -> dict:
        """Create an empty statistics dictionary.

        Returns:
            Dictionary with zero counts for all stat categories
        """
        return {
            "scanned": 0,
            "candidates": 0,
            "uploads": 0,
            "failed": 0,
            "rejected": 0,
            "deletes_remote": 0,
            "chunks": 0,
            "error": None,
        }

    def _initialize(self, settings: SyncSettings) -> _RunContext:
        """Resolve everything the run needs before any sync state changes.

        Raises:
            RemSyncConfigError: If the source folder or root cannot be found
        """
        try:
            folder = self.source.resolve_folder(settings.source)
        except RemSyncSourceError as e:
            raise RemSyncConfigError(
                f"Could not find source folder using: {settings.source}"
            ) from e

        registry = IdentifierRegistry(self.store)
        pair_device(self.client, self.store, settings.one_time_code)

        documents = self.client.list_documents()
        logger.info(f"Found {len(documents)} items in target cloud")
        index = RemoteDocumentIndex(documents)

        root_id = self._resolve_root(settings.root, index)
        logger.info(f"Mapped '{settings.root}' to ID '{root_id}'")
        return _RunContext(
            folder=folder, registry=registry, index=index, root_id=root_id
        )

    def _resolve_root(self, root: str, index: RemoteDocumentIndex) -> str:
        """Map a root locator to a target id.

        A UUID-shaped locator is taken literally; anything else is looked up
        by visible name in the target's document list.
        """
        if is_uuid(root):
            return root
        entry = index.find_by_name(root)
        if entry is None:
            raise RemSyncConfigError(f"Cannot find root folder '{root}'")
        return entry.id

    def _run(
        self,
        context: _RunContext,
        settings: SyncSettings,
        dry_run: bool,
        progress_callback: Optional[Callable[[int, int], None]],
        stats: dict,
    ) -> None:
        # Step 1: Walk the source tree
        logger.info(f"Scanning source folder '{context.folder.name}'..")
        walker = SourceTreeWalker(self.source, context.registry, settings.skip)
        candidates = walker.walk(context.folder, context.root_id)
        stats["scanned"] = len(candidates)
        logger.info(f"Found {len(candidates)} items in source folder.")

        # Step 2: Persist the id mapping before touching the target
        if not dry_run:
            context.registry.persist()

        # Step 3: Remove target items that are gone from the source
        pruner = MirrorPruner(self.client, context.index)
        if settings.mode.allows_remote_delete:
            logger.info("In mirror mode. Will delete target items not in source.")
            if dry_run:
                stats["deletes_remote"] = len(
                    pruner.plan(context.root_id, candidates, walker.skipped_ids)
                )
            else:
                stats["deletes_remote"] = pruner.prune(
                    context.root_id, candidates, walker.skipped_ids
                )

        # Step 4: Decide what needs uploading
        diff = DiffEngine(context.index, settings.force_update)
        updates = diff.filter(candidates)
        stats["candidates"] = len(updates)
        logger.info(f"Updating {len(updates)} documents and folders..")
        self._display_sync_plan(stats, updates, dry_run)

        # Step 5: Upload in chunks
        if not dry_run and updates:
            pipeline = UploadPipeline(
                self.client, self.source, progress_callback=progress_callback
            )
            pipeline.run(updates, stats)

    def _display_sync_plan(
        self, stats: dict, updates: list[UploadCandidate], dry_run: bool
    ) -> None:
        """Display sync plan to user.

        Args:
            stats: Statistics dictionary
            updates: Candidates selected for upload
            dry_run: Whether this is a dry run
        """
        if self.output.quiet:
            return

        self.output.info("Sync plan:")
        self.output.info(f"  Scanned: {stats['scanned']} item(s)")
        if stats["candidates"] > 0:
            self.output.info(f"  ↑ Upload: {stats['candidates']} item(s)")
        if stats["deletes_remote"] > 0:
            verb = "Would delete" if dry_run else "Deleted"
            self.output.info(f"  ✗ {verb} remote: {stats['deletes_remote']} item(s)")
        if dry_run:
            for candidate in updates:
                self.output.info(
                    f"    {candidate.entry.visible_name} "
                    f"(v{candidate.next_version})"
                )
        self.output.print("")

    def _display_summary(self, stats: dict, dry_run: bool) -> None:
        """Display sync summary.

        Args:
            stats: Statistics dictionary
            dry_run: Whether this was a dry run
        """
        if stats["error"]:
            self.output.warning("Sync finished with errors")
            return
        if dry_run:
            self.output.success("Dry run complete!")
            return

        self.output.success("Sync complete!")
        total_actions = stats["uploads"] + stats["deletes_remote"]
        if total_actions > 0 or stats["failed"] or stats["rejected"]:
            if stats["uploads"] > 0:
                self.output.info(f"  Uploaded: {stats['uploads']}")
            if stats["deletes_remote"] > 0:
                self.output.info(f"  Deleted remotely: {stats['deletes_remote']}")
            if stats["failed"] > 0:
                self.output.warning(f"  Failed and removed: {stats['failed']}")
            if stats["rejected"] > 0:
                self.output.warning(f"  Rejected by target: {stats['rejected']}")
        else:
            self.output.info("No changes needed - everything is in sync!")

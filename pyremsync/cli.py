"""CLI interface for pyremsync."""

import logging
from pathlib import Path
from typing import Any, Optional

import click
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.tree import Tree

from .api import RemarkableClient
from .config import config
from .exceptions import RemSyncConfigError, RemSyncError
from .models import DocType, TargetDocEntry
from .output import OutputFormatter
from .source import LocalFolderSource
from .store import DEVICE_TOKEN_KEY, JsonFileStore
from .sync import RemoteDocumentIndex, SyncEngine, SyncMode, SyncSettings, pair_device

logger = logging.getLogger(__name__)


def _open_store(ctx: Any) -> JsonFileStore:
    return JsonFileStore(ctx.obj["store_path"])


@click.group()
@click.option(
    "--store",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path of the id mapping store (default: ~/.config/pyremsync/store.json)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pyremsync")
@click.pass_context
def main(
    ctx: Any,
    store: Optional[Path],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """pyremsync - Sync a folder tree into the reMarkable cloud."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["store_path"] = store or config.get_store_path()

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyremsync").setLevel(logging.DEBUG)
        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--code",
    "-c",
    prompt="Enter your one-time code",
    help="One-time code from https://my.remarkable.com/device/desktop/connect",
)
@click.option("--force", is_flag=True, help="Pair again even if already paired")
@click.pass_context
def init(ctx: Any, code: str, force: bool) -> None:
    """Pair this machine with your reMarkable account.

    The device token is kept in the id mapping store for future runs.
    """
    out: OutputFormatter = ctx.obj["out"]
    store = _open_store(ctx)

    try:
        if store.get(DEVICE_TOKEN_KEY) and not force:
            out.warning("Already paired. Use --force to pair again.")
            return

        with RemarkableClient() as client:
            pair_device(client, store, code, force=force)

        out.print_summary(
            "Initialization Complete",
            [
                ("Status", "✓ Device paired successfully"),
                ("Store", str(store.path)),
            ],
        )
    except RemSyncError as e:
        out.error(f"Pairing failed: {e}")
        ctx.exit(1)


@main.command()
@click.argument("source")
@click.argument("root")
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.value for m in SyncMode], case_sensitive=False),
    default=None,
    help="update: push new/changed items; mirror: also delete removed items",
)
@click.option(
    "--skip",
    "-s",
    multiple=True,
    help="Source folder name to leave out (repeatable)",
)
@click.option("--code", "-c", default=None, help="One-time code if not yet paired")
@click.option(
    "--force-update",
    is_flag=True,
    help="Bump the version of every known item and push it again",
)
@click.option("--dry-run", is_flag=True, help="Show what would be done")
@click.option(
    "--base-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Directory to search for SOURCE when it is not a path",
)
@click.pass_context
def sync(
    ctx: Any,
    source: str,
    root: str,
    mode: Optional[str],
    skip: tuple[str, ...],
    code: Optional[str],
    force_update: bool,
    dry_run: bool,
    base_dir: Optional[Path],
) -> None:
    """Sync a source folder into a reMarkable cloud folder.

    SOURCE: Folder path, or a folder name searched below --base-dir

    ROOT: Target folder name or UUID; it must already exist

    Only PDF and EPUB files up to 50 MB are uploaded.

    Examples:
        pyremsync sync ~/Books Books
        pyremsync sync ~/Papers Papers --mode mirror --skip Drafts
        pyremsync sync Papers 0f1a... --base-dir ~/Dropbox --dry-run
    """
    out: OutputFormatter = ctx.obj["out"]

    skip_list = list(skip) or config.get_default_skip_list()
    try:
        settings = SyncSettings(
            source=source,
            root=root,
            mode=mode or config.get_default_mode(),
            skip=skip_list,
            one_time_code=code,
            force_update=(lambda candidate, observed: True) if force_update else None,
        )
    except RemSyncConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    store = _open_store(ctx)
    with RemarkableClient() as client:
        engine = SyncEngine(client, LocalFolderSource(base_dir), store, out)
        try:
            if out.quiet or out.json_output:
                stats = engine.sync(settings, dry_run=dry_run)
            else:
                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    transient=True,
                ) as progress:
                    task = progress.add_task("Syncing...", total=None)

                    def on_chunk(done: int, total: int) -> None:
                        progress.update(
                            task, description=f"Uploaded {done}/{total} item(s)"
                        )

                    stats = engine.sync(
                        settings, dry_run=dry_run, progress_callback=on_chunk
                    )
        except RemSyncConfigError as e:
            out.error(str(e))
            ctx.exit(1)
            return

    if out.json_output:
        out.output_json(stats)
    if stats["error"]:
        ctx.exit(1)


def _add_children(
    node: Tree, index: RemoteDocumentIndex, parent_id: str, visited: set[str]
) -> None:
    children = sorted(
        index.children_of(parent_id),
        key=lambda e: (e.type != DocType.COLLECTION, e.visible_name.lower()),
    )
    for entry in children:
        if entry.id in visited:
            continue
        visited.add(entry.id)
        if entry.type == DocType.COLLECTION:
            branch = node.add(f"[bold blue]{entry.visible_name}/[/bold blue]")
            _add_children(branch, index, entry.id, visited)
        else:
            node.add(f"{entry.visible_name} [dim]v{entry.version}[/dim]")


@main.command()
@click.argument("root", required=False, default=None)
@click.pass_context
def ls(ctx: Any, root: Optional[str]) -> None:
    """List documents in the reMarkable cloud.

    ROOT: Folder name or UUID to list (default: everything)
    """
    out: OutputFormatter = ctx.obj["out"]
    store = _open_store(ctx)

    try:
        with RemarkableClient() as client:
            pair_device(client, store)
            documents = client.list_documents()
    except RemSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    index = RemoteDocumentIndex(documents)
    root_id = ""
    label = "/"
    if root:
        entry: Optional[TargetDocEntry] = index.get(root) or index.find_by_name(root)
        if entry is None:
            out.error(f"Cannot find folder '{root}'")
            ctx.exit(1)
            return
        root_id = entry.id
        label = entry.visible_name

    if out.json_output:
        ids = index.descendants_of(root_id) if root_id else {e.id for e in index}
        out.output_json(
            [
                {
                    "id": e.id,
                    "type": e.type.value,
                    "parent": e.parent,
                    "name": e.visible_name,
                    "version": e.version,
                }
                for e in index
                if e.id in ids
            ]
        )
        return

    tree = Tree(f"[bold]{label}[/bold]")
    _add_children(tree, index, root_id, set())
    out.console.print(tree)


if __name__ == "__main__":
    main()

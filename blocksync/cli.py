"""CLI entry point for blocksync."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree

from blocksync.blocks import Diagnostic, DocumentConverter, SourceDocument
from blocksync.config import BlocksyncConfig, load_config
from blocksync.config.loader import DEFAULT_CONFIG_TEMPLATE
from blocksync.errors import RegistryError
from blocksync.hierarchy import HierarchyBuilder, HierarchyTree
from blocksync.logging_setup import configure_logging
from blocksync.registry import HierarchySnapshot, LinkRegistry, MediaRegistry, RegistryDatabase
from blocksync.sync import (
    FileContentStore,
    JsonDirectoryFetcher,
    LinkResolver,
    LocalAssetStore,
    SyncBatch,
)

app = typer.Typer(
    name="blocksync",
    help="Convert block-structured documents to editor markup and keep cross-references resolved.",
)

config_app = typer.Typer(help="Manage blocksync configuration.")
app.add_typer(config_app, name="config")

registry_app = typer.Typer(help="Inspect the identity registries.")
app.add_typer(registry_app, name="registry")

# Global state
_config: BlocksyncConfig | None = None


def _get_config() -> BlocksyncConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to blocksync.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    configure_logging(_config.log_level, _config.log_format)


def _open_registries(cfg: BlocksyncConfig) -> tuple[RegistryDatabase, LinkRegistry, MediaRegistry]:
    db = RegistryDatabase(cfg.registry.db_path)
    return db, LinkRegistry(db), MediaRegistry(db)


def _load_document(path: Path) -> SourceDocument:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{path} does not contain a document object")
    return SourceDocument.from_api(raw)


def _display_diagnostics(diagnostics: list[Diagnostic], title: str = "Diagnostics") -> None:
    if not diagnostics:
        return
    table = Table(title=f"{title} ({len(diagnostics)})")
    table.add_column("Severity")
    table.add_column("Code", style="cyan")
    table.add_column("Where", style="dim")
    table.add_column("Message")
    colors = {"info": "blue", "warning": "yellow", "error": "red"}
    for d in diagnostics:
        where = d.block_id or d.source_id or d.document_id or "-"
        color = colors[d.severity]
        table.add_row(f"[{color}]{d.severity}[/{color}]", d.code.value, where, d.message)
    rprint(table)


def _render_tree(tree: HierarchyTree, max_depth: int) -> Tree:
    root = Tree(f"[bold]Navigation[/bold] ({len(tree.nodes)} documents)")
    branches: dict[int, Tree] = {-1: root}
    for depth, node in tree.walk(max_depth=max_depth):
        label = node.label or node.source_id
        if node.override:
            label = f"{label} [yellow](override)[/yellow]"
        branch = branches[depth - 1].add(label)
        for item in node.manual_children:
            branch.add(f"[magenta]{item.label}[/magenta] [dim]{item.url}[/dim]")
        branches[depth] = branch
    return root


# ---------------------------------------------------------------------------
# Conversion and sync
# ---------------------------------------------------------------------------


@app.command()
def convert(
    file: str = typer.Argument(..., help="Path to an exported document JSON file"),
    output: str | None = typer.Option(None, "--output", "-o", help="Write markup to file"),
) -> None:
    """Convert one exported document to markup."""
    cfg = _get_config()
    try:
        document = _load_document(Path(file))
        db, links, media = _open_registries(cfg)
    except (OSError, ValueError, RegistryError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    converter = DocumentConverter(conversion=cfg.conversion, media_policy=cfg.media)
    result = converter.convert_document(document, links=links, media=media)
    db.close()

    if output:
        Path(output).write_text(result.markup, encoding="utf-8")
        rprint(f"[green]Written to[/green] {output}")
    else:
        rprint(Syntax(result.markup, "html"))

    if result.pending_refs:
        rprint(f"[yellow]{len(result.pending_refs)} unresolved reference(s)[/yellow]")
    _display_diagnostics(result.diagnostics)


@app.command()
def sync(
    source_dir: str = typer.Argument(..., help="Directory of exported document JSON files"),
    workers: int | None = typer.Option(None, "--workers", "-w", help="Parallel conversions"),
) -> None:
    """Sync every document in a directory with the two-pass protocol."""
    cfg = _get_config()
    if not Path(source_dir).is_dir():
        rprint(f"[red]Error:[/red] Not a directory: {source_dir}")
        raise typer.Exit(1)

    try:
        db, links, media = _open_registries(cfg)
    except RegistryError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    fetcher = JsonDirectoryFetcher(source_dir)
    batch = SyncBatch(
        DocumentConverter(conversion=cfg.conversion, media_policy=cfg.media),
        links,
        FileContentStore(cfg.output),
        media=media,
        assets=LocalAssetStore(cfg.media, base_url=cfg.output.base_url),
    )
    report = batch.run(fetcher.list_ids(), fetcher, max_workers=workers or cfg.sync.max_workers)
    db.close()

    resolution = report.resolution
    panel_text = (
        f"[dim]Synced:[/dim]          {report.synced}\n"
        f"[dim]Failed:[/dim]          {report.failed}\n"
        f"[dim]Assets copied:[/dim]   {report.assets_copied}\n"
        f"[dim]Links resolved:[/dim]  {resolution.links_resolved if resolution else 0}\n"
        f"[dim]Unresolved:[/dim]      {resolution.links_unresolved if resolution else 0}\n"
        f"[dim]Duration:[/dim]        {report.duration:.2f}s"
    )
    rprint(Panel(panel_text, title="Sync Report", border_style="blue"))
    _display_diagnostics([d for d in report.diagnostics if d.severity != "info"])
    if report.failed:
        raise typer.Exit(1)


@app.command()
def resolve() -> None:
    """Rewrite placeholders in every stored document."""
    cfg = _get_config()
    try:
        db, links, media = _open_registries(cfg)
    except RegistryError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    report = LinkResolver(links, media).resolve_store(FileContentStore(cfg.output))
    db.close()
    rprint(
        f"[green]Resolved[/green] {report.links_resolved} link(s), "
        f"{report.media_resolved} asset(s) in {report.documents_updated} document(s); "
        f"{report.links_unresolved} still unresolved"
    )
    _display_diagnostics(report.diagnostics)


@app.command()
def hierarchy(
    source_dir: str = typer.Argument(..., help="Directory of exported document JSON files"),
    depth: int | None = typer.Option(None, "--depth", "-d", help="Levels to display"),
) -> None:
    """Build the navigation tree from document parents and store the snapshot."""
    cfg = _get_config()
    fetcher = JsonDirectoryFetcher(source_dir)
    pairs: list[tuple[str, str | None]] = []
    titles: dict[str, str] = {}
    for source_id in fetcher.list_ids():
        try:
            document = fetcher.fetch(source_id)
        except (OSError, ValueError, KeyError) as e:
            rprint(f"[yellow]Skipping[/yellow] {source_id}: {e}")
            continue
        pairs.append((document.source_id, document.parent_id))
        titles[document.source_id] = document.title

    try:
        db = RegistryDatabase(cfg.registry.db_path)
    except RegistryError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    snapshot = HierarchySnapshot(db)
    tree = HierarchyBuilder.build(pairs, titles=titles, previous=snapshot.load())
    snapshot.save(tree)
    db.close()

    rprint(_render_tree(tree, depth or cfg.hierarchy.max_depth))
    _display_diagnostics(tree.diagnostics)


# ---------------------------------------------------------------------------
# Registry commands
# ---------------------------------------------------------------------------


@registry_app.command("links")
def registry_links() -> None:
    """List link registry entries."""
    cfg = _get_config()
    db, links, _ = _open_registries(cfg)
    entries = links.all()
    db.close()

    table = Table(title=f"Links ({len(entries)})")
    table.add_column("Source ID", style="cyan")
    table.add_column("Title")
    table.add_column("Slug", style="green")
    table.add_column("Locator")
    for e in entries:
        table.add_row(e.source_id, e.title or "-", e.slug, e.target_locator or "[dim]stub[/dim]")
    rprint(table)


@registry_app.command("media")
def registry_media() -> None:
    """List media registry entries."""
    cfg = _get_config()
    db, _, media = _open_registries(cfg)
    entries = media.all()
    stats = media.stats()
    db.close()

    table = Table(title=f"Media ({stats.total}, {stats.distinct_assets} distinct assets)")
    table.add_column("Identifier", style="cyan")
    table.add_column("Asset")
    table.add_column("Signature", style="dim")
    table.add_column("Locator")
    for e in entries:
        table.add_row(e.identifier, e.target_asset_id, e.source_signature, e.target_locator or "-")
    rprint(table)


# ---------------------------------------------------------------------------
# Config commands
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default blocksync.yaml in current directory."""
    target = Path("blocksync.yaml")
    if target.exists() and not force:
        rprint("[yellow]blocksync.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")


if __name__ == "__main__":
    app()

"""CLI interface for inkwell."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from inkwell.config import InkwellConfig, load_config, merge_cli_overrides
from inkwell.decorators import build_chain, find_visible_entry
from inkwell.errors import DecorationError, save_report
from inkwell.importer import MovableTypeImporter
from inkwell.models import Blog, Entry
from inkwell.permalink import PermalinkProvider
from inkwell.security import ANONYMOUS, StaticCapabilities
from inkwell.store import create_store

app = typer.Typer(
    name="inkwell",
    help="Import Movable Type exports and serve entries by permalink.",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from inkwell import __version__

        console.print(f"inkwell {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log per-record progress."),
    ] = False,
) -> None:
    """Inkwell - personal publishing content pipeline."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load(
    config_path: Path | None,
    **overrides: object,
) -> tuple[InkwellConfig, Blog]:
    config = merge_cli_overrides(load_config(config_path), **overrides)
    blog = config.new_blog()
    return config, blog


@app.command(name="import")
def import_cmd(
    export_file: Annotated[
        Path,
        typer.Argument(
            help="Movable Type export file.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    blog_dir: Annotated[
        Optional[Path],
        typer.Option("--blog-dir", "-b", help="Blog data directory."),
    ] = None,
    timezone: Annotated[
        Optional[str],
        typer.Option("--timezone", "-t", help="Time zone of the export dates (e.g. Europe/London)."),
    ] = None,
    url: Annotated[
        Optional[str],
        typer.Option("--url", help="Blog base URL used for local permalinks."),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to an .inkwell.toml file."),
    ] = None,
) -> None:
    """Import every record of a Movable Type export into the blog.

    Bad records are skipped and listed in the summary; the run only
    fails when the export is cut off mid-record.
    """
    config, blog = _load(config_path, blog_dir=blog_dir, timezone=timezone, blog_url=url)
    store = create_store(config)
    store.load(blog)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Importing {export_file.name}...", total=None)

        def _advance(entry: Entry) -> None:
            progress.update(task, description=f"Imported {entry.title or entry.id}")

        importer = MovableTypeImporter(blog, store, config, progress=_advance)
        report = importer.import_file(export_file)

    save_report(report, config.blog_directory)

    console.print()
    console.print(report.summary_text(), markup=False, highlight=False)
    if not report.success:
        raise typer.Exit(1)


@app.command(name="resolve")
def resolve_cmd(
    path: Annotated[str, typer.Argument(help="Permalink path, e.g. /2006/03/14/hello.html")],
    blog_dir: Annotated[
        Optional[Path],
        typer.Option("--blog-dir", "-b", help="Blog data directory."),
    ] = None,
    owner: Annotated[
        bool,
        typer.Option("--owner", help="View as the blog owner (shows unapproved entries)."),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to an .inkwell.toml file."),
    ] = None,
) -> None:
    """Show the entry a permalink points at, after decoration."""
    config, blog = _load(config_path, blog_dir=blog_dir)
    create_store(config).load(blog)

    permalinks = PermalinkProvider(blog)
    if not permalinks.is_entry_permalink(path):
        console.print(f"[red]Error:[/red] Not an entry permalink: {path}")
        raise typer.Exit(1)

    try:
        chain = build_chain(config.decorators.chain)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    capabilities = StaticCapabilities(owner_of={blog.id}) if owner else ANONYMOUS
    try:
        entry = find_visible_entry(permalinks, chain, path, capabilities=capabilities)
    except DecorationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    if entry is None:
        console.print(f"[yellow]Not found:[/yellow] {path}")
        raise typer.Exit(1)

    console.print(f"[bold]{escape(entry.title or '(untitled)')}[/bold]")
    console.print(f"by {escape(entry.author)} on {entry.created_at:%Y-%m-%d %H:%M}")
    console.print(blog.local_permalink(entry))
    if entry.categories:
        console.print(f"Categories: {', '.join(c.name for c in entry.categories)}")
    console.print(
        f"{len(entry.comments)} comment(s), {len(entry.references)} reference(s)"
    )


if __name__ == "__main__":
    app()

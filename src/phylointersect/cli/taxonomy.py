"""
Taxonomy index commands.

Builds the SQLite taxonomy index from an NCBI taxdump and inspects
lineages in an existing index.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from phylointersect.cli.utils import QuietConsole, configure_logging, spinner_progress
from phylointersect.core.constants import ROOT_TAXID
from phylointersect.core.exceptions import PhyloIntersectError
from phylointersect.core.lineage import LineageResolver
from phylointersect.core.taxonomy import TaxonomyStore, build_taxonomy_index

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="taxonomy",
    help="Build and inspect the taxonomy index",
    no_args_is_help=True,
)

console = Console()


@app.command(name="build")
def build(
    nodes: Path = typer.Option(
        ...,
        "--nodes",
        help="NCBI nodes.dmp",
        exists=True,
        dir_okay=False,
    ),
    names: Path = typer.Option(
        ...,
        "--names",
        help="NCBI names.dmp",
        exists=True,
        dir_okay=False,
    ),
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Index file to write (replaced if it exists)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress progress output (for scripting)",
    ),
) -> None:
    """
    Build a taxonomy index from an NCBI taxdump.

    Example:

        wget https://ftp.ncbi.nlm.nih.gov/pub/taxonomy/taxdump.tar.gz
        tar xzf taxdump.tar.gz nodes.dmp names.dmp
        phylointersect taxonomy build \\
            --nodes nodes.dmp --names names.dmp --output taxonomy.sqlite
    """
    out = QuietConsole(console, quiet=quiet)
    configure_logging(console, quiet=quiet)

    try:
        with spinner_progress("Building taxonomy index...", console, quiet):
            node_count = build_taxonomy_index(nodes, names, output)
    except PhyloIntersectError as e:
        console.print(f"[red]Error: {escape(e.full_message)}[/red]")
        raise typer.Exit(code=1) from None

    out.print(f"[green]Indexed {node_count:,} taxa[/green]")
    out.print(f"[bold green]Index written to:[/bold green] {output}")


@app.command(name="lineage")
def lineage(
    taxid: int = typer.Argument(..., help="Taxon ID to resolve"),
    taxonomy: Path = typer.Option(
        ...,
        "--taxonomy",
        "-d",
        help="Taxonomy index built with 'phylointersect taxonomy build'",
    ),
    root_taxid: int = typer.Option(
        ROOT_TAXID,
        "--root",
        help="Taxon ID of the taxonomy root",
        min=1,
    ),
) -> None:
    """
    Print the lineage of a taxon from leaf to root.

    Example:

        phylointersect taxonomy lineage 9606 --taxonomy taxonomy.sqlite
    """
    configure_logging(console)

    try:
        with TaxonomyStore.from_file(taxonomy) as store:
            path = LineageResolver(store, root_taxid=root_taxid, cache=False).resolve(taxid)
            if path is None:
                console.print(f"[red]Error: {taxid} is not a valid taxon ID[/red]")
                raise typer.Exit(code=1)

            table = Table(title=f"Lineage of {taxid}", show_header=True)
            table.add_column("Depth", justify="right", style="dim")
            table.add_column("Taxon ID", justify="right", style="cyan")
            table.add_column("Rank", style="magenta")
            table.add_column("Name", style="white")
            for depth, node in enumerate(path):
                table.add_row(str(depth), str(node), store.rank_of(node) or "", store.name_of(node))
    except PhyloIntersectError as e:
        console.print(f"[red]Error: {escape(e.full_message)}[/red]")
        raise typer.Exit(code=1) from None

    console.print(table)
    if not path.is_complete:
        console.print(
            f"[yellow]Lineage is incomplete ({path.status.value}); "
            f"stopped at {path.terminal}[/yellow]"
        )

"""
Main CLI entry point for phylointersect.

Provides subcommands for each stage of a classification run:
- classify: Classify reads from alignment hits and summarize the results
- taxonomy: Build and inspect the taxonomy index
"""

from __future__ import annotations

import typer
from rich import print as rprint

from phylointersect import __version__

app = typer.Typer(
    name="phylointersect",
    help="Taxonomic classification of reads by phylogenetic intersection",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"phylointersect version {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    PhyloIntersect: taxonomic classification of reads by phylogenetic intersection.

    Each read is assigned the lowest taxon shared by the lineages of its
    best and next-best hitting taxa, and scored by how many distinct taxa
    its hits span.
    """


# Import subcommands
from phylointersect.cli import classify, taxonomy

# Register subcommands
app.add_typer(classify.app, name="classify")
app.add_typer(taxonomy.app, name="taxonomy")


if __name__ == "__main__":
    app()

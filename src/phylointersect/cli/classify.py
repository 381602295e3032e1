"""
Classify command for phylogenetic intersection classification.

This is the command most users will interact with: it classifies every read
of a sample from its alignment hits and writes the intersects file and the
basic summary.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from phylointersect.cli.utils import QuietConsole, configure_logging, spinner_progress
from phylointersect.core.aggregator import AggregatorStats
from phylointersect.core.constants import (
    BLAST_OUTFMT,
    DEFAULT_CAP,
    DEFAULT_MIN_COVERAGE_PERCENT,
    DEFAULT_MIN_DIVERSITY_SCORE,
    SUMMARY_BASIC_SUFFIX,
)
from phylointersect.core.exceptions import PhyloIntersectError
from phylointersect.core.io_utils import write_summary_basic
from phylointersect.core.pipeline import run_sample
from phylointersect.core.summary import summarize_intersects
from phylointersect.models.classification import SampleSummary
from phylointersect.models.config import ClassifierConfig

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="classify",
    help="Classify reads by phylogenetic intersection of their hits",
    no_args_is_help=True,
)

console = Console()


def build_config(
    config_file: Path | None,
    cap: int | None,
    min_coverage: float | None,
    min_diversity: float | None,
    strict_hits: bool,
) -> ClassifierConfig:
    """
    Merge a YAML config file with command-line overrides.

    Options given on the command line take precedence over the file.

    Raises:
        ValueError: If the merged values are invalid.
        yaml.YAMLError: If the config file is not valid YAML.
    """
    base = ClassifierConfig.from_yaml(config_file) if config_file else ClassifierConfig()
    overrides = {
        "cap": cap,
        "min_coverage_percent": min_coverage,
        "min_diversity_score": min_diversity,
    }
    values = base.model_dump()
    values.update({k: v for k, v in overrides.items() if v is not None})
    if strict_hits:
        values["strict_hits"] = True
    return ClassifierConfig(**values)


@app.command(name="run")
def run(
    manifest: Path = typer.Option(
        ...,
        "--manifest",
        "-m",
        help="Read manifest: 'read_id<TAB>read_length' per line",
        exists=True,
        dir_okay=False,
    ),
    hits: Path = typer.Option(
        ...,
        "--hits",
        "-b",
        help=f"BLAST '-outfmt \"{BLAST_OUTFMT}\"' results, grouped by read (.tsv or .tsv.gz)",
        exists=True,
        dir_okay=False,
    ),
    taxonomy: Path = typer.Option(
        ...,
        "--taxonomy",
        "-d",
        help="Taxonomy index built with 'phylointersect taxonomy build'",
    ),
    cap: int | None = typer.Option(
        None,
        "--cap",
        "-c",
        help=f"Maximum distinct taxa examined per read (default: {DEFAULT_CAP})",
        min=1,
    ),
    min_coverage: float | None = typer.Option(
        None,
        "--min-coverage",
        "-C",
        help=(
            "Minimum percent of the read covered by its top hit "
            f"(default: {DEFAULT_MIN_COVERAGE_PERCENT:g})"
        ),
        min=0.0,
        max=100.0,
    ),
    min_diversity: float | None = typer.Option(
        None,
        "--min-diversity",
        "-s",
        help=(
            "Minimum taxonomic diversity score for the basic summary "
            f"(default: {DEFAULT_MIN_DIVERSITY_SCORE:g})"
        ),
        min=0.0,
        max=1.0,
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        help="YAML config file; command-line options override its values",
        exists=True,
        dir_okay=False,
    ),
    output_dir: Path | None = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Output directory (default: '<manifest>_out' beside the manifest)",
    ),
    workers: int = typer.Option(
        1,
        "--workers",
        "-t",
        help="Number of processes; the manifest is split into this many partitions",
        min=1,
    ),
    strict_hits: bool = typer.Option(
        False,
        "--strict-hits",
        help="Abort on malformed hit lines instead of skipping them",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress progress output (for scripting)",
    ),
) -> None:
    """
    Classify the reads of one sample by phylogenetic intersection.

    Each read's best hit must cover at least --min-coverage percent of the
    read. Its classification is the lowest taxon shared by the lineages of
    its best and next-best hitting taxa; reads whose hits span many taxa get
    a high taxonomic diversity score.

    Example:

        phylointersect classify run \\
            --manifest sample.reads.tsv \\
            --hits sample.blast.tsv.gz \\
            --taxonomy taxonomy.sqlite

        # Stricter summary, four processes:
        phylointersect classify run \\
            --manifest sample.reads.tsv \\
            --hits sample.blast.tsv.gz \\
            --taxonomy taxonomy.sqlite \\
            --min-diversity 0.2 \\
            --workers 4
    """
    out = QuietConsole(console, quiet=quiet)
    configure_logging(console, verbose=verbose, quiet=quiet)

    out.print("\n[bold blue]PhyloIntersect Classification[/bold blue]\n")

    try:
        config = build_config(config_file, cap, min_coverage, min_diversity, strict_hits)
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error: Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    out.print(f"[bold]Manifest:[/bold] {manifest}")
    out.print(f"[bold]Hits:[/bold] {hits}")
    out.print(f"[bold]Taxonomy:[/bold] {taxonomy}")
    out.print(
        f"[dim]cap={config.cap}, min coverage={config.min_coverage_percent:g}%, "
        f"min diversity score={config.min_diversity_score:g}, workers={workers}[/dim]\n"
    )

    try:
        with spinner_progress("Classifying reads...", console, quiet):
            result = run_sample(
                manifest,
                hits,
                taxonomy,
                config=config,
                output_dir=output_dir,
                workers=workers,
            )
    except PhyloIntersectError as e:
        console.print(f"\n[red]Error: {escape(e.full_message)}[/red]")
        raise typer.Exit(code=1) from None
    except FileNotFoundError as e:
        console.print(f"\n[red]File not found: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None
    except PermissionError as e:
        console.print(f"\n[red]Permission denied: {escape(str(e))}[/red]")
        console.print("[dim]Check file permissions and try again.[/dim]")
        raise typer.Exit(code=1) from None

    if not quiet:
        _display_stats_table(result.stats, result.malformed_hit_lines)

    if not result.intersects_written:
        out.print("\n[yellow]No reads passed the coverage check; nothing was written.[/yellow]")
        out.print(f"[bold green]Log written to:[/bold green] {result.paths.run_log}\n")
        return

    if result.summary is not None and not quiet:
        _display_summary_table(result.summary)

    out.print(f"\n[bold green]Intersects written to:[/bold green] {result.paths.intersects}")
    out.print(f"[bold green]Summary written to:[/bold green] {result.paths.summary_basic}")
    out.print(f"[bold green]Log written to:[/bold green] {result.paths.run_log}")
    out.print()


@app.command(name="summarize")
def summarize(
    intersects: Path = typer.Option(
        ...,
        "--intersects",
        "-i",
        help="Intersects file written by 'classify run'",
        exists=True,
        dir_okay=False,
    ),
    min_diversity: float = typer.Option(
        DEFAULT_MIN_DIVERSITY_SCORE,
        "--min-diversity",
        "-s",
        help="Minimum taxonomic diversity score (inclusive)",
        min=0.0,
        max=1.0,
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Summary file (default: '<intersects>_Summary_Basic.txt')",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress progress output (for scripting)",
    ),
) -> None:
    """
    Rebuild the basic summary of an intersects file at another threshold.

    Example:

        phylointersect classify summarize \\
            --intersects sample_out/sample_out.intersects.txt \\
            --min-diversity 0.25 \\
            --output sample_strict_Summary_Basic.txt
    """
    out = QuietConsole(console, quiet=quiet)
    configure_logging(console, quiet=quiet)

    if output is None:
        output = intersects.with_name(intersects.name + SUMMARY_BASIC_SUFFIX)

    try:
        summary = summarize_intersects(intersects, min_diversity)
        write_summary_basic(summary, output)
    except PhyloIntersectError as e:
        console.print(f"[red]Error: {escape(e.full_message)}[/red]")
        raise typer.Exit(code=1) from None

    if not quiet:
        _display_summary_table(summary)
    out.print(f"\n[bold green]Summary written to:[/bold green] {output}\n")


def _display_stats_table(stats: AggregatorStats, malformed_lines: int) -> None:
    """Display per-run read counters as a Rich table."""
    table = Table(title="Classification Run", show_header=True)

    table.add_column("Reads", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right", style="magenta")

    table.add_row("In manifest", f"{stats.reads_expected:,}")
    table.add_row("Classified", f"{stats.reads_classified:,}")
    table.add_row("Below coverage", f"{stats.reads_low_coverage:,}")
    table.add_row("No usable hits", f"{stats.reads_without_hits:,}")
    table.add_row("Absent from hit file", f"{stats.reads_not_found:,}")
    if stats.reads_unrecognized:
        table.add_row("Not in manifest", f"{stats.reads_unrecognized:,}")
    if malformed_lines:
        table.add_row("[yellow]Malformed hit lines[/yellow]", f"{malformed_lines:,}")

    console.print(table)


def _display_summary_table(summary: SampleSummary, limit: int = 20) -> None:
    """Display the most frequent classification intersects."""
    table = Table(
        title=(
            f"Basic Summary: {summary.sample_name} "
            f"(diversity score >= {summary.min_diversity_score:g})"
        ),
        show_header=True,
    )

    table.add_column("Taxon ID", justify="right", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Reads", justify="right", style="magenta")
    table.add_column("Percentage", justify="right", style="green")

    total = summary.total_assigned
    for entry in summary.entries[:limit]:
        pct = entry.read_count / total * 100 if total else 0.0
        table.add_row(str(entry.taxid), entry.name, f"{entry.read_count:,}", f"{pct:.1f}%")

    console.print(table)
    console.print(
        f"[dim]{summary.reads_passing:,} of {summary.reads_examined:,} reads passed; "
        f"{len(summary.entries):,} taxa[/dim]"
    )

"""Command-line interface for torsion-angle fragment matching.

Provides CLI commands for matching two structures and for
tabulating the torsion angles of one structure.
"""

import logging
import sys

import click

from torsion_match import __version__
from torsion_match.core.angles import AngleCatalog
from torsion_match.core.config import (
    DEFAULT_GAP_TOLERANCE,
    DEFAULT_MIN_LENGTH,
    DEFAULT_THRESHOLD,
    ConfigurationError,
)
from torsion_match.core.match import MatchStatus
from torsion_match.core.matcher import FragmentMatcher
from torsion_match.io.parser import StructureLoader
from torsion_match.io.reporter import NO_MATCH_MESSAGE, MatchReporter
from torsion_match.io.writer import FragmentPDBWriter


def setup_logging(verbose: int = 0) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: 0 for warnings only, 1 for info, 2 or more for debug.
    """
    if verbose <= 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("torsion_match").setLevel(level)


def _split_chains(value):
    if not value:
        return None
    return [c.strip() for c in value.split(",") if c.strip()]


@click.group()
@click.version_option(version=__version__, prog_name="torsion_match")
@click.option("--verbose", "-v", count=True, help="Increase verbosity (-v info, -vv debug)")
def cli(verbose):
    """Torsion-angle fragment matching.

    Find fragments of two protein or RNA structures whose backbone
    torsion angles are similar (MCQ distance).
    """
    setup_logging(verbose)


@cli.command()
@click.argument("left", type=click.Path(exists=True))
@click.argument("right", type=click.Path(exists=True))
@click.option("--left-chains", help="Comma-separated chains of LEFT (default: all)")
@click.option("--right-chains", help="Comma-separated chains of RIGHT (default: all)")
@click.option("--angles", default="main", show_default=True,
              help="'main', 'protein', 'rna' or comma-separated angle names")
@click.option("--threshold", "-t", default=DEFAULT_THRESHOLD, show_default=True,
              help="Maximum MCQ per matched position (degrees)")
@click.option("--min-length", default=DEFAULT_MIN_LENGTH, show_default=True,
              help="Minimum fragment length (residues)")
@click.option("--gap-tolerance", default=DEFAULT_GAP_TOLERANCE, show_default=True,
              help="Consecutive mismatching positions bridged inside a fragment")
@click.option("--jobs", "-j", default=1, show_default=True,
              help="Parallel jobs for the distance matrix (-1 for all CPUs)")
@click.option("--one-to-one", is_flag=True,
              help="Also forbid matching a RIGHT residue in more than one fragment")
@click.option("--output", "-o", type=click.Path(), help="Output file for results (JSON)")
@click.option("--csv", "csv_output", type=click.Path(), help="Save matched residue pairs as CSV")
@click.option("--pdb", "pdb_output", type=click.Path(),
              help="Save matched fragments as two-model PDB")
@click.option("--whole/--aligned-only", default=False,
              help="PDB export: whole selected chains or matched residues only")
def match(left, right, left_chains, right_chains, angles, threshold, min_length,
          gap_tolerance, jobs, one_to_one, output, csv_output, pdb_output, whole):
    """Find matching fragments of two structures.

    Examples:

        torsion_match match 1EHZ.pdb 1EVV.pdb

        torsion_match match a.cif b.cif --left-chains A --angles phi,psi -t 30
    """
    catalog = AngleCatalog.default()
    try:
        angle_types = catalog.parse(angles)
        matcher = FragmentMatcher(
            angle_types,
            threshold=threshold,
            min_length=min_length,
            gap_tolerance=gap_tolerance,
            n_jobs=jobs,
            one_to_one=one_to_one,
        )
    except (ConfigurationError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    click.echo("Loading structures...")
    loader = StructureLoader()
    try:
        left_structure, left_selection = loader.load_selection(left, _split_chains(left_chains))
        right_structure, right_selection = loader.load_selection(right, _split_chains(right_chains))
    except Exception as e:
        click.echo(f"Error loading structures: {e}", err=True)
        sys.exit(1)

    click.echo(f"  {left_selection.label}: {len(left_selection)} residues")
    click.echo(f"  {right_selection.label}: {len(right_selection)} residues")

    click.echo("\nMatching fragments...")
    result = matcher.match(left_selection, right_selection)
    reporter = MatchReporter(result)

    click.echo("\n" + reporter.summary_report())

    if output:
        reporter.to_json(output)
        click.echo(f"\nResults saved to: {output}")

    if result.status is not MatchStatus.MATCHED:
        click.echo(f"Warning: {NO_MATCH_MESSAGE}", err=True)
        return

    if csv_output:
        reporter.to_csv(csv_output)
        click.echo(f"Residue pairs saved to: {csv_output}")

    if pdb_output:
        writer = FragmentPDBWriter(left_structure, right_structure)
        writer.save(result, pdb_output, aligned_only=not whole)
        click.echo(f"PDB saved to: {pdb_output}")


@cli.command()
@click.argument("structure", type=click.Path(exists=True))
@click.option("--chains", help="Comma-separated chains (default: all)")
@click.option("--output", "-o", type=click.Path(), help="Output CSV file (default: print)")
def angles(structure, chains, output):
    """Tabulate torsion angles of a structure."""
    loader = StructureLoader()
    try:
        _, selection = loader.load_selection(structure, _split_chains(chains))
    except Exception as e:
        click.echo(f"Error loading structure: {e}", err=True)
        sys.exit(1)

    table = loader.torsion_table(selection)

    if output:
        table.to_csv(output, index=False)
        click.echo(f"Torsion angles of {len(table)} residues saved to: {output}")
    else:
        click.echo(table.to_string(index=False, float_format=lambda v: f"{v:.1f}"))


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()

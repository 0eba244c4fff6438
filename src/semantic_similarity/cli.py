# Semantic Similarity Engine - Find near-duplicate functions and types
# Copyright (C) 2025  Jonathan Louis
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
CLI entry point for semantic-similarity-engine.

Usage:
    semsim <snapshot.json> [options]
    semsim <snapshot.json> --lookup Shop.OrderService.Place
    semsim --help
"""

from dataclasses import replace
from pathlib import Path
from typing import Optional
import contextlib
import logging
import signal
import sys
import threading

import click

from . import __version__
from .cancellation import CancellationToken, OperationCancelled
from .config import load_config, settings_from_config
from .reporter import OutputFormat, format_similarity_hint, report_results
from .service import LOOKUP_THRESHOLD, SimilarityService
from .snapshot import SnapshotError, load_snapshot

logger = logging.getLogger(__name__)


# Extension to output format mapping for -o FILE.EXT
EXTENSION_FORMAT_MAP = {
    '.md': 'markdown',
    '.json': 'json',
    '.txt': 'text',
}


@contextlib.contextmanager
def cancel_on_interrupt(token: CancellationToken):
    """
    Turn Ctrl-C into a cancellation request.

    Worker threads notice the token and the analysis unwinds with
    OperationCancelled. Outside the main thread signals cannot be
    installed and this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def merge_config_with_cli(
    config: dict,
    cli_value,
    config_key: str,
    default_value,
):
    """
    Merge config file value with CLI value.

    If CLI value differs from default, use CLI (user explicitly set it).
    Otherwise, use config value if present, else use default.
    """
    if cli_value != default_value:
        return cli_value

    return config.get(config_key, default_value)


def configure_logging(verbosity: int) -> None:
    """-v for INFO, -vv for DEBUG; warnings only by default."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@click.command()
@click.argument("snapshot", type=click.Path(exists=True, file_okay=True, dir_okay=False))
@click.option("--functions", "scope", flag_value="functions", help="Only compare functions")
@click.option("--types", "scope", flag_value="types", help="Only compare classes and records")
@click.option("--all", "scope", flag_value="all", default=True, help="Compare functions and types (default)")
@click.option(
    "-t", "--threshold",
    type=float,
    default=None,
    help="Similarity threshold in (0, 1] (default: 0.70, or 0.85 with --lookup)"
)
@click.option(
    "-o", "--output",
    type=str,
    default=None,
    help="Output file path (e.g., report.md, data.json, report.txt)"
)
@click.option(
    "--lookup",
    type=str,
    default=None,
    help="Report the closest match of one qualified name and exit"
)
@click.option(
    "--kind",
    type=click.Choice(["function", "type"]),
    default="function",
    help="Symbol kind for --lookup (default: function)"
)
@click.option(
    "--workers",
    type=int,
    default=0,
    help="Extraction workers (default: half the CPU cores)"
)
@click.option(
    "--precompute/--no-precompute",
    default=False,
    help="Precompute the full score matrix before grouping"
)
@click.option(
    "-v", "--verbose",
    count=True,
    help="Log progress (-v) or details (-vv)"
)
@click.version_option(version=__version__)
def main(
    snapshot: str,
    scope: str,
    threshold: Optional[float],
    output: Optional[str],
    lookup: Optional[str],
    kind: str,
    workers: int,
    precompute: bool,
    verbose: int,
):
    """
    Find near-duplicate functions and types in a program snapshot.

    SNAPSHOT is a JSON program model written by a compiler front-end.

    Examples:

      # Everything, text report on stdout
      semsim solution.json

      # Strict function-only search, markdown report
      semsim solution.json --functions -t 0.9 -o report.md

      # Is this method a duplicate of something?
      semsim solution.json --lookup Shop.OrderService.Place
    """
    configure_logging(verbose)

    snapshot_path = Path(snapshot).resolve()

    # Config values override defaults, explicit CLI args override config
    config = load_config(snapshot_path.parent)
    try:
        settings = settings_from_config(config)
    except (TypeError, ValueError) as e:
        click.echo(f"❌ Invalid configuration: {e}", err=True)
        sys.exit(1)

    max_workers = merge_config_with_cli(config, workers, "max_workers", 0)
    precompute = merge_config_with_cli(config, precompute, "precompute_scores", False)
    settings = replace(
        settings,
        max_workers=max_workers or None,
        precompute_scores=bool(precompute),
    )

    if verbose and config:
        click.echo("📝 Loaded config from .semsimrc/.semsim.toml", err=True)

    output_format = OutputFormat.TEXT
    if output:
        ext = Path(output).suffix.lower()
        if ext not in EXTENSION_FORMAT_MAP:
            valid_exts = ', '.join(EXTENSION_FORMAT_MAP.keys())
            click.echo(f"❌ Invalid output extension '{ext}'. Valid: {valid_exts}", err=True)
            sys.exit(1)
        output_format = OutputFormat(EXTENSION_FORMAT_MAP[ext])

    try:
        model = load_snapshot(snapshot_path)
    except (SnapshotError, OSError) as e:
        click.echo(f"❌ Could not load snapshot: {e}", err=True)
        sys.exit(1)

    service = SimilarityService(model, settings=settings)
    token = CancellationToken()

    try:
        with cancel_on_interrupt(token):
            if lookup:
                match = service.find_similar_to(
                    lookup,
                    kind=kind,
                    threshold=threshold if threshold is not None else LOOKUP_THRESHOLD,
                    cancellation=token,
                )
                if match is None:
                    click.echo(f"✨ No similar {kind} found for {lookup}.")
                else:
                    click.echo(format_similarity_hint(match))
                return

            if threshold is None:
                threshold = settings.default_threshold

            results = []
            if scope in ("all", "functions"):
                results.extend(service.find_similar_functions(threshold, token))
            if scope in ("all", "types"):
                results.extend(service.find_similar_types(threshold, token))

    except ValueError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)
    except (OperationCancelled, KeyboardInterrupt):
        click.echo("\n⚠️  Analysis cancelled.", err=True)
        sys.exit(130)

    if not results:
        click.echo("✨ No similar code found above threshold.")
        return

    report = report_results(
        results,
        threshold=threshold,
        output_format=output_format,
        source=str(snapshot_path),
    )

    if output:
        output_path = Path(output)
        output_path.write_text(report, encoding="utf-8")
        click.echo(f"✅ Found {len(results)} groups. Report written to: {output_path}")
    else:
        click.echo(report)


# Entry point alias for pyproject.toml
cli = main


if __name__ == "__main__":
    main()

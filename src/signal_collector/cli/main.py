"""
Main command-line interface for the signal collector.
"""

import sys
from pathlib import Path
from typing import List, Optional
import click
import configparser
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from ..config.settings import CollectorSettings, RunConfig, load_settings
from ..core.collector import bin_columns, collect_bins_frame, collect_region_frame, plan_bins
from ..core.parallel import ParallelCoordinator
from ..core.sources import open_source
from ..core.summary import column_groups, write_column_groups, write_summary
from ..core.tables import read_feature_table, read_result_table, write_table
from ..core.windows import plan
from ..errors import SignalCollectorError
from ..models.features import Anchor, RelativeSpec
from ..models.options import Method, SourceSpec
from ..utils import setup_logging, PerformanceMonitor, log_error, log_file_operation
from .. import __version__


console = Console()

METHODS = [m.value for m in Method]


def dataset_options(func):
    """Options shared by every collection command."""
    options = [
        click.option(
            "--features", "-i",
            required=True,
            help="Feature table (tab-delimited with a header, or BED)",
            type=click.Path(exists=True, path_type=Path),
        ),
        click.option(
            "--data", "-d",
            required=True,
            multiple=True,
            help="Dataset file (bigWig, bigBed, BAM or bedGraph); repeat for several",
            type=str,
        ),
        click.option(
            "--out", "-o",
            required=True,
            help="Output table path",
            type=click.Path(path_type=Path),
        ),
        click.option(
            "--method", "-m",
            default="mean",
            type=click.Choice(METHODS),
            help="Aggregation method",
        ),
        click.option(
            "--value",
            default="score",
            type=click.Choice(["score", "count", "length"]),
            help="Value collected from the dataset",
        ),
        click.option(
            "--strand",
            default="all",
            type=click.Choice(["all", "sense", "antisense"]),
            help="Signal strand relative to the feature",
        ),
        click.option(
            "--log2",
            default="auto",
            type=click.Choice(["auto", "yes", "no"]),
            help="Whether dataset values are log2 (auto checks the dataset name)",
        ),
        click.option(
            "--library-size",
            type=int,
            help="Total library reads for rpm and rpkm; counted from the dataset when unset",
        ),
        click.option(
            "--mapq",
            default=0,
            type=int,
            help="Minimum mapping quality for alignments",
        ),
        click.option(
            "--format", "decimal_places",
            type=int,
            help="Number of decimal places in the output",
        ),
        click.option(
            "--workers", "-c",
            type=int,
            help="Number of parallel workers",
        ),
        click.option(
            "--executor",
            type=click.Choice(["process", "thread"]),
            help="Worker pool type",
        ),
        click.option(
            "--gz",
            is_flag=True,
            help="Compress the output table",
        ),
        click.option(
            "--config",
            help="Configuration file path",
            type=click.Path(exists=True, path_type=Path),
        ),
        click.option(
            "--log-level",
            default="INFO",
            type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
            help="Logging level",
        ),
        click.option(
            "--log-file",
            help="Log file path",
            type=click.Path(path_type=Path),
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="Signal Collector")
def cli():
    """Signal Collector - Collect genomic signal over features and feature bins."""
    pass


@cli.command()
@dataset_options
@click.option("--bins", "-b", "bin_count", default=10, type=int, help="Number of bins across each feature")
@click.option("--flanks", "-x", "flank_count", default=0, type=int, help="Number of flanking bins on each side")
@click.option("--flank-size", "-X", "flank_size_bp", type=int, help="Flanking bin size in bp; percent-sized when unset")
@click.option("--long-threshold", default=3000, type=int, help="Features longer than this are queried bin by bin")
@click.option("--force-long", is_flag=True, help="Always query bins one by one")
@click.option("--min-length", type=int, help="Features shorter than this get no values")
@click.option("--interpolate", is_flag=True, help="Fill gaps of up to three bins from their neighbours")
@click.option("--sum", "write_sum", is_flag=True, help="Write a profile summary file")
@click.option("--groups", "write_groups", is_flag=True, help="Write a column group file")
def bins(**options):
    """Collect binned signal across each feature and its flanks."""
    settings, logger = _prepare(options)
    settings.write_summary = settings.write_summary or options["write_sum"]
    settings.write_groups = settings.write_groups or options["write_groups"]

    try:
        run_config = _run_config(
            options,
            bin_count=options["bin_count"],
            flank_count=options["flank_count"],
            flank_size_bp=options["flank_size_bp"],
            long_threshold_bp=options["long_threshold"],
            force_long=options["force_long"],
            min_length=options["min_length"],
            interpolate=options["interpolate"],
        )
    except SignalCollectorError as e:
        console.print(f"[red]Invalid options: {e}[/red]")
        sys.exit(1)

    merged, written = _execute(settings, logger, options, run_config, collect_bins_frame)

    layout = plan_bins(run_config)
    names = [d.name for d in run_config.datasets]
    if settings.write_summary:
        summary_file = write_summary(
            merged,
            layout,
            names,
            {d.name: run_config.is_log2(d) for d in run_config.datasets},
            written,
            run_config.decimal_places,
        )
        console.print(f"Summary file: {summary_file}")
    if settings.write_groups:
        groups_file = write_column_groups(bin_columns(run_config, layout), written)
        console.print(f"Column group file: {groups_file}")


@cli.command()
@dataset_options
@click.option("--start", "start_offset", type=int, help="Region start offset in bp")
@click.option("--stop", "stop_offset", type=int, help="Region stop offset in bp")
@click.option("--fstart", "start_fraction", type=float, help="Region start as a fraction of the feature length")
@click.option("--fstop", "stop_fraction", type=float, help="Region stop as a fraction of the feature length")
@click.option(
    "--anchor",
    default="five_prime",
    type=click.Choice([a.value for a in Anchor]),
    help="Feature end the offsets are measured from",
)
@click.option("--limit", "min_feature_length", default=1000, type=int,
              help="Features shorter than this are taken whole with fractional offsets")
def region(**options):
    """Collect a single value per feature, optionally for a relative region."""
    settings, logger = _prepare(options)

    try:
        relative_spec = _relative_spec(options)
        run_config = _run_config(options, relative_spec=relative_spec)
    except (SignalCollectorError, click.UsageError) as e:
        console.print(f"[red]Invalid options: {e}[/red]")
        sys.exit(1)

    _execute(settings, logger, options, run_config, collect_region_frame)


@cli.command()
@click.option(
    "--input", "-i", "input_file",
    required=True,
    help="Binned result table",
    type=click.Path(exists=True, path_type=Path),
)
@click.option("--bins", "-b", "bin_count", default=10, type=int, help="Number of bins the table was collected with")
@click.option("--flanks", "-x", "flank_count", default=0, type=int, help="Number of flanking bins on each side")
@click.option("--flank-size", "-X", "flank_size_bp", type=int, help="Flanking bin size in bp")
@click.option("--format", "decimal_places", type=int, help="Number of decimal places in the output")
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
def summary(
    input_file: Path,
    bin_count: int,
    flank_count: int,
    flank_size_bp: Optional[int],
    decimal_places: Optional[int],
    log_level: str
):
    """Write the profile summary of an existing binned result table."""
    logger = setup_logging(log_level=log_level, log_format="console")

    try:
        frame = read_result_table(input_file)
        layout = plan(bin_count, flank_count, flank_size_bp)
        groups = column_groups([c for c in frame.columns if ":" in str(c)])
        names = list(dict.fromkeys(groups["Dataset"]))
        if not names:
            raise SignalCollectorError(f"no binned columns found in {input_file}")
        log2 = {name: "log2" in name.lower() for name in names}
        summary_file = write_summary(frame, layout, names, log2, input_file, decimal_places)
        log_file_operation(logger, "written", summary_file)
        console.print(f"[green]✓ Summary file written: {summary_file}[/green]")
    except Exception as e:
        log_error(logger, e, context={"operation": "summary", "input": str(input_file)})
        console.print(f"[red]Error writing summary: {e}[/red]")
        sys.exit(1)


def _prepare(options):
    """Load settings, apply CLI overrides and set up logging."""
    try:
        if options["config"]:
            settings = load_settings(options["config"])
        else:
            settings = CollectorSettings()

        # Override config with CLI options
        if options["workers"]:
            settings.workers = options["workers"]
        if options["executor"]:
            settings.executor = options["executor"]
        settings.compress = settings.compress or options["gz"]
        settings.log_level = options["log_level"]
        if options["log_file"]:
            settings.log_file = options["log_file"]

    except configparser.Error as e:
        console.print(f"[red]Error reading configuration file {options['config']}: {e}[/red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)

    logger = setup_logging(
        log_level=settings.log_level,
        log_file=settings.log_file,
        log_format=settings.log_format,
    )
    return settings, logger


def _datasets(options) -> List[SourceSpec]:
    return [SourceSpec.from_locator(d, min_mapq=options["mapq"]) for d in options["data"]]


def _with_library_sizes(datasets: List[SourceSpec]) -> List[SourceSpec]:
    """Count the library size of every dataset from its source."""
    sized = []
    for dataset in datasets:
        with open_source(dataset) as source:
            total = source.total_count()
        console.print(f"Library size of {dataset.name}: {total}")
        sized.append(dataset.model_copy(update={"library_size": total}))
    return sized


def _run_config(options, **layout) -> RunConfig:
    datasets = _datasets(options)
    method = Method.parse(options["method"])
    if method.is_normalized and options["library_size"] is None:
        datasets = _with_library_sizes(datasets)
    return RunConfig(
        datasets=datasets,
        method=method,
        value_type=options["value"],
        stranded=options["strand"],
        log2={"auto": None, "yes": True, "no": False}[options["log2"]],
        library_size=options["library_size"],
        decimal_places=options["decimal_places"],
        **layout,
    )


def _relative_spec(options) -> RelativeSpec:
    anchor = Anchor(options["anchor"])
    has_offsets = options["start_offset"] is not None or options["stop_offset"] is not None
    has_fractions = options["start_fraction"] is not None or options["stop_fraction"] is not None
    if has_offsets and has_fractions:
        raise click.UsageError("Cannot combine bp offsets with fractional offsets")
    if has_offsets:
        return RelativeSpec.absolute(
            options["start_offset"] or 0, options["stop_offset"] or 0, anchor
        )
    if has_fractions:
        return RelativeSpec.fractional(
            options["start_fraction"] or 0.0,
            1.0 if options["stop_fraction"] is None else options["stop_fraction"],
            anchor,
            options["min_feature_length"],
        )
    return RelativeSpec.whole()


def _execute(settings, logger, options, run_config, pipeline):
    """Run a pipeline over the feature table and write the merged output."""
    errors = settings.validate_setup(run_config.datasets)
    if errors:
        console.print("[red]Setup validation failed:[/red]")
        for error in errors:
            console.print(f"  [red]• {error}[/red]")
        sys.exit(1)

    output = options["out"]
    if not output.is_absolute():
        output = settings.output_dir / output
    settings.ensure_directories()

    console.print(f"[bold blue]Signal Collector v{__version__}[/bold blue]")
    console.print(f"Datasets: {', '.join(d.name for d in run_config.datasets)}")
    console.print(f"Method: {run_config.method.value}")
    console.print(f"Workers: {settings.workers} ({settings.executor})")

    monitor = PerformanceMonitor(logger)
    monitor.log_system_info()
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Collecting signal...", total=None)

            monitor.start_timer("read")
            table = read_feature_table(options["features"])
            monitor.stop_timer("read")

            monitor.start_timer("collection")
            coordinator = ParallelCoordinator(
                workers=settings.workers,
                executor=settings.executor,
                min_rows_per_worker=settings.min_rows_per_worker,
                logger=logger,
            )
            merged = coordinator.run(table, pipeline, run_config, output)
            monitor.stop_timer("collection")

            monitor.start_timer("write")
            written = write_table(merged, output, compress=settings.compress)
            monitor.stop_timer("write")
            monitor.log_memory_usage()

            progress.update(task, description="Collection completed successfully!")

        log_file_operation(logger, "written", written)
        display_results(merged, written, run_config, monitor.get_summary())
        return merged, written

    except Exception as e:
        log_error(logger, e, context={"operation": "collection"})
        console.print(f"[red]Collection failed: {e}[/red]")
        sys.exit(1)


def display_results(merged, written: Path, run_config: RunConfig, timings=None):
    """Display a short summary of a finished run."""
    table = Table(title="Collection Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Features", str(len(merged)))
    table.add_row("Columns", str(merged.shape[1]))
    table.add_row("Datasets", str(len(run_config.datasets)))
    table.add_row("Output", str(written))
    for name, seconds in (timings or {}).items():
        table.add_row(f"Time {name} (s)", f"{seconds:.2f}")

    console.print(table)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()

"""
Per-row collection of signal for a feature table.

``collect_bins_frame`` and ``collect_region_frame`` are the pipelines run by
each worker on its slice of the table. They are plain module level
functions so that process pools can pickle them.
"""

from contextlib import ExitStack
from typing import Dict, List, Optional

import pandas as pd

from ..config.settings import RunConfig
from ..errors import RegionError
from ..models.features import AggregationResult, Bin, Feature, RowResult
from ..models.options import SourceSpec
from ..utils.logging import get_logger
from .aggregation import aggregate
from .binning import assign, build_score_map
from .coordinates import resolve, whole_region
from .interpolation import interpolate_row
from .sources import SignalSource, open_source
from .tables import FeatureTable
from .windows import column_names, plan


def plan_bins(config: RunConfig) -> List[Bin]:
    """Bin layout of a run."""
    return plan(config.bin_count, config.flank_count, config.flank_size_bp)


def _null(config: RunConfig, dataset: SourceSpec) -> AggregationResult:
    return AggregationResult(
        value=None, method=config.method.value, log2=config.is_log2(dataset)
    )


def collect_bins(
    feature: Feature,
    source: SignalSource,
    dataset: SourceSpec,
    bins: List[Bin],
    config: RunConfig
) -> List[AggregationResult]:
    """
    Collect one value per bin of a feature from one dataset.

    Features shorter than ``config.min_length`` are not queried and get
    no value in every bin.
    """
    if config.min_length and feature.length < config.min_length:
        return [_null(config, dataset) for _ in bins]

    log2 = config.is_log2(dataset)
    options = dict(
        method=config.method,
        stranded=config.stranded,
        region_strand=feature.strand,
        log2=log2,
        library_size=config.library_size_for(dataset),
        value_type=config.effective_value_type,
    )
    assignment = assign(
        whole_region(feature),
        feature,
        bins,
        threshold_bp=config.long_threshold_bp,
        force_long=config.force_long,
    )

    results = []
    if assignment.long:
        for (lo, hi), region in zip(assignment.windows, assignment.regions):
            points = []
            if region is not None:
                points = source.query(region.chromosome, region.start, region.end)
            results.append(aggregate(points, region_length=hi - lo + 1, **options))
        return results

    region = assignment.query_region
    score_map = build_score_map(
        source.query(region.chromosome, region.start, region.end),
        feature,
        value_type=config.effective_value_type,
        stranded=config.stranded,
    )
    for lo, hi in assignment.windows:
        values = score_map.values_between(lo, hi)
        results.append(aggregate(values, region_length=hi - lo + 1, **options))
    return results


def collect_region(
    feature: Feature,
    source: SignalSource,
    dataset: SourceSpec,
    config: RunConfig
) -> AggregationResult:
    """
    Collect a single value for the region of a feature given by
    ``config.relative_spec``.

    Raises:
        RegionError: if the region cannot be placed on the chromosome
    """
    region = resolve(feature, config.relative_spec)
    points = source.query(region.chromosome, region.start, region.end)
    return aggregate(
        points,
        method=config.method,
        stranded=config.stranded,
        region_strand=feature.strand,
        log2=config.is_log2(dataset),
        library_size=config.library_size_for(dataset),
        region_length=region.length,
        value_type=config.effective_value_type,
    )


def collect_row(
    feature: Feature,
    sources: Dict[str, SignalSource],
    bins: List[Bin],
    config: RunConfig
) -> RowResult:
    """
    Collect every bin of every dataset for one feature.

    Values are laid out one dataset block after another, in the dataset
    order of the run.
    """
    row = RowResult(feature=feature)
    for dataset in config.datasets:
        start = len(row.values)
        row.values.extend(collect_bins(feature, sources[dataset.name], dataset, bins, config))
        if config.interpolate:
            interpolate_row(row, start, len(row.values))
    return row


def _open_sources(stack: ExitStack, config: RunConfig) -> Dict[str, SignalSource]:
    return {
        dataset.name: stack.enter_context(open_source(dataset))
        for dataset in config.datasets
    }


def _result_frame(table: FeatureTable, columns: List[str], rows: List[List[Optional[float]]]) -> pd.DataFrame:
    values = pd.DataFrame(rows, columns=columns, index=table.frame.index, dtype=float)
    return pd.concat([table.frame, values], axis=1)


def bin_columns(config: RunConfig, bins: Optional[List[Bin]] = None) -> List[str]:
    """Output columns added by a binned run."""
    bins = bins or plan_bins(config)
    columns = []
    for dataset in config.datasets:
        columns.extend(column_names(bins, dataset.name))
    return columns


def collect_bins_frame(table: FeatureTable, config: RunConfig) -> pd.DataFrame:
    """
    Binned collection over every row of a table.

    Rows whose coordinates are unusable get no value in every column and
    are reported as a warning; any other error ends the run.

    Returns:
        The input columns followed by one column per dataset and bin
    """
    logger = get_logger(operation="collect_bins")
    bins = plan_bins(config)
    columns = bin_columns(config, bins)

    rows = []
    with ExitStack() as stack:
        sources = _open_sources(stack, config)
        for index in range(table.row_count()):
            try:
                feature = table.feature(index)
                rows.append(collect_row(feature, sources, bins, config).as_list())
            except RegionError as e:
                logger.warning("Skipping row", row=index, reason=str(e))
                rows.append([None] * len(columns))

    return _result_frame(table, columns, rows)


def collect_region_frame(table: FeatureTable, config: RunConfig) -> pd.DataFrame:
    """
    Single-region collection over every row of a table.

    Returns:
        The input columns followed by one column per dataset
    """
    logger = get_logger(operation="collect_region")
    columns = [dataset.name for dataset in config.datasets]

    rows = []
    with ExitStack() as stack:
        sources = _open_sources(stack, config)
        for index in range(table.row_count()):
            values = []
            for dataset in config.datasets:
                try:
                    feature = table.feature(index)
                    result = collect_region(feature, sources[dataset.name], dataset, config)
                except RegionError as e:
                    logger.warning("Skipping row", row=index, dataset=dataset.name, reason=str(e))
                    result = _null(config, dataset)
                values.append(result.value)
            rows.append(values)

    return _result_frame(table, columns, rows)

"""
Row-partitioned parallel execution of a collection pipeline.

The table is split into contiguous row ranges, each handled by one worker
that writes its own partial file. Partials are merged in partition order
once every worker has finished, so the merged table keeps the input row
order whatever order the workers complete in.
"""

import os
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, List, Optional

import pandas as pd
import structlog

from ..config.settings import RunConfig
from ..errors import ConfigError, MergeError
from ..models.features import WorkerPartition
from ..utils.logging import PipelineLogger, get_logger, log_error
from .tables import FeatureTable, read_result_table, write_table

Pipeline = Callable[[FeatureTable, RunConfig], pd.DataFrame]

MIN_ROWS_PER_WORKER = 100


def plan_partitions(
    rows: int,
    worker_count: int,
    min_rows: int = MIN_ROWS_PER_WORKER
) -> List[WorkerPartition]:
    """
    Split ``rows`` table rows into contiguous, near-equal partitions.

    The worker count is lowered while workers would get fewer than
    ``min_rows`` rows each. The first ``rows % n`` partitions get one row
    more than the others.

    Args:
        rows: Number of table rows
        worker_count: Requested number of workers
        min_rows: Minimum rows per worker

    Returns:
        Partitions covering ``[0, rows)`` in order
    """
    if worker_count < 1:
        raise ConfigError("Worker count must be positive")
    while worker_count > 1 and rows / worker_count < min_rows:
        worker_count -= 1

    size, extra = divmod(rows, worker_count)
    partitions = []
    start = 0
    for index in range(worker_count):
        end = start + size + (1 if index < extra else 0)
        partitions.append(WorkerPartition(index=index, range_start=start, range_end=end))
        start = end
    return partitions


def partial_path(output: Path, pid: int, index: int) -> Path:
    """Path of the partial file written by one worker."""
    output = Path(output)
    return output.with_name(f"{output.name}.{pid}.{index:03d}")


def run_partition(
    table: FeatureTable,
    pipeline: Pipeline,
    config: RunConfig,
    path: Path,
    index: int
) -> Path:
    """Run the pipeline over one partition and write its partial file."""
    logger = get_logger(partition=index)
    logger.debug("Worker started", rows=table.row_count(), partial=str(path))
    frame = pipeline(table, config)
    write_table(frame, path, config.decimal_places)
    logger.debug("Worker finished", rows=len(frame))
    return path


def merge_partials(paths: List[Path]) -> pd.DataFrame:
    """
    Concatenate partial files in the given order.

    Raises:
        MergeError: if a partial file is missing or unreadable
    """
    frames = []
    for path in paths:
        if not Path(path).exists():
            raise MergeError(f"partial output '{path}' is missing")
        try:
            frames.append(read_result_table(path))
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise MergeError(f"partial output '{path}' is unreadable: {e}") from e
    if not frames:
        raise MergeError("no partial output to merge")
    return pd.concat(frames, ignore_index=True)


class ParallelCoordinator:
    """Runs a pipeline over row partitions of a table and merges the results."""

    def __init__(
        self,
        workers: int = 4,
        executor: str = "process",
        min_rows_per_worker: int = MIN_ROWS_PER_WORKER,
        logger: Optional[structlog.BoundLogger] = None
    ):
        """
        Initialize the coordinator.

        Args:
            workers: Maximum number of workers
            executor: Worker pool type, "process" or "thread"
            min_rows_per_worker: Minimum rows per worker
            logger: Structured logger instance
        """
        if executor not in ("process", "thread"):
            raise ConfigError("Executor must be 'process' or 'thread'")
        self.workers = workers
        self.executor = executor
        self.min_rows_per_worker = min_rows_per_worker
        self.logger = logger or get_logger()

    def _pool(self, worker_count: int):
        if self.executor == "thread":
            return ThreadPoolExecutor(max_workers=worker_count)
        return ProcessPoolExecutor(max_workers=worker_count)

    def run(
        self,
        table: FeatureTable,
        pipeline: Pipeline,
        config: RunConfig,
        output: Path
    ) -> pd.DataFrame:
        """
        Run a pipeline over the table and merge the worker outputs.

        A single partition runs in this process through the same partial
        file and merge as a parallel run, so the merged table is the same
        for any number of workers.

        Args:
            table: Feature table to process
            pipeline: Function turning a table slice into a result frame
            config: Run configuration shared by every worker
            output: Final output path, partial files are written beside it

        Returns:
            Merged result table, all values as text
        """
        partitions = plan_partitions(table.row_count(), self.workers, self.min_rows_per_worker)
        pid = os.getpid()
        paths = [partial_path(output, pid, p.index) for p in partitions]

        with PipelineLogger(self.logger, "parallel_collection") as plog:
            plog.add_context(rows=table.row_count(), workers=len(partitions))
            try:
                if len(partitions) == 1:
                    run_partition(table, pipeline, config, paths[0], 0)
                else:
                    self._run_pool(table, pipeline, config, partitions, paths)
                merged = merge_partials(paths)
            except Exception as e:
                log_error(self.logger, e, context={"operation": "parallel_collection"})
                raise
            finally:
                for path in paths:
                    if path.exists():
                        path.unlink()

            plog.log_progress("Merged partial outputs", partials=len(paths), rows=len(merged))
            return merged

    def _run_pool(self, table, pipeline, config, partitions, paths):
        with self._pool(len(partitions)) as pool:
            futures = {
                pool.submit(
                    run_partition,
                    table.slice_rows(p.range_start, p.range_end),
                    pipeline,
                    config,
                    paths[p.index],
                    p.index,
                ): p
                for p in partitions
            }
            for future in as_completed(futures):
                partition = futures[future]
                try:
                    future.result()
                except Exception:
                    for other in futures:
                        other.cancel()
                    self.logger.error("Worker failed", partition=partition.index)
                    raise
                self.logger.debug(
                    "Partition complete",
                    partition=partition.index,
                    rows=partition.size,
                )

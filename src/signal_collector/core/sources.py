"""
Signal sources: the capability interface and its backends.

Each backend is selected once per dataset from its SourceKind. Handles are
never shared between workers; every worker opens its own through
``open_source``.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterator, Optional

import numpy as np
import pandas as pd
import structlog

from ..errors import BackendError
from ..models.features import SignalPoint
from ..models.options import SourceKind, SourceSpec
from .tables import count_header_lines

logger = structlog.get_logger("signal_collector.sources")


class SignalSource(ABC):
    """Read-only access to per-position signal of one dataset."""

    def __init__(self, spec: SourceSpec):
        self.spec = spec

    @abstractmethod
    def query(
        self,
        chromosome: str,
        start: int,
        end: int,
        strand: Optional[int] = None
    ) -> Iterator[SignalPoint]:
        """
        Yield the signal points within ``start..end`` (1-based, inclusive).

        When ``strand`` is given, points on the opposite strand are skipped;
        unstranded points are always reported.
        """

    def total_count(self) -> int:
        """Total number of reads or features, used as the library size."""
        raise BackendError(
            f"dataset '{self.spec.name}' does not support counting the library size"
        )

    def close(self):
        """Release the underlying handle."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _strand_ok(point_strand: int, strand: Optional[int]) -> bool:
    return not strand or point_strand == 0 or point_strand == strand


def _parse_strand(value) -> int:
    if value in ("+", "1", "+1", 1):
        return 1
    if value in ("-", "-1", -1):
        return -1
    return 0


class IntervalSignalSource(SignalSource):
    """
    In-memory table of scored intervals (bedGraph semantics).

    The frame needs ``chromosome``, ``start`` (0-based), ``end`` and
    ``value`` columns and may carry a ``strand`` column. Every covered
    position is reported with the value of its interval.
    """

    def __init__(self, spec: SourceSpec, frame: pd.DataFrame):
        super().__init__(spec)
        self._index: Dict[str, Dict[str, np.ndarray]] = {}
        self._max_span: Dict[str, int] = {}
        self._rows = len(frame)

        if "strand" not in frame.columns:
            frame = frame.assign(strand=0)
        for chromosome, group in frame.groupby("chromosome", sort=False):
            group = group.sort_values("start", kind="mergesort")
            starts = group["start"].to_numpy(dtype=np.int64)
            ends = group["end"].to_numpy(dtype=np.int64)
            self._index[str(chromosome)] = {
                "start": starts,
                "end": ends,
                "value": group["value"].to_numpy(dtype=float),
                "strand": np.array([_parse_strand(s) for s in group["strand"]], dtype=np.int64),
            }
            self._max_span[str(chromosome)] = int((ends - starts).max()) if len(starts) else 0

    def query(self, chromosome, start, end, strand=None):
        table = self._index.get(chromosome)
        if table is None:
            return
        begin = start - 1
        lo = int(np.searchsorted(table["start"], begin - self._max_span[chromosome], side="left"))
        hi = int(np.searchsorted(table["start"], end, side="left"))
        for i in range(lo, hi):
            s, e = int(table["start"][i]), int(table["end"][i])
            if e <= begin:
                continue
            point_strand = int(table["strand"][i])
            if not _strand_ok(point_strand, strand):
                continue
            value = float(table["value"][i])
            for position in range(max(s, begin) + 1, min(e, end) + 1):
                yield SignalPoint(position, value, point_strand, e - s)

    def total_count(self) -> int:
        return self._rows


def read_interval_table(path: Path) -> pd.DataFrame:
    """Read a bedGraph style table, skipping track and browser lines."""
    try:
        frame = pd.read_csv(
            path,
            sep="\t",
            header=None,
            skiprows=count_header_lines(path),
            dtype=str,
            keep_default_na=False,
        )
    except pd.errors.EmptyDataError as e:
        raise BackendError(f"interval table '{path}' is empty") from e
    if frame.shape[1] < 4:
        raise BackendError(f"interval table '{path}' needs at least 4 columns")
    columns = {0: "chromosome", 1: "start", 2: "end", 3: "value"}
    if frame.shape[1] >= 5:
        columns[frame.shape[1] - 1] = "strand"
    frame = frame.rename(columns=columns)[list(columns.values())]
    frame = frame.astype({"start": np.int64, "end": np.int64, "value": float})
    return frame.reset_index(drop=True)


class BigWigSource(SignalSource):
    """Coverage from a bigWig file through pyBigWig."""

    def __init__(self, spec: SourceSpec):
        super().__init__(spec)
        import pyBigWig

        try:
            self._handle = pyBigWig.open(spec.locator)
        except RuntimeError as e:
            raise BackendError(f"unable to open bigWig '{spec.locator}': {e}") from e
        if self._handle is None:
            raise BackendError(f"unable to open bigWig '{spec.locator}'")
        self._chroms = self._handle.chroms()

    def query(self, chromosome, start, end, strand=None):
        size = self._chroms.get(chromosome)
        if size is None or start > size:
            return
        try:
            intervals = self._handle.intervals(chromosome, start - 1, min(end, size))
        except RuntimeError as e:
            raise BackendError(
                f"bigWig query failed for {chromosome}:{start}-{end}: {e}"
            ) from e
        for s, e, value in intervals or ():
            for position in range(max(s, start - 1) + 1, min(e, end) + 1):
                yield SignalPoint(position, float(value), 0, e - s)

    def close(self):
        self._handle.close()


class BigBedSource(SignalSource):
    """Scored, optionally stranded features from a bigBed file through pyBigWig."""

    def __init__(self, spec: SourceSpec):
        super().__init__(spec)
        import pyBigWig

        try:
            self._handle = pyBigWig.open(spec.locator)
        except RuntimeError as e:
            raise BackendError(f"unable to open bigBed '{spec.locator}': {e}") from e
        if self._handle is None or not self._handle.isBigBed():
            raise BackendError(f"unable to open bigBed '{spec.locator}'")
        self._chroms = self._handle.chroms()

    def query(self, chromosome, start, end, strand=None):
        size = self._chroms.get(chromosome)
        if size is None or start > size:
            return
        try:
            entries = self._handle.entries(chromosome, start - 1, min(end, size))
        except RuntimeError as e:
            raise BackendError(
                f"bigBed query failed for {chromosome}:{start}-{end}: {e}"
            ) from e
        for s, e, rest in entries or ():
            fields = rest.split("\t") if rest else []
            point_strand = _parse_strand(fields[2]) if len(fields) > 2 else 0
            if not _strand_ok(point_strand, strand):
                continue
            position = s + 1
            if position < start or position > end:
                continue
            try:
                score = float(fields[1]) if len(fields) > 1 else 1.0
            except ValueError:
                score = 1.0
            yield SignalPoint(position, score, point_strand, e - s)

    def total_count(self) -> int:
        total = 0
        for chromosome, size in self._chroms.items():
            total += len(self._handle.entries(chromosome, 0, size, withString=False) or ())
        return total

    def close(self):
        self._handle.close()


class BamSource(SignalSource):
    """Alignments from an indexed BAM or CRAM file through pysam."""

    def __init__(self, spec: SourceSpec):
        super().__init__(spec)
        import pysam

        try:
            self._handle = pysam.AlignmentFile(spec.locator)
        except (OSError, ValueError) as e:
            raise BackendError(f"unable to open alignments '{spec.locator}': {e}") from e

    def query(self, chromosome, start, end, strand=None):
        try:
            reads = self._handle.fetch(chromosome, start - 1, end)
        except ValueError:
            # chromosome not in the header
            return
        for read in reads:
            if read.is_unmapped or read.is_secondary or read.is_supplementary:
                continue
            if read.is_qcfail or read.mapping_quality < self.spec.min_mapq:
                continue
            read_strand = -1 if read.is_reverse else 1
            if not _strand_ok(read_strand, strand):
                continue
            # alignments are placed at their 5' end
            position = read.reference_end if read.is_reverse else read.reference_start + 1
            if position < start or position > end:
                continue
            yield SignalPoint(position, 1.0, read_strand, read.reference_length or 0)

    def total_count(self) -> int:
        return int(self._handle.mapped)

    def close(self):
        self._handle.close()


def open_source(spec: SourceSpec) -> SignalSource:
    """
    Open a fresh handle for a dataset.

    Raises:
        BackendError: if the dataset cannot be opened
    """
    path = Path(spec.locator.replace("file:", "", 1))
    if not path.exists():
        raise BackendError(f"dataset '{spec.locator}' not found")

    logger.debug("Opening signal source", dataset=spec.name, kind=spec.kind.value)
    if spec.kind == SourceKind.BIGWIG:
        return BigWigSource(spec)
    if spec.kind == SourceKind.BIGBED:
        return BigBedSource(spec)
    if spec.kind == SourceKind.BAM:
        return BamSource(spec)
    if spec.kind == SourceKind.DATABASE:
        return IntervalSignalSource(spec, read_interval_table(path))
    raise BackendError(f"unsupported dataset kind '{spec.kind}'")

"""Per-segment summaries of a composed trace and their CSV export."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .models import HoldSegment, Sample, Segment

logger = logging.getLogger(__name__)

SUMMARY_HEADER = [
    "index",
    "kind",
    "start_time",
    "end_time",
    "target_pressure",
    "samples",
    "min_pressure",
    "max_pressure",
    "mean_pressure",
    "max_deviation_pct",
]


@dataclass
class SegmentSummary:
    index: int
    kind: str
    start_time: float
    end_time: float
    target_pressure: float
    samples: int
    min_pressure: float
    max_pressure: float
    mean_pressure: float
    max_deviation_pct: Optional[float] = None

    @classmethod
    def from_samples(
        cls, index: int, segment: Segment, samples: Sequence[Sample]
    ) -> SegmentSummary:
        pressures = [pressure for _, pressure in samples]
        if isinstance(segment, HoldSegment):
            target = segment.pressure
        else:
            target = segment.end_pressure

        deviation = None
        # holds only: the realised drift + noise band around the plateau
        if isinstance(segment, HoldSegment) and target > 0:
            deviation = max(abs(p - target) for p in pressures) / target * 100.0

        return cls(
            index=index,
            kind=segment.kind,
            start_time=segment.start_time,
            end_time=segment.end_time,
            target_pressure=target,
            samples=len(pressures),
            min_pressure=min(pressures),
            max_pressure=max(pressures),
            mean_pressure=sum(pressures) / len(pressures),
            max_deviation_pct=deviation,
        )

    def as_csv_row(self) -> List[str]:
        return [
            str(self.index),
            self.kind,
            f"{self.start_time:.0f}",
            f"{self.end_time:.0f}",
            f"{self.target_pressure:.4f}",
            str(self.samples),
            f"{self.min_pressure:.4f}",
            f"{self.max_pressure:.4f}",
            f"{self.mean_pressure:.4f}",
            "" if self.max_deviation_pct is None else f"{self.max_deviation_pct:.4f}",
        ]


def summarize_trace(
    samples: Sequence[Sample], segments: Sequence[Segment]
) -> List[SegmentSummary]:
    """Group samples by the segment window they fall in (boundaries count for both)."""

    summaries: List[SegmentSummary] = []
    for index, segment in enumerate(segments):
        window = [
            sample
            for sample in samples
            if segment.start_time <= sample.time <= segment.end_time
        ]
        if not window:
            logger.warning(f"segment {index} has no samples in the trace")
            continue
        summaries.append(SegmentSummary.from_samples(index, segment, window))
    return summaries


def write_summary_csv(summaries: Iterable[SegmentSummary], path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(SUMMARY_HEADER)
        for summary in summaries:
            writer.writerow(summary.as_csv_row())

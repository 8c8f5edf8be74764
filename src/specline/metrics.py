from __future__ import annotations

from dataclasses import dataclass, asdict

import numpy as np

from specline.results import Status, SuiteResult


@dataclass
class DurationStatistics:
    """Statistics over the durations of executed tests."""

    count: int
    total: float | None
    avg: float | None
    min: float | None
    max: float | None
    stddev: float | None

    def to_dict(self) -> dict[str, float | int | None]:
        return asdict(self)


def compute_stats(values: list[float | None]) -> DurationStatistics:
    """Compute total, avg, min, max, stddev for a list of durations."""
    nums = [v for v in values if v is not None]
    if not nums:
        return DurationStatistics(count=0, total=None, avg=None, min=None, max=None, stddev=None)

    arr = np.array(nums, dtype=float)
    return DurationStatistics(
        count=len(nums),
        total=round(float(np.sum(arr)), 6),
        avg=round(float(np.mean(arr)), 6),
        min=round(float(np.min(arr)), 6),
        max=round(float(np.max(arr)), 6),
        stddev=round(float(np.std(arr)), 6),
    )


def collect_durations(root: SuiteResult) -> list[float]:
    """Durations of tests that actually ran (passed or failed)."""
    return [
        case.duration
        for case in root.cases()
        if case.status in (Status.PASSED, Status.FAILED)
    ]


def slowest(root: SuiteResult, n: int = 5) -> list[tuple[str, float]]:
    ran = [
        (case.full_name, case.duration)
        for case in root.cases()
        if case.status in (Status.PASSED, Status.FAILED)
    ]
    ran.sort(key=lambda item: item[1], reverse=True)
    return ran[:n]

"""Result tree handed from the engine to reporters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from specline.config import RunOptions
    from specline.metrics import DurationStatistics


class Status(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    TODO = "todo"


class FailureKind(str, Enum):
    ASSERTION = "assertion"
    AUTHORING = "authoring"
    HOOK = "hook"
    TIMEOUT = "timeout"
    ERROR = "error"


SKIP_REASON_ABORTED = "aborted"
SKIP_REASON_ONLY = "filtered by only"
SKIP_REASON_GREP = "filtered by name"
SKIP_REASON_MODIFIER = "skip"


@dataclass
class FailureInfo:
    """Diagnostics for a failed test or hook.

    Attributes:
        kind: Which class of failure occurred.
        message: Human-readable failure text.
        matcher: Matcher name for assertion failures.
        expected: repr of the expected value, when reported.
        actual: repr of the actual value, when reported.
        error_type: Class name of the underlying exception.
        traceback: Formatted traceback of the underlying exception.
        hook: Hook kind and owning suite, for hook failures.
        elapsed: Seconds elapsed, for timeouts.
        limit: Configured limit in seconds, for timeouts.
    """

    kind: FailureKind
    message: str
    matcher: str | None = None
    expected: str | None = None
    actual: str | None = None
    error_type: str | None = None
    traceback: str | None = None
    hook: str | None = None
    elapsed: float | None = None
    limit: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {k: v for k, v in self.__dict__.items() if v is not None}
        data["kind"] = self.kind.value
        return data


@dataclass
class CaseResult:
    name: str
    full_name: str
    status: Status = Status.PENDING
    duration: float = 0.0
    failure: FailureInfo | None = None
    skip_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": "case",
            "name": self.name,
            "full_name": self.full_name,
            "status": self.status.value,
            "duration": self.duration,
        }
        if self.failure is not None:
            data["failure"] = self.failure.to_dict()
        if self.skip_reason is not None:
            data["skip_reason"] = self.skip_reason
        return data


@dataclass
class SuiteResult:
    """Aggregate over a suite, or over the entries of a dataset test.

    ``duration`` is the wall time of the suite's activation, so it
    includes hook time that individual case durations exclude.
    """

    name: str
    full_name: str
    children: list[ResultNode] = field(default_factory=list)
    status: Status = Status.PENDING
    duration: float = 0.0
    hook_failures: list[FailureInfo] = field(default_factory=list)
    is_dataset: bool = False

    def cases(self) -> Iterator[CaseResult]:
        for child in self.children:
            if isinstance(child, SuiteResult):
                yield from child.cases()
            else:
                yield child

    def suites(self) -> Iterator[SuiteResult]:
        yield self
        for child in self.children:
            if isinstance(child, SuiteResult):
                yield from child.suites()

    def aggregate(self) -> Status:
        """Failed if any descendant (or own hook) failed, else passed."""
        failed = bool(self.hook_failures) or any(
            child.status is Status.FAILED for child in self.children
        )
        self.status = Status.FAILED if failed else Status.PASSED
        return self.status

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": "dataset" if self.is_dataset else "suite",
            "name": self.name,
            "full_name": self.full_name,
            "status": self.status.value,
            "duration": self.duration,
            "children": [child.to_dict() for child in self.children],
        }
        if self.hook_failures:
            data["hook_failures"] = [f.to_dict() for f in self.hook_failures]
        return data


ResultNode = Union[SuiteResult, CaseResult]


@dataclass
class Summary:
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    todo: int = 0
    hook_failures: int = 0
    duration: float = 0.0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped + self.todo

    @classmethod
    def from_tree(cls, root: SuiteResult, duration: float) -> Summary:
        summary = cls(duration=duration)
        for case in root.cases():
            if case.status is Status.PASSED:
                summary.passed += 1
            elif case.status is Status.FAILED:
                summary.failed += 1
            elif case.status is Status.SKIPPED:
                summary.skipped += 1
            elif case.status is Status.TODO:
                summary.todo += 1
        summary.hook_failures = sum(len(s.hook_failures) for s in root.suites())
        return summary

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "todo": self.todo,
            "total": self.total,
            "hook_failures": self.hook_failures,
            "duration": self.duration,
        }


@dataclass
class RunResult:
    root: SuiteResult
    summary: Summary
    options: RunOptions
    duration_stats: DurationStatistics | None = None

    @property
    def ok(self) -> bool:
        return self.root.status is not Status.FAILED

    def find(self, full_name: str) -> ResultNode | None:
        for suite in self.root.suites():
            if suite.full_name == full_name:
                return suite
            for child in suite.children:
                if isinstance(child, CaseResult) and child.full_name == full_name:
                    return child
        return None

    def statuses(self) -> list[Status]:
        """Leaf statuses in execution order."""
        return [case.status for case in self.root.cases()]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "summary": self.summary.to_dict(),
            "root": self.root.to_dict(),
        }
        if self.duration_stats is not None:
            data["duration_stats"] = self.duration_stats.to_dict()
        return data

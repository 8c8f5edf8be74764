from __future__ import annotations

from pathlib import Path

from junitparser import Failure, JUnitXml, Skipped, TestCase, TestSuite

from specline.reporting.base import Reporter
from specline.results import CaseResult, RunResult, Status, SuiteResult

ROOT_SUITE_NAME = "(root)"


def _case(result: CaseResult, classname: str) -> TestCase:
    case = TestCase(result.name)
    case.classname = classname
    case.time = round(result.duration, 6)
    if result.status is Status.FAILED and result.failure is not None:
        failure = Failure(result.failure.message, result.failure.kind.value)
        if result.failure.traceback:
            failure.text = result.failure.traceback
        case.result = [failure]
    elif result.status is Status.SKIPPED:
        case.result = [Skipped(result.skip_reason or "skipped")]
    elif result.status is Status.TODO:
        case.result = [Skipped("todo")]
    return case


def _junit_suite(suite: SuiteResult) -> TestSuite | None:
    """One <testsuite> per result suite that directly holds tests."""
    name = suite.full_name or ROOT_SUITE_NAME
    cases: list[TestCase] = []
    for child in suite.children:
        if isinstance(child, CaseResult):
            cases.append(_case(child, name))
        elif child.is_dataset:
            cases.extend(_case(entry, name) for entry in child.cases())

    if not cases and not suite.hook_failures:
        return None

    junit_suite = TestSuite(name)
    for hook_failure in suite.hook_failures:
        junit_suite.add_property(f"hook_failure:{hook_failure.hook}", hook_failure.message)
    for case in cases:
        junit_suite.add_testcase(case)

    # Set time after add_testcase (add_testcase resets it via update_statistics)
    junit_suite.time = round(suite.duration, 6)
    return junit_suite


def write_junit(path: Path, result: RunResult) -> Path:
    """Write junit.xml for a finished run, return path."""
    xml = JUnitXml("specline")
    for suite in result.root.suites():
        if suite.is_dataset:
            continue
        junit_suite = _junit_suite(suite)
        if junit_suite is not None:
            # Use append (not +=) to preserve properties and time
            xml.append(junit_suite)

    path.parent.mkdir(parents=True, exist_ok=True)
    xml.write(str(path), pretty=True)
    return path


class JUnitReporter(Reporter):
    def __init__(self, path: Path):
        self.path = path

    def report(self, result: RunResult) -> None:
        write_junit(self.path, result)

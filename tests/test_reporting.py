from __future__ import annotations

import pytest
from junitparser import Failure, JUnitXml, Skipped

from specline import Declarations, RunOptions, Runner, expect
from specline.reporting import ConsoleReporter, JUnitReporter, write_junit
from specline.results import CaseResult, RunResult, Status, SuiteResult, Summary


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_result():
    d = Declarations()

    def math():
        d.it("adds", lambda: expect(2 + 2).to_be(4))
        d.it("fails", lambda: expect(1).to_be(2))
        d.it.skip("skipped", lambda: None)
        d.it.todo("later")
        d.it.each([1, 2])("entry {0}", lambda v: expect(v).to_be_greater_than(0))

    def hooks():
        d.after_all(lambda: 1 / 0)
        d.it("ok", lambda: None)

    d.it("top", lambda: None)
    d.describe("Math", math)
    d.describe("Hooks", hooks)
    return Runner(d.collector, RunOptions(timeout=None)).run()


@pytest.fixture
def junit_path(tmp_path, sample_result):
    return write_junit(tmp_path / "out" / "junit.xml", sample_result)


def _suite(xml, name):
    return next(s for s in xml if s.name == name)


def _case(suite, name):
    return next(c for c in suite if c.name == name)


# ---------------------------------------------------------------------------
# write_junit tests
# ---------------------------------------------------------------------------


def test_write_junit_creates_file_and_parents(junit_path, tmp_path):
    assert junit_path == tmp_path / "out" / "junit.xml"
    assert junit_path.exists()


def test_junit_one_testsuite_per_suite_with_tests(junit_path):
    xml = JUnitXml.fromfile(str(junit_path))
    assert [s.name for s in xml] == ["(root)", "Math", "Hooks"]


def test_junit_testcase_counts(junit_path):
    xml = JUnitXml.fromfile(str(junit_path))
    math = _suite(xml, "Math")
    # dataset entries are flattened into the enclosing suite
    assert math.tests == 6
    assert math.failures == 1
    assert math.skipped == 2
    assert _suite(xml, "(root)").tests == 1


def test_junit_dataset_entries_named_individually(junit_path):
    xml = JUnitXml.fromfile(str(junit_path))
    names = [c.name for c in _suite(xml, "Math")]
    assert "entry 1" in names
    assert "entry 2" in names


def test_junit_failure_recorded(junit_path):
    xml = JUnitXml.fromfile(str(junit_path))
    failing_case = _case(_suite(xml, "Math"), "fails")
    failure = next(r for r in failing_case.result if isinstance(r, Failure))
    assert failure.message == "Expected 1 to be 2"
    assert failure.type == "assertion"
    assert "ExpectationFailure" in failure.text


def test_junit_skipped_and_todo(junit_path):
    xml = JUnitXml.fromfile(str(junit_path))
    math = _suite(xml, "Math")
    skipped = next(r for r in _case(math, "skipped").result if isinstance(r, Skipped))
    todo = next(r for r in _case(math, "later").result if isinstance(r, Skipped))
    assert skipped.message == "skip"
    assert todo.message == "todo"


def test_junit_passing_case_has_no_result(junit_path):
    xml = JUnitXml.fromfile(str(junit_path))
    assert not _case(_suite(xml, "Math"), "adds").result


def test_junit_testcase_classname(junit_path):
    xml = JUnitXml.fromfile(str(junit_path))
    for case in _suite(xml, "Math"):
        assert case.classname == "Math"


def test_junit_suite_time_matches_result(junit_path, sample_result):
    xml = JUnitXml.fromfile(str(junit_path))
    math_result = sample_result.find("Math")
    assert _suite(xml, "Math").time == pytest.approx(round(math_result.duration, 6))


def test_junit_hook_failure_property(junit_path):
    xml = JUnitXml.fromfile(str(junit_path))
    props = {p.name: p.value for p in _suite(xml, "Hooks").properties()}
    assert "hook_failure:after_all in 'Hooks'" in props
    assert "ZeroDivisionError" in props["hook_failure:after_all in 'Hooks'"]


def test_junit_reporter_writes_file(tmp_path, sample_result):
    path = tmp_path / "junit.xml"
    JUnitReporter(path).report(sample_result)
    assert path.exists()


# ---------------------------------------------------------------------------
# ConsoleReporter tests
# ---------------------------------------------------------------------------


def test_console_quiet_lists_only_failures(sample_result):
    lines = ConsoleReporter(colors=False).render(sample_result)
    text = "\n".join(lines)
    assert "Math" in lines
    assert any(line.startswith("  FAIL fails") for line in lines)
    assert "adds" not in text
    assert "top" not in text


def test_console_failure_details(sample_result):
    lines = ConsoleReporter(colors=False).render(sample_result)
    assert "Failures:" in lines
    assert "  x Math > fails" in lines
    assert "    [assertion] Expected 1 to be 2" in lines
    assert "    expected: 2" in lines
    assert "    actual:   1" in lines
    assert "  x Hooks" in lines


def test_console_summary_line(sample_result):
    lines = ConsoleReporter(colors=False).render(sample_result)
    assert lines[-1].startswith(
        "Tests: 5 passed, 1 failed, 1 skipped, 1 todo, 1 hook failure(s) (8 total) in "
    )


def test_console_verbose_lists_every_test(sample_result):
    lines = ConsoleReporter(verbose=True, colors=False).render(sample_result)
    assert any(line.startswith("PASS top (") for line in lines)
    assert "  SKIP skipped" in lines
    assert "  TODO later" in lines
    assert any(line.startswith("    PASS entry 1 (") for line in lines)
    # tracebacks are included in verbose mode
    assert any("Traceback" in line for line in lines)


def test_console_verbose_ends_with_slowest_tests():
    root = SuiteResult(
        name="<root>",
        full_name="",
        children=[
            CaseResult(name="quick", full_name="quick", status=Status.PASSED, duration=0.002),
            CaseResult(name="slow", full_name="slow", status=Status.FAILED, duration=0.25),
            CaseResult(name="skipped", full_name="skipped", status=Status.SKIPPED),
        ],
    )
    root.aggregate()
    result = RunResult(root=root, summary=Summary.from_tree(root, 0.3), options=RunOptions())

    lines = ConsoleReporter(verbose=True, colors=False).render(result)

    start = lines.index("Slowest tests:")
    assert lines[start + 1 : start + 3] == ["  250.0ms slow", "  2.0ms quick"]
    assert lines[start + 3] == ""


def test_console_quiet_omits_slowest_tests(sample_result):
    lines = ConsoleReporter(colors=False).render(sample_result)
    assert "Slowest tests:" not in lines


def test_console_shows_filter_reason():
    d = Declarations()
    d.it("plain", lambda: None)
    d.it.only("focused", lambda: None)
    result = Runner(d.collector, RunOptions(timeout=None)).run()

    lines = ConsoleReporter(verbose=True, colors=False).render(result)
    assert "SKIP plain [filtered by only]" in lines


def test_console_all_passing_prints_only_summary():
    d = Declarations()
    d.it("fine", lambda: None)
    result = Runner(d.collector, RunOptions(timeout=None)).run()

    lines = ConsoleReporter(colors=False).render(result)
    assert lines[0] == ""
    assert lines[1].startswith("Tests: 1 passed, 0 failed")


def test_console_colors_add_ansi_codes(sample_result):
    lines = ConsoleReporter(colors=True).render(sample_result)
    assert any("\x1b[" in line for line in lines)


def test_console_report_echoes_each_line(sample_result):
    seen: list[str] = []
    reporter = ConsoleReporter(colors=False, echo=seen.append)
    reporter.report(sample_result)
    assert seen == reporter.render(sample_result)

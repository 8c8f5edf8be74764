"""Plain-text rendering of a run for the terminal."""

from __future__ import annotations

from typing import Callable

import typer

from specline.metrics import slowest
from specline.reporting.base import Reporter
from specline.results import CaseResult, FailureInfo, RunResult, Status, SuiteResult

_MARKS = {
    Status.PASSED: ("PASS", typer.colors.GREEN),
    Status.FAILED: ("FAIL", typer.colors.RED),
    Status.SKIPPED: ("SKIP", typer.colors.YELLOW),
    Status.TODO: ("TODO", typer.colors.CYAN),
}


class ConsoleReporter(Reporter):
    """Indented tree of results followed by failure details and a summary.

    Non-verbose output lists only failed tests; verbose output lists every
    test with its duration and ends with the slowest tests.
    """

    def __init__(
        self,
        verbose: bool = False,
        colors: bool = True,
        echo: Callable[[str], None] | None = None,
    ):
        self.verbose = verbose
        self.colors = colors
        self._echo = echo or typer.echo

    def _style(self, text: str, color: str, bold: bool = False) -> str:
        if not self.colors:
            return text
        return typer.style(text, fg=color, bold=bold)

    def report(self, result: RunResult) -> None:
        for line in self.render(result):
            self._echo(line)

    def render(self, result: RunResult) -> list[str]:
        lines: list[str] = []
        for child in result.root.children:
            self._render_node(child, 0, lines)

        failed = [case for case in result.root.cases() if case.status is Status.FAILED]
        hook_failures = [
            (suite, failure) for suite in result.root.suites() for failure in suite.hook_failures
        ]
        if failed or hook_failures:
            lines.append("")
            lines.append(self._style("Failures:", typer.colors.RED, bold=True))
            for case in failed:
                lines.extend(self._failure_lines(case.full_name, case.failure))
            for suite, failure in hook_failures:
                lines.extend(self._failure_lines(suite.full_name or "(root)", failure))

        if self.verbose:
            ranked = slowest(result.root)
            if ranked:
                lines.append("")
                lines.append(self._style("Slowest tests:", typer.colors.WHITE, bold=True))
                lines.extend(f"  {duration * 1000:.1f}ms {name}" for name, duration in ranked)

        lines.append("")
        lines.append(self._summary_line(result))
        return lines

    def _render_node(self, node: SuiteResult | CaseResult, depth: int, lines: list[str]) -> None:
        indent = "  " * depth
        if isinstance(node, SuiteResult):
            if not self.verbose and node.status is not Status.FAILED:
                return
            label = self._style(node.name, typer.colors.WHITE, bold=True)
            if self.verbose:
                label += f" ({node.duration:.3f}s)"
            lines.append(f"{indent}{label}")
            for child in node.children:
                self._render_node(child, depth + 1, lines)
            return

        if not self.verbose and node.status is not Status.FAILED:
            return
        mark, color = _MARKS.get(node.status, (node.status.value.upper(), typer.colors.WHITE))
        line = f"{indent}{self._style(mark, color)} {node.name}"
        if node.status in (Status.PASSED, Status.FAILED):
            line += f" ({node.duration * 1000:.1f}ms)"
        elif node.skip_reason and node.skip_reason != "skip":
            line += f" [{node.skip_reason}]"
        lines.append(line)

    def _failure_lines(self, title: str, failure: FailureInfo | None) -> list[str]:
        if failure is None:
            return []
        lines = [f"  {self._style('x', typer.colors.RED)} {title}", f"    [{failure.kind.value}] {failure.message}"]
        if failure.expected is not None:
            lines.append(f"    expected: {failure.expected}")
        if failure.actual is not None:
            lines.append(f"    actual:   {failure.actual}")
        if self.verbose and failure.traceback:
            lines.extend(f"    {tb_line}" for tb_line in failure.traceback.rstrip().splitlines())
        return lines

    def _summary_line(self, result: RunResult) -> str:
        s = result.summary
        parts = [
            self._style(f"{s.passed} passed", typer.colors.GREEN),
            self._style(f"{s.failed} failed", typer.colors.RED) if s.failed else f"{s.failed} failed",
            f"{s.skipped} skipped",
            f"{s.todo} todo",
        ]
        if s.hook_failures:
            parts.append(self._style(f"{s.hook_failures} hook failure(s)", typer.colors.RED))
        return f"Tests: {', '.join(parts)} ({s.total} total) in {s.duration:.3f}s"

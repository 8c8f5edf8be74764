"""Execution engine: walks a frozen suite tree and builds the result tree.

Each test invocation (its ``before_each`` chain, body and ``after_each``
chain) runs on one worker thread inside its own copy of the enclosing
suite's :mod:`contextvars` context, so state a hook sets up is visible to
the body. ``before_all``/``after_all`` hooks run in the suite's context,
which every test in the suite inherits. Awaitables returned by hooks or
bodies are driven on a fresh event loop in the worker, so running from a
thread that already has a loop is fine.
"""

from __future__ import annotations

import asyncio
import contextvars
import inspect
import logging
import threading
import time
import traceback
from typing import Any, Callable, Iterable, TYPE_CHECKING

from specline.config import RunOptions, build_options
from specline.declaration import Collector, executing, get_collector
from specline.errors import (
    AuthoringError,
    ExpectationFailure,
    InternalError,
    TestTimeoutError,
)
from specline.metrics import collect_durations, compute_stats
from specline.results import (
    SKIP_REASON_ABORTED,
    SKIP_REASON_GREP,
    SKIP_REASON_MODIFIER,
    SKIP_REASON_ONLY,
    CaseResult,
    FailureInfo,
    FailureKind,
    ResultNode,
    RunResult,
    Status,
    Summary,
    SuiteResult,
)
from specline.tree import (
    Case,
    HookKind,
    Modifier,
    Suite,
    compute_only_filter,
    hook_chain,
    is_skipped_by_ancestor,
)

if TYPE_CHECKING:
    from specline.reporting.base import Reporter

# extra wait after a timeout so a cancelled coroutine can unwind
CANCEL_GRACE = 0.1


def invoke(fn: Callable[..., Any], args: tuple = (), timeout: float | None = None) -> Any:
    """Call ``fn`` and finish any awaitable it returns.

    ``async def`` functions and plain callables that return a coroutine
    are handled alike: the awaitable runs on a new event loop under
    ``asyncio.wait_for`` and is cancelled after ``timeout`` seconds.
    """
    start = time.perf_counter()
    value = fn(*args)
    if not inspect.isawaitable(value):
        return value

    async def _await() -> Any:
        return await value

    try:
        return asyncio.run(asyncio.wait_for(_await(), timeout=timeout))
    except asyncio.TimeoutError:
        if timeout is None:
            raise
        raise TestTimeoutError(time.perf_counter() - start, timeout) from None


def _in_thread(fn: Callable[..., Any], *args: Any) -> BaseException | None:
    """Run ``fn`` on a worker thread, wait for it and return what it raised."""
    errors: list[BaseException] = []

    def target() -> None:
        try:
            fn(*args)
        except BaseException as exc:
            errors.append(exc)

    worker = threading.Thread(target=target, name="specline-hook", daemon=True)
    worker.start()
    worker.join()
    return errors[0] if errors else None


def _format_traceback(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def failure_from_exception(exc: BaseException) -> FailureInfo:
    """Classify an exception raised by user code.

    ``InternalError`` and ``KeyboardInterrupt`` are re-raised; anything
    else, ``SystemExit`` included, becomes a failure of one test or hook.
    """
    if isinstance(exc, (InternalError, KeyboardInterrupt)):
        raise exc

    tb = _format_traceback(exc)
    if isinstance(exc, ExpectationFailure):
        return FailureInfo(
            kind=FailureKind.ASSERTION,
            message=exc.message,
            matcher=exc.matcher,
            expected=repr(exc.expected) if exc.has_expected else None,
            actual=repr(exc.actual) if exc.has_actual else None,
            error_type=type(exc).__name__,
            traceback=tb,
        )
    if isinstance(exc, TestTimeoutError):
        return FailureInfo(
            kind=FailureKind.TIMEOUT,
            message=str(exc),
            error_type=type(exc).__name__,
            elapsed=exc.elapsed,
            limit=exc.limit,
        )
    if isinstance(exc, AuthoringError):
        return FailureInfo(
            kind=FailureKind.AUTHORING,
            message=str(exc),
            error_type=type(exc).__name__,
            traceback=tb,
        )
    if isinstance(exc, AssertionError):
        return FailureInfo(
            kind=FailureKind.ASSERTION,
            message=str(exc) or "assertion failed",
            error_type=type(exc).__name__,
            traceback=tb,
        )
    return FailureInfo(
        kind=FailureKind.ERROR,
        message=f"{type(exc).__name__}: {exc}",
        error_type=type(exc).__name__,
        traceback=tb,
    )


class _CaseRun:
    """One invocation of a test: ``before_each`` chain, body, ``after_each`` chain.

    The whole sequence runs on a single worker thread inside ``context``.
    Only the body is bounded by ``timeout``; a body that overruns is
    abandoned and its teardown runs on a separate thread in a copy of the
    test's context.
    """

    def __init__(self, case: Case, args: tuple, context: contextvars.Context, timeout: float | None):
        self.case = case
        self.args = args
        self.context = context
        self.timeout = timeout
        self.entered = 0
        self.setup_error: tuple[Suite, BaseException] | None = None
        self.body_error: BaseException | None = None
        self.teardown_error: tuple[Suite, BaseException] | None = None
        self.body_start = 0.0
        self.duration = 0.0
        self.timed_out = False

        self._started = threading.Event()
        self._body_done = threading.Event()
        self._finished = threading.Event()
        self._lock = threading.Lock()
        self._abandoned = False

    def run(self) -> _CaseRun:
        worker = threading.Thread(
            target=self.context.run, args=(self._sequence,), name="specline-test", daemon=True
        )
        worker.start()
        self._wait()
        return self

    def _sequence(self) -> None:
        try:
            self._setup()
            if self.setup_error is not None:
                self._body_done.set()
                self._started.set()
            else:
                self.body_start = time.perf_counter()
                self._started.set()
                try:
                    invoke(self.case.body, self.args, self.timeout)
                except BaseException as exc:
                    self.body_error = exc
                end = time.perf_counter()
                with self._lock:
                    if self._abandoned:
                        return
                    self.duration = end - self.body_start
                    self._body_done.set()
            self._teardown()
        finally:
            self._finished.set()

    def _setup(self) -> None:
        for suite, hooks in hook_chain(self.case, HookKind.BEFORE_EACH):
            self.entered += 1
            for hook in hooks:
                try:
                    invoke(hook)
                except BaseException as exc:
                    self.setup_error = (suite, exc)
                    return

    def _teardown(self) -> None:
        chain = hook_chain(self.case, HookKind.AFTER_EACH)[: self.entered]
        for suite, hooks in reversed(chain):
            for hook in hooks:
                try:
                    invoke(hook)
                except BaseException as exc:
                    if self.teardown_error is None:
                        self.teardown_error = (suite, exc)
                    break

    def _wait(self) -> None:
        self._started.wait()
        if self._body_done.wait(self.timeout):
            self._finished.wait()
            return

        self.timed_out = True
        self._body_done.wait(CANCEL_GRACE)
        with self._lock:
            if not self._body_done.is_set():
                self._abandoned = True
        if not self._abandoned:
            self._finished.wait()
            return

        self.duration = time.perf_counter() - self.body_start
        # _teardown records hook errors itself
        _in_thread(self.context.copy().run, self._teardown)

    def timeout_error(self) -> TestTimeoutError:
        if not self._abandoned and isinstance(self.body_error, TestTimeoutError):
            return self.body_error
        return TestTimeoutError(self.duration, self.timeout or 0.0)


class Runner:
    """Executes one frozen tree.

    Tests run sequentially in declaration order. Every failure raised by
    user code is converted into a result status; only ``InternalError``
    (and a ``KeyboardInterrupt``) escapes :meth:`run`.
    """

    def __init__(
        self,
        tree: Suite | Collector,
        options: RunOptions | None = None,
        logger: logging.Logger | None = None,
    ):
        if isinstance(tree, Collector):
            tree = tree.freeze()
        if not isinstance(tree, Suite):
            raise InternalError(f"Runner needs a Suite or Collector, got {type(tree).__name__}")
        self.root = tree
        self.options = options if options is not None else RunOptions()
        self.logger = logger if logger is not None else logging.getLogger("specline")
        self.aborted = False
        self._selected: set[int] | None = None

    def run(self) -> RunResult:
        self.aborted = False
        for node in self.root.walk():
            if not isinstance(node, (Suite, Case)):
                raise InternalError(f"Corrupted tree: unexpected node {node!r}")
        self._selected = compute_only_filter(self.root)
        if self._selected is not None:
            self.logger.debug(f"'only' filter active: {len(self._selected)} test(s) selected")

        start = time.perf_counter()
        with executing():
            root_result = self._run_suite(self.root, contextvars.copy_context())
        duration = time.perf_counter() - start

        summary = Summary.from_tree(root_result, duration)
        self.logger.info(
            f"Run finished: {summary.passed} passed, {summary.failed} failed, "
            f"{summary.skipped} skipped, {summary.todo} todo in {duration:.3f}s"
        )
        return RunResult(
            root=root_result,
            summary=summary,
            options=self.options,
            duration_stats=compute_stats(collect_durations(root_result)),
        )

    # -- planning ----------------------------------------------------------

    def _skip_reason(self, case: Case) -> str | None:
        if case.modifier is Modifier.SKIP or is_skipped_by_ancestor(case):
            return SKIP_REASON_MODIFIER
        if self._selected is not None and id(case) not in self._selected:
            return SKIP_REASON_ONLY
        grep = self.options.grep
        if grep and grep not in case.full_name:
            return SKIP_REASON_GREP
        return None

    def _is_runnable(self, case: Case) -> bool:
        return case.modifier is not Modifier.TODO and self._skip_reason(case) is None

    def _has_runnable(self, suite: Suite) -> bool:
        return any(self._is_runnable(case) for case in suite.cases())

    # -- suites ------------------------------------------------------------

    def _run_node(self, node: Any, context: contextvars.Context) -> ResultNode:
        if isinstance(node, Suite):
            return self._run_suite(node, context)
        if isinstance(node, Case):
            return self._run_case(node, context)
        raise InternalError(f"Corrupted tree: unexpected node {node!r}")

    def _run_suite(self, suite: Suite, parent_context: contextvars.Context) -> SuiteResult:
        full_name = "" if suite.is_root else suite.full_name
        result = SuiteResult(name=suite.name, full_name=full_name, status=Status.RUNNING)
        start = time.perf_counter()

        if self.aborted or not self._has_runnable(suite):
            result.children = [self._static_result(child) for child in suite.children]
        else:
            self.logger.debug(f"Entering suite '{full_name or suite.name}'")
            context = parent_context.copy()
            failure = self._run_hooks(suite, HookKind.BEFORE_ALL, context)
            if failure is not None:
                result.hook_failures.append(failure)
                self.logger.warning(f"before_all failed in '{full_name or suite.name}': {failure.message}")
                result.children = [self._static_result(child, failure) for child in suite.children]
                if self.options.stop_on_first_failure:
                    self.aborted = True
            else:
                for child in suite.children:
                    result.children.append(self._run_node(child, context))

            failure = self._run_hooks(suite, HookKind.AFTER_ALL, context)
            if failure is not None:
                result.hook_failures.append(failure)
                self.logger.warning(f"after_all failed in '{full_name or suite.name}': {failure.message}")

        result.duration = time.perf_counter() - start
        result.aggregate()
        return result

    def _run_hooks(self, suite: Suite, kind: HookKind, context: contextvars.Context) -> FailureInfo | None:
        """Run one suite's hooks of ``kind`` in ``context``; stop at the first failure."""
        for hook in suite.hooks.get(kind):
            error = _in_thread(context.run, invoke, hook)
            if error is not None:
                return self._hook_failure(error, suite, kind)
        return None

    def _hook_failure(self, exc: BaseException, suite: Suite, kind: HookKind) -> FailureInfo:
        info = failure_from_exception(exc)
        where = "root" if suite.is_root else f"'{suite.full_name}'"
        info.kind = FailureKind.HOOK
        info.hook = f"{kind.value} in {where}"
        info.message = f"{kind.value} hook failed in {where}: {info.message}"
        return info

    # -- static results ----------------------------------------------------

    def _static_result(self, node: Any, failure: FailureInfo | None = None) -> ResultNode:
        """Result for a node that is not executed.

        With ``failure`` (an enclosing before_all failed) runnable tests are
        marked failed with that failure; otherwise they are skipped.
        """
        if isinstance(node, Suite):
            suite_result = SuiteResult(name=node.name, full_name=node.full_name)
            suite_result.children = [self._static_result(child, failure) for child in node.children]
            suite_result.aggregate()
            return suite_result
        if not isinstance(node, Case):
            raise InternalError(f"Corrupted tree: unexpected node {node!r}")

        if node.modifier is Modifier.TODO:
            return CaseResult(name=node.name, full_name=node.full_name, status=Status.TODO)

        reason = self._skip_reason(node)
        if reason is not None:
            status, case_failure = Status.SKIPPED, None
        elif failure is not None:
            status, case_failure, reason = Status.FAILED, failure, None
        else:
            status, case_failure, reason = Status.SKIPPED, None, SKIP_REASON_ABORTED

        if not node.is_each:
            return CaseResult(
                name=node.name,
                full_name=node.full_name,
                status=status,
                failure=case_failure,
                skip_reason=reason,
            )

        group = SuiteResult(name=node.name, full_name=node.full_name, is_dataset=True)
        for index, entry in enumerate(node.dataset or []):
            entry_name = node.entry_name(index, entry)
            group.children.append(
                CaseResult(
                    name=entry_name,
                    full_name=_join(node.parent, entry_name),
                    status=status,
                    failure=case_failure,
                    skip_reason=reason,
                )
            )
        group.aggregate()
        return group

    # -- cases -------------------------------------------------------------

    def _run_case(self, case: Case, context: contextvars.Context) -> ResultNode:
        if case.modifier is Modifier.TODO or self.aborted or self._skip_reason(case) is not None:
            return self._static_result(case)

        if not case.is_each:
            return self._execute(case, case.name, case.full_name, (), context)

        group = SuiteResult(name=case.name, full_name=case.full_name, status=Status.RUNNING, is_dataset=True)
        for index, entry in enumerate(case.dataset or []):
            entry_name = case.entry_name(index, entry)
            full_name = _join(case.parent, entry_name)
            if self.aborted:
                group.children.append(
                    CaseResult(
                        name=entry_name,
                        full_name=full_name,
                        status=Status.SKIPPED,
                        skip_reason=SKIP_REASON_ABORTED,
                    )
                )
                continue
            group.children.append(self._execute(case, entry_name, full_name, (entry,), context))
        group.duration = sum(child.duration for child in group.children)
        group.aggregate()
        return group

    def _execute(
        self,
        case: Case,
        name: str,
        full_name: str,
        args: tuple,
        context: contextvars.Context,
    ) -> CaseResult:
        result = CaseResult(name=name, full_name=full_name, status=Status.RUNNING)
        self.logger.debug(f"Running test '{full_name}'")

        run = _CaseRun(case, args, context.copy(), self._timeout_for(case)).run()
        result.duration = run.duration

        failure: FailureInfo | None = None
        if run.setup_error is not None:
            suite, exc = run.setup_error
            failure = self._hook_failure(exc, suite, HookKind.BEFORE_EACH)
        elif run.timed_out:
            failure = failure_from_exception(run.timeout_error())
        elif run.body_error is not None:
            failure = failure_from_exception(run.body_error)

        if run.teardown_error is not None:
            suite, exc = run.teardown_error
            after_failure = self._hook_failure(exc, suite, HookKind.AFTER_EACH)
            if failure is None:
                failure = after_failure

        if failure is None:
            result.status = Status.PASSED
            self.logger.debug(f"Test '{full_name}' passed in {result.duration:.4f}s")
        else:
            result.status = Status.FAILED
            result.failure = failure
            self.logger.info(f"Test '{full_name}' failed ({failure.kind.value}): {failure.message}")
            if self.options.stop_on_first_failure:
                self.aborted = True
                self.logger.info("Stopping after first failure; remaining tests will be skipped")
        return result

    def _timeout_for(self, case: Case) -> float | None:
        if case.timeout is not None:
            return case.timeout or None
        return self.options.timeout


def _join(parent: Suite | None, name: str) -> str:
    if parent is None or parent.is_root:
        return name
    return f"{parent.full_name} > {name}"


def run(
    options: RunOptions | None = None,
    *,
    collector: Collector | None = None,
    logger: logging.Logger | None = None,
    reporters: Iterable[Reporter] = (),
    **overrides: Any,
) -> RunResult:
    """Finish the declaration pass of ``collector`` (default: the active
    one), execute it, and hand the result to each reporter.

    Keyword overrides (``stop_on_first_failure=True``, ``timeout=1``...)
    are applied on top of ``options``.
    """
    if options is None:
        options = build_options(overrides)
    elif overrides:
        options = build_options({**options.model_dump(), **overrides})

    target = collector if collector is not None else get_collector()
    result = Runner(target, options, logger=logger).run()
    for reporter in reporters:
        reporter.report(result)
    return result

"""Declaration API: describe/it/test and lifecycle hooks.

Declarations build a :class:`~specline.tree.Suite` tree during a single
synchronous pass. Each :class:`Collector` owns one tree and its stack of
open suites; module-level functions act on the active collector, which
``use_collector`` swaps for the duration of a block.
"""

from __future__ import annotations

import contextlib
from collections.abc import Sequence
from typing import Any, Callable, Iterator

from specline.errors import DeclarationError
from specline.tree import Case, HookKind, Modifier, Suite

ROOT_NAME = "<root>"


class Collector:
    def __init__(self, name: str = ROOT_NAME):
        self.root = Suite(name, is_root=True)
        self._stack: list[Suite] = [self.root]
        self._frozen = False

    @property
    def current(self) -> Suite:
        return self._stack[-1]

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> Suite:
        """End the declaration pass and return the finished tree."""
        if len(self._stack) != 1:
            raise DeclarationError(
                f"Cannot finish declarations while suite {self.current.name!r} is still open"
            )
        self._frozen = True
        return self.root

    def _check_open(self, what: str) -> None:
        if self._frozen or _executing:
            raise DeclarationError(
                f"{what}() called outside the declaration pass; "
                "declarations are not allowed while tests are running"
            )

    def add_suite(self, name: str, body: Callable[[], Any], modifier: Modifier = Modifier.NONE) -> Suite:
        self._check_open("describe")
        _check_name(name, "describe")
        if not callable(body):
            raise DeclarationError(f"describe({name!r}) body must be callable")

        suite = Suite(name, modifier)
        self.current.add(suite)
        self._stack.append(suite)
        try:
            body()
        finally:
            self._stack.pop()
        return suite

    def add_case(
        self,
        name: str,
        body: Callable[..., Any] | None,
        modifier: Modifier = Modifier.NONE,
        *,
        dataset: Sequence[Any] | None = None,
        timeout: float | None = None,
    ) -> Case:
        self._check_open("it")
        _check_name(name, "it")
        if modifier is not Modifier.TODO and not callable(body):
            raise DeclarationError(f"it({name!r}) body must be callable")
        if timeout is not None and timeout < 0:
            raise DeclarationError(f"it({name!r}) timeout must be >= 0")

        case = Case(name, body, modifier, dataset=dataset, timeout=timeout)
        self.current.add(case)
        return case

    def add_hook(self, kind: HookKind, body: Callable[[], Any]) -> Callable[[], Any]:
        self._check_open(kind.value)
        if not callable(body):
            raise DeclarationError(f"{kind.value}() hook must be callable")
        self.current.hooks.add(kind, body)
        return body


def _check_name(name: Any, what: str) -> None:
    if not isinstance(name, str) or not name.strip():
        raise DeclarationError(f"{what}() requires a non-empty name, got {name!r}")


# ---------------------------------------------------------------------------
# Active collector
# ---------------------------------------------------------------------------

_active: list[Collector] = []
_default_collector = Collector()
_executing = 0


def get_collector() -> Collector:
    if _active:
        return _active[-1]
    return _default_collector


def reset_default_collector() -> Collector:
    """Replace the process-wide collector with an empty one."""
    global _default_collector
    _default_collector = Collector()
    return _default_collector


@contextlib.contextmanager
def use_collector(collector: Collector | None = None) -> Iterator[Collector]:
    """Route module-level declarations to ``collector`` inside the block."""
    collector = collector if collector is not None else Collector()
    _active.append(collector)
    try:
        yield collector
    finally:
        _active.pop()


@contextlib.contextmanager
def executing() -> Iterator[None]:
    """Mark a run in progress; every declaration call fails until it ends."""
    global _executing
    _executing += 1
    try:
        yield
    finally:
        _executing -= 1


# ---------------------------------------------------------------------------
# Declarers
# ---------------------------------------------------------------------------


class SuiteDeclarer:
    """``describe(name, body)``, plus ``.skip`` and ``.only``.

    Called without a body it returns a decorator that declares the suite
    from the decorated function.
    """

    def __init__(self, collector: Collector | None = None, modifier: Modifier = Modifier.NONE):
        self._collector = collector
        self._modifier = modifier

    def _target(self) -> Collector:
        return self._collector if self._collector is not None else get_collector()

    def __call__(self, name: str, body: Callable[[], Any] | None = None) -> Any:
        if body is None:
            def decorator(fn: Callable[[], Any]) -> Callable[[], Any]:
                self._target().add_suite(name, fn, self._modifier)
                return fn

            return decorator
        return self._target().add_suite(name, body, self._modifier)

    @property
    def skip(self) -> SuiteDeclarer:
        return SuiteDeclarer(self._collector, Modifier.SKIP)

    @property
    def only(self) -> SuiteDeclarer:
        return SuiteDeclarer(self._collector, Modifier.ONLY)


class CaseDeclarer:
    """``it(name, body)`` with ``.skip``, ``.only``, ``.todo`` and ``.each``."""

    __test__ = False

    def __init__(self, collector: Collector | None = None, modifier: Modifier = Modifier.NONE):
        self._collector = collector
        self._modifier = modifier

    def _target(self) -> Collector:
        return self._collector if self._collector is not None else get_collector()

    def __call__(
        self,
        name: str,
        body: Callable[..., Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        if body is None:
            def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
                self._target().add_case(name, fn, self._modifier, timeout=timeout)
                return fn

            return decorator
        return self._target().add_case(name, body, self._modifier, timeout=timeout)

    @property
    def skip(self) -> CaseDeclarer:
        return CaseDeclarer(self._collector, Modifier.SKIP)

    @property
    def only(self) -> CaseDeclarer:
        return CaseDeclarer(self._collector, Modifier.ONLY)

    def todo(self, name: str, body: Callable[..., Any] | None = None) -> Case:
        # body is accepted for symmetry but never stored or executed
        return self._target().add_case(name, None, Modifier.TODO)

    def each(self, dataset: Sequence[Any]) -> Callable[..., Any]:
        if isinstance(dataset, (str, bytes)) or not isinstance(dataset, Sequence):
            raise DeclarationError(
                f"each() requires an ordered sequence of entries, got {type(dataset).__name__}"
            )
        entries = list(dataset)

        def declare(name: str, body: Callable[[Any], Any] | None = None, *, timeout: float | None = None) -> Any:
            if body is None:
                def decorator(fn: Callable[[Any], Any]) -> Callable[[Any], Any]:
                    self._target().add_case(name, fn, self._modifier, dataset=entries, timeout=timeout)
                    return fn

                return decorator
            return self._target().add_case(name, body, self._modifier, dataset=entries, timeout=timeout)

        return declare


def _hook_declarer(kind: HookKind, collector: Collector | None = None) -> Callable[[Callable[[], Any]], Callable[[], Any]]:
    def declare(body: Callable[[], Any]) -> Callable[[], Any]:
        target = collector if collector is not None else get_collector()
        return target.add_hook(kind, body)

    declare.__name__ = kind.value
    return declare


class Declarations:
    """The full declaration surface bound to one collector.

    Useful for building independent trees without touching the active
    collector::

        d = Declarations()
        d.describe("Math", lambda: d.it("adds", lambda: expect(2 + 2).to_be(4)))
    """

    def __init__(self, collector: Collector | None = None):
        self.collector = collector if collector is not None else Collector()
        self.describe = SuiteDeclarer(self.collector)
        self.it = CaseDeclarer(self.collector)
        self.test = self.it
        self.before_all = _hook_declarer(HookKind.BEFORE_ALL, self.collector)
        self.after_all = _hook_declarer(HookKind.AFTER_ALL, self.collector)
        self.before_each = _hook_declarer(HookKind.BEFORE_EACH, self.collector)
        self.after_each = _hook_declarer(HookKind.AFTER_EACH, self.collector)


describe = SuiteDeclarer()
it = CaseDeclarer()
test = it
before_all = _hook_declarer(HookKind.BEFORE_ALL)
after_all = _hook_declarer(HookKind.AFTER_ALL)
before_each = _hook_declarer(HookKind.BEFORE_EACH)
after_each = _hook_declarer(HookKind.AFTER_EACH)

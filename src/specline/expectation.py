"""Chainable, negatable expectations dispatched through a matcher registry."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any

from specline.errors import _MISSING, AuthoringError, ExpectationFailure
from specline.registry import MatcherRegistry, get_registry


@dataclass
class MatcherResult:
    """Outcome of a single matcher evaluation.

    Attributes:
        passed: Raw (un-negated) result of the matcher's condition.
        message: Failure text used when the positive form fails.
        negated_message: Failure text used when the negated form fails.
        expected: Value the matcher compared against, if any.
        actual: Value observed, if any.
    """

    passed: bool
    message: str
    negated_message: str
    expected: Any = _MISSING
    actual: Any = _MISSING


def assert_condition(
    expectation: Expectation,
    condition: Any,
    message: str,
    negated_message: str,
    *,
    expected: Any = _MISSING,
    actual: Any = _MISSING,
) -> MatcherResult:
    """Build the result every matcher returns.

    Built-in and custom matchers both report through this helper, so
    negation applies identically to them. ``actual`` defaults to the
    expectation's subject.
    """
    if actual is _MISSING:
        actual = expectation.subject
    return MatcherResult(
        passed=bool(condition),
        message=message,
        negated_message=negated_message,
        expected=expected,
        actual=actual,
    )


class Expectation:
    """Wraps a subject value during assertion chaining.

    ``expect(x).to_be(4)`` is shorthand for ``expect(x).check("to_be", 4)``.
    Each matcher call returns the same instance, and a pending negation is
    consumed by exactly one matcher call.
    """

    def __init__(self, subject: Any, registry: MatcherRegistry | None = None):
        self._subject = subject
        self._negated = False
        self._registry = registry if registry is not None else get_registry()

    @property
    def subject(self) -> Any:
        return self._subject

    @property
    def negated(self) -> bool:
        return self._negated

    @property
    def registry(self) -> MatcherRegistry:
        return self._registry

    def not_(self) -> Expectation:
        self._negated = True
        return self

    def never(self) -> Expectation:
        return self.not_()

    def check(self, name: str, *args: Any, **kwargs: Any) -> Expectation:
        negated = self._negated
        self._negated = False

        matcher = self._registry.resolve(name)
        outcome = matcher(self, *args, **kwargs)
        if not isinstance(outcome, MatcherResult):
            raise AuthoringError(
                f"Matcher {name!r} must return a MatcherResult "
                f"(use assert_condition), got {type(outcome).__name__}"
            )

        if outcome.passed == negated:
            raise ExpectationFailure(
                matcher=name,
                message=outcome.negated_message if negated else outcome.message,
                expected=outcome.expected,
                actual=outcome.actual,
                negated=negated,
            )
        return self

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return functools.partial(self.check, name)

    def __repr__(self) -> str:
        prefix = "not " if self._negated else ""
        return f"<Expectation {prefix}{self._subject!r}>"


def expect(value: Any, registry: MatcherRegistry | None = None) -> Expectation:
    return Expectation(value, registry=registry)

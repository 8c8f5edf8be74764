"""Built-in matchers and the extension entry points."""

from __future__ import annotations

import inspect
import math
import re
from collections.abc import Mapping, Sized
from typing import Any, Callable

from specline.errors import AuthoringError
from specline.expectation import Expectation, MatcherResult, assert_condition
from specline.registry import MatcherFn, MatcherRegistry, get_registry

Inspector = Callable[[Any, Any], "tuple[bool, str, str]"]


def to_be(e: Expectation, expected: Any) -> MatcherResult:
    actual = e.subject
    return assert_condition(
        e,
        actual is expected or actual == expected,
        f"Expected {actual!r} to be {expected!r}",
        f"Expected {actual!r} not to be {expected!r}",
        expected=expected,
    )


def to_equal(e: Expectation, expected: Any) -> MatcherResult:
    actual = e.subject
    return assert_condition(
        e,
        type(actual) is type(expected) and actual == expected,
        f"Expected {actual!r} to equal {expected!r}",
        f"Expected {actual!r} not to equal {expected!r}",
        expected=expected,
    )


def to_be_truthy(e: Expectation) -> MatcherResult:
    return assert_condition(
        e,
        e.subject,
        f"Expected {e.subject!r} to be truthy",
        f"Expected {e.subject!r} to be falsy",
    )


def to_be_falsy(e: Expectation) -> MatcherResult:
    return assert_condition(
        e,
        not e.subject,
        f"Expected {e.subject!r} to be falsy",
        f"Expected {e.subject!r} to be truthy",
    )


def to_be_none(e: Expectation) -> MatcherResult:
    return assert_condition(
        e,
        e.subject is None,
        f"Expected {e.subject!r} to be None",
        "Expected value not to be None",
        expected=None,
    )


def to_be_defined(e: Expectation) -> MatcherResult:
    return assert_condition(
        e,
        e.subject is not None,
        "Expected value to be defined (not None)",
        f"Expected {e.subject!r} to be undefined (None)",
    )


def to_be_nan(e: Expectation) -> MatcherResult:
    subject = e.subject
    is_nan = isinstance(subject, float) and math.isnan(subject)
    return assert_condition(
        e,
        is_nan,
        f"Expected {subject!r} to be NaN",
        f"Expected {subject!r} not to be NaN",
    )


def to_be_instance_of(e: Expectation, cls: type | tuple[type, ...]) -> MatcherResult:
    name = getattr(cls, "__name__", repr(cls))
    return assert_condition(
        e,
        isinstance(e.subject, cls),
        f"Expected {e.subject!r} to be an instance of {name}, got {type(e.subject).__name__}",
        f"Expected {e.subject!r} not to be an instance of {name}",
        expected=cls,
    )


def _compare(op: str, check: Callable[[Any, Any], bool]) -> MatcherFn:
    def matcher(e: Expectation, other: Any) -> MatcherResult:
        try:
            passed = check(e.subject, other)
        except TypeError as exc:
            raise AuthoringError(
                f"Cannot compare {e.subject!r} {op} {other!r}: {exc}"
            ) from exc
        return assert_condition(
            e,
            passed,
            f"Expected {e.subject!r} to be {op} {other!r}",
            f"Expected {e.subject!r} not to be {op} {other!r}",
            expected=other,
        )

    return matcher


to_be_greater_than = _compare(">", lambda a, b: a > b)
to_be_greater_than_or_equal = _compare(">=", lambda a, b: a >= b)
to_be_less_than = _compare("<", lambda a, b: a < b)
to_be_less_than_or_equal = _compare("<=", lambda a, b: a <= b)


def to_be_close_to(e: Expectation, expected: float, precision: int = 2) -> MatcherResult:
    """Pass when ``|subject - expected| < 0.5 * 10 ** -precision``."""
    if precision < 0:
        raise AuthoringError(f"precision must be >= 0, got {precision}")
    tolerance = 0.5 * 10 ** -precision
    diff = abs(e.subject - expected)
    return assert_condition(
        e,
        diff < tolerance,
        f"Expected {e.subject!r} to be close to {expected!r} "
        f"(precision {precision}, difference {diff:g})",
        f"Expected {e.subject!r} not to be close to {expected!r} (precision {precision})",
        expected=expected,
    )


def to_be_between(e: Expectation, low: Any, high: Any) -> MatcherResult:
    """Inclusive on both ends."""
    return assert_condition(
        e,
        low <= e.subject <= high,
        f"Expected {e.subject!r} to be between {low!r} and {high!r} (inclusive)",
        f"Expected {e.subject!r} not to be between {low!r} and {high!r} (inclusive)",
        expected=(low, high),
    )


def to_contain(e: Expectation, item: Any) -> MatcherResult:
    try:
        contained = item in e.subject
    except TypeError as exc:
        raise AuthoringError(f"{type(e.subject).__name__} does not support 'in'") from exc
    return assert_condition(
        e,
        contained,
        f"Expected {e.subject!r} to contain {item!r}",
        f"Expected {e.subject!r} not to contain {item!r}",
        expected=item,
    )


def to_have_length(e: Expectation, length: int) -> MatcherResult:
    if not isinstance(e.subject, Sized):
        raise AuthoringError(f"{type(e.subject).__name__} has no length")
    actual = len(e.subject)
    return assert_condition(
        e,
        actual == length,
        f"Expected length {length}, got {actual}",
        f"Expected length not to be {length}",
        expected=length,
        actual=actual,
    )


def to_have_key(e: Expectation, key: Any) -> MatcherResult:
    subject = e.subject
    return assert_condition(
        e,
        isinstance(subject, Mapping) and key in subject,
        f"Expected {subject!r} to have key {key!r}",
        f"Expected {subject!r} not to have key {key!r}",
        expected=key,
    )


def to_match(e: Expectation, pattern: str | re.Pattern) -> MatcherResult:
    text = e.subject
    if not isinstance(text, str):
        raise AuthoringError(f"to_match requires a string subject, got {type(text).__name__}")
    source = pattern.pattern if isinstance(pattern, re.Pattern) else pattern
    return assert_condition(
        e,
        re.search(pattern, text) is not None,
        f"Expected {text!r} to match /{source}/",
        f"Expected {text!r} not to match /{source}/",
        expected=pattern,
    )


def to_start_with(e: Expectation, prefix: str) -> MatcherResult:
    return assert_condition(
        e,
        isinstance(e.subject, str) and e.subject.startswith(prefix),
        f"Expected {e.subject!r} to start with {prefix!r}",
        f"Expected {e.subject!r} not to start with {prefix!r}",
        expected=prefix,
    )


def to_end_with(e: Expectation, suffix: str) -> MatcherResult:
    return assert_condition(
        e,
        isinstance(e.subject, str) and e.subject.endswith(suffix),
        f"Expected {e.subject!r} to end with {suffix!r}",
        f"Expected {e.subject!r} not to end with {suffix!r}",
        expected=suffix,
    )


def to_satisfy(e: Expectation, predicate: Callable[[Any], Any], description: str | None = None) -> MatcherResult:
    label = description or getattr(predicate, "__name__", "predicate")
    return assert_condition(
        e,
        predicate(e.subject),
        f"Expected {e.subject!r} to satisfy {label}",
        f"Expected {e.subject!r} not to satisfy {label}",
    )


def _require_zero_arg_callable(e: Expectation, matcher: str) -> Callable[[], Any]:
    fn = e.subject
    if not callable(fn):
        raise AuthoringError(f"{matcher} requires a callable subject, got {type(fn).__name__}")
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return fn
    required = [
        p
        for p in sig.parameters.values()
        if p.default is p.empty and p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
    ]
    if required:
        raise AuthoringError(f"{matcher} requires a zero-argument callable")
    return fn


def _capture(fn: Callable[[], Any]) -> BaseException | None:
    try:
        fn()
    except Exception as exc:
        return exc
    return None


def _message_matches(exc: BaseException, expected: str | re.Pattern) -> bool:
    message = str(exc)
    if isinstance(expected, re.Pattern):
        return expected.search(message) is not None
    return expected in message


def to_throw(e: Expectation, expected: str | re.Pattern | type[BaseException] | None = None) -> MatcherResult:
    """Pass when the callable subject raises.

    ``expected`` narrows the check: a string must occur in the error
    message, a compiled pattern must match it, an exception class must be
    an ancestor of the raised error.
    """
    fn = _require_zero_arg_callable(e, "to_throw")
    exc = _capture(fn)

    if exc is None:
        return assert_condition(
            e,
            False,
            "Expected function to throw, but it returned normally",
            "Expected function not to throw",
            expected=expected,
            actual=None,
        )

    raised = f"{type(exc).__name__}: {exc}"
    if expected is None:
        matched = True
        wanted = "an error"
    elif isinstance(expected, type) and issubclass(expected, BaseException):
        matched = isinstance(exc, expected)
        wanted = expected.__name__
    else:
        matched = _message_matches(exc, expected)
        wanted = f"an error matching {expected.pattern if isinstance(expected, re.Pattern) else expected!r}"

    return assert_condition(
        e,
        matched,
        f"Expected function to throw {wanted}, but it raised {raised}",
        f"Expected function not to throw {wanted}, but it raised {raised}",
        expected=expected,
        actual=exc,
    )


def to_throw_error(
    e: Expectation,
    error_type: type[BaseException] = Exception,
    match: str | re.Pattern | None = None,
) -> MatcherResult:
    fn = _require_zero_arg_callable(e, "to_throw_error")
    exc = _capture(fn)
    wanted = error_type.__name__
    if match is not None:
        wanted += f" matching {match.pattern if isinstance(match, re.Pattern) else match!r}"

    if exc is None:
        return assert_condition(
            e,
            False,
            f"Expected function to throw {wanted}, but it returned normally",
            f"Expected function not to throw {wanted}",
            expected=error_type,
            actual=None,
        )

    matched = isinstance(exc, error_type) and (match is None or _message_matches(exc, match))
    raised = f"{type(exc).__name__}: {exc}"
    return assert_condition(
        e,
        matched,
        f"Expected function to throw {wanted}, but it raised {raised}",
        f"Expected function not to throw {wanted}, but it raised {raised}",
        expected=error_type,
        actual=exc,
    )


_BUILTINS: dict[str, MatcherFn] = {
    "to_be": to_be,
    "to_equal": to_equal,
    "to_be_truthy": to_be_truthy,
    "to_be_falsy": to_be_falsy,
    "to_be_none": to_be_none,
    "to_be_defined": to_be_defined,
    "to_be_nan": to_be_nan,
    "to_be_instance_of": to_be_instance_of,
    "to_be_greater_than": to_be_greater_than,
    "to_be_greater_than_or_equal": to_be_greater_than_or_equal,
    "to_be_less_than": to_be_less_than,
    "to_be_less_than_or_equal": to_be_less_than_or_equal,
    "to_be_close_to": to_be_close_to,
    "to_be_between": to_be_between,
    "to_contain": to_contain,
    "to_have_length": to_have_length,
    "to_have_key": to_have_key,
    "to_match": to_match,
    "to_start_with": to_start_with,
    "to_end_with": to_end_with,
    "to_satisfy": to_satisfy,
    "to_throw": to_throw,
    "to_throw_error": to_throw_error,
}


def register_builtins(registry: MatcherRegistry) -> None:
    for name, fn in _BUILTINS.items():
        registry.register(name, fn)


def extend_expect(name: str, fn: MatcherFn, registry: MatcherRegistry | None = None) -> None:
    """Register a custom matcher.

    ``fn(expectation, *args)`` must return the result of
    :func:`assert_condition` so that ``not_()`` applies to it.
    """
    (registry if registry is not None else get_registry()).register(name, fn)


def inspector_matcher(predicate: Inspector) -> MatcherFn:
    """Adapt an external value inspector into a matcher.

    The inspector takes ``(subject, other)`` and returns
    ``(passed, message, negated_message)``.
    """

    def matcher(e: Expectation, other: Any = None) -> MatcherResult:
        passed, message, negated_message = predicate(e.subject, other)
        return assert_condition(e, passed, message, negated_message, expected=other)

    matcher.__name__ = getattr(predicate, "__name__", "inspector")
    return matcher

"""Exception taxonomy for the framework."""

from __future__ import annotations

from typing import Any

_MISSING: Any = object()


class SpeclineError(Exception):
    """Base class for every error raised by specline itself."""


class AuthoringError(SpeclineError):
    """The test author misused the framework."""


class DeclarationError(AuthoringError):
    """A declaration call was invalid or made outside the declaration pass."""


class MatcherNotFoundError(AuthoringError):
    def __init__(self, name: str, available: list[str] | None = None):
        self.name = name
        message = f"Unknown matcher: {name!r}"
        if available:
            message += f". Available: {', '.join(sorted(available))}"
        super().__init__(message)


class ExpectationFailure(AssertionError):
    """Raised by an expectation whose matcher did not hold.

    Attributes:
        matcher: Name of the matcher that failed (e.g. "to_be").
        message: Diagnostic text for the sense that was asserted.
        expected: Expected value, when the matcher reports one.
        actual: Actual value, when the matcher reports one.
        negated: Whether the expectation was negated.
    """

    def __init__(
        self,
        matcher: str,
        message: str,
        expected: Any = _MISSING,
        actual: Any = _MISSING,
        negated: bool = False,
    ):
        self.matcher = matcher
        self.message = message
        self.expected = expected
        self.actual = actual
        self.negated = negated
        super().__init__(message)

    @property
    def has_expected(self) -> bool:
        return self.expected is not _MISSING

    @property
    def has_actual(self) -> bool:
        return self.actual is not _MISSING


class TestTimeoutError(SpeclineError):
    __test__ = False

    def __init__(self, elapsed: float, limit: float):
        self.elapsed = elapsed
        self.limit = limit
        super().__init__(
            f"Test exceeded timeout of {limit:g}s (elapsed {elapsed:.3f}s)"
        )


class ConfigError(SpeclineError):
    """Options file missing or invalid."""


class InternalError(SpeclineError):
    """Engine bug or corrupted tree state. Propagates out of run()."""

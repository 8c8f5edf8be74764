"""Hierarchical test suites with lifecycle hooks and chainable expectations."""

from specline.config import RunOptions, load_options
from specline.declaration import (
    Collector,
    Declarations,
    after_all,
    after_each,
    before_all,
    before_each,
    describe,
    get_collector,
    it,
    reset_default_collector,
    test,
    use_collector,
)
from specline.engine import Runner, run
from specline.errors import (
    AuthoringError,
    ConfigError,
    DeclarationError,
    ExpectationFailure,
    InternalError,
    MatcherNotFoundError,
    SpeclineError,
    TestTimeoutError,
)
from specline.expectation import Expectation, MatcherResult, assert_condition, expect
from specline.matchers import extend_expect, inspector_matcher
from specline.registry import MatcherRegistry, get_registry
from specline.results import (
    CaseResult,
    FailureInfo,
    FailureKind,
    RunResult,
    Status,
    Summary,
    SuiteResult,
)

__all__ = [
    "AuthoringError",
    "CaseResult",
    "Collector",
    "ConfigError",
    "DeclarationError",
    "Declarations",
    "Expectation",
    "ExpectationFailure",
    "FailureInfo",
    "FailureKind",
    "InternalError",
    "MatcherNotFoundError",
    "MatcherRegistry",
    "MatcherResult",
    "RunOptions",
    "RunResult",
    "Runner",
    "SpeclineError",
    "Status",
    "SuiteResult",
    "Summary",
    "TestTimeoutError",
    "after_all",
    "after_each",
    "assert_condition",
    "before_all",
    "before_each",
    "describe",
    "expect",
    "extend_expect",
    "get_collector",
    "get_registry",
    "inspector_matcher",
    "it",
    "load_options",
    "reset_default_collector",
    "run",
    "test",
    "use_collector",
]

"""Tests for expectation dispatch, negation and extension."""

import pytest

from specline import (
    AuthoringError,
    ExpectationFailure,
    MatcherNotFoundError,
    assert_condition,
    expect,
    extend_expect,
    inspector_matcher,
)


def _to_be_even(e):
    return assert_condition(
        e,
        e.subject % 2 == 0,
        f"Expected {e.subject} to be even",
        f"Expected {e.subject} not to be even",
    )


# --- chaining ---


def test_matcher_returns_same_expectation(registry):
    e = expect(4, registry=registry)
    assert e.to_be(4) is e


def test_chained_matchers(registry):
    expect("hello", registry=registry).to_start_with("he").to_end_with("lo").to_have_length(5)


def test_check_is_explicit_form_of_attribute_dispatch(registry):
    e = expect(3, registry=registry)
    assert e.check("to_be", 3) is e
    with pytest.raises(ExpectationFailure):
        e.check("to_be", 4)


# --- negation ---


def test_not_inverts_result(registry):
    expect(4, registry=registry).not_().to_be(5)
    with pytest.raises(ExpectationFailure):
        expect(4, registry=registry).not_().to_be(4)


def test_never_is_alias_for_not(registry):
    expect(4, registry=registry).never().to_be(5)


def test_negation_applies_to_next_matcher_only(registry):
    e = expect(4, registry=registry)
    e.not_().to_be(5).to_be(4)
    assert e.negated is False


def test_negation_does_not_leak_between_expectations(registry):
    expect(1, registry=registry).not_()
    expect(1, registry=registry).to_be(1)


def test_negated_failure_uses_negated_message(registry):
    with pytest.raises(ExpectationFailure) as exc_info:
        expect(4, registry=registry).not_().to_be(4)
    failure = exc_info.value
    assert failure.matcher == "to_be"
    assert failure.negated is True
    assert "not to be" in failure.message


def test_failure_carries_expected_and_actual(registry):
    with pytest.raises(ExpectationFailure) as exc_info:
        expect(3, registry=registry).to_be(4)
    failure = exc_info.value
    assert failure.has_expected and failure.expected == 4
    assert failure.has_actual and failure.actual == 3
    assert isinstance(failure, AssertionError)


@pytest.mark.parametrize(
    "subject,matcher,args",
    [
        (4, "to_be", (4,)),
        (4, "to_be", (5,)),
        (None, "to_be_none", ()),
        (0, "to_be_truthy", ()),
        (1.0, "to_be_close_to", (1.004, 2)),
        (5, "to_be_between", (1, 10)),
        ([1, 2], "to_contain", (3,)),
        ("abc", "to_match", (r"b",)),
    ],
)
def test_positive_and_negated_never_both_pass(registry, subject, matcher, args):
    outcomes = []
    for negate in (False, True):
        e = expect(subject, registry=registry)
        if negate:
            e.not_()
        try:
            e.check(matcher, *args)
            outcomes.append(True)
        except ExpectationFailure:
            outcomes.append(False)
    assert outcomes.count(True) == 1


# --- authoring errors ---


def test_unknown_matcher_raises_authoring_error(registry):
    with pytest.raises(MatcherNotFoundError, match="to_be_purple"):
        expect(1, registry=registry).to_be_purple()


def test_private_attribute_is_not_dispatched(registry):
    with pytest.raises(AttributeError):
        expect(1, registry=registry)._secret


def test_matcher_must_return_matcher_result(registry):
    registry.register("to_be_lazy", lambda e: True)
    with pytest.raises(AuthoringError, match="MatcherResult"):
        expect(1, registry=registry).to_be_lazy()


# --- extension ---


def test_extend_expect_composes_with_negation(registry):
    extend_expect("to_be_even", _to_be_even, registry=registry)

    expect(4, registry=registry).to_be_even()
    expect(3, registry=registry).not_().to_be_even()
    with pytest.raises(ExpectationFailure, match="not to be even"):
        expect(4, registry=registry).not_().to_be_even()


def test_extend_expect_default_registry():
    from specline.registry import get_registry

    extend_expect("to_be_odd_for_test", lambda e: assert_condition(e, e.subject % 2, "odd", "even"))
    try:
        expect(3).to_be_odd_for_test()
        expect(4).not_().to_be_odd_for_test()
    finally:
        get_registry().unregister("to_be_odd_for_test")


def test_extend_expect_overrides_builtin(registry):
    extend_expect("to_be", lambda e, other: assert_condition(e, True, "", ""), registry=registry)
    expect(1, registry=registry).to_be(2)


def test_inspector_matcher_adapts_predicate(registry):
    def is_descendant_of(subject, ancestor):
        passed = subject.startswith(ancestor + "/")
        return passed, f"{subject} is not under {ancestor}", f"{subject} is under {ancestor}"

    registry.register("to_be_descendant_of", inspector_matcher(is_descendant_of))

    expect("workspace/part", registry=registry).to_be_descendant_of("workspace")
    with pytest.raises(ExpectationFailure, match="is under workspace"):
        expect("workspace/part", registry=registry).not_().to_be_descendant_of("workspace")

import gc

import pytest

from specline.tree import (
    Case,
    HookKind,
    Modifier,
    Suite,
    compute_only_filter,
    hook_chain,
    is_skipped_by_ancestor,
)


def _noop():
    pass


def _build():
    root = Suite("<root>", is_root=True)
    a = root.add(Suite("A"))
    b = root.add(Suite("B", Modifier.ONLY))
    a1 = a.add(Case("a1", _noop))
    b1 = b.add(Case("b1", _noop))
    nested = b.add(Suite("nested"))
    b2 = nested.add(Case("b2", _noop))
    return root, a1, b1, b2


def test_full_name_skips_root():
    root, a1, _, b2 = _build()
    assert a1.full_name == "A > a1"
    assert b2.full_name == "B > nested > b2"


def test_parent_is_weak_reference():
    suite = Suite("owner")
    case = suite.add(Case("c", _noop))
    assert case.parent is suite

    del suite
    gc.collect()
    assert case.parent is None


def test_only_filter_is_tree_wide():
    root, a1, b1, b2 = _build()
    selected = compute_only_filter(root)

    assert selected == {id(b1), id(b2)}
    assert id(a1) not in selected


def test_only_filter_absent_without_only():
    root = Suite("<root>", is_root=True)
    root.add(Case("c", _noop))
    assert compute_only_filter(root) is None


def test_only_case_selected_alongside_plain_siblings():
    root = Suite("<root>", is_root=True)
    s = root.add(Suite("S"))
    plain = s.add(Case("plain", _noop))
    chosen = s.add(Case("chosen", _noop, Modifier.ONLY))

    assert compute_only_filter(root) == {id(chosen)}
    assert id(plain) not in compute_only_filter(root)


def test_skip_ancestor_detection():
    root = Suite("<root>", is_root=True)
    skipped = root.add(Suite("S", Modifier.SKIP))
    case = skipped.add(Suite("inner")).add(Case("c", _noop))
    assert is_skipped_by_ancestor(case)


def test_todo_case_drops_body():
    case = Case("later", _noop, Modifier.TODO)
    assert case.body is None


def test_suites_cannot_be_todo():
    with pytest.raises(ValueError):
        Suite("S", Modifier.TODO)


def test_hook_chain_root_to_leaf():
    root = Suite("<root>", is_root=True)
    outer = root.add(Suite("outer"))
    inner = outer.add(Suite("inner"))
    case = inner.add(Case("c", _noop))
    outer.hooks.add(HookKind.BEFORE_EACH, _noop)

    chain = hook_chain(case, HookKind.BEFORE_EACH)
    assert [suite.name for suite, _ in chain] == ["<root>", "outer", "inner"]
    assert chain[1][1] == [_noop]


@pytest.mark.parametrize(
    "name,entry,expected",
    [
        ("doubles", {"input": 5}, "doubles [0]"),
        ("doubles {input}", {"input": 5}, "doubles 5"),
        ("adds {0} + {1}", (1, 2), "adds 1 + 2"),
        ("value {}", 7, "value 7"),
        ("missing {nope}", {"input": 5}, "missing {nope} [0]"),
    ],
)
def test_entry_names(name, entry, expected):
    case = Case(name, _noop, dataset=[entry])
    assert case.entry_name(0, entry) == expected


def test_walk_and_cases_follow_declaration_order():
    root, a1, b1, b2 = _build()
    assert list(root.cases()) == [a1, b1, b2]
    assert [n.name for n in root.walk()] == ["<root>", "A", "a1", "B", "b1", "nested", "b2"]

"""Test node model: suites, cases, modifiers and hook chains."""

from __future__ import annotations

import weakref
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Union


class Modifier(str, Enum):
    NONE = "none"
    SKIP = "skip"
    ONLY = "only"
    TODO = "todo"


class HookKind(str, Enum):
    BEFORE_ALL = "before_all"
    AFTER_ALL = "after_all"
    BEFORE_EACH = "before_each"
    AFTER_EACH = "after_each"


Hook = Callable[[], Any]


@dataclass
class HookSet:
    before_all: list[Hook] = field(default_factory=list)
    after_all: list[Hook] = field(default_factory=list)
    before_each: list[Hook] = field(default_factory=list)
    after_each: list[Hook] = field(default_factory=list)

    def get(self, kind: HookKind) -> list[Hook]:
        return getattr(self, kind.value)

    def add(self, kind: HookKind, hook: Hook) -> None:
        self.get(kind).append(hook)


class _Node:
    def __init__(self, name: str, modifier: Modifier = Modifier.NONE):
        self.name = name
        self.modifier = modifier
        self._parent: weakref.ReferenceType[Suite] | None = None

    @property
    def parent(self) -> Suite | None:
        return self._parent() if self._parent is not None else None

    def ancestors(self) -> list[Suite]:
        """Enclosing suites, root first."""
        chain: list[Suite] = []
        node = self.parent
        while node is not None:
            chain.append(node)
            node = node.parent
        chain.reverse()
        return chain

    @property
    def full_name(self) -> str:
        names = [s.name for s in self.ancestors() if not s.is_root]
        names.append(self.name)
        return " > ".join(names)


class Suite(_Node):
    def __init__(self, name: str, modifier: Modifier = Modifier.NONE, *, is_root: bool = False):
        if modifier is Modifier.TODO:
            raise ValueError("Suites cannot be marked todo")
        super().__init__(name, modifier)
        self.is_root = is_root
        self.children: list[Node] = []
        self.hooks = HookSet()

    def add(self, child: Node) -> Node:
        child._parent = weakref.ref(self)
        self.children.append(child)
        return child

    def cases(self) -> Iterator[Case]:
        """All cases in the subtree, declaration order."""
        for child in self.children:
            if isinstance(child, Suite):
                yield from child.cases()
            else:
                yield child

    def walk(self) -> Iterator[Node]:
        yield self
        for child in self.children:
            if isinstance(child, Suite):
                yield from child.walk()
            else:
                yield child

    def __repr__(self) -> str:
        return f"Suite({self.name!r}, children={len(self.children)}, modifier={self.modifier.value})"


class Case(_Node):
    def __init__(
        self,
        name: str,
        body: Callable[..., Any] | None,
        modifier: Modifier = Modifier.NONE,
        *,
        dataset: Sequence[Any] | None = None,
        timeout: float | None = None,
    ):
        super().__init__(name, modifier)
        # todo cases never execute, so no body is kept
        self.body = None if modifier is Modifier.TODO else body
        self.dataset = list(dataset) if dataset is not None else None
        self.timeout = timeout

    @property
    def is_each(self) -> bool:
        return self.dataset is not None

    def entry_name(self, index: int, entry: Any) -> str:
        """Name of one dataset expansion.

        A name with ``{field}`` or ``{0}`` placeholders is formatted from the
        entry; otherwise the index is appended.
        """
        if "{" in self.name:
            try:
                if isinstance(entry, dict):
                    return self.name.format(**entry)
                if isinstance(entry, (tuple, list)):
                    return self.name.format(*entry)
                return self.name.format(entry)
            except (IndexError, KeyError, ValueError, AttributeError):
                pass
        return f"{self.name} [{index}]"

    def __repr__(self) -> str:
        return f"Case({self.name!r}, modifier={self.modifier.value})"


Node = Union[Suite, Case]


def has_only(root: Suite) -> bool:
    return any(node.modifier is Modifier.ONLY for node in root.walk())


def compute_only_filter(root: Suite) -> set[int] | None:
    """Ids of cases selected by a tree-wide ``only``.

    Returns None when nothing in the tree carries ``only``. A case is
    selected when it, or any enclosing suite, is marked ``only``.
    """
    if not has_only(root):
        return None
    selected: set[int] = set()

    def visit(suite: Suite, inside_only: bool) -> None:
        inside = inside_only or suite.modifier is Modifier.ONLY
        for child in suite.children:
            if isinstance(child, Suite):
                visit(child, inside)
            elif inside or child.modifier is Modifier.ONLY:
                selected.add(id(child))

    visit(root, False)
    return selected


def is_skipped_by_ancestor(case: Case) -> bool:
    return any(s.modifier is Modifier.SKIP for s in case.ancestors())


def hook_chain(case: Case, kind: HookKind) -> list[tuple[Suite, list[Hook]]]:
    """Per-suite hook lists for a case, root to leaf."""
    return [(suite, suite.hooks.get(kind)) for suite in case.ancestors()]

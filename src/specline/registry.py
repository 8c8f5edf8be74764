"""Matcher registry: name -> matcher function."""

from __future__ import annotations

import threading
from typing import Callable, TYPE_CHECKING

from specline.errors import AuthoringError, MatcherNotFoundError

if TYPE_CHECKING:
    from specline.expectation import MatcherResult

MatcherFn = Callable[..., "MatcherResult"]


class MatcherRegistry:
    """Case-sensitive mapping of matcher names to implementations.

    Re-registering a name overwrites the previous entry. Reads and writes
    share one re-entrant lock, so a resolution in a worker thread never
    observes a half-applied registration.
    """

    def __init__(self, matchers: dict[str, MatcherFn] | None = None):
        self._lock = threading.RLock()
        self._matchers: dict[str, MatcherFn] = dict(matchers or {})

    def register(self, name: str, fn: MatcherFn) -> None:
        if not isinstance(name, str) or not name:
            raise AuthoringError(f"Matcher name must be a non-empty string, got {name!r}")
        if name.startswith("_"):
            raise AuthoringError(f"Matcher name must not start with '_': {name!r}")
        if not callable(fn):
            raise AuthoringError(f"Matcher {name!r} must be callable, got {type(fn).__name__}")
        with self._lock:
            self._matchers[name] = fn

    def unregister(self, name: str) -> None:
        with self._lock:
            if name not in self._matchers:
                raise MatcherNotFoundError(name)
            del self._matchers[name]

    def resolve(self, name: str) -> MatcherFn:
        with self._lock:
            fn = self._matchers.get(name)
            if fn is None:
                raise MatcherNotFoundError(name, list(self._matchers))
            return fn

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._matchers)

    def copy(self) -> MatcherRegistry:
        with self._lock:
            return MatcherRegistry(self._matchers)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._matchers

    def __len__(self) -> int:
        with self._lock:
            return len(self._matchers)


_default_registry: MatcherRegistry | None = None
_default_lock = threading.Lock()


def get_registry() -> MatcherRegistry:
    """Return the process-wide registry, populated with the built-in matchers."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            from specline.matchers import register_builtins

            registry = MatcherRegistry()
            register_builtins(registry)
            _default_registry = registry
        return _default_registry

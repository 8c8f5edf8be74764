"""Boundary between the engine and result renderers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from specline.results import RunResult


class Reporter(ABC):
    """Consumes a finished run. Implementations must not mutate results."""

    @abstractmethod
    def report(self, result: RunResult) -> None:
        ...

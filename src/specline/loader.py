"""Run the declaration pass over spec files on disk."""

from __future__ import annotations

import importlib.util
import logging
import sys
from pathlib import Path
from typing import Iterable

from specline.declaration import Collector, use_collector
from specline.errors import DeclarationError, SpeclineError

SPEC_PATTERNS = ("*_spec.py", "spec_*.py")


def discover(paths: Iterable[Path]) -> list[Path]:
    """Expand directories into spec files; explicit files are kept as given."""
    found: list[Path] = []
    seen: set[Path] = set()
    for path in paths:
        if not path.exists():
            raise DeclarationError(f"Spec path not found: {path}")
        if path.is_dir():
            candidates = sorted(
                {f for pattern in SPEC_PATTERNS for f in path.rglob(pattern) if f.is_file()}
            )
        else:
            candidates = [path]
        for candidate in candidates:
            resolved = candidate.resolve()
            if resolved not in seen:
                seen.add(resolved)
                found.append(candidate)
    return found


def load_spec_file(path: Path, collector: Collector, logger: logging.Logger | None = None) -> None:
    """Import ``path`` with module-level declarations routed to ``collector``."""
    module_name = f"specline_spec_{abs(hash(path.resolve()))}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise DeclarationError(f"Cannot import spec file: {path}")

    module = importlib.util.module_from_spec(spec)
    if logger:
        logger.debug(f"Loading spec file {path}")
    with use_collector(collector):
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except SpeclineError:
            raise
        except Exception as e:
            raise DeclarationError(f"Failed to load {path}: {type(e).__name__}: {e}") from e
        finally:
            sys.modules.pop(module_name, None)


def load_spec_files(
    paths: Iterable[Path],
    collector: Collector | None = None,
    logger: logging.Logger | None = None,
) -> Collector:
    collector = collector if collector is not None else Collector()
    for path in discover(paths):
        load_spec_file(path, collector, logger=logger)
    return collector

"""Pytest configuration and fixtures."""

import logging

import pytest

from specline import Declarations, RunOptions, Runner, get_registry


@pytest.fixture(autouse=True)
def cleanup_loggers():
    """Clean up specline loggers after each test to prevent handler leaks."""
    yield

    loggers_to_remove = [
        name
        for name in logging.Logger.manager.loggerDict.keys()
        if name.startswith("specline")
    ]

    for name in loggers_to_remove:
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        del logging.Logger.manager.loggerDict[name]


@pytest.fixture
def decl():
    """Declaration surface bound to a fresh, isolated tree."""
    return Declarations()


@pytest.fixture
def registry():
    """Copy of the built-in registry; extensions don't leak between tests."""
    return get_registry().copy()


@pytest.fixture
def run_tree():
    """Freeze and run a Declarations tree with the given options."""

    def _run(d, **options):
        options.setdefault("timeout", 2.0)
        return Runner(d.collector, RunOptions(**options)).run()

    return _run

"""Result reporters."""

from specline.reporting.base import Reporter
from specline.reporting.console import ConsoleReporter
from specline.reporting.junit import JUnitReporter, write_junit

__all__ = ["ConsoleReporter", "JUnitReporter", "Reporter", "write_junit"]

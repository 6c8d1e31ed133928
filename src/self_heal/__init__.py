"""Self-healing repair pipeline for stale UI locators in end-to-end test suites."""

__version__ = "1.0.0"

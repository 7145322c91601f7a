"""Output formatters for dbsetup."""

from dbsetup.formatters.json import JSONFormatter

__all__ = ["JSONFormatter"]

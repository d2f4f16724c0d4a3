"""Exceptions and warnings raised while rendering a table view"""

from typing import Any


class TableViewError(Exception):
    """Base class for all table view errors."""


class ConfigurationError(TableViewError):
    """A table view declaration is unusable.

    Raised before any record is read: missing or incompatible repository,
    empty headers, or search fields the repository does not expose.
    """


class InvalidQueryError(TableViewError, ValueError):
    """Caller supplied options the table view cannot honour (unknown sort
    column, unsupported filter value)."""


class ProjectionError(TableViewError):
    """A record could not be projected into a row matching the headers."""

    def __init__(self, record_id: Any, expected: int, actual: int | None):
        self.record_id = record_id
        self.expected = expected
        self.actual = actual
        if actual is None:
            detail = "row() did not return a sequence"
        else:
            detail = f"row() returned {actual} values, expected {expected}"
        super().__init__(f"Cannot project record {record_id!r}: {detail}")


class SearchConfigurationWarning(UserWarning):
    """A search term was supplied to a view that declares no search fields."""

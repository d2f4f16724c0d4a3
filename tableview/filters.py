"""Filters a caller can switch on by key when rendering a table view"""

from abc import ABC, abstractmethod
from typing import Any

from tableview.contracts import QueryableRepository
from tableview.entities import Field, column_name
from tableview.errors import InvalidQueryError

TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class Filter(ABC):
    """
    Base class for table view filters.

    A filter is declared by the view (see TableView.filters) and applied when
    the caller supplies a value under the filter's key in TableQuery.filters.
    """

    def __init__(self, title: str, key: str | None = None):
        self.title = title
        self.key = key or title.strip().lower().replace(" ", "_")

    @abstractmethod
    def apply(self, repository: QueryableRepository, value: Any) -> QueryableRepository:
        """
        Narrow the repository for the given value.

        Raises:
            InvalidQueryError: the value is not acceptable for this filter
        """

    def options(self) -> dict[str, Any]:
        """Selectable values keyed by label; empty for free-form filters"""
        return {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.key!r})"


class BooleanFilter(Filter):
    """Filter on a boolean column"""

    def __init__(self, field: str | Field, title: str, key: str | None = None):
        super().__init__(title, key)
        self.field = column_name(field)

    def options(self) -> dict[str, Any]:
        return {"Yes": True, "No": False}

    def _coerce(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        normalized = str(value).strip().lower()
        if normalized in TRUE_VALUES:
            return True
        if normalized in FALSE_VALUES:
            return False
        raise InvalidQueryError(f"Filter '{self.key}' expects a boolean, got {value!r}")

    def apply(self, repository: QueryableRepository, value: Any) -> QueryableRepository:
        return repository.where(self.field, self._coerce(value))


class SelectFilter(Filter):
    """Filter on a column restricted to a fixed set of options.

    Options map display labels to column values; the caller may pass either.
    """

    def __init__(
        self,
        field: str | Field,
        options: dict[str, Any],
        title: str,
        key: str | None = None,
    ):
        super().__init__(title, key)
        self.field = column_name(field)
        self._options = dict(options)

    def options(self) -> dict[str, Any]:
        return dict(self._options)

    def apply(self, repository: QueryableRepository, value: Any) -> QueryableRepository:
        if value in self._options:
            value = self._options[value]
        elif value not in self._options.values():
            raise InvalidQueryError(
                f"Filter '{self.key}' has no option {value!r}; "
                f"expected one of {sorted(self._options)}"
            )
        return repository.where(self.field, value)

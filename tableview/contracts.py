"""Repository capabilities a table view relies on"""

from collections.abc import AsyncGenerator, Sequence
from typing import Any, Protocol, Self, runtime_checkable

from tableview.entities import Field


@runtime_checkable
class QueryableRepository[T](Protocol):
    """A queryable handle over records of a single type.

    Every narrowing method returns a new handle; the receiver is left untouched.
    """

    def field_names(self) -> set[str]:
        """Columns exposed by the underlying schema"""
        ...

    def where(self, field: str | Field, *args: Any) -> Self: ...

    def search(self, fields: Sequence[str | Field], term: str) -> Self:
        """Keep records where any of the fields contains the term"""
        ...

    def order_by_asc(self, field: str | Field) -> Self: ...

    def order_by_desc(self, field: str | Field) -> Self: ...

    def paginate(self, page: int, per_page: int = 10) -> Self: ...

    async def count(self) -> int: ...

    def iterate(self) -> AsyncGenerator[T, None]:
        """Lazily yield matching records"""
        ...

"""TableView: binds a repository, headers and a row projection into a
searchable, sortable, paginated table."""

import logging
import math
import warnings
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import aclosing
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tableview.contracts import QueryableRepository
from tableview.entities import Field as ColumnField
from tableview.entities import SortOrder, column_name
from tableview.errors import (
    ConfigurationError,
    InvalidQueryError,
    ProjectionError,
    SearchConfigurationWarning,
)
from tableview.filters import Filter
from tableview.headers import Header

logger = logging.getLogger(__name__)


class SearchPolicy(str, Enum):
    """What to do with a search term when the view declares no search fields"""

    IGNORE = "ignore"
    WARN = "warn"
    ERROR = "error"


class TableViewConfig(BaseModel):
    """Configuration options for a TableView class"""

    model_config = ConfigDict(frozen=True)

    per_page: int = Field(default=20, ge=1, description="Rows per page by default")
    max_per_page: int = Field(
        default=100, ge=1, description="Upper bound for a caller supplied per_page"
    )
    count_total: bool = Field(
        default=True, description="Run a COUNT query so the result knows its total"
    )
    default_order_by: str | None = Field(
        default=None, description="Header title or field used when no order is given"
    )
    default_order: SortOrder = SortOrder.ASC
    tiebreak_order_by: str | None = Field(
        default="id",
        description="Unique field appended to every ORDER BY so pages are stable",
    )
    search_without_fields: SearchPolicy = SearchPolicy.WARN


class TableQuery(BaseModel):
    """Options supplied by the caller of a render"""

    search: str | None = None
    order_by: str | None = None
    order: SortOrder = SortOrder.ASC
    page: int = Field(default=1, ge=1)
    per_page: int | None = Field(default=None, ge=1)
    filters: dict[str, Any] = Field(default_factory=dict)

    @field_validator("search")
    @classmethod
    def _blank_search_is_no_search(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class TableResult(BaseModel):
    """Headers and rows of one rendered page"""

    headers: list[str]
    rows: list[list[Any]]
    page: int
    per_page: int
    total: int | None = None
    search: str | None = None

    @property
    def last_page(self) -> int | None:
        if self.total is None:
            return None
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_more_pages(self) -> bool | None:
        if self.total is None:
            return None
        return self.page < self.last_page


def record_identity(record: Any) -> Any:
    """Best effort identifier of a record for error messages"""
    if isinstance(record, Mapping) and "id" in record:
        return record["id"]
    record_id = getattr(record, "id", None)
    return record_id if record_id is not None else repr(record)


class TableView[T](ABC):
    """
    Base class for table views.

    Subclasses bind a repository, declare headers and project each record
    into a row whose values line up with the headers:

        class UserTableView(TableView[User]):
            search_by = ("name", "email")

            def repository(self):
                return UserRepository()

            def headers(self):
                return [Header.titled("Name").sortable_by("name"), "Email"]

            def row(self, user: User):
                return [user.name, user.email]

        result = await UserTableView().render(TableQuery(search="alice"))

    A view holds no state between renders; every render builds a fresh
    repository handle, so one instance can serve concurrent callers.
    """

    search_by: ClassVar[Sequence[str | ColumnField]] = ()
    config: ClassVar[TableViewConfig] = TableViewConfig()

    @abstractmethod
    def repository(self) -> QueryableRepository[T]:
        """Return a repository bound to the view's record type"""

    @abstractmethod
    def headers(self) -> Sequence[str | Header]:
        """Return the ordered column headers"""

    @abstractmethod
    def row(self, record: T) -> Sequence[Any]:
        """Project a record into one value per header"""

    def filters(self) -> Sequence[Filter]:
        """Filters the caller can apply through TableQuery.filters"""
        return ()

    def search_fields(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(column_name(field) for field in self.search_by or ()))

    def resolve_headers(self) -> list[Header]:
        declared = self.headers()
        if not declared:
            raise ConfigurationError(f"{type(self).__name__}.headers() returned no columns")

        headers = []
        for header in declared:
            if isinstance(header, Header):
                headers.append(header)
            elif isinstance(header, str):
                headers.append(Header(title=header))
            else:
                raise ConfigurationError(
                    f"{type(self).__name__}.headers() contains {header!r}; "
                    "expected str or Header"
                )
        return headers

    def header_titles(self) -> list[str]:
        return [header.title for header in self.resolve_headers()]

    def _bind_repository(self) -> QueryableRepository[T]:
        repo = self.repository()
        if repo is None:
            raise ConfigurationError(f"{type(self).__name__}.repository() returned None")
        if not isinstance(repo, QueryableRepository):
            raise ConfigurationError(
                f"{type(self).__name__}.repository() returned {type(repo).__name__}, "
                "which is not a queryable repository"
            )
        return repo

    def _apply_search(
        self, repo: QueryableRepository[T], term: str | None
    ) -> QueryableRepository[T]:
        if term is None:
            return repo

        fields = self.search_fields()
        if not fields:
            policy = SearchPolicy(self.config.search_without_fields)
            message = (
                f"{type(self).__name__} declares no search fields; "
                f"search term {term!r} ignored"
            )
            if policy is SearchPolicy.ERROR:
                raise ConfigurationError(message)
            if policy is SearchPolicy.WARN:
                warnings.warn(message, SearchConfigurationWarning, stacklevel=4)
            logger.debug(message)
            return repo

        unknown = set(fields) - repo.field_names()
        if unknown:
            raise ConfigurationError(
                f"{type(self).__name__}.search_by names fields the repository "
                f"does not expose: {sorted(unknown)}"
            )
        return repo.search(fields, term)

    def _apply_filters(
        self, repo: QueryableRepository[T], values: dict[str, Any]
    ) -> QueryableRepository[T]:
        declared = {flt.key: flt for flt in self.filters()}
        for key, value in values.items():
            flt = declared.get(key)
            if flt is None:
                logger.debug("%s: ignoring unknown filter %r", type(self).__name__, key)
                continue
            if value is None:
                continue
            repo = flt.apply(repo, value)
        return repo

    @staticmethod
    def _sort_field(
        order_by: str, headers: list[Header], repo: QueryableRepository[T]
    ) -> str | None:
        for header in headers:
            if header.sortable and header.title == order_by:
                return header.sort_by
        if order_by in repo.field_names():
            return order_by
        return None

    def _apply_order(
        self, repo: QueryableRepository[T], headers: list[Header], query: TableQuery
    ) -> QueryableRepository[T]:
        if query.order_by is not None:
            field = self._sort_field(query.order_by, headers, repo)
            if field is None:
                raise InvalidQueryError(f"Cannot sort by {query.order_by!r}")
            order = query.order
        elif self.config.default_order_by is not None:
            field = self._sort_field(self.config.default_order_by, headers, repo)
            if field is None:
                raise ConfigurationError(
                    f"{type(self).__name__}.config.default_order_by "
                    f"{self.config.default_order_by!r} is not sortable"
                )
            order = self.config.default_order
        else:
            field, order = None, None

        if field is not None:
            if SortOrder(order) is SortOrder.DESC:
                repo = repo.order_by_desc(field)
            else:
                repo = repo.order_by_asc(field)

        tiebreak = self.config.tiebreak_order_by
        if tiebreak and tiebreak != field and tiebreak in repo.field_names():
            repo = repo.order_by_asc(tiebreak)
        return repo

    def _page_size(self, query: TableQuery) -> int:
        return min(query.per_page or self.config.per_page, self.config.max_per_page)

    async def _prepare(
        self, query: TableQuery, count_total: bool
    ) -> tuple[list[Header], QueryableRepository[T], int, int | None]:
        headers = self.resolve_headers()
        repo = self._bind_repository()
        repo = self._apply_search(repo, query.search)
        repo = self._apply_filters(repo, query.filters)

        total = await repo.count() if count_total else None

        per_page = self._page_size(query)
        repo = self._apply_order(repo, headers, query)
        repo = repo.paginate(query.page, per_page)
        return headers, repo, per_page, total

    def _project(self, record: T, width: int) -> list[Any]:
        values = self.row(record)
        if isinstance(values, str | bytes) or not isinstance(values, Sequence):
            raise ProjectionError(record_identity(record), width, None)
        if len(values) != width:
            raise ProjectionError(record_identity(record), width, len(values))
        return list(values)

    async def render(self, query: TableQuery | None = None) -> TableResult:
        """Render one page of the table.

        Raises:
            ConfigurationError: the view's declarations are unusable; raised
                before any record is read
            InvalidQueryError: the query asks for an unknown sort or filter value
            ProjectionError: row() disagreed with the headers for a record; no
                rows are returned
        """
        query = query or TableQuery()
        # A term the view could not apply is not reported as the result's search
        search = query.search if self.search_fields() else None
        headers, repo, per_page, total = await self._prepare(
            query, self.config.count_total
        )
        logger.debug(
            "Rendering %s page=%d per_page=%d search=%r",
            type(self).__name__,
            query.page,
            per_page,
            search,
        )

        rows = []
        async with aclosing(repo.iterate()) as records:
            async for record in records:
                rows.append(self._project(record, len(headers)))

        return TableResult(
            headers=[header.title for header in headers],
            rows=rows,
            page=query.page,
            per_page=per_page,
            total=total,
            search=search,
        )

    async def stream_rows(self, query: TableQuery | None = None) -> AsyncIterator[list[Any]]:
        """Yield the rows of one page as records arrive.

        Skips the total count. Closing the iterator early releases the
        underlying record stream.
        """
        query = query or TableQuery()
        headers, repo, _, _ = await self._prepare(query, count_total=False)
        async with aclosing(repo.iterate()) as records:
            async for record in records:
                yield self._project(record, len(headers))

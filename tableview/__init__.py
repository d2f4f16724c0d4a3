"""Searchable, paginated table views over async repositories"""

from tableview.contracts import QueryableRepository
from tableview.entities import BaseEntity, Field, SchemaBase, SortOrder
from tableview.errors import (
    ConfigurationError,
    InvalidQueryError,
    ProjectionError,
    SearchConfigurationWarning,
    TableViewError,
)
from tableview.filters import BooleanFilter, Filter, SelectFilter
from tableview.headers import Header
from tableview.repository import Repository, RepositoryConfig
from tableview.table_view import (
    SearchPolicy,
    TableQuery,
    TableResult,
    TableView,
    TableViewConfig,
)

__all__ = [
    "BaseEntity",
    "BooleanFilter",
    "ConfigurationError",
    "Field",
    "Filter",
    "Header",
    "InvalidQueryError",
    "ProjectionError",
    "QueryableRepository",
    "Repository",
    "RepositoryConfig",
    "SchemaBase",
    "SearchConfigurationWarning",
    "SearchPolicy",
    "SelectFilter",
    "SortOrder",
    "TableQuery",
    "TableResult",
    "TableView",
    "TableViewConfig",
    "TableViewError",
]

"""
Immutable QueryBuilder for SELECT statements.
Produces SQL with positional ($n) placeholders; never executes anything.
"""

import re
from collections.abc import Callable
from typing import Any

from tableview.entities import Field, column_name

_PLACEHOLDER = re.compile(r"\$(\d+)")

type Column = str | Field


class QueryBuilder:
    """
    Query builder for SELECT statements. Every method returns a new builder.

    Usage:
        builder = QueryBuilder("users")
        query, params = builder.where("active", True).paginate(2, 20).build()
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        self.select_fields = "*"
        self.where_conditions: list[str] = []
        self.or_where_conditions: list[str] = []
        self.params: list[Any] = []
        self.order_by_parts: list[str] = []
        self.limit_count: int | None = None
        self.offset_count: int | None = None

    def _clone(self) -> "QueryBuilder":
        new_builder = QueryBuilder(self.table_name)
        new_builder.select_fields = self.select_fields
        new_builder.where_conditions = self.where_conditions.copy()
        new_builder.or_where_conditions = self.or_where_conditions.copy()
        new_builder.params = self.params.copy()
        new_builder.order_by_parts = self.order_by_parts.copy()
        new_builder.limit_count = self.limit_count
        new_builder.offset_count = self.offset_count
        return new_builder

    def _next_placeholder(self) -> str:
        return f"${len(self.params) + 1}"

    def _append(self, condition: str, is_or: bool) -> None:
        if is_or:
            self.or_where_conditions.append(condition)
            return
        # An AND condition narrows everything before it, OR branches included
        if self.or_where_conditions:
            self.where_conditions = [f"({self._where_clause()})"]
            self.or_where_conditions = []
        self.where_conditions.append(condition)

    def _add_condition(
        self, field: Column, value: Any, operator: str, is_or: bool = False
    ) -> "QueryBuilder":
        new_builder = self._clone()
        column = column_name(field)

        if value is None and operator == "=":
            condition = f"{column} IS NULL"
        elif value is None and operator in ("!=", "<>"):
            condition = f"{column} IS NOT NULL"
        else:
            condition = f"{column} {operator} {new_builder._next_placeholder()}"
            new_builder.params.append(value)

        new_builder._append(condition, is_or)
        return new_builder

    def _add_in_condition(
        self, field: Column, values: Any, is_not: bool = False, is_or: bool = False
    ) -> "QueryBuilder":
        new_builder = self._clone()
        if not isinstance(values, list | tuple | set):
            values = [values]
        values = list(values)

        start = len(new_builder.params) + 1
        placeholders = ", ".join(f"${start + i}" for i in range(len(values)))
        keyword = "NOT IN" if is_not else "IN"
        new_builder._append(f"{column_name(field)} {keyword} ({placeholders})", is_or)
        new_builder.params.extend(values)
        return new_builder

    @staticmethod
    def _split_args(method: str, args: tuple[Any, ...]) -> tuple[str, Any]:
        # (value) or (operator, value); length decides so value=None works in both
        if len(args) == 2:
            operator, value = args
            return operator, value
        if len(args) == 1:
            return "=", args[0]
        raise TypeError(f"{method}() expects (field, value) or (field, operator, value)")

    def where(
        self,
        field_or_function: Column | Callable[["QueryBuilder"], "QueryBuilder"],
        *args: Any,
    ) -> "QueryBuilder":
        """Add a WHERE condition: where(field, value), where(field, operator, value)
        or a grouped clause where(lambda qb: ...)."""
        if callable(field_or_function):
            return self.where_group(field_or_function)
        operator, value = self._split_args("where", args)
        return self._add_condition(field_or_function, value, operator)

    def or_where(
        self,
        field_or_function: Column | Callable[["QueryBuilder"], "QueryBuilder"],
        *args: Any,
    ) -> "QueryBuilder":
        """Add an OR WHERE condition. Same call styles as where()."""
        if callable(field_or_function):
            return self.or_where_group(field_or_function)
        operator, value = self._split_args("or_where", args)
        return self._add_condition(field_or_function, value, operator, is_or=True)

    def where_in(self, field: Column, values: Any) -> "QueryBuilder":
        return self._add_in_condition(field, values)

    def where_not_in(self, field: Column, values: Any) -> "QueryBuilder":
        return self._add_in_condition(field, values, is_not=True)

    def or_where_in(self, field: Column, values: Any) -> "QueryBuilder":
        return self._add_in_condition(field, values, is_or=True)

    def _add_group_condition(
        self, group_function: Callable[["QueryBuilder"], "QueryBuilder"], is_or: bool
    ) -> "QueryBuilder":
        group = QueryBuilder("")
        result = group_function(group)
        if result is not None:
            group = result

        if not group.where_conditions and not group.or_where_conditions:
            return self

        offset = len(self.params)

        def shift(condition: str) -> str:
            return _PLACEHOLDER.sub(
                lambda m: f"${int(m.group(1)) + offset}", condition
            )

        and_part = " AND ".join(shift(c) for c in group.where_conditions)
        or_part = " OR ".join(shift(c) for c in group.or_where_conditions)
        inner = " OR ".join(part for part in (and_part, or_part) if part)

        new_builder = self._clone()
        new_builder._append(f"({inner})", is_or)
        new_builder.params.extend(group.params)
        return new_builder

    def where_group(
        self, group_function: Callable[["QueryBuilder"], "QueryBuilder"]
    ) -> "QueryBuilder":
        """Add a parenthesised group of conditions joined to the query with AND"""
        return self._add_group_condition(group_function, is_or=False)

    def or_where_group(
        self, group_function: Callable[["QueryBuilder"], "QueryBuilder"]
    ) -> "QueryBuilder":
        """Add a parenthesised group of conditions joined to the query with OR"""
        return self._add_group_condition(group_function, is_or=True)

    def select(self, *fields: Column) -> "QueryBuilder":
        """Set the SELECT list; no fields means *."""
        new_builder = self._clone()
        new_builder.select_fields = (
            ", ".join(column_name(f) for f in fields) if fields else "*"
        )
        return new_builder

    def order_by(self, field: Column) -> "QueryBuilder":
        """Add ORDER BY for a field (ascending). Chain to add more fields."""
        new_builder = self._clone()
        new_builder.order_by_parts.append(column_name(field))
        return new_builder

    def order_by_asc(self, field: Column) -> "QueryBuilder":
        return self.order_by(field)

    def order_by_desc(self, field: Column) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.order_by_parts.append(f"{column_name(field)} DESC")
        return new_builder

    def limit(self, count: int) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.limit_count = count
        return new_builder

    def offset(self, count: int) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.offset_count = count
        return new_builder

    def paginate(self, page: int, per_page: int = 10) -> "QueryBuilder":
        """
        Set LIMIT and OFFSET for a 1-based page.

        Args:
            page: Page number (1-based)
            per_page: Number of records per page (default: 10)
        """
        if page < 1:
            raise ValueError("Page number must be 1 or greater")
        if per_page < 1:
            raise ValueError("Per page count must be 1 or greater")
        return self.limit(per_page).offset((page - 1) * per_page)

    def for_count(self) -> "QueryBuilder":
        """Return a COUNT(*) builder over the same conditions, without
        ordering or pagination."""
        new_builder = self._clone()
        new_builder.select_fields = "COUNT(*)"
        new_builder.order_by_parts = []
        new_builder.limit_count = None
        new_builder.offset_count = None
        return new_builder

    def _where_clause(self) -> str:
        parts = []
        if self.where_conditions:
            joined = " AND ".join(self.where_conditions)
            if len(self.where_conditions) > 1 and self.or_where_conditions:
                joined = f"({joined})"
            parts.append(joined)
        if self.or_where_conditions:
            joined = " OR ".join(self.or_where_conditions)
            if len(self.or_where_conditions) > 1:
                joined = f"({joined})"
            parts.append(joined)
        return " OR ".join(parts)

    def build(self) -> tuple[str, list[Any]]:
        """Build the final SQL query and parameters"""
        query_parts = [f"SELECT {self.select_fields} FROM {self.table_name}"]

        where_clause = self._where_clause()
        if where_clause:
            query_parts.append(f"WHERE {where_clause}")
        if self.order_by_parts:
            query_parts.append(f"ORDER BY {', '.join(self.order_by_parts)}")
        if self.limit_count is not None:
            query_parts.append(f"LIMIT {self.limit_count}")
        if self.offset_count is not None:
            query_parts.append(f"OFFSET {self.offset_count}")

        return " ".join(query_parts), self.params

    def to_sql(self) -> str:
        """Return only the SQL query string without parameters"""
        query, _ = self.build()
        return query

from collections.abc import Sequence

from tableview.entities import Field, SortOrder, column_name
from tableview.query_builder import QueryBuilder

LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape LIKE metacharacters so the term matches literally"""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


class SearchConditionBuilder:
    """Composition class for building search and sort conditions"""

    @staticmethod
    def apply_search(
        builder: QueryBuilder, fields: Sequence[str | Field], term: str
    ) -> QueryBuilder:
        """Narrow the builder to rows where any field contains the term.

        Produces a single group: (f1 ILIKE $n OR f2 ILIKE $n+1 ...)
        """
        if not fields:
            return builder
        pattern = f"%{escape_like(term)}%"

        def any_field_matches(group: QueryBuilder) -> QueryBuilder:
            for field in fields:
                group = group.or_where(column_name(field), "ILIKE", pattern)
            return group

        return builder.where_group(any_field_matches)

    @staticmethod
    def apply_sort(
        builder: QueryBuilder, field: str | Field, order: SortOrder | str
    ) -> QueryBuilder:
        """Apply sorting using order_by (ASC default) or order_by_desc."""
        if str(getattr(order, "value", order)).upper() == SortOrder.DESC.value:
            return builder.order_by_desc(field)
        return builder.order_by(field)

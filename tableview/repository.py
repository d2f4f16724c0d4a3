"""Repository class"""

from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

from pydantic import BaseModel, Field

from tableview.database_operations import DatabaseOperations
from tableview.entities import Field as ColumnField
from tableview.entity_mapper import EntityMapper
from tableview.query_builder import QueryBuilder
from tableview.search_condition_builder import SearchConditionBuilder

type Column = str | ColumnField


class RepositoryConfig(BaseModel):
    """Configuration options for Repository"""

    db_schema: str | None = Field(default=None, description="Database schema name")
    cursor_prefetch: int = Field(
        default=50,
        ge=1,
        description="Rows fetched per round trip when iterating without a LIMIT",
    )


class Repository[T_schema: BaseModel, T_domain: BaseModel]:
    """Fluent, immutable repository over one table.

    Supports separation between storage entities (T_schema) and domain entities
    (T_domain). Where they are the same, use Repository[T, T].

    Every query method returns a new repository; the receiver is never modified,
    so a repository can be shared between concurrent renders.
    """

    def __init__(
        self,
        entity_schema_class: type[T_schema],
        entity_domain_class: type[T_domain] | None = None,
        table_name: str | None = None,
        config: RepositoryConfig | None = None,
    ):
        if entity_schema_class is None:
            raise ValueError("entity_schema_class is required")
        if table_name is None:
            raise ValueError("table_name is required")

        if entity_domain_class is None:
            entity_domain_class = entity_schema_class  # type: ignore[assignment]

        self.entity_schema_class = entity_schema_class
        self.entity_domain_class = entity_domain_class
        self.table_name = table_name
        self.config = config or RepositoryConfig()
        self._qualified_table_name = (
            f"{self.config.db_schema}.{table_name}"
            if self.config.db_schema
            else table_name
        )
        self._query_builder: QueryBuilder | None = None

        self.db_ops = DatabaseOperations()
        self.entity_mapper = EntityMapper(entity_schema_class)

    def to_domain_entity(self, schema_entity: T_schema) -> T_domain:
        """Convert a schema entity to a domain entity.

        Override in subclasses to customize mapping from storage to domain.
        """
        if self.entity_schema_class == self.entity_domain_class:
            return schema_entity  # type: ignore[return-value]
        return self.entity_domain_class(**schema_entity.model_dump())  # type: ignore[return-value]

    def field_names(self) -> set[str]:
        """Column names exposed by the schema entity"""
        return set(getattr(self.entity_schema_class, "model_fields", {}).keys())

    def _get_or_create_query_builder(self) -> QueryBuilder:
        if self._query_builder is None:
            return QueryBuilder(self._qualified_table_name)
        return self._query_builder

    def _clone_with_query_builder(
        self, query_builder: QueryBuilder
    ) -> "Repository[T_schema, T_domain]":
        # type(self) keeps subclass behaviour (to_domain_entity overrides) on clones
        new_repo = object.__new__(type(self))
        new_repo.__dict__.update(self.__dict__)
        new_repo._query_builder = query_builder
        return new_repo

    def _derive(
        self, step: Callable[[QueryBuilder], QueryBuilder]
    ) -> "Repository[T_schema, T_domain]":
        return self._clone_with_query_builder(step(self._get_or_create_query_builder()))

    # Fluent query methods that return a new repository instance
    def select(self, *fields: Column) -> "Repository[T_schema, T_domain]":
        """Set the SELECT fields; rows are then returned as dictionaries by get()"""
        return self._derive(lambda qb: qb.select(*fields))

    def where(self, field: Any, *args: Any) -> "Repository[T_schema, T_domain]":
        """Add a WHERE condition: where(field, value) or where(field, operator, value)"""
        return self._derive(lambda qb: qb.where(field, *args))

    def or_where(self, field: Any, *args: Any) -> "Repository[T_schema, T_domain]":
        """Add an OR WHERE condition"""
        return self._derive(lambda qb: qb.or_where(field, *args))

    def where_in(self, field: Column, values: list) -> "Repository[T_schema, T_domain]":
        return self._derive(lambda qb: qb.where_in(field, values))

    def where_group(
        self, group_function: Callable[[QueryBuilder], QueryBuilder]
    ) -> "Repository[T_schema, T_domain]":
        return self._derive(lambda qb: qb.where_group(group_function))

    def search(
        self, fields: Sequence[Column], term: str
    ) -> "Repository[T_schema, T_domain]":
        """Keep rows where any of the fields contains the term (case-insensitive)"""
        return self._derive(
            lambda qb: SearchConditionBuilder.apply_search(qb, fields, term)
        )

    def order_by(self, field: Column) -> "Repository[T_schema, T_domain]":
        return self._derive(lambda qb: qb.order_by(field))

    def order_by_asc(self, field: Column) -> "Repository[T_schema, T_domain]":
        return self._derive(lambda qb: qb.order_by_asc(field))

    def order_by_desc(self, field: Column) -> "Repository[T_schema, T_domain]":
        return self._derive(lambda qb: qb.order_by_desc(field))

    def limit(self, count: int) -> "Repository[T_schema, T_domain]":
        return self._derive(lambda qb: qb.limit(count))

    def offset(self, count: int) -> "Repository[T_schema, T_domain]":
        return self._derive(lambda qb: qb.offset(count))

    def paginate(
        self, page: int, per_page: int = 10
    ) -> "Repository[T_schema, T_domain]":
        """Set LIMIT/OFFSET for a 1-based page"""
        return self._derive(lambda qb: qb.paginate(page, per_page))

    # Execution methods
    def _map(self, row: Any) -> T_domain:
        schema_entity = self.entity_mapper.map_row_to_entity(row)
        return self.to_domain_entity(schema_entity)

    async def get(self) -> list[T_domain]:
        """Execute the query and return all matching entities as domain entities"""
        builder = self._get_or_create_query_builder()
        query, params = builder.build()
        rows = await self.db_ops.fetch_all(query, params)

        # Custom SELECT lists can't be mapped onto the entity
        if builder.select_fields.strip() != "*":
            return [dict(row) for row in rows]  # type: ignore[misc]
        return [self._map(row) for row in rows]

    async def iterate(self) -> AsyncIterator[T_domain]:
        """Lazily yield matching domain entities through a server-side cursor.

        Must run inside a transaction. At most LIMIT rows are prefetched per
        round trip, so a paginated query never reads past its page.
        """
        builder = self._get_or_create_query_builder()
        prefetch = builder.limit_count or self.config.cursor_prefetch
        query, params = builder.build()
        async for row in self.db_ops.iterate(query, params, prefetch=prefetch):
            yield self._map(row)

    async def count(self) -> int:
        """Count matching records, ignoring ordering and pagination"""
        query, params = self._get_or_create_query_builder().for_count().build()
        result = await self.db_ops.fetch_value(query, params)
        return result or 0

    def to_sql(self) -> str:
        """Return the SQL query string for debugging"""
        return self._get_or_create_query_builder().to_sql()

    def build(self) -> tuple[str, list[Any]]:
        return self._get_or_create_query_builder().build()

    def _schema_fields(self, entity: BaseModel) -> dict[str, Any]:
        # Only persist columns that exist in the schema definition
        fields = entity.model_dump()
        schema_field_names = self.field_names()
        if schema_field_names:
            fields = {k: v for k, v in fields.items() if k in schema_field_names}
        return fields

    async def create_many(self, entities: list[T_domain]) -> list[T_domain]:
        """Insert several entities with one statement"""
        if not entities:
            return []

        rows = [self._schema_fields(entity) for entity in entities]
        columns = list(rows[0].keys())
        field_count = len(columns)

        rows_placeholders = []
        all_values: list[Any] = []
        for i, fields in enumerate(rows):
            all_values.extend(fields[column] for column in columns)
            placeholders = ", ".join(
                f"${j + i * field_count + 1}" for j in range(field_count)
            )
            rows_placeholders.append(f"({placeholders})")

        await self.db_ops.execute_query(
            f"INSERT INTO {self._qualified_table_name} ({', '.join(columns)}) "
            f"VALUES {', '.join(rows_placeholders)}",
            all_values,
        )
        return [
            self.to_domain_entity(self.entity_schema_class(**fields)) for fields in rows
        ]

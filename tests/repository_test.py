"""
Tests for the Repository fluent interface without a database.
Execution methods run against a recording stand-in for DatabaseOperations.
"""

from typing import Any
from uuid import uuid4

import pytest

from tableview.contracts import QueryableRepository
from tableview.repository import Repository, RepositoryConfig
from tableview.table_view import TableQuery, TableView, TableViewConfig
from tests.user_entities import User, UserSchema


class RecordingOperations:
    """Returns canned rows and remembers what it was asked to run"""

    def __init__(self, rows: list[dict[str, Any]] | None = None, value: Any = None):
        self.rows = rows or []
        self.value = value
        self.calls: list[tuple[str, str, list[Any], int | None]] = []

    async def fetch_all(self, query, params):
        self.calls.append(("fetch_all", query, params, None))
        return self.rows

    async def fetch_value(self, query, params):
        self.calls.append(("fetch_value", query, params, None))
        return self.value

    async def iterate(self, query, params, prefetch=None):
        self.calls.append(("iterate", query, params, prefetch))
        for row in self.rows:
            yield row


class DisplayUser(User):
    display: str = ""


class DisplayUserRepository(Repository[User, DisplayUser]):
    def __init__(self):
        super().__init__(User, DisplayUser, "users")

    def to_domain_entity(self, schema_entity: User) -> DisplayUser:
        return DisplayUser(
            **schema_entity.model_dump(), display=f"{schema_entity.name} <{schema_entity.email}>"
        )


def repository_for(table_name: str) -> Repository[User, User]:
    return Repository(User, table_name=table_name)


def user_row(name: str, email: str) -> dict[str, Any]:
    return {"id": uuid4(), "name": name, "email": email, "active": True, "role": "member"}


class TestRepositoryQueries:
    @pytest.fixture
    def repository(self):
        return Repository(User, table_name="users")

    def test_requires_table_name(self):
        with pytest.raises(ValueError, match="table_name"):
            Repository(User)

    def test_satisfies_queryable_protocol(self, repository):
        assert isinstance(repository, QueryableRepository)

    def test_field_names(self, repository):
        assert repository.field_names() == {"id", "name", "email", "active", "role"}

    def test_fluent_query(self, repository):
        query, params = (
            repository.where(UserSchema.active, True)
            .search(["name", "email"], "al")
            .order_by_desc("name")
            .paginate(2, 10)
            .build()
        )

        assert query == (
            "SELECT * FROM users WHERE active = $1 AND "
            "(name ILIKE $2 OR email ILIKE $3) ORDER BY name DESC LIMIT 10 OFFSET 10"
        )
        assert params == [True, "%al%", "%al%"]

    def test_query_methods_do_not_modify_receiver(self, repository):
        narrowed = repository.where("role", "admin")

        assert narrowed is not repository
        assert repository.to_sql() == "SELECT * FROM users"
        assert narrowed.to_sql() == "SELECT * FROM users WHERE role = $1"

    def test_schema_qualified_table(self):
        repository = Repository(
            User, table_name="users", config=RepositoryConfig(db_schema="app")
        )

        assert repository.limit(1).to_sql() == "SELECT * FROM app.users LIMIT 1"

    def test_clones_keep_subclass(self):
        repository = DisplayUserRepository().where("active", True)

        assert isinstance(repository, DisplayUserRepository)

    def test_or_where_and_in_conditions(self):
        query, params = (
            repository_for("users")
            .where_in(UserSchema.role, ["admin", "owner"])
            .or_where("active", False)
            .build()
        )

        assert query == "SELECT * FROM users WHERE role IN ($1, $2) OR active = $3"
        assert params == ["admin", "owner", False]

    def test_where_group_and_offset(self):
        sql = (
            repository_for("users")
            .where_group(lambda qb: qb.or_where("name", "a").or_where("email", "b"))
            .limit(5)
            .offset(15)
            .to_sql()
        )

        assert sql == (
            "SELECT * FROM users WHERE (name = $1 OR email = $2) LIMIT 5 OFFSET 15"
        )


class TestRepositoryExecution:
    @pytest.mark.asyncio
    async def test_iterate_prefetches_one_page(self):
        ops = RecordingOperations(rows=[user_row("Alice", "a@x.com")])
        repository = Repository(User, table_name="users")
        repository.db_ops = ops

        users = [user async for user in repository.paginate(3, 25).iterate()]

        assert [user.name for user in users] == ["Alice"]
        method, query, _, prefetch = ops.calls[0]
        assert method == "iterate"
        assert query == "SELECT * FROM users LIMIT 25 OFFSET 50"
        assert prefetch == 25

    @pytest.mark.asyncio
    async def test_iterate_without_limit_uses_configured_prefetch(self):
        ops = RecordingOperations()
        repository = Repository(
            User, table_name="users", config=RepositoryConfig(cursor_prefetch=7)
        )
        repository.db_ops = ops

        assert [user async for user in repository.iterate()] == []
        assert ops.calls[0][3] == 7

    @pytest.mark.asyncio
    async def test_iterate_maps_to_domain_entities(self):
        ops = RecordingOperations(rows=[user_row("Bob", "b@x.com")])
        repository = DisplayUserRepository()
        repository.db_ops = ops

        users = [user async for user in repository.where("active", True).iterate()]

        assert users[0].display == "Bob <b@x.com>"

    @pytest.mark.asyncio
    async def test_count_ignores_order_and_pagination(self):
        ops = RecordingOperations(value=42)
        repository = Repository(User, table_name="users")
        repository.db_ops = ops

        total = await repository.where("active", True).order_by("name").paginate(2).count()

        assert total == 42
        assert ops.calls[0][1] == "SELECT COUNT(*) FROM users WHERE active = $1"

    @pytest.mark.asyncio
    async def test_count_of_nothing_is_zero(self):
        repository = Repository(User, table_name="users")
        repository.db_ops = RecordingOperations(value=None)

        assert await repository.count() == 0

    @pytest.mark.asyncio
    async def test_get_with_custom_select_returns_dicts(self):
        ops = RecordingOperations(rows=[{"name": "Alice"}])
        repository = Repository(User, table_name="users")
        repository.db_ops = ops

        rows = await repository.select(UserSchema.name).get()

        assert rows == [{"name": "Alice"}]
        assert ops.calls[0][1] == "SELECT name FROM users"


class AdminsOrActiveTableView(TableView[User]):
    """View over a repository that already carries an OR condition"""

    search_by = (UserSchema.name, UserSchema.email)
    config = TableViewConfig(per_page=10)

    def __init__(self, ops: RecordingOperations):
        self.ops = ops

    def repository(self):
        repository = repository_for("users")
        repository.db_ops = self.ops
        return repository.where("active", True).or_where("role", "admin")

    def headers(self):
        return ["name", "email"]

    def row(self, user: User):
        return [user.name, user.email]


class TestTableViewSql:
    @pytest.mark.asyncio
    async def test_search_narrows_or_where_base(self):
        ops = RecordingOperations(value=0)

        await AdminsOrActiveTableView(ops).render(TableQuery(search="zzz"))

        (_, count_sql, count_params, _), (_, page_sql, page_params, _) = ops.calls
        where = (
            "WHERE (active = $1 OR role = $2) AND (name ILIKE $3 OR email ILIKE $4)"
        )
        assert count_sql == f"SELECT COUNT(*) FROM users {where}"
        assert page_sql == f"SELECT * FROM users {where} ORDER BY id LIMIT 10 OFFSET 0"
        assert count_params == page_params == [True, "admin", "%zzz%", "%zzz%"]

    @pytest.mark.asyncio
    async def test_sorted_page_ends_with_id(self):
        ops = RecordingOperations(value=0)

        await AdminsOrActiveTableView(ops).render(
            TableQuery(order_by="name", order="DESC", page=2)
        )

        assert ops.calls[1][1] == (
            "SELECT * FROM users WHERE active = $1 OR role = $2 "
            "ORDER BY name DESC, id LIMIT 10 OFFSET 10"
        )

    @pytest.mark.asyncio
    async def test_sorting_by_id_is_not_repeated(self):
        ops = RecordingOperations(value=0)

        await AdminsOrActiveTableView(ops).render(TableQuery(order_by="id"))

        assert ops.calls[1][1].endswith("ORDER BY id LIMIT 10 OFFSET 0")

"""
Example: a searchable, sortable, paginated users table.

Requires PostgreSQL on localhost:5432 (see db_setup.py for credentials).
"""

import asyncio
import logging
import sys
from contextlib import aclosing
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

from examples.db_setup import (
    close_connections,
    setup_example_schema,
    setup_postgres_connection,
)
from tableview import (
    BaseEntity,
    BooleanFilter,
    Field,
    Header,
    Repository,
    SchemaBase,
    SelectFilter,
    SortOrder,
    TableQuery,
    TableResult,
    TableView,
)
from tableview.db_context import DatabaseManager, transactional


class User(BaseEntity):
    name: str
    email: str
    active: bool = True
    role: str = "member"


class UserSchema(SchemaBase):
    name = Field[str]("name")
    email = Field[str]("email")
    active = Field[bool]("active")
    role = Field[str]("role")


class UserRepository(Repository[User, User]):
    def __init__(self):
        super().__init__(User, table_name="users")


class UsersTableView(TableView[User]):
    search_by = (UserSchema.name, UserSchema.email)

    def repository(self):
        return UserRepository()

    def headers(self):
        return [
            Header.titled("Name").sortable_by(UserSchema.name),
            Header.titled("Email").sortable_by(UserSchema.email),
            "Role",
            "Status",
        ]

    def row(self, user: User):
        return [user.name, user.email, user.role, "active" if user.active else "disabled"]

    def filters(self):
        return [
            BooleanFilter(UserSchema.active, "Active"),
            SelectFilter(UserSchema.role, {"Admin": "admin", "Member": "member"}, "Role"),
        ]


def print_table(title: str, result: TableResult):
    print(f"\n=== {title} (page {result.page}/{result.last_page}, {result.total} rows) ===")
    print(" | ".join(result.headers))
    for row in result.rows:
        print(" | ".join(str(value) for value in row))


@transactional("default")
async def seed_users():
    await UserRepository().create_many(
        [
            User(name="Alice", email="alice@example.com", role="admin"),
            User(name="Bob", email="bob@example.com"),
            User(name="Carol", email="carol@example.org", active=False),
            User(name="Dave", email="dave@example.org"),
        ]
    )


@transactional("default")
async def render_examples():
    view = UsersTableView()

    print_table("All users", await view.render())
    print_table(
        "Search 'example.org'", await view.render(TableQuery(search="example.org"))
    )
    print_table(
        "Active users by email, newest page first",
        await view.render(
            TableQuery(
                filters={"active": "yes"},
                order_by="Email",
                order=SortOrder.DESC,
                per_page=2,
            )
        ),
    )

    print("\n=== Streaming the first row only ===")
    async with aclosing(view.stream_rows(TableQuery(order_by="Name"))) as rows:
        async for row in rows:
            print(row)
            break


async def main():
    logging.basicConfig(level=logging.INFO)
    # Set to DEBUG to see every executed query
    logging.getLogger("tableview").setLevel(logging.INFO)

    await setup_postgres_connection()
    try:
        await setup_example_schema()
        await seed_users()
        await render_examples()
        async with DatabaseManager.transaction(), DatabaseManager.track_queries() as tracker:
            await UsersTableView().render(TableQuery(search="bob"))
        print(f"\nA searched render ran {tracker.count()} queries")
    finally:
        await close_connections()


if __name__ == "__main__":
    asyncio.run(main())

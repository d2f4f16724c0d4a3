from uuid import UUID

from tableview.entities import BaseEntity, Field, SchemaBase


class User(BaseEntity):
    name: str
    email: str
    active: bool = True
    role: str = "member"


class UserSchema(SchemaBase):
    id = Field[UUID]("id")
    name = Field[str]("name")
    email = Field[str]("email")
    active = Field[bool]("active")
    role = Field[str]("role")


def make_users() -> list[User]:
    return [
        User(id=UUID(int=1), name="Alice", email="a@x.com"),
        User(id=UUID(int=2), name="Bob", email="b@x.com"),
    ]


def make_staff() -> list[User]:
    return [
        User(id=UUID(int=11), name="Carol", email="carol@corp.io", role="admin"),
        User(id=UUID(int=12), name="alice", email="alice@corp.io"),
        User(id=UUID(int=13), name="Dave", email="dave@corp.io", active=False),
        User(id=UUID(int=14), name="Erin", email="erin@home.net", role="admin"),
        User(id=UUID(int=15), name="Frank", email="frank_50%@corp.io", active=False),
    ]

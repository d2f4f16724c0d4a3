from enum import Enum
from typing import ClassVar
from uuid import UUID, uuid4

from pydantic import BaseModel
from pydantic import Field as ModelField
from pydantic.config import ConfigDict


class Field[T]:
    """Type-safe column reference for schema classes.

    Usage:
        class UserSchema(SchemaBase):
            email = Field[str]("email")
            active = Field[bool]("active")

    Field objects can be used anywhere a column name is expected:
        repo.where(UserSchema.active, True)
        search_by = (UserSchema.email,)
    """

    def __init__(self, column_name: str):
        self._column_name = column_name

    @property
    def column(self) -> str:
        """Return the underlying database column name."""
        return self._column_name

    def __str__(self) -> str:
        return self._column_name

    def __repr__(self) -> str:
        return f"Field({self._column_name})"


class SchemaBase:
    """Base class for schema definitions with type-safe fields."""

    pass


class BaseEntity(BaseModel):
    """Base entity class for all database models."""

    model_config: ClassVar[ConfigDict] = ConfigDict(use_enum_values=True, extra="allow")
    id: UUID = ModelField(default_factory=uuid4)


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


def column_name(field: "str | Field") -> str:
    """Resolve a column name from a plain string or a Field reference"""
    if isinstance(field, Field):
        return field.column
    return str(field)

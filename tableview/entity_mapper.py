from typing import Any

from pydantic import BaseModel


class EntityMapper[T: BaseModel]:
    """Maps database rows onto entity instances"""

    def __init__(self, entity_class: type[T]):
        self.entity_class = entity_class

    def map_row_to_entity(self, row: Any) -> T:
        return self.entity_class(**dict(row))

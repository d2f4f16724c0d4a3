"""Column headers for table views"""

from dataclasses import dataclass, replace

from tableview.entities import Field, column_name


@dataclass(frozen=True)
class Header:
    """A column label, optionally sortable by a repository field.

    Usage:
        def headers(self):
            return [Header.titled("Name").sortable_by("name"), "Email"]
    """

    title: str
    sort_by: str | None = None

    @classmethod
    def titled(cls, title: str) -> "Header":
        return cls(title=title)

    def sortable_by(self, field: str | Field) -> "Header":
        return replace(self, sort_by=column_name(field))

    @property
    def sortable(self) -> bool:
        return self.sort_by is not None

    def __str__(self) -> str:
        return self.title

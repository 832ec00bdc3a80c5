from collections.abc import Iterator
from typing import Generic, Protocol, TypeVar

from .errors import Error, ErrorCode

__all__ = ["NameRegistry"]


class Named(Protocol):
    name: str


T = TypeVar("T", bound=Named)


class NameRegistry(Generic[T]):
    """Insertion-ordered collection of uniquely named entities

    Attributes:
        kind: Human-readable entity kind used in error messages (e.g. "link")
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._items: list[T] = []
        self._index: dict[str, int] = {}

    def add(self, entity: T) -> Error | None:
        """Insert an entity unless its name is already taken

        Args:
            entity: Entity to insert

        Returns:
            DUPLICATE_NAME error if the name exists (entity is not inserted), otherwise None
        """
        if entity.name in self._index:
            return Error(
                ErrorCode.DUPLICATE_NAME,
                f"{self.kind.capitalize()} with name '{entity.name}' already exists.",
                line_number=getattr(entity, "_line_number", None),
                source_path=getattr(entity, "_source_path", None),
            )

        self._index[entity.name] = len(self._items)
        self._items.append(entity)
        return None

    def by_index(self, index: int) -> T | None:
        """Entity at an insertion index, or None if the index is out of range"""
        if 0 <= index < len(self._items):
            return self._items[index]
        return None

    def by_name(self, name: str) -> T | None:
        """Entity with the given name, or None"""
        index = self._index.get(name)
        return None if index is None else self._items[index]

    def name_exists(self, name: str) -> bool:
        return name in self._index

    def count(self) -> int:
        return len(self._items)

    def names(self) -> list[str]:
        return [item.name for item in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __repr__(self) -> str:
        return f"NameRegistry({self.kind!r}, {self.names()!r})"

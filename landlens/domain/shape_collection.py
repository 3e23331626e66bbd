"""
Ordered collection of the shapes currently on the map.
"""
from typing import Iterator, Optional

from landlens.domain.models import Shape


class ShapeCollection:
    """
    Authoritative set of active shapes.

    Shape ids are unique and iteration follows insertion order. Replacing a
    shape keeps its position.
    """

    def __init__(self):
        self._shapes: dict[str, Shape] = {}

    def __len__(self) -> int:
        return len(self._shapes)

    def __iter__(self) -> Iterator[Shape]:
        return iter(list(self._shapes.values()))

    def __contains__(self, shape_id: object) -> bool:
        return shape_id in self._shapes

    @property
    def has_content(self) -> bool:
        return bool(self._shapes)

    def get(self, shape_id: str) -> Optional[Shape]:
        return self._shapes.get(shape_id)

    def add(self, shape: Shape) -> None:
        if shape.id in self._shapes:
            raise ValueError(f"Shape {shape.id} is already in the collection")
        self._shapes[shape.id] = shape

    def remove(self, shape_id: str) -> Shape:
        """Remove and return a shape. Raises KeyError if absent."""
        return self._shapes.pop(shape_id)

    def replace(self, shape: Shape) -> Shape:
        """Swap in a new version of an existing shape, returning the old one."""
        previous = self._shapes[shape.id]
        self._shapes[shape.id] = shape
        return previous

    def clear(self) -> list[Shape]:
        removed = list(self._shapes.values())
        self._shapes.clear()
        return removed

    def shapes(self) -> list[Shape]:
        return list(self._shapes.values())

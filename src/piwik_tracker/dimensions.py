"""Custom dimension bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass, field

from .events import CustomDimension


@dataclass
class CustomDimensionRegistry:
    """
    Ordered set of custom dimensions attached to every new event.

    At most one dimension per index. Setting an index removes the old entry
    and appends the new one, so insertion order stays deterministic.
    """
    _dimensions: list[CustomDimension] = field(default_factory=list, init=False)

    def set(self, value: str, index: int) -> None:
        if index < 0:
            raise ValueError(f"Dimension index must be >= 0, got {index}")
        self.remove(index)
        self._dimensions.append(CustomDimension(index=index, value=value))

    def remove(self, index: int) -> None:
        self._dimensions = [d for d in self._dimensions if d.index != index]

    def get(self, index: int) -> str | None:
        for dimension in self._dimensions:
            if dimension.index == index:
                return dimension.value
        return None

    def snapshot(self) -> tuple[CustomDimension, ...]:
        """Immutable copy for baking into an event."""
        return tuple(self._dimensions)

    def __len__(self) -> int:
        return len(self._dimensions)

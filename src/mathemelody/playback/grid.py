"""
Equation grid.

The grid is an ordered run of equation slots, one per sequencer step. Its
length only changes through ``resize`` or ``load``, and both replace every
slot.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

from ..core.exceptions import GridSizeError

MIN_GRID_SIZE = 1
MAX_GRID_SIZE = 32
DEFAULT_GRID_SIZE = 16


@dataclass
class EquationSlot:
    """A single step of the grid."""

    index: int
    expression: str = ""
    active: bool = False

    @property
    def is_blank(self) -> bool:
        return not self.expression.strip()


def validate_grid_size(size) -> int:
    """Return ``size`` as an int, or raise GridSizeError."""
    if isinstance(size, bool):
        raise GridSizeError(size, MIN_GRID_SIZE, MAX_GRID_SIZE)
    try:
        value = int(size)
    except (TypeError, ValueError):
        raise GridSizeError(size, MIN_GRID_SIZE, MAX_GRID_SIZE) from None
    if value != size and not isinstance(size, str):
        raise GridSizeError(size, MIN_GRID_SIZE, MAX_GRID_SIZE)
    if value < MIN_GRID_SIZE or value > MAX_GRID_SIZE:
        raise GridSizeError(size, MIN_GRID_SIZE, MAX_GRID_SIZE)
    return value


class EquationGrid:
    """Ordered, fixed-length sequence of equation slots."""

    def __init__(self, size: int = DEFAULT_GRID_SIZE):
        self._slots: List[EquationSlot] = self._build(validate_grid_size(size))

    @staticmethod
    def _build(size: int, expressions: Optional[List[str]] = None) -> List[EquationSlot]:
        expressions = expressions or [""] * size
        return [EquationSlot(index=i, expression=text) for i, text in enumerate(expressions)]

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, index: int) -> EquationSlot:
        return self._slots[index]

    def __iter__(self) -> Iterator[EquationSlot]:
        return iter(self._slots)

    def __repr__(self) -> str:
        return f"EquationGrid(size={len(self)})"

    @property
    def expressions(self) -> List[str]:
        return [slot.expression for slot in self._slots]

    def resize(self, new_size: int) -> None:
        """Replace every slot with ``new_size`` empty slots.

        Raises:
            GridSizeError: if ``new_size`` is not between 1 and 32. The grid
                is left as it was.
        """
        size = validate_grid_size(new_size)
        self._slots = self._build(size)

    def load(self, expressions: Iterable[str]) -> None:
        """Replace the grid with one slot per expression."""
        texts = ["" if text is None else str(text) for text in expressions]
        validate_grid_size(len(texts))
        self._slots = self._build(len(texts), texts)

    def set_expression(self, index: int, text: str) -> None:
        """Set the text of the slot at ``index``.

        Raises:
            IndexError: if ``index`` is outside the grid
        """
        if not 0 <= index < len(self._slots):
            raise IndexError(f"slot index {index} out of range for grid of {len(self._slots)}")
        self._slots[index].expression = text or ""

    def mark_active(self, index: int) -> None:
        self._slots[index].active = True

    def clear_active(self, index: Optional[int] = None) -> None:
        """Clear the playing marker on one slot, or on all of them."""
        if index is None:
            for slot in self._slots:
                slot.active = False
        elif 0 <= index < len(self._slots):
            self._slots[index].active = False

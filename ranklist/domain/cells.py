from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class MergeRegion:
    """
    Диапазон объединённых ячеек, индексы с нуля, границы включительно.
    """
    first_row: int
    last_row: int
    first_column: int
    last_column: int

    @property
    def number_of_cells(self) -> int:
        return (self.last_row - self.first_row + 1) * (self.last_column - self.first_column + 1)

    def contains(self, row: int, column: int) -> bool:
        return (
            self.first_row <= row <= self.last_row
            and self.first_column <= column <= self.last_column
        )


@dataclass(frozen=True)
class Cell:
    """Непустая ячейка листа: координаты, строковое значение и объединение."""
    row: int
    column: int
    value: str
    merge: Optional[MergeRegion] = None

    @property
    def is_merged(self) -> bool:
        return self.merge is not None


def find_merge_region(regions: Sequence[MergeRegion], row: int, column: int) -> Optional[MergeRegion]:
    """
    Возвращает объединение, содержащее ячейку.
    Если ячейка попала в несколько (битый файл), берём наименьшее,
    при равенстве первое по списку.
    """
    found: Optional[MergeRegion] = None
    for region in regions:
        if not region.contains(row, column):
            continue
        if found is None or region.number_of_cells < found.number_of_cells:
            found = region
    return found

"""
Bin Sort

Counting sort of points into an ordered grid of bins. Consecutive bins are
always spatially adjacent, which keeps the triangulator's point location
walk short.

Grid numbering (row 0 = bottom row, even rows left-to-right, odd rows
right-to-left):

     _____ _____ _____
    |  6  |  7  |  8  |
    |_____|_____|_____|
    |  5  |  4  |  3  |
    |_____|_____|_____|
    |  0  |  1  |  2  |
    |_____|_____|_____|
"""

from typing import List, Protocol, Sequence, TypeVar


class BinSortable(Protocol):
    """Anything with a mutable integer `bin` attribute."""
    bin: int


T = TypeVar('T', bound=BinSortable)


def get_bin_number(i: int, j: int, n: int) -> int:
    """
    Compute the bin number for a grid cell.

    Args:
        i: Grid row
        j: Grid column
        n: Grid size (bins per axis)

    Returns:
        Bin number in boustrophedon order
    """
    return (i * n) + j if i % 2 == 0 else (i + 1) * n - j - 1


def sort(items: Sequence[T], last_index: int, bin_count: int) -> Sequence[T]:
    """
    Stable counting sort of `items[:last_index]` by bin number.

    Items at and beyond `last_index` are copied through unsorted (the
    triangulator keeps its super-triangle points there).

    Args:
        items: Items to sort
        last_index: Only items [0, last_index) are sorted. Clamped to len(items).
        bin_count: Number of bins

    Returns:
        A new list with the sorted items, or `items` itself if
        bin_count <= 1.
    """
    if bin_count <= 1:
        return items

    last_index = min(last_index, len(items))

    count = [0] * bin_count
    output: List[T] = [None] * len(items)  # type: ignore[list-item]

    for k in range(last_index):
        count[items[k].bin] += 1

    for b in range(1, bin_count):
        count[b] += count[b - 1]

    # Walk backwards so equal bins keep their relative order
    for k in range(last_index - 1, -1, -1):
        b = items[k].bin
        count[b] -= 1
        output[count[b]] = items[k]

    for k in range(last_index, len(items)):
        output[k] = items[k]

    return output

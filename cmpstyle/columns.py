"""
Column decompression for the map block grid.

The map does not store 256x256 block stacks directly. Instead it stores:

- a base grid of 256x256 u32 pointers (byte offsets into the column table),
- a shared column table of u16 words,
- a deduplicated block pool.

At word `p = base[y, x] // 2` the column table holds a height marker
`6 - h`, followed by `h` block pool indices stored top block first:

    columns[p]       = 6 - h
    columns[p + 1]   = index of the top block
    ...
    columns[p + h]   = index of the bottom block

Columns that share the same pointer share the same run, which is what keeps
city maps small.
"""

from typing import Dict, List, Sequence, Tuple

import numpy as np

from cmpstyle.block import Block
from cmpstyle.errors import CorruptColumnDataError

GRID_SIZE = 256
MAX_COLUMN_HEIGHT = 6

Column = Tuple[Block, ...]


class ColumnDecompressor:
    """
    Expand the compressed column representation into per-cell block stacks.

    Args:
        base: (256, 256) array of column pointers indexed [y, x]
        columns: Column table words
        blocks: Block pool

    The column table and block pool are only read, never modified.
    """

    def __init__(self, base: np.ndarray, columns: np.ndarray, blocks: Sequence[Block]):
        if base.shape != (GRID_SIZE, GRID_SIZE):
            raise CorruptColumnDataError(
                f"Base grid must be {GRID_SIZE}x{GRID_SIZE}, got {base.shape}"
            )
        self.base = base
        self.columns = columns
        self.blocks = blocks
        self._cache: Dict[int, Column] = {}

    def column_at(self, x: int, y: int) -> Column:
        """Return the bottom-to-top block stack of cell (x, y)."""
        p = int(self.base[y, x]) // 2
        column = self._cache.get(p)
        if column is None:
            column = self._expand(p, (x, y))
            self._cache[p] = column
        return column

    def decompress(self) -> Tuple[Tuple[Column, ...], ...]:
        """
        Expand every cell.

        Returns:
            Rows of columns indexed [y][x]
        """
        rows: List[Tuple[Column, ...]] = []
        for y in range(GRID_SIZE):
            rows.append(tuple(self.column_at(x, y) for x in range(GRID_SIZE)))
        return tuple(rows)

    def _expand(self, p: int, cell: Tuple[int, int]) -> Column:
        n_columns = len(self.columns)
        if p >= n_columns:
            raise CorruptColumnDataError(
                f"pointer {p} outside column table of {n_columns} words", cell
            )

        height = MAX_COLUMN_HEIGHT - int(self.columns[p])
        if not 1 <= height <= MAX_COLUMN_HEIGHT:
            raise CorruptColumnDataError(
                f"height marker {int(self.columns[p])} at word {p} gives height {height}",
                cell,
            )
        if p + height >= n_columns:
            raise CorruptColumnDataError(
                f"run of {height} blocks at word {p} overruns column table "
                f"of {n_columns} words",
                cell,
            )

        n_blocks = len(self.blocks)
        stack = []
        for z in range(height):
            index = int(self.columns[p + (height - z)])
            if index >= n_blocks:
                raise CorruptColumnDataError(
                    f"block index {index} at z={z} outside pool of {n_blocks} blocks",
                    cell,
                )
            stack.append(self.blocks[index])
        return tuple(stack)


def decompress_columns(
    base: np.ndarray,
    columns: np.ndarray,
    blocks: Sequence[Block],
) -> Tuple[Tuple[Column, ...], ...]:
    """Convenience wrapper around ColumnDecompressor.decompress."""
    return ColumnDecompressor(base, columns, blocks).decompress()

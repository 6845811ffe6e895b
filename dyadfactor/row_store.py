"""Block-backed row matrix that grows as new entity IDs are touched."""
from __future__ import annotations

import threading
from typing import Dict, Iterable, Iterator, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError, DimensionMismatchError, InvalidIndexError


def check_index(value: object, what: str = "Row index") -> int:
    """Validate a non-negative integer index and return it as ``int``."""

    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, np.integer)):
        raise InvalidIndexError(f"{what} must be an integer, got {value!r}")
    index = int(value)
    if index < 0:
        raise InvalidIndexError(f"{what} {index} is negative")
    return index


class GrowableRowStore:
    """Matrix addressed by row index that extends itself on access.

    Rows live in dense ``block_size x columns`` arrays keyed by block number.
    Row ``i`` is stored in block ``i // block_size`` at offset
    ``i % block_size``. Touching a row allocates its block when absent and
    raises the high-water mark; every row below the mark reads as a
    zero-initialized row of the right width even when its block has not been
    allocated yet.

    Rows returned by :meth:`get_row` are NumPy views: writes through the view
    are visible through the store and vice versa.
    """

    def __init__(self, columns: int, block_size: int = 64, dtype: np.dtype = np.float64) -> None:
        if int(columns) <= 0:
            raise ConfigurationError("columns must be positive")
        if int(block_size) <= 0:
            raise ConfigurationError("block_size must be positive")
        self._columns = int(columns)
        self._block_size = int(block_size)
        self._dtype = np.dtype(dtype)
        self._blocks: Dict[int, np.ndarray] = {}
        self._rows = 0
        self._lock = threading.Lock()

    @property
    def num_rows(self) -> int:
        return self._rows

    @property
    def num_columns(self) -> int:
        return self._columns

    @property
    def block_size(self) -> int:
        return self._block_size

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def allocated_blocks(self) -> int:
        """Number of blocks that currently hold memory."""

        return len(self._blocks)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self._rows, self._columns)

    def __len__(self) -> int:
        return self._rows

    def extend_to(self, row: int) -> None:
        """Make ``row`` and every row below it addressable."""

        row = check_index(row)
        block_idx = row // self._block_size
        if block_idx in self._blocks and row < self._rows:
            return
        with self._lock:
            if block_idx not in self._blocks:
                self._blocks[block_idx] = np.zeros(
                    (self._block_size, self._columns), dtype=self._dtype
                )
            if row >= self._rows:
                self._rows = row + 1

    def _locate(self, row: int) -> Tuple[np.ndarray, int]:
        self.extend_to(row)
        return self._blocks[row // self._block_size], row % self._block_size

    def _check_column(self, column: object) -> int:
        column = check_index(column, what="Column index")
        if column >= self._columns:
            raise InvalidIndexError(f"Column index {column} not in [0, {self._columns})")
        return column

    def get_row(self, row: int) -> np.ndarray:
        """Return an aliased view of ``row``, extending storage first."""

        block, offset = self._locate(row)
        return block[offset]

    def get_quick(self, row: int, column: int) -> float:
        column = self._check_column(column)
        block, offset = self._locate(row)
        return float(block[offset, column])

    def set_quick(self, row: int, column: int, value: float) -> None:
        column = self._check_column(column)
        block, offset = self._locate(row)
        block[offset, column] = value

    def assign_row(self, row: int, values: Sequence[float] | np.ndarray) -> None:
        arr = np.asarray(values, dtype=self._dtype)
        if arr.shape != (self._columns,):
            raise DimensionMismatchError(
                f"Row of shape {arr.shape} does not fit width {self._columns}"
            )
        self.get_row(row)[:] = arr

    def get_column(self, column: int) -> "BlockColumn":
        return BlockColumn(self, self._check_column(column))

    def assign_column(self, column: int, values: Sequence[float] | np.ndarray) -> None:
        """Copy ``values`` into ``column``; a longer vector extends the store."""

        column = self._check_column(column)
        arr = np.asarray(values, dtype=self._dtype)
        if arr.ndim != 1:
            raise DimensionMismatchError("Column values must be 1-D")
        if arr.shape[0] < self._rows:
            raise DimensionMismatchError(
                f"Column of length {arr.shape[0]} is shorter than {self._rows} rows"
            )
        if arr.shape[0] == 0:
            return
        self.extend_to(arr.shape[0] - 1)
        for start in range(0, arr.shape[0], self._block_size):
            block, _ = self._locate(start)
            stop = min(start + self._block_size, arr.shape[0])
            block[: stop - start, column] = arr[start:stop]

    def take_rows(self, rows: Iterable[int]) -> np.ndarray:
        """Return a dense copy of the requested rows, extending as needed."""

        indices = [check_index(row) for row in rows]
        out = np.empty((len(indices), self._columns), dtype=self._dtype)
        for pos, row in enumerate(indices):
            out[pos] = self.get_row(row)
        return out

    def to_array(self) -> np.ndarray:
        """Dense copy of rows ``0 .. num_rows - 1``."""

        out = np.zeros((self._rows, self._columns), dtype=self._dtype)
        for block_idx, block in self._blocks.items():
            start = block_idx * self._block_size
            if start >= self._rows:
                continue
            stop = min(start + self._block_size, self._rows)
            out[start:stop] = block[: stop - start]
        return out

    def like(self) -> "GrowableRowStore":
        """Empty store of the same kind covering the current row count."""

        store = GrowableRowStore(self._columns, self._block_size, self._dtype)
        if self._rows:
            store.extend_to(self._rows - 1)
        return store

    def like_shape(self, rows: int, columns: int) -> "GrowableRowStore":
        """Empty store of the same kind with the given shape."""

        rows = check_index(rows, what="Row count")
        store = GrowableRowStore(columns, self._block_size, self._dtype)
        if rows:
            store.extend_to(rows - 1)
        return store


class BlockColumn:
    """Column view that reads and writes through a :class:`GrowableRowStore`."""

    def __init__(self, store: GrowableRowStore, column: int) -> None:
        self._store = store
        self._column = column

    @property
    def column(self) -> int:
        return self._column

    def __len__(self) -> int:
        return self._store.num_rows

    def __getitem__(self, row: int) -> float:
        return self._store.get_quick(row, self._column)

    def __setitem__(self, row: int, value: float) -> None:
        self._store.set_quick(row, self._column, value)

    def __iter__(self) -> Iterator[float]:
        for row in range(len(self)):
            yield self[row]

    def assign(self, values: Sequence[float] | np.ndarray) -> None:
        self._store.assign_column(self._column, values)

    def to_array(self) -> np.ndarray:
        return self._store.to_array()[:, self._column].copy()

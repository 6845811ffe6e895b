import threading

import numpy as np
import pytest

from dyadfactor.errors import ConfigurationError, DimensionMismatchError, InvalidIndexError
from dyadfactor.row_store import GrowableRowStore, check_index


def test_touching_a_row_extends_the_store() -> None:
    store = GrowableRowStore(3, block_size=4)
    assert store.num_rows == 0
    row = store.get_row(9)
    assert row.shape == (3,)
    assert store.num_rows == 10
    assert store.shape == (10, 3)
    assert store.allocated_blocks == 1
    np.testing.assert_array_equal(store.to_array(), np.zeros((10, 3)))


def test_rows_below_high_water_mark_read_as_zeros() -> None:
    store = GrowableRowStore(2, block_size=4)
    store.set_quick(7, 1, 3.0)
    assert store.get_quick(2, 0) == 0.0
    np.testing.assert_array_equal(store.get_row(1), np.zeros(2))
    assert store.num_rows == 8


def test_row_views_alias_storage() -> None:
    store = GrowableRowStore(3, block_size=4)
    row = store.get_row(2)
    row[1] = 5.0
    assert store.get_quick(2, 1) == 5.0
    store.set_quick(2, 0, -1.5)
    assert row[0] == -1.5


def test_rows_across_block_boundary_are_independent() -> None:
    store = GrowableRowStore(2, block_size=4)
    store.assign_row(3, [1.0, 2.0])
    store.assign_row(4, [3.0, 4.0])
    np.testing.assert_array_equal(store.get_row(3), [1.0, 2.0])
    np.testing.assert_array_equal(store.get_row(4), [3.0, 4.0])
    assert store.allocated_blocks == 2


def test_assign_row_rejects_wrong_width() -> None:
    store = GrowableRowStore(3)
    with pytest.raises(DimensionMismatchError):
        store.assign_row(0, [1.0, 2.0])


def test_invalid_indices_are_rejected() -> None:
    store = GrowableRowStore(3)
    with pytest.raises(InvalidIndexError):
        store.get_row(-1)
    with pytest.raises(InvalidIndexError):
        store.get_row(1.5)
    with pytest.raises(InvalidIndexError):
        store.get_row(True)
    with pytest.raises(InvalidIndexError):
        store.get_quick(0, 3)
    assert store.num_rows == 0
    assert check_index(np.int64(4)) == 4


def test_invalid_shape_configuration() -> None:
    with pytest.raises(ConfigurationError):
        GrowableRowStore(0)
    with pytest.raises(ConfigurationError):
        GrowableRowStore(2, block_size=0)


def test_column_view_reads_and_writes_through() -> None:
    store = GrowableRowStore(2, block_size=4)
    store.assign_column(1, np.arange(6.0))
    assert store.num_rows == 6
    column = store.get_column(1)
    assert len(column) == 6
    assert column[5] == 5.0
    assert list(column) == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]
    column[2] = 9.0
    assert store.get_quick(2, 1) == 9.0
    np.testing.assert_array_equal(store.get_column(0).to_array(), np.zeros(6))


def test_assign_column_must_cover_existing_rows() -> None:
    store = GrowableRowStore(2, block_size=4)
    store.extend_to(5)
    with pytest.raises(DimensionMismatchError):
        store.assign_column(0, [1.0, 2.0])
    store.get_column(0).assign(np.ones(9))
    assert store.num_rows == 9
    np.testing.assert_array_equal(store.to_array()[:, 0], np.ones(9))


def test_take_rows_returns_a_copy() -> None:
    store = GrowableRowStore(2)
    store.assign_row(0, [1.0, 2.0])
    store.assign_row(3, [3.0, 4.0])
    rows = store.take_rows([3, 0])
    np.testing.assert_array_equal(rows, [[3.0, 4.0], [1.0, 2.0]])
    rows[0, 0] = 100.0
    assert store.get_quick(3, 0) == 3.0


def test_like_creates_empty_store_of_same_kind() -> None:
    store = GrowableRowStore(3, block_size=8, dtype=np.float32)
    store.assign_row(4, [1.0, 1.0, 1.0])
    clone = store.like()
    assert clone.shape == (5, 3)
    assert clone.dtype == np.float32
    assert clone.block_size == 8
    np.testing.assert_array_equal(clone.to_array(), np.zeros((5, 3)))
    assert store.like_shape(2, 7).shape == (2, 7)


def test_concurrent_growth_reaches_highest_row() -> None:
    store = GrowableRowStore(2, block_size=4)

    def worker(offset: int) -> None:
        for row in range(offset, 200, 4):
            store.set_quick(row, 0, float(row))

    threads = [threading.Thread(target=worker, args=(offset,)) for offset in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert store.num_rows == 200
    np.testing.assert_array_equal(store.to_array()[:, 0], np.arange(200.0))

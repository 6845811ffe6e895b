import numpy as np
import pytest

from dyadfactor.coordinator import DyadicCoordinator
from dyadfactor.errors import DimensionMismatchError
from dyadfactor.ranking import FactorIndex, build_right_index, top_right_for_left


def test_factor_index_numpy_fallback() -> None:
    index = FactorIndex(dim=2)
    index._faiss = None  # force NumPy fallback
    index.rebuild(np.array([10, 11, 12]), np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]]))
    scores, ids = index.search(np.array([1.0, 0.5]), k=2)
    np.testing.assert_array_equal(ids, [12, 10])
    np.testing.assert_allclose(scores, [1.5, 1.0])

    scores, ids = index.search(np.array([1.0, 0.5]), k=10)
    np.testing.assert_array_equal(ids, [12, 10, 11])


def test_factor_index_dimension_checks() -> None:
    index = FactorIndex(dim=2)
    with pytest.raises(DimensionMismatchError):
        index.rebuild(np.arange(4), np.ones((4, 3)))
    with pytest.raises(DimensionMismatchError):
        index.rebuild(np.arange(3), np.ones((4, 2)))
    index.rebuild(np.arange(4), np.ones((4, 2)))
    with pytest.raises(DimensionMismatchError):
        index.search(np.ones(3), k=1)
    with pytest.raises(ValueError):
        FactorIndex(dim=0)


def test_factor_index_handles_empty_data() -> None:
    index = FactorIndex(dim=2)
    index.rebuild(np.zeros(0, dtype=np.int64), np.zeros((0, 2)))
    scores, ids = index.search(np.zeros(2), k=4)
    assert scores.size == 0
    assert ids.size == 0


def test_top_right_for_left_orders_by_probability() -> None:
    coordinator = DyadicCoordinator(3, rng=np.random.default_rng(0))
    for right_id in range(6):
        coordinator.right.extend(right_id)
    left_row = coordinator.left.weights(0)
    expected = sorted(
        range(6), key=lambda r: float(left_row @ coordinator.right.weights(r)), reverse=True
    )[:3]

    ids, probabilities = top_right_for_left(coordinator, 0, k=3)
    assert list(ids) == expected
    np.testing.assert_allclose(
        probabilities, [coordinator.classify_scalar(0, r) for r in expected], rtol=1e-5
    )

    index = build_right_index(coordinator)
    assert index.size == 6
    ids_again, _ = top_right_for_left(coordinator, 0, k=3, index=index)
    np.testing.assert_array_equal(ids_again, ids)

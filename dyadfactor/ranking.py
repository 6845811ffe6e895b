"""Top-k retrieval of right entities for a left entity."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .coordinator import DyadicCoordinator
from .errors import DimensionMismatchError
from .learner import sigmoid_array


def _import_faiss() -> object | None:
    try:
        import faiss  # type: ignore

        return faiss
    except ImportError:  # pragma: no cover - exercised when faiss absent
        return None


@dataclass
class FactorIndex:
    """Maximum inner-product index over factor rows.

    Uses an exact FAISS ``IndexFlatIP`` when FAISS is installed and a NumPy
    scan otherwise. Since the logistic link is monotone, the highest inner
    products are also the highest predicted probabilities.
    """

    dim: int

    def __post_init__(self) -> None:
        if self.dim <= 0:
            raise ValueError("dim must be positive")
        self._faiss = _import_faiss()
        self._index: object | None = None
        self._ids = np.zeros(0, dtype=np.int64)
        self._data = np.zeros((0, self.dim), dtype=np.float32)

    @property
    def size(self) -> int:
        return int(self._ids.shape[0])

    def rebuild(self, ids: np.ndarray, vectors: np.ndarray) -> None:
        """Recreate the index from ``vectors`` labelled by ``ids``."""

        arr = np.asarray(vectors, dtype=np.float32)
        ids_arr = np.asarray(ids, dtype=np.int64)
        if arr.ndim != 2 or arr.shape[1] != self.dim:
            raise DimensionMismatchError(f"Vectors must have shape (n, {self.dim})")
        if ids_arr.shape != (arr.shape[0],):
            raise DimensionMismatchError("ids and vectors must have the same length")
        self._ids = ids_arr.copy()
        self._data = np.ascontiguousarray(arr)
        if self._faiss is not None:
            index = self._faiss.IndexFlatIP(self.dim)
            if arr.size:
                index.add(self._data)
            self._index = index
        else:  # pragma: no cover - covered by the numpy fallback tests
            self._index = None

    def search(self, query: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """Return inner-product scores and IDs of the ``k`` best rows."""

        if k <= 0 or self.size == 0:
            return np.empty(0, dtype=np.float32), np.empty(0, dtype=np.int64)
        q = np.asarray(query, dtype=np.float32).reshape(1, -1)
        if q.shape[1] != self.dim:
            raise DimensionMismatchError("Query dimension does not match the index")
        limit = min(k, self.size)
        if self._index is not None:
            scores, positions = self._index.search(q, limit)
            return scores[0], self._ids[positions[0]]
        scores = (self._data @ q[0]).astype(np.float32)
        if limit == self.size:
            order = np.argsort(-scores, kind="stable")
        else:
            top = np.argpartition(-scores, kth=limit - 1)[:limit]
            order = top[np.argsort(-scores[top], kind="stable")]
        return scores[order], self._ids[order]


def build_right_index(coordinator: DyadicCoordinator) -> FactorIndex:
    """Index every initialized right-side row of ``coordinator``."""

    right = coordinator.right
    ids = right.initialized_ids()
    index = FactorIndex(dim=right.width)
    index.rebuild(ids, coordinator.rows("right", ids.tolist()))
    return index


def top_right_for_left(
    coordinator: DyadicCoordinator,
    left_id: int,
    k: int,
    index: FactorIndex | None = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Return the ``k`` right IDs most likely to pair with ``left_id``.

    Results are ``(right_ids, probabilities)`` sorted best first. Pass a
    prebuilt ``index`` to reuse it across queries; it reflects the right rows
    as they were when it was built.
    """

    if index is None:
        index = build_right_index(coordinator)
    query = coordinator.rows("left", [left_id])[0]
    scores, ids = index.search(query, k)
    return ids, sigmoid_array(scores)

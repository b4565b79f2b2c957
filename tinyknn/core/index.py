from collections import Counter
from enum import Enum
from numbers import Integral
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from tinyknn.core.data_structures import TrainingSample
from tinyknn.utils.errors import (
    ConfigError,
    DimensionMismatchError,
    EmptyIndexError,
    InvalidFeatureError,
    InvalidKError,
)
from tinyknn.utils.logging import setup_logger

logger = setup_logger(__name__)

_SAFE_MAGNITUDE = 2.0 ** 500


class DistanceMetric(str, Enum):
    """Enumeration of supported distance metrics."""
    EUCLIDEAN = "euclidean"  # d(a,b) = sqrt(sum((a_i - b_i)^2))
    MANHATTAN = "manhattan"  # d(a,b) = sum(|a_i - b_i|)
    COSINE = "cosine"        # d(a,b) = 1 - (a·b)/(||a||·||b||)

    @classmethod
    def parse(cls, value: Union[str, 'DistanceMetric']) -> 'DistanceMetric':
        if isinstance(value, DistanceMetric):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            supported = ", ".join(metric.value for metric in cls)
            raise ConfigError(f"Unknown distance metric: {value!r} (supported: {supported})") from None


def _is_int(value: Any) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool)


def validate_max_k(max_k: Any) -> int:
    if not _is_int(max_k) or max_k <= 0:
        raise InvalidKError(max_k)
    return int(max_k)


def as_feature_vector(features: Any) -> np.ndarray:
    """Convert ``features`` to a 1-D float64 array, rejecting empty or non-finite input."""
    try:
        vector = np.asarray(features, dtype=np.float64)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidFeatureError(f"Features must be a sequence of numbers: {e}") from e
    if vector.ndim != 1:
        raise InvalidFeatureError(f"Features must be one-dimensional, got shape {vector.shape}")
    if vector.size == 0:
        raise InvalidFeatureError("Features must not be empty")
    if not np.all(np.isfinite(vector)):
        raise InvalidFeatureError("Features must be finite numbers")
    return vector


class NearestNeighborIndex:
    """Exact k-nearest-neighbor search over every accepted sample.

    Samples are kept as float64 rows next to a parallel list of label ids.
    The stacked matrix is built lazily on the first query after a change.

    Neighbors are ordered by (distance, insertion order). The vote among the
    k nearest goes to the label id with the most neighbors; when several ids
    tie, the smallest id wins. Because of that ordering, an index built with
    ``bulk_rebuild`` answers every query exactly like one built by calling
    ``incremental_train`` once per sample in the same order.
    """

    def __init__(
        self,
        max_k: int,
        distance_metric: Union[str, DistanceMetric] = DistanceMetric.EUCLIDEAN
    ):
        """Initialize an empty index.

        Args:
            max_k: Upper bound for the ``k`` of any query, fixed for the
                lifetime of the index
            distance_metric: Distance metric to use (euclidean, manhattan, cosine)
        """
        self._max_k = validate_max_k(max_k)
        self._distance_metric = DistanceMetric.parse(distance_metric)
        self._rows: List[np.ndarray] = []
        self._label_ids: List[int] = []
        self._dimensionality: Optional[int] = None
        self._matrix: Optional[np.ndarray] = None
        self._id_vector: Optional[np.ndarray] = None
        self._max_abs = 0.0

        logger.debug(
            f"Initialized NearestNeighborIndex with max_k={self._max_k}, "
            f"metric={self._distance_metric.value}"
        )

    @property
    def max_k(self) -> int:
        return self._max_k

    @property
    def distance_metric(self) -> DistanceMetric:
        return self._distance_metric

    def size(self) -> int:
        return len(self._rows)

    def dimensionality(self) -> Optional[int]:
        return self._dimensionality

    def __len__(self) -> int:
        return self.size()

    def incremental_train(self, features: Sequence[float], label_id: int, is_update: bool = True) -> bool:
        """Add one sample to the live structure.

        ``is_update=False`` bootstraps an empty structure and ``True`` extends
        an existing one; both lead to the same state. A flag that does not
        match the current size is tolerated and only logged.

        Args:
            features: Feature vector of the sample
            label_id: Registry id of the sample's label
            is_update: Whether samples have been trained before

        Returns:
            True once the sample is part of the index

        Raises:
            DimensionMismatchError: If the vector length differs from the
                established dimensionality
            InvalidFeatureError: If the vector is empty or not finite
        """
        vector = as_feature_vector(features)
        self._check_dimensionality(vector)

        if is_update and not self._rows:
            logger.debug("Update requested on an empty index, bootstrapping instead")
        elif not is_update and self._rows:
            logger.debug(f"Bootstrap requested on an index with {len(self._rows)} samples, extending instead")

        self._rows.append(vector)
        self._label_ids.append(int(label_id))
        self._dimensionality = vector.shape[0]
        self._invalidate()
        return True

    def bulk_rebuild(
        self,
        samples: Iterable[Union[TrainingSample, Tuple[int, Sequence[float]]]],
        max_k: Optional[int] = None
    ) -> None:
        """Discard the current structure and build a fresh one from ``samples``.

        The new structure is assembled on the side and only replaces the old
        one when every sample has been accepted.

        Args:
            samples: (label_id, features) pairs or TrainingSample objects, in
                the order they were originally trained
            max_k: New upper bound for ``k``; keeps the current one if None
        """
        new_max_k = self._max_k if max_k is None else validate_max_k(max_k)
        rows: List[np.ndarray] = []
        label_ids: List[int] = []
        dimensionality: Optional[int] = None

        for sample in samples:
            if isinstance(sample, TrainingSample):
                label_id, features = sample.label_id, sample.features
            else:
                label_id, features = sample
            vector = as_feature_vector(features)
            if dimensionality is None:
                dimensionality = vector.shape[0]
            elif vector.shape[0] != dimensionality:
                raise DimensionMismatchError(dimensionality, vector.shape[0])
            rows.append(vector)
            label_ids.append(int(label_id))

        self._max_k = new_max_k
        self._rows = rows
        self._label_ids = label_ids
        self._dimensionality = dimensionality
        self._invalidate()
        logger.debug(f"Rebuilt index from {len(rows)} samples (max_k={new_max_k})")

    def query(self, features: Sequence[float], k: int) -> int:
        """Return the label id that wins the vote among the ``k`` nearest samples.

        When fewer than ``k`` samples are stored, all of them vote.

        Raises:
            InvalidKError: If ``k`` is outside (0, max_k]
            EmptyIndexError: If nothing has been trained yet
            DimensionMismatchError: If the query length differs from the
                established dimensionality
        """
        votes = self.query_votes(features, k)
        best = max(votes.values())
        return min(label_id for label_id, count in votes.items() if count == best)

    def query_votes(self, features: Sequence[float], k: int) -> Dict[int, int]:
        """Vote tally among the ``k`` nearest samples, keyed by label id."""
        neighbors = self.nearest(features, k)
        return dict(Counter(label_id for label_id, _ in neighbors))

    def nearest(self, features: Sequence[float], k: int) -> List[Tuple[int, float]]:
        """The ``k`` nearest samples as (label_id, distance), closest first."""
        self._check_k(k)
        if not self._rows:
            raise EmptyIndexError("Cannot query an index that has no training samples")
        vector = as_feature_vector(features)
        self._check_dimensionality(vector)

        matrix, id_vector = self._stacked()
        scale = self._magnitude_scale(vector)
        if scale != 1.0:
            matrix = matrix / scale
            vector = vector / scale
        distances = self._calculate_distances(matrix, vector)
        count = min(int(k), len(self._rows))
        order = np.argsort(distances, kind="stable")[:count]
        if self._distance_metric != DistanceMetric.COSINE:
            # Ranking used the scaled values; only the reported distances may overflow
            with np.errstate(over="ignore"):
                distances = distances * scale
        return [(int(id_vector[i]), float(distances[i])) for i in order]

    def _check_k(self, k: Any) -> None:
        if not _is_int(k) or k <= 0 or k > self._max_k:
            raise InvalidKError(k, self._max_k)

    def _check_dimensionality(self, vector: np.ndarray) -> None:
        if self._dimensionality is not None and vector.shape[0] != self._dimensionality:
            raise DimensionMismatchError(self._dimensionality, vector.shape[0])

    def _invalidate(self) -> None:
        self._matrix = None
        self._id_vector = None
        self._max_abs = 0.0

    def _stacked(self) -> Tuple[np.ndarray, np.ndarray]:
        if self._matrix is None:
            self._matrix = np.vstack(self._rows)
            self._id_vector = np.asarray(self._label_ids, dtype=np.int64)
            self._max_abs = float(np.max(np.abs(self._matrix)))
        return self._matrix, self._id_vector

    def _magnitude_scale(self, vector: np.ndarray) -> float:
        """Power of two to divide by before squaring, 1.0 for ordinary magnitudes.

        Squares and dot products of values above ``_SAFE_MAGNITUDE`` overflow
        float64. Dividing everything by a common power of two keeps
        the ranking of every metric unchanged.
        """
        largest = max(self._max_abs, float(np.max(np.abs(vector))))
        if largest <= _SAFE_MAGNITUDE:
            return 1.0
        _, exponent = np.frexp(largest)
        return float(np.ldexp(1.0, int(exponent) - 1))

    def _calculate_distances(self, matrix: np.ndarray, vector: np.ndarray) -> np.ndarray:
        """Distances from ``vector`` to every row of ``matrix``."""
        if self._distance_metric == DistanceMetric.EUCLIDEAN:
            return np.sqrt(np.sum((matrix - vector) ** 2, axis=1))
        elif self._distance_metric == DistanceMetric.MANHATTAN:
            return np.sum(np.abs(matrix - vector), axis=1)
        elif self._distance_metric == DistanceMetric.COSINE:
            return self._cosine_distances(matrix, vector)
        else:
            raise ConfigError(f"Unsupported distance metric: {self._distance_metric}")

    @staticmethod
    def _cosine_distances(matrix: np.ndarray, vector: np.ndarray) -> np.ndarray:
        row_norms = np.sqrt(np.sum(matrix ** 2, axis=1))
        vector_norm = np.sqrt(np.sum(vector ** 2))
        denominators = row_norms * vector_norm
        dots = matrix @ vector
        # Zero-length vectors have no direction; treat them as orthogonal
        similarity = np.divide(dots, denominators, out=np.zeros_like(dots), where=denominators > 0)
        similarity = np.clip(similarity, -1.0, 1.0)
        return 1.0 - similarity

import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from tinyknn.core.base import StatefulComponent
from tinyknn.core.index import DistanceMetric, NearestNeighborIndex, as_feature_vector
from tinyknn.core.persistence import ClassifierSnapshot, PersistenceCodec
from tinyknn.core.registry import LabelRegistry
from tinyknn.core.training_store import TrainingStore
from tinyknn.utils.config import Config, get_config
from tinyknn.utils.errors import NotInitializedError, UnknownIdError
from tinyknn.utils.logging import setup_logger

logger = setup_logger(__name__)

PathLike = Union[str, Path]


class KNNClassifier(StatefulComponent):
    """Incremental, persistable k-nearest-neighbor classifier.

    Keeps a label registry, the training store and the search index in
    lockstep. A training call either lands in all three or in none of them,
    and a load either replaces all three or leaves them untouched.

    Usage:
        knn = KNNClassifier(max_k=1)
        knn.train([0, 0, 0], "black")
        knn.train([1, 1, 1], "white")
        knn.find([0.1, 0.0, 0.2], 1)  # "black"
        knn.save_data("colors.json")

    Every public method holds one re-entrant lock, so calls from several
    threads are serialized.
    """

    def __init__(
        self,
        max_k: Optional[int] = None,
        distance_metric: Optional[Union[str, DistanceMetric]] = None,
        atomic_save: Optional[bool] = None,
        config: Optional[Config] = None
    ):
        """Create a classifier.

        Args:
            max_k: Upper bound for ``k`` in ``find``. If None, ``init`` (or
                ``load_data``) must be called before training or querying.
            distance_metric: Distance metric for new indexes; defaults to the
                ``classifier.distance_metric`` config value
            atomic_save: Whether ``save_data`` writes through a temporary file;
                defaults to the ``classifier.atomic_save`` config value
            config: Config to read defaults from; the global config if None
        """
        config = config or get_config()
        classifier_config = config.get("classifier", default={})
        persistence_config = config.get("persistence", default={})

        self._distance_metric = DistanceMetric.parse(
            distance_metric if distance_metric is not None
            else classifier_config.get("distance_metric", DistanceMetric.EUCLIDEAN)
        )
        self._atomic_save = bool(
            classifier_config.get("atomic_save", True) if atomic_save is None else atomic_save
        )
        self._codec = PersistenceCodec(
            pretty=persistence_config.get("pretty", True),
            include_checksum=persistence_config.get("include_checksum", True)
        )
        self._lock = threading.RLock()

        self._index: Optional[NearestNeighborIndex] = None
        self._registry = LabelRegistry()
        self._store = TrainingStore()

        if max_k is not None:
            self.init(max_k)

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> 'KNNClassifier':
        """Create and initialize a classifier from the ``classifier`` config section."""
        config = config or get_config()
        return cls(max_k=config.get("classifier", "max_k"), config=config)

    def init(self, max_k: int) -> None:
        """Reset all state and fix ``max_k`` for the new index."""
        with self._lock:
            index = NearestNeighborIndex(max_k, self._distance_metric)
            self._index = index
            self._registry = LabelRegistry()
            self._store = TrainingStore()
            logger.debug(f"Initialized classifier with max_k={index.max_k}, metric={self._distance_metric.value}")

    @property
    def is_initialized(self) -> bool:
        return self._index is not None

    @property
    def distance_metric(self) -> DistanceMetric:
        return self._distance_metric

    def train(self, features: Sequence[float], label: str) -> bool:
        """Add one labeled sample.

        Args:
            features: Feature vector; its length must match earlier samples
            label: Class label

        Returns:
            True on success

        Raises:
            DimensionMismatchError: If the vector length differs from the
                established dimensionality. Nothing is changed.
            InvalidFeatureError: If the vector is empty or not finite
            InvalidInputError: If the label is not a non-empty string
        """
        with self._lock:
            index = self._require_index()
            vector = as_feature_vector(features)
            prior_sample_count = index.size()

            label_id, created = self._registry.assign_or_get(label)
            appended = False
            try:
                self._store.append(label_id, vector)
                appended = True
                index.incremental_train(vector, label_id, is_update=prior_sample_count != 0)
            except Exception as e:
                if appended:
                    self._store.discard_last()
                if created:
                    self._registry.remove(label)
                logger.warning(f"Rejected training sample for label '{label}': {e}")
                raise

            logger.debug(f"Trained sample {index.size()} with label '{label}' (id {label_id})")
            return True

    def find(self, features: Sequence[float], k: int) -> str:
        """Return the label that wins the vote among the ``k`` nearest samples.

        Ties between labels go to the one registered first (smallest id).

        Raises:
            InvalidKError: If ``k`` is outside (0, max_k]
            EmptyIndexError: If nothing has been trained
            DimensionMismatchError: If the vector length is wrong
            UnknownIdError: If the index returns an id the registry does not
                know. This is an internal inconsistency and is never masked.
        """
        with self._lock:
            index = self._require_index()
            label_id = index.query(features, k)
            try:
                return self._registry.lookup(label_id)
            except UnknownIdError:
                logger.error(f"Index returned label id {label_id}, which is not registered")
                raise

    def load_data(self, path: PathLike) -> bool:
        """Replace all state with the archive at ``path``.

        The archive is decoded and the index rebuilt before anything is
        swapped in, so a failed load leaves the classifier as it was.
        ``max_k`` and the distance metric are taken from the archive.

        Raises:
            ArchiveIOError: If the file cannot be read
            CorruptArchiveError: If the content is not a valid archive
        """
        with self._lock:
            snapshot = self._codec.load(path)
            self._install(snapshot)
            return True

    def save_data(self, path: PathLike) -> bool:
        """Write the current state to ``path``. State is not modified.

        Raises:
            ArchiveIOError: If the file cannot be written
        """
        with self._lock:
            self._require_index()
            self._codec.save(self._snapshot(), path, atomic=self._atomic_save)
            return True

    def get_max_k(self) -> int:
        with self._lock:
            return self._require_index().max_k

    def get_var_count(self) -> int:
        """Feature dimensionality, or 0 before the first sample."""
        with self._lock:
            return self._require_index().dimensionality() or 0

    def get_sample_count(self) -> int:
        with self._lock:
            return self._require_index().size()

    def get_labels(self) -> List[str]:
        """Registered labels in id order."""
        with self._lock:
            self._require_index()
            return self._registry.labels()

    def get_label_counts(self) -> Dict[str, int]:
        with self._lock:
            self._require_index()
            counts = self._store.count_by_label_id()
            return {label: counts.get(label_id, 0) for label_id, label in self._registry.items()}

    def get_state(self) -> Dict[str, Any]:
        """Archive content as a JSON-compatible dictionary."""
        with self._lock:
            self._require_index()
            return json.loads(self._codec.encode(self._snapshot()).decode("utf-8"))

    def set_state(self, state: Dict[str, Any]) -> None:
        """Replace all state from a dictionary produced by ``get_state``."""
        with self._lock:
            snapshot = self._codec.decode(json.dumps(state).encode("utf-8"))
            self._install(snapshot)

    def _require_index(self) -> NearestNeighborIndex:
        if self._index is None:
            raise NotInitializedError("Classifier is not initialized; call init(max_k) first")
        return self._index

    def _snapshot(self) -> ClassifierSnapshot:
        return ClassifierSnapshot(
            max_k=self._index.max_k,
            registry=self._registry,
            store=self._store,
            distance_metric=self._distance_metric
        )

    def _install(self, snapshot: ClassifierSnapshot) -> None:
        index = NearestNeighborIndex(snapshot.max_k, snapshot.distance_metric)
        index.bulk_rebuild(snapshot.store.for_each())

        self._index = index
        self._registry = snapshot.registry
        self._store = snapshot.store
        self._distance_metric = snapshot.distance_metric
        logger.debug(f"Installed state with {index.size()} samples and {len(snapshot.registry)} labels")

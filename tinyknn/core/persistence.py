"""
Archive codec for classifier state.

An archive is UTF-8 JSON with three content fields, ``maxK``, ``clusterMap``
and ``trainData``, plus a ``format`` tag, a ``version`` number, the distance
metric and an optional checksum over the content fields and the metric::

    {
      "checksum": "9f0c...",
      "clusterMap": [{"id": 0, "label": "black"}, {"id": 1, "label": "white"}],
      "distanceMetric": "euclidean",
      "format": "tinyknn-archive",
      "maxK": 1,
      "trainData": [{"features": [0.0, 0.0, 0.0], "id": 0},
                    {"features": [1.0, 1.0, 1.0], "id": 1}],
      "version": 1
    }

The search index is never stored; it is rebuilt from ``trainData`` on load.
Archives without ``format``/``version`` are read as version 1.
"""

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from tinyknn.constants import (
    ARCHIVE_FORMAT,
    ARCHIVE_HASH_ALGORITHM,
    ARCHIVE_VERSION,
    DEFAULT_DISTANCE_METRIC,
    FIELD_CHECKSUM,
    FIELD_CLUSTER_MAP,
    FIELD_DISTANCE_METRIC,
    FIELD_FORMAT,
    FIELD_MAX_K,
    FIELD_TRAIN_DATA,
    FIELD_VERSION,
)
from tinyknn.core.data_structures import TrainingSample
from tinyknn.core.index import DistanceMetric
from tinyknn.core.registry import LabelRegistry
from tinyknn.core.training_store import TrainingStore
from tinyknn.utils.errors import ArchiveIOError, ConfigError, CorruptArchiveError
from tinyknn.utils.file_utils import read_bytes, write_bytes
from tinyknn.utils.logging import setup_logger
from tinyknn.utils.versioning import calculate_content_hash

logger = setup_logger(__name__)

PathLike = Union[str, Path]

_CHECKSUMMED_FIELDS = (FIELD_MAX_K, FIELD_CLUSTER_MAP, FIELD_TRAIN_DATA, FIELD_DISTANCE_METRIC)


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


@dataclass
class ClassifierSnapshot:
    """Everything needed to reproduce a classifier: the persisted unit."""
    max_k: int
    registry: LabelRegistry = field(default_factory=LabelRegistry)
    store: TrainingStore = field(default_factory=TrainingStore)
    distance_metric: DistanceMetric = DistanceMetric.EUCLIDEAN


class PersistenceCodec:
    """Converts a ClassifierSnapshot to and from archive bytes."""

    def __init__(self, pretty: bool = True, include_checksum: bool = True):
        self.pretty = pretty
        self.include_checksum = include_checksum

    def encode(self, snapshot: ClassifierSnapshot) -> bytes:
        content = self._content(snapshot)
        document: Dict[str, Any] = {
            FIELD_FORMAT: ARCHIVE_FORMAT,
            FIELD_VERSION: ARCHIVE_VERSION,
            **content
        }
        if self.include_checksum:
            document[FIELD_CHECKSUM] = self._checksum(content)
        if self.pretty:
            text = json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False)
        else:
            text = json.dumps(document, sort_keys=True, ensure_ascii=False)
        return text.encode("utf-8")

    def decode(self, data: bytes) -> ClassifierSnapshot:
        """Parse archive bytes into a fresh snapshot.

        Raises:
            CorruptArchiveError: If the bytes are not a structurally valid
                archive of a supported version
        """
        try:
            document = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise CorruptArchiveError(f"Archive is not valid UTF-8 JSON: {e}") from e
        if not isinstance(document, dict):
            raise CorruptArchiveError("Archive root must be a JSON object")

        self._check_header(document)
        for name in (FIELD_MAX_K, FIELD_CLUSTER_MAP, FIELD_TRAIN_DATA):
            if name not in document:
                raise CorruptArchiveError(f"Archive is missing the '{name}' field")

        # Archives written without a metric were checksummed without one
        content = {name: document[name] for name in _CHECKSUMMED_FIELDS if name in document}
        expected_checksum = document.get(FIELD_CHECKSUM)
        if expected_checksum is not None and expected_checksum != self._checksum(content):
            raise CorruptArchiveError("Archive checksum does not match its content")

        max_k = document[FIELD_MAX_K]
        if isinstance(max_k, bool) or not isinstance(max_k, int) or max_k <= 0:
            raise CorruptArchiveError(f"'{FIELD_MAX_K}' must be a positive integer, got {max_k!r}")

        try:
            distance_metric = DistanceMetric.parse(document.get(FIELD_DISTANCE_METRIC, DEFAULT_DISTANCE_METRIC))
        except ConfigError as e:
            raise CorruptArchiveError(str(e)) from e

        registry = self._decode_cluster_map(document[FIELD_CLUSTER_MAP])
        store = self._decode_train_data(document[FIELD_TRAIN_DATA], registry)

        return ClassifierSnapshot(
            max_k=max_k,
            registry=registry,
            store=store,
            distance_metric=distance_metric
        )

    def save(self, snapshot: ClassifierSnapshot, path: PathLike, atomic: bool = True) -> None:
        data = self.encode(snapshot)
        try:
            write_bytes(data, path, atomic=atomic)
        except OSError as e:
            logger.error(f"Failed to write archive to {path}: {e}")
            raise ArchiveIOError(f"Failed to write archive to {path}: {e}") from e
        logger.info(
            f"Saved archive with {snapshot.store.size()} samples and "
            f"{len(snapshot.registry)} labels to {path}"
        )

    def load(self, path: PathLike) -> ClassifierSnapshot:
        try:
            data = read_bytes(path)
        except OSError as e:
            logger.error(f"Failed to read archive from {path}: {e}")
            raise ArchiveIOError(f"Failed to read archive from {path}: {e}") from e
        try:
            snapshot = self.decode(data)
        except CorruptArchiveError as e:
            logger.error(f"Archive {path} is corrupt: {e}")
            raise
        logger.info(
            f"Loaded archive with {snapshot.store.size()} samples and "
            f"{len(snapshot.registry)} labels from {path}"
        )
        return snapshot

    @staticmethod
    def _content(snapshot: ClassifierSnapshot) -> Dict[str, Any]:
        return {
            FIELD_MAX_K: snapshot.max_k,
            FIELD_CLUSTER_MAP: [
                {"id": label_id, "label": label} for label_id, label in snapshot.registry.items()
            ],
            FIELD_TRAIN_DATA: [sample.to_dict() for sample in snapshot.store.for_each()],
            FIELD_DISTANCE_METRIC: snapshot.distance_metric.value
        }

    @staticmethod
    def _checksum(content: Dict[str, Any]) -> str:
        canonical = json.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        return calculate_content_hash(canonical, ARCHIVE_HASH_ALGORITHM)

    @staticmethod
    def _check_header(document: Dict[str, Any]) -> None:
        archive_format = document.get(FIELD_FORMAT, ARCHIVE_FORMAT)
        if archive_format != ARCHIVE_FORMAT:
            raise CorruptArchiveError(f"Unknown archive format: {archive_format!r}")
        version = document.get(FIELD_VERSION, 1)
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            raise CorruptArchiveError(f"Invalid archive version: {version!r}")
        if version > ARCHIVE_VERSION:
            raise CorruptArchiveError(
                f"Archive version {version} is newer than the supported version {ARCHIVE_VERSION}"
            )

    @staticmethod
    def _decode_cluster_map(entries: Any) -> LabelRegistry:
        if not isinstance(entries, list):
            raise CorruptArchiveError(f"'{FIELD_CLUSTER_MAP}' must be a list")
        pairs = []
        for entry in entries:
            if not isinstance(entry, dict) or "id" not in entry or "label" not in entry:
                raise CorruptArchiveError(f"Invalid '{FIELD_CLUSTER_MAP}' entry: {entry!r}")
            pairs.append((entry["id"], entry["label"]))
        try:
            return LabelRegistry.from_pairs(pairs)
        except ValueError as e:
            raise CorruptArchiveError(f"Invalid '{FIELD_CLUSTER_MAP}': {e}") from e

    @staticmethod
    def _decode_train_data(entries: Any, registry: LabelRegistry) -> TrainingStore:
        if not isinstance(entries, list):
            raise CorruptArchiveError(f"'{FIELD_TRAIN_DATA}' must be a list")
        known_ids = set(registry.ids())
        samples: List[TrainingSample] = []
        dimensionality = None
        for position, entry in enumerate(entries):
            if not isinstance(entry, dict) or "id" not in entry or "features" not in entry:
                raise CorruptArchiveError(f"Invalid '{FIELD_TRAIN_DATA}' entry at position {position}")
            label_id, features = entry["id"], entry["features"]
            if isinstance(label_id, bool) or not isinstance(label_id, int) or label_id not in known_ids:
                raise CorruptArchiveError(
                    f"Sample at position {position} references id {label_id!r}, "
                    f"which is not in '{FIELD_CLUSTER_MAP}'"
                )
            if not isinstance(features, list) or not features:
                raise CorruptArchiveError(f"Sample at position {position} has no features")
            if not all(_is_finite_number(value) for value in features):
                raise CorruptArchiveError(f"Sample at position {position} has non-numeric or non-finite features")
            if dimensionality is None:
                dimensionality = len(features)
            elif len(features) != dimensionality:
                raise CorruptArchiveError(
                    f"Sample at position {position} has {len(features)} features, expected {dimensionality}"
                )
            samples.append(TrainingSample.create(label_id, features))

        store = TrainingStore()
        for sample in samples:
            store.append(sample.label_id, sample.features)

        unused = known_ids - store.label_ids()
        if unused:
            logger.warning(f"Archive registers labels without samples (ids {sorted(unused)})")
        return store

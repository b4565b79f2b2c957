# tinyknn/__init__.py
"""
TinyKNN - Incremental, persistable k-nearest-neighbor classification.

Callers add labeled feature vectors one at a time and ask which label a new
vector most resembles. The classifier keeps:

1. A bijective registry between labels and compact integer ids
2. A record of every accepted training sample
3. An exact nearest-neighbor index rebuilt from those samples on load

State is saved to a versioned, human-readable JSON archive and restored
with identical classification behavior.
"""

__version__ = "0.1.0"

from tinyknn.core.classifier import KNNClassifier
from tinyknn.core.index import DistanceMetric, NearestNeighborIndex
from tinyknn.core.persistence import ClassifierSnapshot, PersistenceCodec
from tinyknn.core.registry import LabelRegistry
from tinyknn.core.training_store import TrainingStore
from tinyknn.core.data_structures import TrainingSample
from tinyknn.utils.errors import (
    TinyKNNError,
    DimensionMismatchError,
    InvalidKError,
    EmptyIndexError,
    UnknownIdError,
    ArchiveIOError,
    CorruptArchiveError,
)

__all__ = [
    "__version__",

    # Classifier
    "KNNClassifier",

    # Components
    "DistanceMetric",
    "NearestNeighborIndex",
    "ClassifierSnapshot",
    "PersistenceCodec",
    "LabelRegistry",
    "TrainingStore",
    "TrainingSample",

    # Errors
    "TinyKNNError",
    "DimensionMismatchError",
    "InvalidKError",
    "EmptyIndexError",
    "UnknownIdError",
    "ArchiveIOError",
    "CorruptArchiveError",
]

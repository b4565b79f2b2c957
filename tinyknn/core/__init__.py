from tinyknn.core.base import StatefulComponent
from tinyknn.core.classifier import KNNClassifier
from tinyknn.core.data_structures import TrainingSample
from tinyknn.core.index import DistanceMetric, NearestNeighborIndex
from tinyknn.core.persistence import ClassifierSnapshot, PersistenceCodec
from tinyknn.core.registry import LabelRegistry
from tinyknn.core.training_store import TrainingStore

__all__ = [
    "StatefulComponent",
    "KNNClassifier",
    "TrainingSample",
    "DistanceMetric",
    "NearestNeighborIndex",
    "ClassifierSnapshot",
    "PersistenceCodec",
    "LabelRegistry",
    "TrainingStore",
]

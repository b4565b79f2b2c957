from typing import Dict, Any, Final

VERSION: Final[str] = "0.1.0"

ARCHIVE_FORMAT: Final[str] = "tinyknn-archive"
ARCHIVE_VERSION: Final[int] = 1
ARCHIVE_HASH_ALGORITHM: Final[str] = "md5"

# Top-level archive field names, stable across archive versions
FIELD_MAX_K: Final[str] = "maxK"
FIELD_CLUSTER_MAP: Final[str] = "clusterMap"
FIELD_TRAIN_DATA: Final[str] = "trainData"
FIELD_DISTANCE_METRIC: Final[str] = "distanceMetric"
FIELD_FORMAT: Final[str] = "format"
FIELD_VERSION: Final[str] = "version"
FIELD_CHECKSUM: Final[str] = "checksum"

DEFAULT_MAX_K: Final[int] = 5
DEFAULT_DISTANCE_METRIC: Final[str] = "euclidean"
DEFAULT_CONFIG_FILE: Final[str] = "tinyknn_config.json"
DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DEFAULT_CONFIG: Final[Dict[str, Dict[str, Any]]] = {
    "classifier": {
        "max_k": DEFAULT_MAX_K,
        "distance_metric": DEFAULT_DISTANCE_METRIC,
        "atomic_save": True  # Write to a temp file and rename into place
    },
    "persistence": {
        "pretty": True,
        "include_checksum": True
    },
    "logging": {
        "level": "INFO",
        "log_file": None,
        "format": DEFAULT_LOG_FORMAT
    }
}

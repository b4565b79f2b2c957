import json
import os
import threading

import pytest

from tinyknn.core.classifier import KNNClassifier
from tinyknn.core.index import DistanceMetric
from tinyknn.utils.config import Config
from tinyknn.utils.errors import (
    ArchiveIOError,
    CorruptArchiveError,
    DimensionMismatchError,
    EmptyIndexError,
    InvalidFeatureError,
    InvalidInputError,
    InvalidKError,
    NotInitializedError,
    UnknownIdError,
)


class TestTraining:
    """Sample counting, classification and the training transaction."""

    def test_train_counts_samples(self):
        knn = KNNClassifier(max_k=1)

        assert knn.train([0, 0, 0], "black") is True
        assert knn.get_sample_count() == 1
        assert knn.train([1, 1, 1], "white") is True
        assert knn.get_sample_count() == 2

    def test_find_returns_trained_labels(self, color_classifier):
        assert color_classifier.find([0, 0, 0], 1) == "black"
        assert color_classifier.find([1, 1, 1], 1) == "white"
        assert color_classifier.find([0.2, 0.1, 0.3], 1) == "black"
        assert color_classifier.find([0.9, 0.7, 0.8], 1) == "white"

    def test_accessors(self, color_classifier):
        assert color_classifier.get_max_k() == 1
        assert color_classifier.get_var_count() == 3
        assert color_classifier.get_labels() == ["black", "white"]
        assert color_classifier.get_label_counts() == {"black": 1, "white": 1}

    def test_var_count_is_zero_before_training(self):
        assert KNNClassifier(max_k=3).get_var_count() == 0

    def test_repeated_label_reuses_registry_entry(self, color_classifier):
        color_classifier.train([0.1, 0.1, 0.1], "black")

        assert color_classifier.get_sample_count() == 3
        assert color_classifier.get_labels() == ["black", "white"]
        assert color_classifier.get_label_counts() == {"black": 2, "white": 1}

    def test_dimension_mismatch_rolls_back_new_label(self, color_classifier):
        with pytest.raises(DimensionMismatchError):
            color_classifier.train([0, 0], "gray")

        assert color_classifier.get_sample_count() == 2
        assert color_classifier.get_labels() == ["black", "white"]
        assert color_classifier.get_state()["trainData"] == [
            {"id": 0, "features": [0.0, 0.0, 0.0]},
            {"id": 1, "features": [1.0, 1.0, 1.0]},
        ]

    def test_dimension_mismatch_keeps_existing_label(self, color_classifier):
        with pytest.raises(DimensionMismatchError):
            color_classifier.train([0, 0], "black")

        assert color_classifier.get_labels() == ["black", "white"]
        assert color_classifier.get_label_counts() == {"black": 1, "white": 1}
        assert color_classifier.find([0, 0, 0], 1) == "black"

    def test_label_after_failed_train_gets_fresh_id(self, color_classifier):
        with pytest.raises(DimensionMismatchError):
            color_classifier.train([0, 0], "gray")

        color_classifier.train([0.5, 0.5, 0.5], "gray")

        cluster_map = color_classifier.get_state()["clusterMap"]
        assert cluster_map[-1] == {"id": 3, "label": "gray"}
        assert color_classifier.find([0.5, 0.5, 0.5], 1) == "gray"

    @pytest.mark.parametrize("features", [[], [float("nan"), 0, 0], [10 ** 400, 0, 0], "abc"])
    def test_invalid_features_change_nothing(self, color_classifier, features):
        with pytest.raises(InvalidFeatureError):
            color_classifier.train(features, "gray")

        assert color_classifier.get_sample_count() == 2
        assert color_classifier.get_labels() == ["black", "white"]

    @pytest.mark.parametrize("label", ["", None, 42])
    def test_invalid_label_changes_nothing(self, color_classifier, label):
        with pytest.raises(InvalidInputError):
            color_classifier.train([0, 0, 0], label)

        assert color_classifier.get_sample_count() == 2

    def test_majority_vote_across_labels(self, clustered_samples):
        knn = KNNClassifier(max_k=3)
        for features, label in clustered_samples:
            knn.train(features, label)

        assert knn.find([0.1, 0.1], 3) == "red"
        assert knn.find([5.1, 5.0], 3) == "green"
        assert knn.find([0.0, 9.1], 3) == "blue"

    def test_tie_goes_to_first_registered_label(self):
        knn = KNNClassifier(max_k=2)
        knn.train([1.0], "beta")
        knn.train([-1.0], "alpha")

        # One vote each; "beta" was registered first and has the smaller id
        assert knn.find([0.0], 2) == "beta"


class TestQueries:

    @pytest.mark.parametrize("k", [0, 2])
    def test_k_bounds(self, color_classifier, k):
        with pytest.raises(InvalidKError):
            color_classifier.find([0, 0, 0], k)

    def test_find_before_training(self):
        with pytest.raises(EmptyIndexError):
            KNNClassifier(max_k=1).find([0, 0, 0], 1)

    def test_find_with_wrong_dimensionality(self, color_classifier):
        with pytest.raises(DimensionMismatchError):
            color_classifier.find([0, 0], 1)

    def test_find_fails_loudly_on_unregistered_id(self, color_classifier):
        color_classifier._registry.remove("white")

        with pytest.raises(UnknownIdError):
            color_classifier.find([1, 1, 1], 1)


class TestInitialization:

    def test_calls_before_init_fail(self):
        knn = KNNClassifier()

        assert knn.is_initialized is False
        with pytest.raises(NotInitializedError):
            knn.train([0.0], "a")
        with pytest.raises(NotInitializedError):
            knn.find([0.0], 1)
        with pytest.raises(NotInitializedError):
            knn.get_sample_count()

    @pytest.mark.parametrize("max_k", [0, -3])
    def test_init_rejects_non_positive_max_k(self, max_k):
        with pytest.raises(InvalidKError):
            KNNClassifier(max_k=max_k)

    def test_init_resets_state(self, color_classifier):
        color_classifier.init(4)

        assert color_classifier.get_max_k() == 4
        assert color_classifier.get_sample_count() == 0
        assert color_classifier.get_labels() == []
        assert color_classifier.get_var_count() == 0

    def test_defaults_come_from_config(self):
        config = Config()
        config.set("classifier", "max_k", 7)
        config.set("classifier", "distance_metric", "manhattan")

        knn = KNNClassifier.from_config(config)

        assert knn.get_max_k() == 7
        assert knn.distance_metric == DistanceMetric.MANHATTAN

    def test_explicit_arguments_override_config(self):
        config = Config()
        config.set("classifier", "distance_metric", "manhattan")

        knn = KNNClassifier(max_k=2, distance_metric="cosine", config=config)

        assert knn.distance_metric == DistanceMetric.COSINE


class TestPersistence:

    def test_save_then_load_preserves_classification(self, clustered_samples, temp_dir):
        knn = KNNClassifier(max_k=3)
        for features, label in clustered_samples:
            knn.train(features, label)
        queries = [[0.0, 0.0], [2.5, 2.5], [5.0, 9.0], [1.0, 7.0], [4.0, 4.0]]
        before = {(tuple(q), k): knn.find(q, k) for q in queries for k in (1, 2, 3)}
        path = os.path.join(temp_dir, "knn.json")

        assert knn.save_data(path) is True
        restored = KNNClassifier()
        assert restored.load_data(path) is True

        after = {(tuple(q), k): restored.find(q, k) for q in queries for k in (1, 2, 3)}
        assert after == before
        assert restored.get_max_k() == 3
        assert restored.get_sample_count() == len(clustered_samples)
        assert restored.get_var_count() == 2
        assert restored.get_labels() == knn.get_labels()

    def test_save_does_not_modify_state(self, color_classifier, temp_dir):
        state = color_classifier.get_state()

        color_classifier.save_data(os.path.join(temp_dir, "knn.json"))

        assert color_classifier.get_state() == state

    def test_saved_file_is_readable_json(self, color_classifier, temp_dir):
        path = os.path.join(temp_dir, "knn.json")
        color_classifier.save_data(path)

        with open(path, encoding="utf-8") as f:
            document = json.load(f)

        assert document["maxK"] == 1
        assert document["clusterMap"] == [{"id": 0, "label": "black"}, {"id": 1, "label": "white"}]

    def test_load_replaces_all_state(self, color_classifier, clustered_samples, temp_dir):
        other = KNNClassifier(max_k=3, distance_metric="manhattan")
        for features, label in clustered_samples:
            other.train(features, label)
        path = os.path.join(temp_dir, "other.json")
        other.save_data(path)

        color_classifier.load_data(path)

        assert color_classifier.get_max_k() == 3
        assert color_classifier.get_var_count() == 2
        assert color_classifier.get_labels() == ["red", "green", "blue"]
        assert color_classifier.distance_metric == DistanceMetric.MANHATTAN

    def test_training_continues_after_load(self, color_classifier, temp_dir):
        path = os.path.join(temp_dir, "knn.json")
        color_classifier.save_data(path)
        restored = KNNClassifier()
        restored.load_data(path)

        restored.train([0.5, 0.5, 0.5], "gray")

        assert restored.get_labels() == ["black", "white", "gray"]
        assert restored.find([0.45, 0.5, 0.55], 1) == "gray"
        with pytest.raises(DimensionMismatchError):
            restored.train([0.5], "gray")

    def test_failed_load_leaves_state_unchanged(self, color_classifier, archive_file):
        path = archive_file('{"maxK": 1, "clusterMap": [], "trainData": [{"id": 4, "features": [1]}]}')
        state = color_classifier.get_state()

        with pytest.raises(CorruptArchiveError):
            color_classifier.load_data(path)

        assert color_classifier.get_state() == state
        assert color_classifier.find([0, 0, 0], 1) == "black"

    def test_truncated_archive_is_corrupt(self, color_classifier, temp_dir):
        path = os.path.join(temp_dir, "knn.json")
        color_classifier.save_data(path)
        with open(path, "rb") as f:
            data = f.read()
        with open(path, "wb") as f:
            f.write(data[: len(data) // 2])

        with pytest.raises(CorruptArchiveError):
            KNNClassifier().load_data(path)

    def test_missing_archive_raises_io_error(self, color_classifier, temp_dir):
        with pytest.raises(ArchiveIOError):
            color_classifier.load_data(os.path.join(temp_dir, "missing.json"))

        assert color_classifier.get_sample_count() == 2

    def test_state_dict_round_trip(self, color_classifier):
        restored = KNNClassifier()
        restored.set_state(color_classifier.get_state())

        assert restored.find([0, 0, 0], 1) == "black"
        assert restored.find([1, 1, 1], 1) == "white"

    def test_rebuild_matches_incremental_classifier(self, clustered_samples, temp_dir):
        incremental = KNNClassifier(max_k=5)
        for features, label in clustered_samples:
            incremental.train(features, label)
        path = os.path.join(temp_dir, "knn.json")
        incremental.save_data(path)
        rebuilt = KNNClassifier()
        rebuilt.load_data(path)

        for x in range(-2, 8):
            for y in range(-2, 11):
                for k in range(1, 6):
                    assert rebuilt.find([x, y], k) == incremental.find([x, y], k)


def test_concurrent_training_is_serialized():
    knn = KNNClassifier(max_k=1)

    def worker(offset):
        for i in range(50):
            knn.train([offset, i], f"label-{offset}")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert knn.get_sample_count() == 200
    assert sorted(knn.get_label_counts().values()) == [50, 50, 50, 50]

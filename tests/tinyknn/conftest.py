"""Configuration for pytest fixtures."""

import json
import os
import shutil
import tempfile

import pytest

from tinyknn.core.classifier import KNNClassifier
from tinyknn.utils.config import Config, set_global_config


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    dir_path = tempfile.mkdtemp()
    yield dir_path
    shutil.rmtree(dir_path)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Give every test a fresh default config without TINYKNN_* overrides."""
    for name in list(os.environ):
        if name.startswith("TINYKNN_"):
            monkeypatch.delenv(name)
    config = Config()
    set_global_config(config)
    yield config
    set_global_config(None)


@pytest.fixture
def color_classifier():
    """Classifier trained on two opposite corners of the unit cube."""
    knn = KNNClassifier(max_k=1)
    knn.train([0, 0, 0], "black")
    knn.train([1, 1, 1], "white")
    return knn


@pytest.fixture
def clustered_samples():
    """Three well separated 2-D clusters with a few samples each."""
    return [
        ([0.0, 0.0], "red"),
        ([0.2, 0.1], "red"),
        ([0.1, 0.3], "red"),
        ([5.0, 5.0], "green"),
        ([5.2, 4.9], "green"),
        ([4.8, 5.1], "green"),
        ([0.0, 9.0], "blue"),
        ([0.3, 9.2], "blue"),
        ([-0.2, 8.8], "blue"),
    ]


@pytest.fixture
def archive_file(temp_dir):
    """Write an archive document to disk and return its path."""
    def _write(document, name="archive.json"):
        path = os.path.join(temp_dir, name)
        with open(path, "w", encoding="utf-8") as f:
            if isinstance(document, str):
                f.write(document)
            else:
                json.dump(document, f)
        return path
    return _write

"""Train a small RGB color classifier, save it, reload it and query it."""
from pathlib import Path

import numpy as np

from tinyknn import KNNClassifier
from tinyknn.utils.errors import DimensionMismatchError

# --- CONFIGURATION ---
OUTPUT_STATE_DIR = Path("examples/assets/")
OUTPUT_STATE_FILENAME = "color_knn.json"
KNN_MAX_K = 5
SAMPLES_PER_COLOR = 20
RANDOM_SEED = 42

# Reference colors as RGB in [0, 1]
COLORS = {
    "black": (0.0, 0.0, 0.0),
    "white": (1.0, 1.0, 1.0),
    "red": (0.9, 0.1, 0.1),
    "green": (0.1, 0.8, 0.2),
    "blue": (0.1, 0.2, 0.9),
}
# --- END CONFIGURATION ---


def noisy_samples(rng: np.random.Generator, center, count: int) -> np.ndarray:
    samples = rng.normal(loc=center, scale=0.05, size=(count, len(center)))
    return np.clip(samples, 0.0, 1.0)


def main():
    rng = np.random.default_rng(RANDOM_SEED)
    knn = KNNClassifier(max_k=KNN_MAX_K)

    for label, center in COLORS.items():
        for sample in noisy_samples(rng, center, SAMPLES_PER_COLOR):
            knn.train(sample.tolist(), label)
    print(f"Trained {knn.get_sample_count()} samples with {knn.get_var_count()} features "
          f"for labels: {knn.get_labels()}")

    try:
        knn.train([0.5, 0.5], "gray")
    except DimensionMismatchError as e:
        print(f"Rejected sample as expected: {e}")

    output_file_path = OUTPUT_STATE_DIR / OUTPUT_STATE_FILENAME
    knn.save_data(output_file_path)
    print(f"Saved classifier to: {output_file_path}")

    restored = KNNClassifier()
    restored.load_data(output_file_path)

    for query in ([0.05, 0.02, 0.0], [0.8, 0.2, 0.15], [0.2, 0.3, 0.8], [0.95, 0.9, 0.97]):
        before = knn.find(query, 3)
        after = restored.find(query, 3)
        print(f"{query} -> {after} (before reload: {before})")

if __name__ == "__main__":
    main()

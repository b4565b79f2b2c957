from collections import Counter
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set

from tinyknn.core.base import StatefulComponent
from tinyknn.core.data_structures import TrainingSample


class TrainingStore(StatefulComponent):
    """Append-only record of every accepted training sample.

    The store is independent of the search structure and is the only thing
    the index is rebuilt from after a load. It performs no validation;
    callers check dimensionality before appending.
    """

    def __init__(self) -> None:
        self._samples: List[TrainingSample] = []

    def append(self, label_id: int, features: Sequence[float]) -> None:
        self._samples.append(TrainingSample.create(label_id, features))

    def discard_last(self) -> TrainingSample:
        """Remove and return the most recently appended sample (training rollback)."""
        return self._samples.pop()

    def for_each(self) -> Iterator[TrainingSample]:
        """Yield samples in insertion order. Each call starts a fresh pass."""
        return iter(tuple(self._samples))

    def dimensionality(self) -> Optional[int]:
        if not self._samples:
            return None
        return self._samples[0].dimensionality

    def size(self) -> int:
        return len(self._samples)

    def label_ids(self) -> Set[int]:
        return {sample.label_id for sample in self._samples}

    def count_by_label_id(self) -> Counter:
        return Counter(sample.label_id for sample in self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[TrainingSample]:
        return self.for_each()

    def get_state(self) -> Dict[str, Any]:
        return {"samples": [sample.to_dict() for sample in self._samples]}

    def set_state(self, state: Dict[str, Any]) -> None:
        self._samples = [TrainingSample.from_dict(entry) for entry in state.get("samples", [])]

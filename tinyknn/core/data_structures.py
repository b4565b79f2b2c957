from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple


@dataclass(frozen=True)
class TrainingSample:
    """One accepted training sample: a label id and its feature vector."""
    label_id: int
    features: Tuple[float, ...]

    @classmethod
    def create(cls, label_id: int, features: Sequence[float]) -> 'TrainingSample':
        """Build a sample, copying ``features`` into an immutable tuple of floats."""
        return cls(label_id=int(label_id), features=tuple(float(x) for x in features))

    @property
    def dimensionality(self) -> int:
        return len(self.features)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.label_id,
            "features": list(self.features)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrainingSample':
        """Create from dictionary after deserialization."""
        return cls.create(data["id"], data["features"])

from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from tinyknn.core.base import StatefulComponent
from tinyknn.utils.errors import InvalidInputError, UnknownIdError
from tinyknn.utils.logging import setup_logger

logger = setup_logger(__name__)


class LabelRegistry(StatefulComponent):
    """Bijective mapping between dense integer ids and label strings.

    Two plain dicts are kept in sync on every mutation. Ids come from a
    monotonic counter: under pure growth a new id equals the registry size,
    and a removed id is never handed out again, so samples that still
    reference an old id cannot be silently relabeled.
    """

    def __init__(self) -> None:
        self._id_to_label: Dict[int, str] = {}
        self._label_to_id: Dict[str, int] = {}
        self._next_id = 0

    def assign_or_get(self, label: str) -> Tuple[int, bool]:
        """Return the id registered for ``label``, registering it if needed.

        Args:
            label: Label string to look up or register

        Returns:
            Tuple of (id, created) where ``created`` is True if the label
            was registered by this call
        """
        if not isinstance(label, str) or not label:
            raise InvalidInputError(f"Label must be a non-empty string, got {label!r}")

        existing = self._label_to_id.get(label)
        if existing is not None:
            return existing, False

        label_id = self._next_id
        self._next_id += 1
        self._id_to_label[label_id] = label
        self._label_to_id[label] = label_id
        logger.debug(f"Registered label '{label}' with id {label_id}")
        return label_id, True

    def lookup(self, label_id: int) -> str:
        """Return the label for ``label_id``.

        Raises:
            UnknownIdError: If the id is not registered. This means the
                index and the registry disagree, which is a defect.
        """
        try:
            return self._id_to_label[label_id]
        except KeyError:
            raise UnknownIdError(label_id) from None

    def get_id(self, label: str) -> Optional[int]:
        return self._label_to_id.get(label)

    def contains(self, label: str) -> bool:
        return label in self._label_to_id

    def remove(self, label: str) -> None:
        """Drop ``label`` and its id. Remaining ids are not renumbered."""
        label_id = self._label_to_id.pop(label)
        del self._id_to_label[label_id]
        logger.debug(f"Removed label '{label}' (id {label_id})")

    def items(self) -> List[Tuple[int, str]]:
        """(id, label) pairs in id order."""
        return sorted(self._id_to_label.items())

    def labels(self) -> List[str]:
        return [label for _, label in self.items()]

    def ids(self) -> List[int]:
        return sorted(self._id_to_label)

    @property
    def next_id(self) -> int:
        return self._next_id

    def __len__(self) -> int:
        return len(self._id_to_label)

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        return iter(self.items())

    def __contains__(self, label: object) -> bool:
        return self.contains(label)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[int, str]]) -> 'LabelRegistry':
        """Rebuild a registry from (id, label) pairs.

        Raises:
            ValueError: If an id or a label occurs twice, an id is negative,
                or a label is not a non-empty string
        """
        registry = cls()
        for label_id, label in pairs:
            if isinstance(label_id, bool) or not isinstance(label_id, int) or label_id < 0:
                raise ValueError(f"Label id must be a non-negative integer, got {label_id!r}")
            if not isinstance(label, str) or not label:
                raise ValueError(f"Label must be a non-empty string, got {label!r}")
            if label_id in registry._id_to_label:
                raise ValueError(f"Duplicate label id {label_id}")
            if label in registry._label_to_id:
                raise ValueError(f"Duplicate label '{label}'")
            registry._id_to_label[label_id] = label
            registry._label_to_id[label] = label_id
        registry._next_id = max(registry._id_to_label, default=-1) + 1
        return registry

    def get_state(self) -> Dict[str, Any]:
        return {
            "labels": [{"id": label_id, "label": label} for label_id, label in self.items()]
        }

    def set_state(self, state: Dict[str, Any]) -> None:
        restored = LabelRegistry.from_pairs(
            (entry["id"], entry["label"]) for entry in state.get("labels", [])
        )
        self._id_to_label = restored._id_to_label
        self._label_to_id = restored._label_to_id
        self._next_id = restored._next_id

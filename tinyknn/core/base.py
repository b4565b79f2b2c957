from abc import ABC, abstractmethod
from typing import Any, Dict


class StatefulComponent(ABC):
    """Base abstract class for components whose state can be persisted.

    Every piece of classifier state (label registry, training store, the
    classifier itself) exposes the same pair of methods so it can be
    snapshotted into a plain, JSON-friendly dictionary and restored later.
    """

    @abstractmethod
    def get_state(self) -> Dict[str, Any]:
        """Get the current state of this component for persistence.

        Returns:
            Dict containing the serializable state of this component
        """
        pass

    @abstractmethod
    def set_state(self, state: Dict[str, Any]) -> None:
        """Restore this component's state from a previously saved state.

        Args:
            state: Previously saved state dictionary to restore from
        """
        pass

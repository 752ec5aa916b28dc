"""State store interface for tracked resource records."""

from abc import ABC, abstractmethod
from typing import Any


class StateStore(ABC):
    """Abstract interface for tracked-state persistence.

    Records are stored as plain dictionaries keyed by resource kind and
    identifier, so any backend (memory, JSON file, database) can hold them.
    """

    @abstractmethod
    def get(self, kind: str, resource_id: str) -> dict[str, Any] | None:
        """Get a tracked record.

        Args:
            kind: Resource kind
            resource_id: Resource identifier

        Returns:
            Record dictionary if tracked, None otherwise

        Raises:
            StateStoreError: If retrieval fails
        """

    @abstractmethod
    def put(self, kind: str, resource_id: str, record: dict[str, Any]) -> None:
        """Save or replace a tracked record.

        Raises:
            StateStoreError: If save fails
        """

    @abstractmethod
    def delete(self, kind: str, resource_id: str) -> bool:
        """Stop tracking a record.

        Returns:
            True if a record was removed

        Raises:
            StateStoreError: If deletion fails
        """

    @abstractmethod
    def list(self, kind: str) -> dict[str, dict[str, Any]]:
        """List every tracked record of a kind.

        Returns:
            Mapping of resource identifier to record dictionary

        Raises:
            StateStoreError: If listing fails
        """

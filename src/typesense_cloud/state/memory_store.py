"""In-memory state store."""

import copy
import threading
from typing import Any

from typesense_cloud.interfaces.state_store import StateStore


class InMemoryStateStore(StateStore):
    """Process-local state store, for tests and embedding.

    Records are deep-copied in and out so callers cannot alter stored state.
    """

    def __init__(self) -> None:
        self._records: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get(self, kind: str, resource_id: str) -> dict[str, Any] | None:
        with self._lock:
            record = self._records.get(kind, {}).get(resource_id)
            return copy.deepcopy(record) if record is not None else None

    def put(self, kind: str, resource_id: str, record: dict[str, Any]) -> None:
        with self._lock:
            self._records.setdefault(kind, {})[resource_id] = copy.deepcopy(record)

    def delete(self, kind: str, resource_id: str) -> bool:
        with self._lock:
            return self._records.get(kind, {}).pop(resource_id, None) is not None

    def list(self, kind: str) -> dict[str, dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._records.get(kind, {}))

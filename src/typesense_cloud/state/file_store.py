"""JSON file state store.

The whole state lives in one JSON document::

    {"version": 1, "resources": {"<kind>": {"<id>": {...record...}}}}

Every write rewrites the document through a temporary file and an atomic
rename, so a crash never leaves a half-written state file. The file holds
API key secrets and is created with owner-only permissions.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from typesense_cloud.core.exceptions import StateStoreError
from typesense_cloud.interfaces.state_store import StateStore
from typesense_cloud.utils.logging import get_logger

logger = get_logger(__name__)

STATE_VERSION = 1


class JsonFileStateStore(StateStore):
    """State store backed by a single JSON file. Thread-safe via a lock."""

    def __init__(self, path: str | Path):
        """Initialize file store.

        Args:
            path: State file location; created on first write
        """
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()
        logger.debug("file_state_store_initialized", path=str(self.path))

    def get(self, kind: str, resource_id: str) -> dict[str, Any] | None:
        with self._lock:
            return self._load()["resources"].get(kind, {}).get(resource_id)

    def put(self, kind: str, resource_id: str, record: dict[str, Any]) -> None:
        with self._lock:
            state = self._load()
            state["resources"].setdefault(kind, {})[resource_id] = record
            self._save(state)
        logger.debug("state_record_saved", kind=kind, resource_id=resource_id)

    def delete(self, kind: str, resource_id: str) -> bool:
        with self._lock:
            state = self._load()
            removed = state["resources"].get(kind, {}).pop(resource_id, None) is not None
            if removed:
                self._save(state)
        logger.debug("state_record_deleted", kind=kind, resource_id=resource_id, removed=removed)
        return removed

    def list(self, kind: str) -> dict[str, dict[str, Any]]:
        with self._lock:
            return self._load()["resources"].get(kind, {})

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"version": STATE_VERSION, "resources": {}}

        try:
            with self.path.open() as f:
                state = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StateStoreError(f"Failed to read state file {self.path}: {e}") from e

        if not isinstance(state, dict) or not isinstance(state.get("resources"), dict):
            raise StateStoreError(f"State file {self.path} is not a valid state document")

        version = state.get("version")
        if version != STATE_VERSION:
            raise StateStoreError(
                f"State file {self.path} has unsupported version {version!r}"
            )
        return state

    def _save(self, state: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(state, f, indent=2, sort_keys=True, default=str)
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StateStoreError(f"Failed to write state file {self.path}: {e}") from e

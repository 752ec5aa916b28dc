"""Unit tests for tracked-state stores."""

import json
import os
import stat
from pathlib import Path

import pytest

from typesense_cloud.core.exceptions import StateStoreError
from typesense_cloud.state.file_store import JsonFileStateStore
from typesense_cloud.state.memory_store import InMemoryStateStore


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path: Path):
    """Run each contract test against both stores."""
    if request.param == "memory":
        return InMemoryStateStore()
    return JsonFileStateStore(tmp_path / "state.json")


class TestStoreContract:
    """Behaviour shared by every store."""

    def test_get_missing(self, store):
        assert store.get("cluster", "abc123xyz") is None

    def test_put_then_get(self, store):
        store.put("cluster", "abc123xyz", {"id": "abc123xyz", "state": "ready"})

        assert store.get("cluster", "abc123xyz") == {"id": "abc123xyz", "state": "ready"}

    def test_put_replaces(self, store):
        store.put("cluster", "abc123xyz", {"state": "provisioning"})
        store.put("cluster", "abc123xyz", {"state": "ready"})

        assert store.get("cluster", "abc123xyz") == {"state": "ready"}

    def test_kinds_are_separate(self, store):
        store.put("cluster", "abc123xyz", {"kind": "cluster"})
        store.put("cluster_api_keys", "abc123xyz", {"kind": "keys"})

        assert store.get("cluster", "abc123xyz") == {"kind": "cluster"}
        assert store.list("cluster_api_keys") == {"abc123xyz": {"kind": "keys"}}

    def test_delete(self, store):
        store.put("cluster", "abc123xyz", {"state": "ready"})

        assert store.delete("cluster", "abc123xyz") is True
        assert store.delete("cluster", "abc123xyz") is False
        assert store.get("cluster", "abc123xyz") is None

    def test_list(self, store):
        store.put("cluster", "a", {"n": 1})
        store.put("cluster", "b", {"n": 2})

        assert store.list("cluster") == {"a": {"n": 1}, "b": {"n": 2}}
        assert store.list("cluster_api_keys") == {}

    def test_returned_records_are_copies(self, store):
        """Test mutating a returned record does not change stored state."""
        store.put("cluster", "abc123xyz", {"hostnames": {"nodes": ["n1"]}})

        record = store.get("cluster", "abc123xyz")
        record["hostnames"]["nodes"].append("n2")

        assert store.get("cluster", "abc123xyz") == {"hostnames": {"nodes": ["n1"]}}


class TestJsonFileStateStore:
    """File-specific behaviour."""

    def test_document_layout(self, tmp_path: Path):
        """Test the on-disk document is versioned and grouped by kind."""
        path = tmp_path / "state.json"
        JsonFileStateStore(path).put("cluster", "abc123xyz", {"state": "ready"})

        document = json.loads(path.read_text())

        assert document == {
            "version": 1,
            "resources": {"cluster": {"abc123xyz": {"state": "ready"}}},
        }

    def test_persists_across_instances(self, tmp_path: Path):
        path = tmp_path / "nested" / "state.json"
        JsonFileStateStore(path).put("cluster", "abc123xyz", {"state": "ready"})

        assert JsonFileStateStore(path).get("cluster", "abc123xyz") == {"state": "ready"}

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_owner_only_permissions(self, tmp_path: Path):
        """Test the state file holding secrets is not group or world readable."""
        path = tmp_path / "state.json"
        JsonFileStateStore(path).put("cluster_api_keys", "abc123xyz", {"admin_key": "s"})

        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_path: Path):
        store = JsonFileStateStore(tmp_path / "state.json")
        store.put("cluster", "a", {"n": 1})
        store.put("cluster", "b", {"n": 2})

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_corrupt_file(self, tmp_path: Path):
        path = tmp_path / "state.json"
        path.write_text("{not json")

        with pytest.raises(StateStoreError):
            JsonFileStateStore(path).get("cluster", "abc123xyz")

    def test_unsupported_version(self, tmp_path: Path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99, "resources": {}}))

        with pytest.raises(StateStoreError, match="unsupported version"):
            JsonFileStateStore(path).list("cluster")

    def test_not_a_state_document(self, tmp_path: Path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps(["cluster"]))

        with pytest.raises(StateStoreError):
            JsonFileStateStore(path).list("cluster")

"""Reconciler tying controllers to tracked state."""

import threading
from typing import Any

from typesense_cloud.clients.cloud_client import TypesenseCloudClient
from typesense_cloud.controllers.api_keys_controller import ClusterApiKeysController
from typesense_cloud.controllers.cluster_controller import ClusterController
from typesense_cloud.controllers.merge import detect_drift
from typesense_cloud.controllers.waiter import ProvisioningWaiter
from typesense_cloud.core.exceptions import (
    NotFoundError,
    PreconditionViolationError,
    StateStoreError,
    TypesenseCloudError,
)
from typesense_cloud.core.models import (
    ClusterApiKeys,
    ClusterApiKeysSpec,
    ClusterRecord,
    ClusterSpec,
    DriftEntry,
)
from typesense_cloud.interfaces.state_store import StateStore
from typesense_cloud.lookup.cluster_lookup import ClusterLookup
from typesense_cloud.registry.controller_registry import ControllerRegistry
from typesense_cloud.utils.logging import get_logger

logger = get_logger(__name__)

CLUSTER = ClusterController.kind
CLUSTER_API_KEYS = ClusterApiKeysController.kind


class Reconciler:
    """Run controller operations against tracked state.

    Loads the tracked record for an operation, dispatches to the controller
    registered for the resource kind, and persists whatever comes back:

    - successful records are saved, deletions drop the record
    - a cluster that vanished remotely is dropped when a read reports it
    - a failed create, update or delete saves the error-state record the
      controller attached, so a follow-up read or delete can act on it
    """

    def __init__(
        self,
        registry: ControllerRegistry,
        store: StateStore,
        lookup: ClusterLookup,
    ):
        """Initialize reconciler.

        Args:
            registry: Controllers by resource kind
            store: Tracked state store
            lookup: Read-only cluster lookup
        """
        self.registry = registry
        self.store = store
        self.lookup = lookup

    @classmethod
    def build(
        cls,
        client: TypesenseCloudClient,
        store: StateStore,
        waiter: ProvisioningWaiter | None = None,
    ) -> "Reconciler":
        """Wire the cluster and API keys controllers around one client.

        Args:
            client: Management API client
            store: Tracked state store
            waiter: Provisioning waiter for cluster creation

        Returns:
            Reconciler with both controllers registered
        """
        registry = ControllerRegistry()
        registry.register(ClusterController(client, waiter=waiter))
        registry.register(ClusterApiKeysController(client))
        return cls(registry=registry, store=store, lookup=ClusterLookup(client))

    @property
    def clusters(self) -> ClusterController:
        return self.registry.get(CLUSTER)  # type: ignore[return-value]

    @property
    def api_keys(self) -> ClusterApiKeysController:
        return self.registry.get(CLUSTER_API_KEYS)  # type: ignore[return-value]

    def create_cluster(
        self, spec: ClusterSpec, cancel_event: threading.Event | None = None
    ) -> ClusterRecord:
        """Create a cluster and track it."""
        try:
            record = self.clusters.create(spec, cancel_event=cancel_event)
        except TypesenseCloudError as e:
            self._save_failed(e)
            raise

        self._save(CLUSTER, record.id, record)
        return record

    def read_cluster(self, cluster_id: str) -> ClusterRecord:
        """Refresh a tracked cluster; drops it if it no longer exists."""
        record = self._load_cluster(cluster_id)
        try:
            refreshed = self.clusters.read(record)
        except NotFoundError:
            self.store.delete(CLUSTER, cluster_id)
            logger.warning("tracked_cluster_dropped", cluster_id=cluster_id)
            raise

        self._save(CLUSTER, cluster_id, refreshed)
        return refreshed

    def update_cluster(self, cluster_id: str, spec: ClusterSpec) -> ClusterRecord:
        """Apply a desired spec to a tracked cluster."""
        record = self._load_cluster(cluster_id)
        try:
            updated = self.clusters.update(record, spec)
        except TypesenseCloudError as e:
            self._save_failed(e)
            raise

        self._save(CLUSTER, cluster_id, updated)
        return updated

    def delete_cluster(self, cluster_id: str) -> ClusterRecord | None:
        """Terminate a cluster and stop tracking it.

        Deleting an identifier that is no longer tracked still requests
        termination, so repeated deletes of the same cluster all succeed.

        Returns:
            The record in state gone, or None when nothing was tracked
        """
        record = self._load(CLUSTER, cluster_id)
        if record is None:
            logger.info("untracked_cluster_delete", cluster_id=cluster_id)
            self.clusters.terminate(cluster_id)
            return None

        try:
            gone = self.clusters.delete(record)
        except TypesenseCloudError as e:
            self._save_failed(e)
            raise

        self.store.delete(CLUSTER, cluster_id)
        return gone

    def import_cluster(self, cluster_id: str) -> ClusterRecord:
        """Start tracking an existing cluster."""
        current = self._load(CLUSTER, cluster_id)
        record = self.clusters.import_cluster(cluster_id, current=current)
        self._save(CLUSTER, cluster_id, record)
        return record

    def cluster_drift(
        self, cluster_id: str, spec: ClusterSpec
    ) -> tuple[ClusterRecord, list[DriftEntry]]:
        """Refresh a tracked cluster and compare it against a desired spec."""
        record = self.read_cluster(cluster_id)
        drift = detect_drift(record, spec)
        logger.info(
            "cluster_drift_checked",
            cluster_id=cluster_id,
            drifted=[entry.attribute for entry in drift],
        )
        return record, drift

    def list_clusters(self) -> list[ClusterRecord]:
        """Get every tracked cluster record."""
        return [
            self._decode(CLUSTER, cluster_id, data)
            for cluster_id, data in sorted(self.store.list(CLUSTER).items())
        ]

    def lookup_cluster(self, cluster_id: str) -> ClusterRecord:
        """Observed state of any cluster, tracked or not; nothing is saved."""
        return self.lookup.get(cluster_id)

    def issue_api_keys(self, cluster_id: str) -> ClusterApiKeys:
        """Issue API keys for a cluster and track them."""
        current = self._load(CLUSTER_API_KEYS, cluster_id)
        keys = self.api_keys.create(ClusterApiKeysSpec(cluster_id=cluster_id), current=current)
        self._save(CLUSTER_API_KEYS, cluster_id, keys)
        return keys

    def read_api_keys(self, cluster_id: str) -> ClusterApiKeys:
        """Tracked API keys for a cluster; never calls the management API."""
        keys = self._load(CLUSTER_API_KEYS, cluster_id)
        if keys is None:
            raise PreconditionViolationError(
                f"No API keys tracked for cluster {cluster_id}", cluster_id=cluster_id
            )
        return self.api_keys.read(keys)

    def delete_api_keys(self, cluster_id: str) -> None:
        """Stop tracking a cluster's API keys."""
        keys = self.read_api_keys(cluster_id)
        self.api_keys.delete(keys)
        self.store.delete(CLUSTER_API_KEYS, cluster_id)

    def _load_cluster(self, cluster_id: str) -> ClusterRecord:
        record = self._load(CLUSTER, cluster_id)
        if record is None:
            raise PreconditionViolationError(
                f"Cluster {cluster_id} is not tracked; create or import it first",
                cluster_id=cluster_id,
            )
        return record

    def _load(self, kind: str, resource_id: str) -> Any:
        data = self.store.get(kind, resource_id)
        if data is None:
            return None
        return self._decode(kind, resource_id, data)

    def _decode(self, kind: str, resource_id: str, data: dict[str, Any]) -> Any:
        model = self.registry.get(kind).record_model
        try:
            return model.model_validate(data)
        except ValueError as e:
            raise StateStoreError(
                f"Tracked {kind} record {resource_id} is invalid: {e}"
            ) from e

    def _save(self, kind: str, resource_id: str | None, record: Any) -> None:
        if not resource_id:
            raise StateStoreError(f"Cannot track a {kind} record without an id")
        self.store.put(kind, resource_id, record.model_dump(mode="json"))

    def _save_failed(self, error: TypesenseCloudError) -> None:
        record = error.record
        if isinstance(record, ClusterRecord) and record.id:
            self._save(CLUSTER, record.id, record)
            logger.warning(
                "cluster_saved_in_error_state", cluster_id=record.id, category=error.category
            )

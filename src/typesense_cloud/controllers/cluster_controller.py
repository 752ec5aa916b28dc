"""Cluster lifecycle controller."""

import threading

from typesense_cloud.clients.cloud_client import TypesenseCloudClient
from typesense_cloud.controllers.merge import (
    apply_observed,
    creation_params,
    ignored_immutable_changes,
    plan_update,
    record_from_observed,
    record_from_spec,
)
from typesense_cloud.controllers.waiter import ProvisioningWaiter
from typesense_cloud.core.exceptions import (
    DecodeError,
    NotFoundError,
    PreconditionViolationError,
    TypesenseCloudError,
)
from typesense_cloud.core.models import Cluster, ClusterRecord, ClusterSpec, LifecycleState
from typesense_cloud.interfaces.resource_controller import ResourceController
from typesense_cloud.utils.logging import get_logger, log_error

logger = get_logger(__name__)

READABLE_STATES = frozenset(
    [
        LifecycleState.PROVISIONING,
        LifecycleState.READY,
        LifecycleState.UPDATING,
        LifecycleState.TERMINATING,
        LifecycleState.ERROR,
    ]
)
DELETABLE_STATES = frozenset([LifecycleState.READY, LifecycleState.ERROR])


class ClusterController(ResourceController[ClusterSpec, ClusterRecord]):
    """Drive create/read/update/delete/import for Typesense Cloud clusters.

    State machine per cluster::

        unprovisioned -> provisioning -> ready -> (updating -> ready)*
                      -> terminating -> gone

    Any failed transition raises with ``error.record`` set to the record in
    state ``error`` (create, update, delete) or leaves the record untouched
    (read). The caller retries the whole operation.
    """

    kind = "cluster"
    record_model = ClusterRecord

    def __init__(self, client: TypesenseCloudClient, waiter: ProvisioningWaiter | None = None):
        """Initialize controller.

        Args:
            client: Management API client
            waiter: Provisioning waiter (defaults to 8s polls for up to 30 minutes)
        """
        self.client = client
        self.waiter = waiter or ProvisioningWaiter()

    def create(
        self,
        spec: ClusterSpec,
        current: ClusterRecord | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ClusterRecord:
        """Provision a cluster and block until it is in service.

        Args:
            spec: Desired cluster configuration
            current: Tracked record, must be absent or unprovisioned
            cancel_event: Optional event that aborts the provisioning wait

        Returns:
            Ready record with every observed field merged in

        Raises:
            PreconditionViolationError: If the cluster is already tracked
            ProvisioningTimeoutError: If the cluster is not ready in time
            TypesenseCloudError: On any remote failure; once the cluster id
                is assigned the error carries it and the error-state record
        """
        if current is not None and (current.id or current.state != LifecycleState.UNPROVISIONED):
            raise PreconditionViolationError(
                f"Cluster already tracked (state {current.state.value}); create is not allowed",
                cluster_id=current.id,
            )

        record = record_from_spec(spec)
        created = self.client.create_cluster(creation_params(spec))
        if not created.id:
            raise DecodeError("Create response carries no cluster id")

        record = record.model_copy(
            update={
                "id": created.id,
                "status": created.status,
                "state": LifecycleState.PROVISIONING,
            }
        )
        logger.info("cluster_provisioning", cluster_id=record.id, status=created.status)

        try:
            cluster = self.waiter.wait(record.id, self.client.fetch_cluster, cancel_event)
            record = apply_observed(record, cluster).with_state(LifecycleState.READY)
        except TypesenseCloudError as e:
            self._mark_failed(e, record, operation="create")
            raise

        logger.info("cluster_create_complete", cluster_id=record.id, region=record.region)
        return record

    def read(self, record: ClusterRecord) -> ClusterRecord:
        """Refresh a tracked cluster from the management API.

        Args:
            record: Tracked record

        Returns:
            Record with every observed field overwritten

        Raises:
            PreconditionViolationError: If the record was never provisioned
            NotFoundError: If the cluster disappeared remotely; drop the record
        """
        cluster_id = self._require_id(record, READABLE_STATES, operation="read")

        try:
            cluster = self.client.fetch_cluster(cluster_id)
        except NotFoundError as e:
            e.cluster_id = cluster_id
            logger.warning("cluster_disappeared", cluster_id=cluster_id)
            raise

        refreshed = apply_observed(record, cluster)
        return refreshed.with_state(_state_after_refresh(cluster, record.state))

    def update(self, record: ClusterRecord, spec: ClusterSpec) -> ClusterRecord:
        """Apply the in-place mutable fields of a desired spec.

        Fields fixed at creation are never sent, even when the desired value differs;
        they are logged and ignored.

        Args:
            record: Tracked record in state ready
            spec: Desired cluster configuration

        Returns:
            Record refreshed after the patch

        Raises:
            PreconditionViolationError: If the record is not ready
            TypesenseCloudError: On remote failure, with the error-state record
        """
        cluster_id = self._require_id(record, {LifecycleState.READY}, operation="update")

        ignored = ignored_immutable_changes(record, spec)
        if ignored:
            logger.info("ignored_immutable_fields", cluster_id=cluster_id, fields=ignored)

        planned, params = plan_update(record, spec)
        planned = planned.with_state(LifecycleState.UPDATING)

        try:
            if params:
                self.client.patch_cluster(cluster_id, params)
            else:
                logger.debug("cluster_patch_skipped", cluster_id=cluster_id)
            cluster = self.client.fetch_cluster(cluster_id)
        except TypesenseCloudError as e:
            self._mark_failed(e, planned, operation="update")
            raise

        updated = apply_observed(planned, cluster)
        return updated.with_state(_state_after_refresh(cluster, LifecycleState.READY))

    def delete(self, record: ClusterRecord) -> ClusterRecord:
        """Request termination of a cluster.

        Does not wait for teardown. A cluster that is already gone counts as
        deleted, so delete is idempotent.

        Args:
            record: Tracked record in state ready or error

        Returns:
            Record in state gone

        Raises:
            PreconditionViolationError: If the record cannot be deleted
            TypesenseCloudError: On remote failure other than not-found
        """
        cluster_id = self._require_id(record, DELETABLE_STATES, operation="delete")
        terminating = record.with_state(LifecycleState.TERMINATING)

        try:
            self.terminate(cluster_id)
        except TypesenseCloudError as e:
            self._mark_failed(e, terminating, operation="delete")
            raise

        return terminating.with_state(LifecycleState.GONE)

    def terminate(self, cluster_id: str) -> None:
        """Request termination by identifier; a missing cluster counts as done.

        Raises:
            TypesenseCloudError: On remote failure other than not-found
        """
        try:
            self.client.terminate_cluster(cluster_id)
        except NotFoundError:
            logger.info("cluster_already_gone", cluster_id=cluster_id)

    def import_cluster(
        self, cluster_id: str, current: ClusterRecord | None = None
    ) -> ClusterRecord:
        """Start tracking an existing cluster.

        Builds the complete record from remote state; the primary region is
        the first region the management API lists.

        Args:
            cluster_id: Identifier of the existing cluster
            current: Tracked record, must be absent or unprovisioned

        Returns:
            Complete record

        Raises:
            PreconditionViolationError: If the cluster is already tracked
            NotFoundError: If no such cluster exists
        """
        if current is not None and current.state != LifecycleState.UNPROVISIONED:
            raise PreconditionViolationError(
                f"Cluster {cluster_id} already tracked; import is not allowed",
                cluster_id=cluster_id,
            )

        record = record_from_observed(self.client.fetch_cluster(cluster_id))
        logger.info(
            "cluster_imported",
            cluster_id=cluster_id,
            region=record.region,
            state=record.state.value,
        )
        return record

    def _require_id(
        self, record: ClusterRecord, allowed: frozenset | set, operation: str
    ) -> str:
        if not record.id or record.state not in allowed:
            raise PreconditionViolationError(
                f"Cannot {operation} cluster in state {record.state.value}",
                cluster_id=record.id,
            )
        return record.id

    def _mark_failed(
        self, error: TypesenseCloudError, record: ClusterRecord, operation: str
    ) -> None:
        error.cluster_id = error.cluster_id or record.id
        error.record = record.with_state(LifecycleState.ERROR)
        log_error(logger, error, operation=f"cluster_{operation}", cluster_id=record.id)


def _state_after_refresh(cluster: Cluster, previous: LifecycleState) -> LifecycleState:
    """Next lifecycle state after observing a cluster.

    A ready cluster stays ready through maintenance or upgrades; only the
    remote status reflects those. Provisioning and error records become
    ready once the cluster is in service.
    """
    if cluster.is_ready or previous == LifecycleState.READY:
        return LifecycleState.READY
    if previous == LifecycleState.ERROR:
        return LifecycleState.ERROR
    return LifecycleState.PROVISIONING

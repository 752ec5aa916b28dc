"""Pure merge functions between desired specs and observed clusters.

Nothing here talks to the management API. Each function maps
(previous record, desired fields or observed cluster) to a new record and,
where a remote call follows, the parameters for that call.
"""

from typing import Any

from typesense_cloud.core.exceptions import DecodeError
from typesense_cloud.core.models import (
    Cluster,
    ClusterRecord,
    ClusterSpec,
    DriftEntry,
    LifecycleState,
)
from typesense_cloud.utils.logging import get_logger

logger = get_logger(__name__)

CREATION_FIXED_FIELDS = (
    "memory",
    "vcpu",
    "region",
    "high_availability",
    "high_performance_disk",
)
MUTABLE_FIELDS = ("name", "auto_upgrade_capacity")


def creation_params(spec: ClusterSpec) -> dict[str, Any]:
    """Build the create request body for a desired spec.

    Args:
        spec: Desired cluster configuration

    Returns:
        Request body for the create call
    """
    return {
        "memory": spec.memory,
        "vcpu": spec.vcpu,
        "regions": [spec.region],
        "high_availability": spec.high_availability,
        "search_delivery_network": "off",
        "high_performance_disk": spec.high_performance_disk,
        "name": spec.name or "",
        "auto_upgrade_capacity": bool(spec.auto_upgrade_capacity),
    }


def record_from_spec(spec: ClusterSpec) -> ClusterRecord:
    """Build the unprovisioned record for a desired spec."""
    return ClusterRecord(
        memory=spec.memory,
        vcpu=spec.vcpu,
        region=spec.region,
        high_availability=spec.high_availability,
        high_performance_disk=spec.high_performance_disk,
        name=spec.name or "",
        auto_upgrade_capacity=bool(spec.auto_upgrade_capacity),
    )


def primary_region(tracked: str | None, regions: list[str], cluster_id: str | None = None) -> str:
    """Choose the single primary region for a record.

    The tracked region wins while the remote still lists it, so a reordered
    list never changes it. Otherwise the first listed region is taken.

    Args:
        tracked: Region already held by the record, if any
        regions: Region list reported by the management API
        cluster_id: Cluster identifier, for logging

    Returns:
        Primary region

    Raises:
        DecodeError: If there is no tracked region and the remote lists none
    """
    if len(regions) > 1:
        logger.warning(
            "multiple_regions_reported",
            cluster_id=cluster_id,
            regions=regions,
            tracked_region=tracked,
        )

    if tracked and (not regions or tracked in regions):
        return tracked

    if not regions:
        raise DecodeError("Cluster reports no regions", cluster_id=cluster_id)

    if tracked:
        logger.warning(
            "region_drift",
            cluster_id=cluster_id,
            tracked_region=tracked,
            regions=regions,
        )
    return regions[0]


def apply_observed(record: ClusterRecord, cluster: Cluster) -> ClusterRecord:
    """Overwrite every observed field of a record with remote state.

    The lifecycle state is left as is; callers set it.

    Args:
        record: Current tracked record
        cluster: Cluster reported by the management API

    Returns:
        Merged record
    """
    return record.model_copy(
        update={
            "id": cluster.id,
            "name": cluster.name,
            "memory": cluster.memory,
            "vcpu": cluster.vcpu,
            "region": primary_region(record.region, cluster.regions, cluster.id),
            "high_availability": cluster.high_availability,
            "high_performance_disk": cluster.high_performance_disk,
            "auto_upgrade_capacity": cluster.auto_upgrade_capacity,
            "typesense_server_version": cluster.typesense_server_version,
            "status": cluster.status,
            "load_balancing": cluster.load_balancing,
            "search_delivery_network": cluster.search_delivery_network,
            "hostnames": cluster.hostnames.model_copy(deep=True),
        }
    )


def record_from_observed(cluster: Cluster) -> ClusterRecord:
    """Bootstrap a complete record from remote state alone.

    Used by import and lookup, where no tracked record exists. The primary
    region is the first listed region.

    Args:
        cluster: Cluster reported by the management API

    Returns:
        Record in state ready when the cluster is in service, else provisioning
    """
    record = ClusterRecord(
        id=cluster.id,
        memory=cluster.memory,
        vcpu=cluster.vcpu,
        region=primary_region(None, cluster.regions, cluster.id),
    )
    state = LifecycleState.READY if cluster.is_ready else LifecycleState.PROVISIONING
    return apply_observed(record, cluster).with_state(state)


def plan_update(record: ClusterRecord, spec: ClusterSpec) -> tuple[ClusterRecord, dict[str, Any]]:
    """Compute the in-place update for a desired spec.

    Only mutable fields present in the desired cluster are patched. Fields fixed at
    creation are never part of the patch, whatever is desired.

    Args:
        record: Current tracked record
        spec: Desired cluster configuration

    Returns:
        Tuple of (next record, patch request body)
    """
    params: dict[str, Any] = {}
    if spec.name is not None:
        params["name"] = spec.name
    if spec.auto_upgrade_capacity is not None:
        params["auto_upgrade_capacity"] = spec.auto_upgrade_capacity

    return record.model_copy(update=params), params


def ignored_immutable_changes(record: ClusterRecord, spec: ClusterSpec) -> list[str]:
    """List creation-time fields the desired cluster would change."""
    return [
        field
        for field in CREATION_FIXED_FIELDS
        if getattr(spec, field) != getattr(record, field)
    ]


def detect_drift(record: ClusterRecord, spec: ClusterSpec) -> list[DriftEntry]:
    """Compare a desired spec against an observed record.

    Args:
        record: Record refreshed from the management API
        spec: Desired cluster configuration

    Returns:
        One entry per differing field present in the desired cluster
    """
    drift = []
    for field in CREATION_FIXED_FIELDS + MUTABLE_FIELDS:
        desired = getattr(spec, field)
        if desired is None:
            continue
        observed = getattr(record, field)
        if desired != observed:
            drift.append(
                DriftEntry(
                    attribute=field,
                    desired=desired,
                    observed=observed,
                    mutable=field in MUTABLE_FIELDS,
                )
            )
    return drift

"""Core data models for the Typesense Cloud reconciler."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

READY_STATUS = "in_service"

YES_NO = ("yes", "no")


class LifecycleState(str, Enum):
    """Local lifecycle state of a tracked cluster."""

    UNPROVISIONED = "unprovisioned"
    PROVISIONING = "provisioning"
    READY = "ready"
    UPDATING = "updating"
    TERMINATING = "terminating"
    GONE = "gone"
    ERROR = "error"


class Hostnames(BaseModel):
    """Hostnames assigned to a cluster by Typesense Cloud."""

    load_balanced: str = ""
    nodes: list[str] = Field(default_factory=list)


class Cluster(BaseModel):
    """Cluster as reported by the management API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    memory: str = ""
    vcpu: str = ""
    high_performance_disk: str = "no"
    typesense_server_version: str = ""
    high_availability: str = "no"
    search_delivery_network: str = "off"
    load_balancing: str = ""
    regions: list[str] = Field(default_factory=list)
    auto_upgrade_capacity: bool = False
    status: str = ""
    hostnames: Hostnames = Field(default_factory=Hostnames)

    @field_validator("hostnames", mode="before")
    @classmethod
    def null_hostnames(cls, value: Any) -> Any:
        """Treat a null hostnames object as empty (seen while provisioning)."""
        return value if value is not None else {}

    @property
    def is_ready(self) -> bool:
        """Whether the cluster reached the ready status."""
        return self.status == READY_STATUS


class ClusterSpec(BaseModel):
    """Desired cluster configuration.

    ``None`` on an optional field means the field is absent from the desired
    record and keeps its observed value.
    """

    model_config = ConfigDict(extra="forbid")

    memory: str = Field(..., description="RAM tier, e.g. 0.5_gb")
    vcpu: str = Field(..., description="CPU tier, e.g. 2_vcpus_4_hr_burst_per_day")
    region: str = Field(..., description="Primary region for the nodes")
    high_availability: str = Field(default="no", description="yes or no")
    high_performance_disk: str = Field(default="no", description="yes or no")
    name: str | None = Field(default=None, description="Display name in the web console")
    auto_upgrade_capacity: bool | None = Field(
        default=None, description="Upgrade automatically when capacity thresholds are exceeded"
    )

    @field_validator("high_availability", "high_performance_disk")
    @classmethod
    def validate_yes_no(cls, value: str) -> str:
        """Accept the management API's yes/no flag values only."""
        normalized = value.strip().lower()
        if normalized not in YES_NO:
            raise ValueError(f"must be 'yes' or 'no', got {value!r}")
        return normalized


class ClusterRecord(BaseModel):
    """Tracked cluster record: desired fields merged with observed state."""

    id: str | None = None

    # Fixed at creation
    memory: str
    vcpu: str
    region: str
    high_availability: str = "no"
    high_performance_disk: str = "no"

    # Mutable in place
    name: str = ""
    auto_upgrade_capacity: bool = False

    # Observed only
    typesense_server_version: str = ""
    status: str = ""
    load_balancing: str = ""
    search_delivery_network: str = "off"
    hostnames: Hostnames = Field(default_factory=Hostnames)

    state: LifecycleState = LifecycleState.UNPROVISIONED

    def with_state(self, state: LifecycleState) -> "ClusterRecord":
        """Return a copy in the given lifecycle state."""
        return self.model_copy(update={"state": state})


class ClusterApiKeysSpec(BaseModel):
    """Desired API keys resource: the owning cluster."""

    model_config = ConfigDict(extra="forbid")

    cluster_id: str = Field(..., min_length=1)


class ClusterApiKeys(BaseModel):
    """One-time issued API keys for a cluster.

    The secrets cannot be read back from Typesense Cloud after issuance.
    """

    id: str
    cluster_id: str
    admin_key: str = Field(..., repr=False)
    search_only_key: str = Field(..., repr=False)
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DriftEntry(BaseModel):
    """One field where desired and observed state disagree."""

    attribute: str
    desired: Any
    observed: Any
    mutable: bool

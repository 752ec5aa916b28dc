"""Cluster API keys controller."""

from typesense_cloud.clients.cloud_client import TypesenseCloudClient
from typesense_cloud.core.exceptions import PreconditionViolationError
from typesense_cloud.core.models import ClusterApiKeys, ClusterApiKeysSpec
from typesense_cloud.interfaces.resource_controller import ResourceController
from typesense_cloud.utils.logging import get_logger

logger = get_logger(__name__)


class ClusterApiKeysController(ResourceController[ClusterApiKeysSpec, ClusterApiKeys]):
    """One-shot lifecycle for a cluster's admin and search-only keys.

    Typesense Cloud shows the secrets once, at issuance, and offers no way
    to read, update or revoke them through the management API. The tracked
    record is therefore the only copy: read and update return it untouched
    and delete only drops it locally.
    """

    kind = "cluster_api_keys"
    record_model = ClusterApiKeys

    def __init__(self, client: TypesenseCloudClient):
        self.client = client

    def create(
        self, spec: ClusterApiKeysSpec, current: ClusterApiKeys | None = None
    ) -> ClusterApiKeys:
        """Issue keys for a cluster that has none tracked yet.

        Raises:
            PreconditionViolationError: If keys are already tracked; issuing
                again would mint a second pair
        """
        if current is not None:
            raise PreconditionViolationError(
                f"API keys already issued for cluster {spec.cluster_id}; "
                "delete the tracked keys before issuing new ones",
                cluster_id=spec.cluster_id,
            )

        return self.client.issue_api_keys(spec.cluster_id)

    def read(self, record: ClusterApiKeys) -> ClusterApiKeys:
        return record

    def update(self, record: ClusterApiKeys, spec: ClusterApiKeysSpec) -> ClusterApiKeys:
        if spec.cluster_id != record.cluster_id:
            logger.warning(
                "api_keys_update_ignored",
                cluster_id=record.cluster_id,
                desired_cluster_id=spec.cluster_id,
            )
        return record

    def delete(self, record: ClusterApiKeys) -> None:
        # No revoke endpoint; the keys stay valid remotely.
        logger.info("api_keys_untracked", cluster_id=record.cluster_id)
        return None

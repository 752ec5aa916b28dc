"""Read-only cluster lookup."""

from typesense_cloud.clients.cloud_client import TypesenseCloudClient
from typesense_cloud.controllers.merge import record_from_observed
from typesense_cloud.core.models import ClusterRecord
from typesense_cloud.utils.logging import get_logger

logger = get_logger(__name__)


class ClusterLookup:
    """Project a cluster's observed state without touching tracked records."""

    def __init__(self, client: TypesenseCloudClient):
        self.client = client

    def get(self, cluster_id: str) -> ClusterRecord:
        """Get the current observed state of a cluster.

        Args:
            cluster_id: Cluster identifier

        Returns:
            Complete record built from remote state (primary region is the
            first listed region)

        Raises:
            NotFoundError: If the cluster does not exist
            TransportError: If the API cannot be reached
            DecodeError: If the response cannot be decoded
            RemoteRejectedError: If the API reports failure
        """
        logger.debug("looking_up_cluster", cluster_id=cluster_id)
        return record_from_observed(self.client.fetch_cluster(cluster_id))

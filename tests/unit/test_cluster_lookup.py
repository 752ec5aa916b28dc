"""Unit tests for the read-only cluster lookup."""

import pytest

from typesense_cloud.core.exceptions import NotFoundError
from typesense_cloud.core.models import LifecycleState
from typesense_cloud.lookup.cluster_lookup import ClusterLookup


def test_lookup_projects_observed_state(mock_cloud_client, make_cluster):
    """Test lookup builds a complete record from remote state."""
    mock_cloud_client.fetch_cluster.return_value = make_cluster(
        regions=["mumbai", "oregon"], status="in_service"
    )

    record = ClusterLookup(mock_cloud_client).get("abc123xyz")

    assert record.id == "abc123xyz"
    assert record.region == "mumbai"
    assert record.state == LifecycleState.READY
    mock_cloud_client.fetch_cluster.assert_called_once_with("abc123xyz")


def test_lookup_not_found(mock_cloud_client):
    """Test a missing cluster raises NotFoundError."""
    mock_cloud_client.fetch_cluster.side_effect = NotFoundError("gone", cluster_id="missing")

    with pytest.raises(NotFoundError):
        ClusterLookup(mock_cloud_client).get("missing")

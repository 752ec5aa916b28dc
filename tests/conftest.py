"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from typesense_cloud.clients.cloud_client import TypesenseCloudClient
from typesense_cloud.core.models import Cluster, ClusterRecord, ClusterSpec, LifecycleState


@pytest.fixture(autouse=True)
def mock_rate_limiters(request):
    """Mock rate limiter for all tests to avoid waiting on tokens."""
    # Skip mocking for tests marked with no_rate_limiter_mock
    if "no_rate_limiter_mock" in request.keywords:
        yield
        return

    with patch("typesense_cloud.utils.rate_limiter.RateLimiter.acquire", return_value=True):
        yield


# ==============================================================================
# Test Data Fixtures
# ==============================================================================


@pytest.fixture
def cluster_payload() -> Callable[..., dict[str, Any]]:
    """Factory for management API cluster objects."""

    def make(**overrides: Any) -> dict[str, Any]:
        payload = {
            "id": "abc123xyz",
            "name": "search-prod",
            "memory": "0.5_gb",
            "vcpu": "2_vcpus_4_hr_burst_per_day",
            "high_performance_disk": "no",
            "typesense_server_version": "27.1",
            "high_availability": "no",
            "search_delivery_network": "off",
            "load_balancing": "no",
            "regions": ["oregon"],
            "auto_upgrade_capacity": False,
            "status": "in_service",
            "hostnames": {
                "load_balanced": "",
                "nodes": ["abc123xyz-1.a1.typesense.net"],
            },
        }
        payload.update(overrides)
        return payload

    return make


@pytest.fixture
def make_cluster(cluster_payload: Callable[..., dict[str, Any]]) -> Callable[..., Cluster]:
    """Factory for observed clusters."""

    def make(**overrides: Any) -> Cluster:
        return Cluster.model_validate(cluster_payload(**overrides))

    return make


@pytest.fixture
def sample_spec() -> ClusterSpec:
    """Provide a sample desired cluster spec."""
    return ClusterSpec(
        memory="0.5_gb",
        vcpu="2_vcpus_4_hr_burst_per_day",
        region="oregon",
        name="search-prod",
        auto_upgrade_capacity=False,
    )


@pytest.fixture
def ready_record(make_cluster: Callable[..., Cluster]) -> ClusterRecord:
    """Provide a tracked record for an in-service cluster."""
    cluster = make_cluster()
    return ClusterRecord(
        id=cluster.id,
        name=cluster.name,
        memory=cluster.memory,
        vcpu=cluster.vcpu,
        region="oregon",
        typesense_server_version=cluster.typesense_server_version,
        status=cluster.status,
        load_balancing=cluster.load_balancing,
        hostnames=cluster.hostnames,
        state=LifecycleState.READY,
    )


@pytest.fixture
def mock_cloud_client() -> MagicMock:
    """Mock management API client for testing."""
    return MagicMock(spec=TypesenseCloudClient)


# ==============================================================================
# Pytest Markers
# ==============================================================================


def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "no_rate_limiter_mock: Disable rate limiter mocking")

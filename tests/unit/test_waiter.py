"""Unit tests for the provisioning waiter."""

import threading
from unittest.mock import MagicMock

import pytest

from typesense_cloud.controllers.waiter import ProvisioningWaiter
from typesense_cloud.core.exceptions import (
    NotFoundError,
    ProvisioningCancelledError,
    ProvisioningTimeoutError,
    TransportError,
)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def statuses(make_cluster, *values):
    return [make_cluster(status=value) for value in values]


def test_wait_returns_after_exactly_three_fetches(make_cluster):
    """Test provisioning, provisioning, in_service ends after the third fetch."""
    fetch = MagicMock(
        side_effect=statuses(make_cluster, "provisioning", "provisioning", "in_service")
    )
    waiter = ProvisioningWaiter(poll_interval=0, max_wait=None)

    cluster = waiter.wait("abc123xyz", fetch)

    assert cluster.is_ready
    assert fetch.call_count == 3
    fetch.assert_called_with("abc123xyz")


def test_wait_sleeps_between_fetches(make_cluster):
    """Test each round waits on the cancel event for the poll interval."""
    fetch = MagicMock(side_effect=statuses(make_cluster, "provisioning", "in_service"))
    cancel_event = MagicMock(spec=threading.Event)
    cancel_event.is_set.return_value = False
    cancel_event.wait.return_value = False
    waiter = ProvisioningWaiter(poll_interval=8.0, max_wait=None)

    waiter.wait("abc123xyz", fetch, cancel_event)

    assert cancel_event.wait.call_count == 2
    cancel_event.wait.assert_called_with(8.0)


def test_wait_times_out_with_last_status(make_cluster):
    """Test the deadline raises a timeout carrying the id and last status."""
    clock = FakeClock()

    def fetch(cluster_id):
        clock.now += 10.0
        return make_cluster(status="provisioning")

    waiter = ProvisioningWaiter(poll_interval=0, max_wait=25.0, clock=clock)

    with pytest.raises(ProvisioningTimeoutError) as exc_info:
        waiter.wait("abc123xyz", fetch)

    assert exc_info.value.cluster_id == "abc123xyz"
    assert exc_info.value.last_status == "provisioning"
    assert exc_info.value.category == "provisioning_timeout"


def test_wait_zero_max_wait_times_out_without_fetching():
    """Test a zero budget gives up before the first fetch."""
    fetch = MagicMock()
    waiter = ProvisioningWaiter(poll_interval=0, max_wait=0)

    with pytest.raises(ProvisioningTimeoutError) as exc_info:
        waiter.wait("abc123xyz", fetch)

    assert exc_info.value.last_status is None
    fetch.assert_not_called()


def test_wait_cancelled_before_start():
    """Test a set cancel event aborts before any fetch."""
    fetch = MagicMock()
    cancel_event = threading.Event()
    cancel_event.set()
    waiter = ProvisioningWaiter(poll_interval=8.0, max_wait=None)

    with pytest.raises(ProvisioningCancelledError) as exc_info:
        waiter.wait("abc123xyz", fetch, cancel_event)

    assert exc_info.value.cluster_id == "abc123xyz"
    fetch.assert_not_called()


def test_wait_cancelled_between_polls(make_cluster):
    """Test cancelling during a poll ends the wait."""
    cancel_event = threading.Event()

    def fetch(cluster_id):
        cancel_event.set()
        return make_cluster(status="provisioning")

    waiter = ProvisioningWaiter(poll_interval=0, max_wait=None)

    with pytest.raises(ProvisioningCancelledError):
        waiter.wait("abc123xyz", fetch, cancel_event)


@pytest.mark.parametrize("error", [TransportError("down"), NotFoundError("gone")])
def test_wait_propagates_fetch_errors(error):
    """Test fetch failures end the wait unchanged."""
    fetch = MagicMock(side_effect=error)
    waiter = ProvisioningWaiter(poll_interval=0, max_wait=None)

    with pytest.raises(type(error)) as exc_info:
        waiter.wait("abc123xyz", fetch)

    assert exc_info.value is error

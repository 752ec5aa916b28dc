"""Wait for an asynchronously provisioned cluster to come into service."""

import threading
import time
from collections.abc import Callable

from typesense_cloud.core.exceptions import ProvisioningCancelledError, ProvisioningTimeoutError
from typesense_cloud.core.models import Cluster
from typesense_cloud.utils.logging import get_logger

logger = get_logger(__name__)


class ProvisioningWaiter:
    """Poll a cluster until it reports the ready status.

    Each round sleeps ``poll_interval`` seconds, then fetches. The wait ends
    on the first ready fetch, when ``max_wait`` seconds have passed, or when
    ``cancel_event`` is set. Fetch errors propagate unchanged.
    """

    def __init__(
        self,
        poll_interval: float = 8.0,
        max_wait: float | None = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize waiter.

        Args:
            poll_interval: Seconds between fetches
            max_wait: Seconds before giving up, or None to wait indefinitely
            clock: Monotonic clock (injectable for tests)
        """
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.clock = clock

    def wait(
        self,
        cluster_id: str,
        fetch: Callable[[str], Cluster],
        cancel_event: threading.Event | None = None,
    ) -> Cluster:
        """Block until the cluster is ready.

        Args:
            cluster_id: Cluster identifier
            fetch: Function returning the observed cluster for an id
            cancel_event: Optional event; setting it aborts the wait

        Returns:
            The first observed cluster with the ready status

        Raises:
            ProvisioningTimeoutError: If max_wait elapses first
            ProvisioningCancelledError: If cancel_event is set
        """
        cancel_event = cancel_event or threading.Event()
        start = self.clock()
        deadline = None if self.max_wait is None else start + self.max_wait
        last_status: str | None = None
        polls = 0

        logger.info(
            "waiting_for_cluster",
            cluster_id=cluster_id,
            poll_interval=self.poll_interval,
            max_wait=self.max_wait,
        )

        while True:
            if cancel_event.is_set():
                raise ProvisioningCancelledError(
                    f"Provisioning wait for cluster {cluster_id} cancelled",
                    cluster_id=cluster_id,
                )

            interval = self.poll_interval
            if deadline is not None:
                remaining = deadline - self.clock()
                if remaining <= 0:
                    logger.error(
                        "cluster_provisioning_timeout",
                        cluster_id=cluster_id,
                        max_wait=self.max_wait,
                        last_status=last_status,
                        polls=polls,
                    )
                    raise ProvisioningTimeoutError(
                        f"Cluster {cluster_id} not ready after {self.max_wait}s "
                        f"(last status: {last_status or 'unknown'})",
                        cluster_id=cluster_id,
                        last_status=last_status,
                    )
                interval = min(interval, remaining)

            if interval > 0 and cancel_event.wait(interval):
                continue

            cluster = fetch(cluster_id)
            polls += 1
            last_status = cluster.status

            if cluster.is_ready:
                logger.info(
                    "cluster_ready",
                    cluster_id=cluster_id,
                    polls=polls,
                    duration=round(self.clock() - start, 1),
                )
                return cluster

            logger.debug(
                "cluster_still_provisioning",
                cluster_id=cluster_id,
                status=cluster.status,
                polls=polls,
            )

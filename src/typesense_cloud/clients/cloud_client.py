"""Typesense Cloud Management API client."""

from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from typesense_cloud.core.config import (
    DEFAULT_API_URL,
    RateLimitsConfig,
    ReconcilerConfig,
    RetryConfig,
)
from typesense_cloud.core.exceptions import (
    DecodeError,
    NotFoundError,
    PreconditionViolationError,
    RemoteRejectedError,
    TransportError,
)
from typesense_cloud.core.models import Cluster, ClusterApiKeys
from typesense_cloud.utils.logging import get_logger
from typesense_cloud.utils.rate_limiter import rate_limited
from typesense_cloud.utils.rate_limiter_init import (
    MANAGEMENT_API_LIMITER,
    initialize_rate_limiters,
)
from typesense_cloud.utils.retry import retry_transport_errors

logger = get_logger(__name__)

API_KEY_HEADER = "X-TYPESENSE-CLOUD-MANAGEMENT-API-KEY"

MUTABLE_FIELDS = frozenset(["name", "auto_upgrade_capacity"])


class TypesenseCloudClient:
    """Typesense Cloud Management API client wrapper.

    One method per remote capability. Every method maps failures onto the
    reconciler error kinds; a ``"success": false`` body is a failure even
    when the HTTP status is 2xx.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        rate_limits: RateLimitsConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: Cloud Management API key, already resolved by the caller
            base_url: Management API base URL
            timeout: Per-request timeout in seconds
            retry_config: Retry settings for cluster fetches
            rate_limits: Rate limit settings for the management API
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.retry_config = retry_config or RetryConfig()

        initialize_rate_limiters(rate_limits)

        self.http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                API_KEY_HEADER: api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

        # Only fetches are retried: creates, terminations and key issuance
        # have no deduplication key.
        self._fetch_with_retry = retry_transport_errors(self.retry_config)(self._fetch_cluster_once)

        logger.debug("cloud_client_initialized", base_url=self.base_url)

    @classmethod
    def from_config(
        cls,
        config: ReconcilerConfig,
        api_key: str,
        transport: httpx.BaseTransport | None = None,
    ) -> "TypesenseCloudClient":
        """Build a client from reconciler configuration.

        Args:
            config: Reconciler configuration
            api_key: Resolved management API key
            transport: Optional httpx transport

        Returns:
            Configured client
        """
        return cls(
            api_key=api_key,
            base_url=config.api.base_url,
            timeout=config.api.timeout_seconds,
            retry_config=config.retry,
            rate_limits=config.rate_limits,
            transport=transport,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.http.close()

    def __enter__(self) -> "TypesenseCloudClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def fetch_cluster(self, cluster_id: str) -> Cluster:
        """Get the observed state of a cluster.

        Transport failures are retried with exponential backoff.

        Args:
            cluster_id: Cluster identifier

        Returns:
            Observed cluster

        Raises:
            NotFoundError: If the cluster does not exist
            TransportError: If the API cannot be reached
            DecodeError: If the response is not a cluster
            RemoteRejectedError: If the API reports failure
        """
        return self._fetch_with_retry(cluster_id)

    @rate_limited(MANAGEMENT_API_LIMITER)
    def _fetch_cluster_once(self, cluster_id: str) -> Cluster:
        logger.debug("fetching_cluster", cluster_id=cluster_id)

        payload, raw = self._request("GET", _cluster_path(cluster_id), cluster_id=cluster_id)
        cluster = _decode_cluster(payload, raw, cluster_id=cluster_id)

        logger.debug("cluster_fetched", cluster_id=cluster_id, status=cluster.status)
        return cluster

    @rate_limited(MANAGEMENT_API_LIMITER)
    def create_cluster(self, params: dict[str, Any]) -> Cluster:
        """Request provisioning of a new cluster.

        Args:
            params: Creation request body (memory, vcpu, regions, ...)

        Returns:
            Partial cluster returned synchronously, usually still provisioning

        Raises:
            RemoteRejectedError: If the API rejects the request
            TransportError: If the API cannot be reached
            DecodeError: If the response cannot be decoded
        """
        logger.info(
            "creating_cluster",
            memory=params.get("memory"),
            vcpu=params.get("vcpu"),
            regions=params.get("regions"),
        )

        payload, raw = self._request("POST", "/clusters", json=params)
        _require_success(payload, raw, operation="create cluster")
        cluster = _decode_cluster(payload.get("cluster"), raw)

        logger.info("cluster_created", cluster_id=cluster.id, status=cluster.status)
        return cluster

    @rate_limited(MANAGEMENT_API_LIMITER)
    def patch_cluster(self, cluster_id: str, params: dict[str, Any]) -> None:
        """Change the in-place mutable fields of a cluster.

        Args:
            cluster_id: Cluster identifier
            params: Subset of ``name`` and ``auto_upgrade_capacity``

        Raises:
            PreconditionViolationError: If params carry a creation-time field
            NotFoundError: If the cluster does not exist
            RemoteRejectedError: If the API rejects the change
            TransportError: If the API cannot be reached
            DecodeError: If the response cannot be decoded
        """
        unexpected = set(params) - MUTABLE_FIELDS
        if unexpected:
            raise PreconditionViolationError(
                f"Refusing to patch fields fixed at creation: {', '.join(sorted(unexpected))}",
                cluster_id=cluster_id,
            )

        logger.info("patching_cluster", cluster_id=cluster_id, fields=sorted(params))

        payload, raw = self._request(
            "PATCH", _cluster_path(cluster_id), json=params, cluster_id=cluster_id
        )
        _require_success(payload, raw, operation="update cluster", cluster_id=cluster_id)

        logger.info("cluster_patched", cluster_id=cluster_id)

    @rate_limited(MANAGEMENT_API_LIMITER)
    def terminate_cluster(self, cluster_id: str) -> None:
        """Request asynchronous teardown of a cluster.

        Returns once the request is accepted, not once teardown completes.

        Args:
            cluster_id: Cluster identifier

        Raises:
            NotFoundError: If the cluster is already gone
            RemoteRejectedError: If the API rejects the request
            TransportError: If the API cannot be reached
            DecodeError: If the response cannot be decoded
        """
        logger.info("terminating_cluster", cluster_id=cluster_id)

        payload, raw = self._request(
            "POST",
            _cluster_path(cluster_id, "lifecycle"),
            json={"lifecycle_action": "terminate"},
            cluster_id=cluster_id,
        )
        _require_success(payload, raw, operation="terminate cluster", cluster_id=cluster_id)

        logger.info("cluster_termination_accepted", cluster_id=cluster_id)

    @rate_limited(MANAGEMENT_API_LIMITER)
    def issue_api_keys(self, cluster_id: str) -> ClusterApiKeys:
        """Generate an admin and a search-only key for a cluster.

        The returned secrets are shown exactly once by Typesense Cloud.

        Args:
            cluster_id: Cluster identifier

        Returns:
            Issued key pair scoped to the cluster

        Raises:
            NotFoundError: If the cluster does not exist
            RemoteRejectedError: If the API refuses (e.g. cluster not ready)
            TransportError: If the API cannot be reached
            DecodeError: If the response cannot be decoded
        """
        logger.info("issuing_api_keys", cluster_id=cluster_id)

        payload, raw = self._request(
            "POST", _cluster_path(cluster_id, "api-keys"), cluster_id=cluster_id
        )
        _require_success(payload, raw, operation="issue API keys", cluster_id=cluster_id)

        keys = payload.get("api_keys")
        if not isinstance(keys, dict):
            raise DecodeError("Response has no api_keys object", detail=raw, cluster_id=cluster_id)

        try:
            api_keys = ClusterApiKeys(
                id=cluster_id,
                cluster_id=cluster_id,
                admin_key=keys["admin_key"],
                search_only_key=keys["search_only_key"],
            )
        except (KeyError, ValidationError) as e:
            raise DecodeError(
                f"Unexpected api_keys shape: {e}", detail=raw, cluster_id=cluster_id
            ) from e

        logger.info("api_keys_issued", cluster_id=cluster_id)
        return api_keys

    def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        cluster_id: str | None = None,
    ) -> tuple[dict[str, Any], str]:
        """Send one request and return the decoded JSON object and raw body.

        Raises:
            TransportError: On network failure or HTTP 5xx
            NotFoundError: On HTTP 404
            RemoteRejectedError: On other HTTP 4xx or a false success flag
            DecodeError: If the body is not a JSON object
        """
        try:
            response = self.http.request(method, path, json=json)
        except httpx.RequestError as e:
            logger.error(
                "management_api_unreachable",
                method=method,
                path=path,
                error=str(e),
            )
            raise TransportError(
                f"{method} {path} failed: {e}", cluster_id=cluster_id
            ) from e

        raw = response.text
        status = response.status_code

        if status == httpx.codes.NOT_FOUND:
            raise NotFoundError(
                f"Cluster not found: {cluster_id}", detail=raw, cluster_id=cluster_id
            )
        if status >= 500:
            logger.warning("management_api_server_error", method=method, path=path, status=status)
            raise TransportError(
                f"{method} {path} returned HTTP {status}", detail=raw, cluster_id=cluster_id
            )
        if status >= 400:
            logger.warning("management_api_rejected", method=method, path=path, status=status)
            raise RemoteRejectedError(
                f"{method} {path} returned HTTP {status}", detail=raw, cluster_id=cluster_id
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(
                f"{method} {path} returned a non-JSON body", detail=raw, cluster_id=cluster_id
            ) from e

        if not isinstance(payload, dict):
            raise DecodeError(
                f"{method} {path} returned {type(payload).__name__}, expected an object",
                detail=raw,
                cluster_id=cluster_id,
            )

        if payload.get("success") is False:
            raise RemoteRejectedError(
                f"{method} {path} reported failure", detail=raw, cluster_id=cluster_id
            )

        return payload, raw


def _cluster_path(cluster_id: str, suffix: str = "") -> str:
    if not cluster_id:
        raise PreconditionViolationError("A cluster id is required")
    path = f"/clusters/{quote(cluster_id, safe='')}"
    return f"{path}/{suffix}" if suffix else path


def _require_success(
    payload: dict[str, Any], raw: str, operation: str, cluster_id: str | None = None
) -> None:
    """Mutating calls must carry an explicit ``"success": true``."""
    if payload.get("success") is not True:
        raise RemoteRejectedError(
            f"Could not {operation}: response did not report success",
            detail=raw,
            cluster_id=cluster_id,
        )


def _decode_cluster(data: Any, raw: str, cluster_id: str | None = None) -> Cluster:
    if not isinstance(data, dict):
        raise DecodeError("Response has no cluster object", detail=raw, cluster_id=cluster_id)
    try:
        return Cluster.model_validate(data)
    except ValidationError as e:
        raise DecodeError(
            f"Unexpected cluster shape: {e}", detail=raw, cluster_id=cluster_id
        ) from e

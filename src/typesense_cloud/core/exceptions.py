"""Custom exceptions for the Typesense Cloud reconciler."""

from typing import Any


class TypesenseCloudError(Exception):
    """Base exception for all reconciler errors.

    Attributes:
        category: Short error category for display
        detail: Raw diagnostic text from the remote system, if any
        cluster_id: Identifier of the cluster involved, if known
        record: Tracked record left behind by a failed operation, if any
    """

    category = "error"

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        cluster_id: str | None = None,
    ):
        """Initialize error.

        Args:
            message: Error message
            detail: Raw remote response body or other diagnostic text
            cluster_id: Cluster identifier the error relates to
        """
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.cluster_id = cluster_id
        self.record: Any = None

    def describe(self) -> str:
        """Format the error with its category and remote detail."""
        text = f"[{self.category}] {self.message}"
        if self.detail:
            text += f": {self.detail}"
        return text


class ConfigurationError(TypesenseCloudError):
    """Configuration-related errors."""

    category = "configuration"


class TransportError(TypesenseCloudError):
    """The management API could not be reached or failed server-side."""

    category = "transport"


class DecodeError(TypesenseCloudError):
    """Response body does not match the expected shape."""

    category = "decode"


class RemoteRejectedError(TypesenseCloudError):
    """Response decoded but the management API reported failure."""

    category = "remote_rejected"


class NotFoundError(TypesenseCloudError):
    """The cluster does not exist remotely."""

    category = "not_found"


class ProvisioningTimeoutError(TypesenseCloudError):
    """Cluster did not reach the ready status before the deadline."""

    category = "provisioning_timeout"

    def __init__(
        self,
        message: str,
        *,
        cluster_id: str | None = None,
        last_status: str | None = None,
    ):
        super().__init__(message, cluster_id=cluster_id)
        self.last_status = last_status


class ProvisioningCancelledError(TypesenseCloudError):
    """Provisioning wait was cancelled by the caller."""

    category = "provisioning_cancelled"


class PreconditionViolationError(TypesenseCloudError):
    """Operation invoked from a state that does not permit it."""

    category = "precondition_violation"


class StateStoreError(TypesenseCloudError):
    """Tracked state could not be loaded or saved."""

    category = "state_store"

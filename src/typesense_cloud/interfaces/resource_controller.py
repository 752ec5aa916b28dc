"""Resource controller interface shared by every managed resource kind."""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel

SpecT = TypeVar("SpecT", bound=BaseModel)
RecordT = TypeVar("RecordT", bound=BaseModel)


class ResourceController(ABC, Generic[SpecT, RecordT]):
    """Abstract create/read/update/delete contract for one resource kind.

    Controllers are stateless: they take the tracked record (if any) and the
    desired spec, talk to the management API, and return the next record.
    Persisting that record is the caller's job.
    """

    @property
    @abstractmethod
    def kind(self) -> str:
        """Resource kind this controller manages (e.g. "cluster")."""

    @property
    @abstractmethod
    def record_model(self) -> type[RecordT]:
        """Tracked record model for this kind."""

    @abstractmethod
    def create(self, spec: SpecT, current: RecordT | None = None) -> RecordT:
        """Create the resource.

        Args:
            spec: Desired configuration
            current: Record already tracked for this resource, if any

        Returns:
            Tracked record for the new resource

        Raises:
            PreconditionViolationError: If the resource is already tracked
        """

    @abstractmethod
    def read(self, record: RecordT) -> RecordT:
        """Refresh a tracked record.

        Args:
            record: Tracked record

        Returns:
            Refreshed record
        """

    @abstractmethod
    def update(self, record: RecordT, spec: SpecT) -> RecordT:
        """Apply a desired spec to a tracked resource.

        Args:
            record: Tracked record
            spec: Desired configuration

        Returns:
            Updated record
        """

    @abstractmethod
    def delete(self, record: RecordT) -> RecordT | None:
        """Delete a tracked resource.

        Args:
            record: Tracked record

        Returns:
            Final record, or None when nothing remains to report
        """

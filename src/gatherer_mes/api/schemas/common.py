"""Common Pydantic schemas shared by every service.

Provides the operation result envelope and small reference types.
"""

from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

from gatherer_mes.core.exceptions import ErrorKind, MESError

T = TypeVar("T")


class ResultStatus(str, Enum):
    """Outcome of a service operation."""

    SUCCESS = "Success"
    NO_CHANGES = "NoChanges"
    ERROR = "Error"


class OperationResult(BaseModel, Generic[T]):
    """Envelope returned by every service operation.

    Attributes:
        status: Success, NoChanges or Error
        message: Human-readable outcome
        data: Payload; may be present on Error (e.g. bulk assignment)
        error: Error category when status is Error
    """

    status: ResultStatus
    message: str
    data: Optional[T] = None
    error: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        """True for Success and NoChanges."""
        return self.status is not ResultStatus.ERROR

    @classmethod
    def success(cls, data: Any = None, message: str = "Success") -> "OperationResult[T]":
        return cls(status=ResultStatus.SUCCESS, message=message, data=data)

    @classmethod
    def no_changes(cls, data: Any = None, message: str = "No changes") -> "OperationResult[T]":
        return cls(status=ResultStatus.NO_CHANGES, message=message, data=data)

    @classmethod
    def failure(
        cls,
        message: str,
        error: ErrorKind = ErrorKind.VALIDATION,
        data: Any = None,
    ) -> "OperationResult[T]":
        return cls(status=ResultStatus.ERROR, message=message, error=error, data=data)

    @classmethod
    def from_error(cls, exc: MESError, data: Any = None) -> "OperationResult[T]":
        """Build an Error envelope from a domain exception."""
        return cls.failure(exc.message, error=exc.kind, data=data)


class NamedRef(BaseModel):
    """Identifier plus display name of a referenced record.

    Attributes:
        id: Unique identifier
        name: Display name
    """

    id: str
    name: str


class BulkFailure(BaseModel):
    """One rejected input of a bulk operation.

    Attributes:
        input: The input as it was submitted
        reason: Why it was rejected
    """

    input: Any
    reason: str


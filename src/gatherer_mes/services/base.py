"""Service plumbing shared by every entity service.

Each public service method is wrapped with :func:`operation`, which runs it
inside a SAVEPOINT and turns domain errors and constraint violations into an
Error :class:`~gatherer_mes.api.schemas.common.OperationResult`.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.api.schemas.common import OperationResult, ResultStatus
from gatherer_mes.core.exceptions import (
    ErrorKind,
    MESError,
    ValidationError,
    translate_integrity_error,
)
from gatherer_mes.core.logging import operation_context

logger = structlog.get_logger(__name__)


@dataclass
class Outcome:
    """Explicit result of a service body when the default success envelope is not enough.

    Attributes:
        data: Payload to return
        message: Overrides the decorator's success message
        status: Envelope status (Error keeps the payload attached)
        error: Error category when status is Error
    """

    data: Any = None
    message: Optional[str] = None
    status: ResultStatus = ResultStatus.SUCCESS
    error: Optional[ErrorKind] = None


class BaseService:
    """Holds the session every service operation runs against."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the service.

        Args:
            session: SQLAlchemy async session; the caller owns the outer transaction
        """
        self.session = session


def operation(
    success_message: str,
    *,
    conflict: str = "Duplicate value violates a uniqueness rule",
    referential: str = "Referenced record does not exist or is still in use",
    atomic: bool = True,
) -> Callable[
    [Callable[..., Awaitable[Any]]], Callable[..., Awaitable[OperationResult[Any]]]
]:
    """Wrap a service coroutine so it always returns a result envelope.

    Args:
        success_message: Message used when the body returns a plain payload
        conflict: Message for unique violations raised by the store
        referential: Message for foreign key violations raised by the store
        atomic: Run the body inside ``session.begin_nested()``

    Returns:
        Decorator producing ``OperationResult``-returning coroutines
    """

    def decorator(
        func: Callable[..., Awaitable[Any]],
    ) -> Callable[..., Awaitable[OperationResult[Any]]]:
        name = func.__qualname__

        @functools.wraps(func)
        async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> OperationResult[Any]:
            with operation_context(name):
                return await run(self, *args, **kwargs)

        async def run(self: BaseService, *args: Any, **kwargs: Any) -> OperationResult[Any]:
            try:
                if atomic:
                    async with self.session.begin_nested():
                        value = await func(self, *args, **kwargs)
                else:
                    value = await func(self, *args, **kwargs)
            except MESError as exc:
                logger.info(
                    "operation_rejected",
                    error=exc.kind.value,
                    reason=exc.message,
                )
                return OperationResult.from_error(exc)
            except IntegrityError as exc:
                error = translate_integrity_error(
                    exc, conflict_message=conflict, referential_message=referential
                )
                logger.warning(
                    "operation_failed",
                    error=error.kind.value,
                    detail=str(exc.orig),
                )
                return OperationResult.from_error(error)

            if isinstance(value, Outcome):
                return OperationResult(
                    status=value.status,
                    message=value.message or success_message,
                    data=value.data,
                    error=value.error,
                )
            return OperationResult.success(value, success_message)

        return wrapper

    return decorator


def clean_text(
    value: Optional[str],
    label: str,
    min_length: int,
    max_length: int,
) -> str:
    """Trim a text field and enforce its length bounds.

    Args:
        value: Raw input
        label: Field label used in messages, e.g. "Equipment name"
        min_length: Minimum length after trimming
        max_length: Maximum length after trimming

    Returns:
        The trimmed value

    Raises:
        ValidationError: If the value is empty or out of bounds
    """
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{label} must be text")
    if value is None or not value.strip():
        raise ValidationError(f"{label} cannot be empty")
    cleaned = value.strip()
    if not min_length <= len(cleaned) <= max_length:
        raise ValidationError(
            f"{label} must be between {min_length} and {max_length} characters"
        )
    return cleaned

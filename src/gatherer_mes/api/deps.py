"""FastAPI dependency injection functions.

Provides database sessions, service instances and the envelope-to-HTTP
status mapping for API endpoints.
"""

from collections.abc import AsyncGenerator

from fastapi import Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.api.schemas.common import OperationResult, ResultStatus
from gatherer_mes.core.exceptions import ErrorKind
from gatherer_mes.db.database import get_session
from gatherer_mes.services.equipment import EquipmentService
from gatherer_mes.services.equipment_type import EquipmentTypeService
from gatherer_mes.services.mode import ModeService
from gatherer_mes.services.state import StateService

HTTP_STATUS_BY_ERROR = {
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.DEPENDENCY: status.HTTP_409_CONFLICT,
    ErrorKind.PROTECTED: status.HTTP_403_FORBIDDEN,
    ErrorKind.REFERENTIAL: status.HTTP_409_CONFLICT,
}


# ---------------------------------------------------------------------------
# Session dependency - single canonical source for all database sessions
# ---------------------------------------------------------------------------
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session.

    This is the canonical session dependency. All service factories and
    endpoints should use this instead of importing ``get_session`` directly.

    Yields:
        AsyncSession instance for database operations
    """
    async for session in get_session():
        yield session


# ---------------------------------------------------------------------------
# Service factories
# ---------------------------------------------------------------------------
async def get_equipment_type_service(
    session: AsyncSession = Depends(get_db_session),
) -> EquipmentTypeService:
    """Get equipment type service instance."""
    return EquipmentTypeService(session)


async def get_equipment_service(
    session: AsyncSession = Depends(get_db_session),
) -> EquipmentService:
    """Get equipment service instance."""
    return EquipmentService(session)


async def get_mode_service(
    session: AsyncSession = Depends(get_db_session),
) -> ModeService:
    """Get mode service instance."""
    return ModeService(session)


async def get_state_service(
    session: AsyncSession = Depends(get_db_session),
) -> StateService:
    """Get state service instance."""
    return StateService(session)


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------
def respond(
    result: OperationResult,
    response: Response,
    success_status: int = status.HTTP_200_OK,
) -> OperationResult:
    """Set the HTTP status code that matches a result envelope.

    Args:
        result: Envelope returned by a service
        response: FastAPI response whose status is adjusted
        success_status: Status for Success envelopes (e.g. 201 on create)

    Returns:
        The envelope, unchanged
    """
    if result.status is ResultStatus.ERROR:
        response.status_code = HTTP_STATUS_BY_ERROR.get(
            result.error, status.HTTP_400_BAD_REQUEST
        )
    elif result.status is ResultStatus.SUCCESS:
        response.status_code = success_status
    return result

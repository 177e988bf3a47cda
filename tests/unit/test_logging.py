"""Unit tests for logging configuration and operation context."""

import pytest
import structlog

from gatherer_mes.core.logging import configure_logging, operation_context
from gatherer_mes.services import equipment_type
from gatherer_mes.services.equipment_type import EquipmentTypeService


class ContextRecorder:
    """Stands in for a module logger and keeps the context bound at each call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []

    def info(self, event: str, **fields) -> None:
        self.calls.append((event, structlog.contextvars.get_contextvars()))


class TestOperationContext:
    """Tests for the operation context binding."""

    def test_binds_and_restores(self) -> None:
        """Test the operation name is bound only inside the block."""
        with operation_context("EquipmentService.delete", equipment_id="e1"):
            bound = structlog.contextvars.get_contextvars()

        assert bound == {"operation": "EquipmentService.delete", "equipment_id": "e1"}
        assert "operation" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_service_operations_bind_their_name(
        self, seeded_session, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test events logged inside an operation carry its qualified name."""
        recorder = ContextRecorder()
        monkeypatch.setattr(equipment_type, "logger", recorder)

        await EquipmentTypeService(seeded_session).create("Robot")

        assert recorder.calls == [
            ("equipment_type_created", {"operation": "EquipmentTypeService.create"})
        ]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_rejects_unknown_level(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level: LOUD"):
            configure_logging("console", "LOUD")

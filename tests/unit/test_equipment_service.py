"""Unit tests for the equipment hierarchy service."""

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.api.schemas.common import ResultStatus
from gatherer_mes.api.schemas.equipment import EquipmentUpdate
from gatherer_mes.core.exceptions import ErrorKind, ValidationError
from gatherer_mes.db.repositories.equipment_type import EquipmentTypeRepository
from gatherer_mes.services.equipment import (
    DUPLICATE_MESSAGE,
    EquipmentService,
    normalize_metadata,
)
from gatherer_mes.services.mode import ModeService


@pytest_asyncio.fixture
async def type_ids(seeded_session: AsyncSession) -> dict[str, str]:
    """Map of seeded equipment type names to ids."""
    repo = EquipmentTypeRepository(seeded_session)
    return {t.name: t.id for t in await repo.get_all()}


@pytest_asyncio.fixture
async def plant(seeded_session: AsyncSession, type_ids: dict[str, str]) -> dict[str, str]:
    """Create a small hierarchy.

    Structure:
        Plant 1 (site)
        └── Assembly (area)
            ├── Line 1 (line)
            └── Line 2 (line)
    """
    service = EquipmentService(seeded_session)
    site = (await service.create("Plant 1", type_ids["site"])).data
    area = (await service.create("Assembly", type_ids["area"], parent_id=site.id)).data
    line1 = (await service.create("Line 1", type_ids["line"], parent_id=area.id)).data
    line2 = (await service.create("Line 2", type_ids["line"], parent_id=area.id)).data
    await seeded_session.commit()
    return {"site": site.id, "area": area.id, "line1": line1.id, "line2": line2.id}


class TestNormalizeMetadata:
    """Tests for metadata document validation."""

    def test_accepts_json_string(self) -> None:
        """Test JSON text is parsed into a document."""
        assert normalize_metadata('{"plc": "S7-1500"}') == {"plc": "S7-1500"}

    def test_accepts_list(self) -> None:
        """Test arrays are valid documents."""
        assert normalize_metadata([1, 2]) == [1, 2]

    @pytest.mark.parametrize("document", ["not json", "42", 42, True])
    def test_rejects_scalars_and_garbage(self, document) -> None:
        """Test scalar values and malformed JSON are rejected."""
        with pytest.raises(ValidationError):
            normalize_metadata(document)

    def test_rejects_null(self) -> None:
        """Test a null document is rejected with a dedicated message."""
        with pytest.raises(ValidationError, match="cannot be null"):
            normalize_metadata(None)


class TestCreateEquipment:
    """Tests for inserting equipment nodes."""

    @pytest.mark.asyncio
    async def test_create_round_trip(
        self, seeded_session: AsyncSession, type_ids: dict[str, str]
    ) -> None:
        """Test a created node reads back with resolved type and parent names."""
        service = EquipmentService(seeded_session)
        site = (await service.create("  Plant 1 ", type_ids["site"])).data

        created = await service.create(
            "Cell A", type_ids["cell"], parent_id=site.id, metadata='{"ip": "10.0.0.5"}'
        )
        fetched = await service.get_by_id(created.data.id)

        assert created.status is ResultStatus.SUCCESS
        assert site.name == "Plant 1"
        assert fetched.data.name == "Cell A"
        assert fetched.data.enabled is True
        assert fetched.data.metadata == {"ip": "10.0.0.5"}
        assert fetched.data.equipment_type.name == "cell"
        assert fetched.data.parent.id == site.id
        assert fetched.data.parent.name == "Plant 1"

    @pytest.mark.asyncio
    async def test_duplicate_sibling_name(
        self, seeded_session: AsyncSession, type_ids: dict[str, str], plant: dict[str, str]
    ) -> None:
        """Test the same name, parent and type cannot be used twice."""
        service = EquipmentService(seeded_session)

        result = await service.create("Line 1", type_ids["line"], parent_id=plant["area"])

        assert result.error is ErrorKind.CONFLICT
        assert result.message == DUPLICATE_MESSAGE

    @pytest.mark.asyncio
    async def test_same_name_different_type_or_parent(
        self, seeded_session: AsyncSession, type_ids: dict[str, str], plant: dict[str, str]
    ) -> None:
        """Test sibling uniqueness is scoped to parent and type."""
        service = EquipmentService(seeded_session)

        other_type = await service.create("Line 1", type_ids["cell"], parent_id=plant["area"])
        other_parent = await service.create("Line 1", type_ids["line"], parent_id=plant["site"])

        assert other_type.ok
        assert other_parent.ok

    @pytest.mark.asyncio
    async def test_duplicate_root_name(
        self, seeded_session: AsyncSession, type_ids: dict[str, str], plant: dict[str, str]
    ) -> None:
        """Test root nodes of one type also need distinct names."""
        result = await EquipmentService(seeded_session).create("Plant 1", type_ids["site"])

        assert result.error is ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_unknown_references(
        self, seeded_session: AsyncSession, type_ids: dict[str, str]
    ) -> None:
        """Test unknown type and parent ids are reported separately."""
        service = EquipmentService(seeded_session)

        bad_type = await service.create("Plant 1", "missing")
        bad_parent = await service.create("Plant 1", type_ids["site"], parent_id="missing")

        assert bad_type.error is ErrorKind.NOT_FOUND
        assert bad_type.message == "Equipment type not found"
        assert bad_parent.error is ErrorKind.NOT_FOUND
        assert bad_parent.message == "Parent equipment not found"

    @pytest.mark.asyncio
    async def test_blank_name(self, seeded_session: AsyncSession, type_ids: dict[str, str]) -> None:
        """Test whitespace-only names are rejected."""
        result = await EquipmentService(seeded_session).create("  ", type_ids["site"])

        assert result.error is ErrorKind.VALIDATION
        assert result.message == "Equipment name cannot be empty"

    @pytest.mark.asyncio
    async def test_exists_by_name_parent_type(
        self, seeded_session: AsyncSession, type_ids: dict[str, str], plant: dict[str, str]
    ) -> None:
        """Test the existence check honours its optional filters."""
        service = EquipmentService(seeded_session)

        assert await service.exists_by_name_parent_type(" Line 1 ")
        assert await service.exists_by_name_parent_type("Line 1", plant["area"], type_ids["line"])
        assert not await service.exists_by_name_parent_type("Line 1", plant["site"])
        assert not await service.exists_by_name_parent_type("")


class TestNavigateEquipment:
    """Tests for tree navigation."""

    @pytest.mark.asyncio
    async def test_get_tree(self, seeded_session: AsyncSession, plant: dict[str, str]) -> None:
        """Test the tree nests children under their parents."""
        tree = await EquipmentService(seeded_session).get_tree()

        assert [node.name for node in tree] == ["Plant 1"]
        area = tree[0].children[0]
        assert area.name == "Assembly"
        assert area.type_name == "area"
        assert [child.name for child in area.children] == ["Line 1", "Line 2"]

    @pytest.mark.asyncio
    async def test_get_ancestors(self, seeded_session: AsyncSession, plant: dict[str, str]) -> None:
        """Test ancestors are ordered from the direct parent up to the root."""
        result = await EquipmentService(seeded_session).get_ancestors(plant["line1"])

        assert [a.name for a in result.data] == ["Assembly", "Plant 1"]

    @pytest.mark.asyncio
    async def test_get_children(self, seeded_session: AsyncSession, plant: dict[str, str]) -> None:
        """Test only direct children are returned."""
        result = await EquipmentService(seeded_session).get_children(plant["site"])

        assert [c.name for c in result.data] == ["Assembly"]

    @pytest.mark.asyncio
    async def test_list_orders_by_type_then_name(
        self, seeded_session: AsyncSession, plant: dict[str, str]
    ) -> None:
        """Test listing orders by type name, then equipment name."""
        listing = await EquipmentService(seeded_session).list()

        assert [e.name for e in listing] == ["Assembly", "Line 1", "Line 2", "Plant 1"]


class TestUpdateEquipment:
    """Tests for patching equipment nodes."""

    @pytest.mark.asyncio
    async def test_rename(self, seeded_session: AsyncSession, plant: dict[str, str]) -> None:
        """Test a plain rename succeeds."""
        service = EquipmentService(seeded_session)

        result = await service.update(plant["line1"], EquipmentUpdate(name="Line 1A"))

        assert result.status is ResultStatus.SUCCESS
        assert result.data.name == "Line 1A"

    @pytest.mark.asyncio
    async def test_rename_onto_sibling(
        self, seeded_session: AsyncSession, plant: dict[str, str]
    ) -> None:
        """Test renaming onto a sibling's name is a conflict."""
        service = EquipmentService(seeded_session)

        result = await service.update(plant["line1"], {"name": "Line 2"})

        assert result.error is ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_no_changes(self, seeded_session: AsyncSession, plant: dict[str, str]) -> None:
        """Test an empty patch reports NoChanges with the current node."""
        result = await EquipmentService(seeded_session).update(plant["line1"], EquipmentUpdate())

        assert result.status is ResultStatus.NO_CHANGES
        assert result.message == "No changes were made to equipment"
        assert result.data.name == "Line 1"

    @pytest.mark.asyncio
    async def test_explicit_null_parent_moves_to_root(
        self, seeded_session: AsyncSession, plant: dict[str, str]
    ) -> None:
        """Test an explicit null parent detaches the node."""
        service = EquipmentService(seeded_session)

        result = await service.update(plant["line1"], EquipmentUpdate(parent_id=None))

        assert result.status is ResultStatus.SUCCESS
        assert result.data.parent is None

    @pytest.mark.asyncio
    async def test_self_parent(self, seeded_session: AsyncSession, plant: dict[str, str]) -> None:
        """Test a node cannot become its own parent."""
        result = await EquipmentService(seeded_session).update(
            plant["area"], {"parent_id": plant["area"]}
        )

        assert result.error is ErrorKind.VALIDATION
        assert result.message == "Equipment cannot be its own parent"

    @pytest.mark.asyncio
    async def test_cycle(self, seeded_session: AsyncSession, plant: dict[str, str]) -> None:
        """Test a node cannot move under its own descendant."""
        result = await EquipmentService(seeded_session).update(
            plant["site"], {"parent_id": plant["line2"]}
        )

        assert result.error is ErrorKind.VALIDATION
        assert result.message == "Equipment cannot be moved under one of its own descendants"

    @pytest.mark.asyncio
    async def test_set_metadata(self, seeded_session: AsyncSession, plant: dict[str, str]) -> None:
        """Test the metadata document is replaced as a whole."""
        service = EquipmentService(seeded_session)

        replaced = await service.set_metadata(plant["line1"], {"speed": 120})
        rejected = await service.set_metadata(plant["line1"], None)

        assert replaced.data.metadata == {"speed": 120}
        assert rejected.error is ErrorKind.VALIDATION
        assert rejected.message == "Configuration data cannot be null"


class TestDeleteEquipment:
    """Tests for child-aware deletion."""

    @pytest.mark.asyncio
    async def test_delete_with_children_requires_force(
        self, seeded_session: AsyncSession, plant: dict[str, str]
    ) -> None:
        """Test a parent is not deleted without force."""
        result = await EquipmentService(seeded_session).delete(plant["area"])

        assert result.error is ErrorKind.DEPENDENCY
        assert result.message == (
            "Cannot delete equipment: 2 child equipment exist. Use force_delete=true to override."
        )

    @pytest.mark.asyncio
    async def test_force_delete_orphans_children(
        self, seeded_session: AsyncSession, plant: dict[str, str]
    ) -> None:
        """Test forced deletion moves the direct children to the root level."""
        service = EquipmentService(seeded_session)

        result = await service.delete(plant["area"], force=True)

        assert result.status is ResultStatus.SUCCESS
        assert result.data.orphaned_children == 2
        assert (await service.get_by_id(plant["area"])).error is ErrorKind.NOT_FOUND
        line1 = (await service.get_by_id(plant["line1"])).data
        assert line1.parent is None
        roots = [node.name for node in await service.get_tree()]
        assert roots == ["Line 1", "Line 2", "Plant 1"]

    @pytest.mark.asyncio
    async def test_force_delete_blocked_by_root_name_clash(
        self,
        seeded_session: AsyncSession,
        type_ids: dict[str, str],
        plant: dict[str, str],
    ) -> None:
        """Test orphaning a child onto an existing root name is refused by name."""
        service = EquipmentService(seeded_session)
        await service.create("Line 1", type_ids["line"])

        result = await service.delete(plant["area"], force=True)

        assert result.error is ErrorKind.CONFLICT
        assert result.message == (
            "Cannot move child equipment to the root level: root equipment of "
            "the same type already uses the name(s) Line 1"
        )
        assert (await service.get_by_id(plant["line1"])).data.parent.id == plant["area"]

    @pytest.mark.asyncio
    async def test_delete_removes_associations(
        self, seeded_session: AsyncSession, plant: dict[str, str]
    ) -> None:
        """Test group memberships are removed with the node."""
        modes = ModeService(seeded_session)
        group = (await modes.get_group_by_name("Default MES Mode Group")).data
        await modes.associations.assign(plant["line2"], group.id)

        result = await EquipmentService(seeded_session).delete(plant["line2"])

        assert result.data.removed_associations == 1
        assert await modes.associations.equipment_for_group(group.id) == []


class TestStoreLevelUniqueness:
    """Tests for uniqueness enforced by the database when pre-checks miss."""

    @pytest.mark.asyncio
    async def test_duplicate_sibling_rejected_by_store(
        self,
        seeded_session: AsyncSession,
        type_ids: dict[str, str],
        plant: dict[str, str],
    ) -> None:
        """Test a duplicate sibling reaching the store becomes a ConflictError."""
        service = EquipmentService(seeded_session)

        with patch.object(
            service.repo, "sibling_name_taken", new=AsyncMock(return_value=False)
        ):
            child = await service.create("Line 1", type_ids["line"], parent_id=plant["area"])
            root = await service.create("Plant 1", type_ids["site"])

        assert child.error is ErrorKind.CONFLICT
        assert child.message == DUPLICATE_MESSAGE
        assert root.error is ErrorKind.CONFLICT

        # The savepoint was rolled back; the session keeps working
        other = await service.create("Line 3", type_ids["line"], parent_id=plant["area"])
        assert other.status is ResultStatus.SUCCESS

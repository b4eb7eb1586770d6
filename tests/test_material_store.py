"""Tests for idempotent material processing."""
from unittest.mock import AsyncMock

import pytest

from examgen.errors import MalformedDocument, MaterialNotFound, ProcessingFailed, StorageUnavailable
from examgen.models.jobs import ProcessingStage
from examgen.models.materials import Section
from examgen.services.material_store import MaterialStore
from tests.fakes import make_pdf


@pytest.fixture
def store(material_repo, storage):
    return MaterialStore(material_repo, storage, min_content_chars=100)


class TestProcessMaterial:
    @pytest.mark.asyncio
    async def test_processes_unprocessed_material(self, store, material, material_repo, storage):
        on_stage = AsyncMock()

        result = await store.process_material(material.id, on_stage=on_stage)

        assert result.is_processed is True
        assert [s.title for s in result.sections] == ["Unit 1: Arrays", "Unit 2: Linked Lists"]
        assert result.markdown_content.startswith("# Unit 1: Arrays")
        assert material_repo.successful_writes == 1
        assert storage.reads == [material.file_path]
        on_stage.assert_awaited_once_with(ProcessingStage.SEGMENTING)

    @pytest.mark.asyncio
    async def test_second_call_is_a_no_op(self, store, material, material_repo, storage):
        """Re-processing returns the stored record without touching storage."""
        first = await store.process_material(material.id)
        second = await store.process_material(material.id)

        assert second == first
        assert material_repo.successful_writes == 1
        assert len(storage.reads) == 1

    @pytest.mark.asyncio
    async def test_concurrent_writer_wins(self, store, material, material_repo):
        """If another process stores sections first, its record is returned."""
        winner_sections = [Section(id="section-1", title="Winner", content="Winner")]
        material_repo.before_write = lambda material_id: material_repo.force_processed(
            material_id, "# Winner\n", winner_sections
        )

        result = await store.process_material(material.id)

        assert result.sections == winner_sections
        assert material_repo.successful_writes == 0

    @pytest.mark.asyncio
    async def test_unknown_material(self, store):
        with pytest.raises(MaterialNotFound):
            await store.process_material("missing")

    @pytest.mark.asyncio
    async def test_storage_failure(self, store, material, storage, material_repo):
        storage.available = False

        with pytest.raises(StorageUnavailable):
            await store.process_material(material.id)
        assert material_repo.materials[material.id].is_processed is False

    @pytest.mark.asyncio
    async def test_malformed_pdf_leaves_material_unprocessed(self, store, material, storage, material_repo):
        storage.files[material.file_path] = b"definitely not a pdf"

        with pytest.raises(MalformedDocument):
            await store.process_material(material.id)
        stored = material_repo.materials[material.id]
        assert stored.is_processed is False
        assert stored.sections is None

    @pytest.mark.asyncio
    async def test_too_little_text_is_rejected(self, store, material, storage):
        storage.files[material.file_path] = make_pdf([[("Unit 1: Arrays", 18), ("Short.", 11)]])

        with pytest.raises(ProcessingFailed, match="too little text"):
            await store.process_material(material.id)

    @pytest.mark.asyncio
    async def test_database_error_becomes_processing_failed(self, store, material, material_repo):
        material_repo.mark_processed = AsyncMock(side_effect=ConnectionError("db down"))

        with pytest.raises(ProcessingFailed):
            await store.process_material(material.id)

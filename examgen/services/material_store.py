"""Idempotent processing of uploaded course materials into persisted sections."""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from examgen.db.base import MaterialRepository
from examgen.errors import MaterialNotFound, PipelineError, ProcessingFailed
from examgen.models.jobs import ProcessingStage
from examgen.models.materials import CourseMaterial, Section
from examgen.services.document_processor.extractor import extract_pdf
from examgen.services.document_processor.segmenter import render_markdown, segment
from examgen.services.storage import StorageService

logger = logging.getLogger(__name__)

StageCallback = Callable[[ProcessingStage], Awaitable[None]]


class MaterialStore:
    """Turns a stored PDF into markdown and sections exactly once."""

    def __init__(
        self,
        materials: MaterialRepository,
        storage: StorageService,
        min_content_chars: int = 100,
        heading_max_length: int = 80,
    ):
        self.materials = materials
        self.storage = storage
        self.min_content_chars = min_content_chars
        self.heading_max_length = heading_max_length

    async def get_material(self, material_id: str) -> CourseMaterial:
        material = await self.materials.get_material(material_id)
        if material is None:
            raise MaterialNotFound(f"Course material {material_id} not found")
        return material

    def _segment(self, text: str, page_texts: List[str], heading_hints) -> tuple[str, List[Section]]:
        sections = segment(
            text,
            page_texts,
            heading_hints=heading_hints,
            max_heading_length=self.heading_max_length,
        )
        return render_markdown(sections), sections

    async def process_material(
        self,
        material_id: str,
        on_stage: Optional[StageCallback] = None,
    ) -> CourseMaterial:
        """
        Extract and segment a material unless it is already processed.

        Args:
            material_id: Course material ID
            on_stage: Awaited with SEGMENTING once extraction has succeeded

        Returns:
            The processed material record (stored copy if it was already processed)

        Raises:
            MaterialNotFound: Unknown material
            StorageUnavailable: File could not be fetched
            MalformedDocument: File is not a readable PDF
            ProcessingFailed: Segmentation failed, text too short, or the write failed
        """
        material = await self.get_material(material_id)
        if material.is_processed:
            logger.info(f"Material {material_id} already processed, reusing stored sections")
            return material

        data = await self.storage.get_bytes(material.file_path)
        extracted = await asyncio.to_thread(extract_pdf, data)

        if on_stage is not None:
            await on_stage(ProcessingStage.SEGMENTING)

        if len(extracted.text.strip()) < self.min_content_chars:
            raise ProcessingFailed(
                f"Material contains too little text to generate questions "
                f"({len(extracted.text.strip())} characters, need at least {self.min_content_chars})"
            )

        try:
            markdown, sections = await asyncio.to_thread(
                self._segment, extracted.text, extracted.page_texts, extracted.heading_hints
            )
        except PipelineError:
            raise
        except Exception as e:
            logger.error(f"Segmentation failed for material {material_id}: {e}")
            raise ProcessingFailed("Material text could not be split into sections") from e

        try:
            written = await self.materials.mark_processed(material_id, markdown, sections)
        except Exception as e:
            logger.error(f"Failed to store processed material {material_id}: {e}")
            raise ProcessingFailed("Processed material could not be saved") from e

        if not written:
            logger.info(f"Material {material_id} was processed concurrently, using stored copy")

        stored = await self.get_material(material_id)
        if not stored.is_processed:
            raise ProcessingFailed("Processed material could not be saved")

        logger.info(
            f"Processed material {material_id}: {extracted.page_count} pages, {len(stored.sections)} sections"
        )
        return stored

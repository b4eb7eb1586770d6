"""Course material and section models."""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class MaterialType(str, Enum):
    SYLLABUS = "SYLLABUS"
    UNIT_PDF = "UNIT_PDF"


class Section(BaseModel):
    """One structural unit of a material, in document order."""

    id: str
    title: str
    level: int = Field(default=1, ge=1)
    page: int = Field(default=1, ge=1)
    text_blocks: List[str] = Field(default_factory=list)
    content: str = ""


class CourseMaterial(BaseModel):
    """An uploaded document and, once processed, its segmented text."""

    id: str
    course_id: str
    material_type: MaterialType = MaterialType.UNIT_PDF
    unit: Optional[int] = None
    title: str = ""
    file_path: str
    is_processed: bool = False
    markdown_content: Optional[str] = None
    sections: Optional[List[Section]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _sections_match_processed_flag(self) -> "CourseMaterial":
        if self.is_processed != (self.sections is not None):
            raise ValueError("sections must be present exactly when the material is processed")
        return self

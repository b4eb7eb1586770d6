"""Question taxonomy and generated question records."""
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, Field


class BloomLevel(str, Enum):
    REMEMBER = "REMEMBER"
    UNDERSTAND = "UNDERSTAND"
    APPLY = "APPLY"
    ANALYZE = "ANALYZE"
    EVALUATE = "EVALUATE"
    CREATE = "CREATE"


class Marks(IntEnum):
    TWO = 2
    EIGHT = 8
    SIXTEEN = 16


class Difficulty(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class QuestionStyle(str, Enum):
    STRAIGHTFORWARD = "STRAIGHTFORWARD"
    PROBLEM_BASED = "PROBLEM_BASED"
    SCENARIO_BASED = "SCENARIO_BASED"


class CandidateQuestion(BaseModel):
    """A synthesized question that passed validation, not yet persisted."""

    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    bloom_level: BloomLevel
    marks: Marks
    question_style: QuestionStyle
    difficulty: Difficulty
    topic: Optional[str] = None


class Question(CandidateQuestion):
    """A persisted question owned by the generation job that created it."""

    id: str
    course_id: str
    unit: Optional[int] = None
    source_material_id: Optional[str] = None
    generation_job_id: str
    created_at: Optional[datetime] = None

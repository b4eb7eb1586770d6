"""Question synthesis: unit-filtered context, one LLM call, strict validation."""
import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from examgen.errors import GenerationFailed
from examgen.models.jobs import GenerationQuotas
from examgen.models.materials import Section
from examgen.models.questions import BloomLevel, CandidateQuestion, Difficulty, Marks, QuestionStyle
from examgen.services.llm.base import LLMProvider
from examgen.services.question_synthesizer.prompts import (
    QUESTIONS_SCHEMA,
    build_messages,
    difficulty_for_level,
    style_for_marks,
)

logger = logging.getLogger(__name__)

_UNIT_KEYWORDS = ("unit", "module", "chapter")
_UNIT_TITLE = re.compile(r"^(?i:(unit|module|chapter))\s*-?\s*(\d+|[IVXLC]+)\b")
_ROMAN_VALUES = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100}
_MARKS_WORDS = {"TWO": Marks.TWO, "EIGHT": Marks.EIGHT, "SIXTEEN": Marks.SIXTEEN}


@dataclass
class SynthesisResult:
    questions: List[CandidateQuestion]
    total_requested: int
    discarded: int = 0
    warning: Optional[str] = None

    @property
    def generated_count(self) -> int:
        return len(self.questions)


@dataclass
class _QuotaCounter:
    limits: Dict[BloomLevel, int]
    marks: Set[Marks]
    used: Dict[BloomLevel, int] = field(default_factory=dict)
    seen: Set[str] = field(default_factory=set)

    def admit(self, question: CandidateQuestion) -> bool:
        if question.marks not in self.marks:
            return False
        key = " ".join(question.question.lower().split())
        if key in self.seen:
            return False
        if self.used.get(question.bloom_level, 0) >= self.limits.get(question.bloom_level, 0):
            return False
        self.seen.add(key)
        self.used[question.bloom_level] = self.used.get(question.bloom_level, 0) + 1
        return True


def _roman_to_int(numeral: str) -> int:
    total = 0
    previous = 0
    for char in reversed(numeral.upper()):
        value = _ROMAN_VALUES[char]
        total = total - value if value < previous else total + value
        previous = max(previous, value)
    return total


def unit_heading(title: str) -> Optional[Tuple[str, int]]:
    """Return (keyword, N) for headings like 'Unit N', 'UNIT-II', 'Module 2' or 'Chapter3'."""
    match = _UNIT_TITLE.match(title.strip())
    if not match:
        return None
    token = match.group(2)
    number = int(token) if token.isdigit() else _roman_to_int(token)
    return match.group(1).lower(), number


def unit_number(title: str) -> Optional[int]:
    heading = unit_heading(title)
    return heading[1] if heading else None


def select_unit_sections(sections: List[Section], unit: int) -> List[Section]:
    """
    Pick the sections belonging to one unit.

    The outermost unit keyword present in the material (unit, then module, then
    chapter) delimits the runs: a matching heading opens a run that lasts until the
    next heading of the same keyword. When no heading matches the requested unit the
    whole material is used.
    """
    headings = [unit_heading(section.title) for section in sections]
    present = {heading[0] for heading in headings if heading}
    keyword = next((kw for kw in _UNIT_KEYWORDS if kw in present), None)

    selected: List[Section] = []
    in_unit = False
    for section, heading in zip(sections, headings):
        if heading and heading[0] == keyword:
            in_unit = heading[1] == unit
        if in_unit:
            selected.append(section)
    return selected or list(sections)


def build_context(sections: List[Section], max_chars: int) -> str:
    context = "\n\n".join(section.content for section in sections if section.content.strip())
    if len(context) > max_chars:
        context = context[:max_chars].rsplit(" ", 1)[0]
    return context


def _text(item: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _parse_bloom_level(value: Any) -> Optional[BloomLevel]:
    if not isinstance(value, str):
        return None
    try:
        return BloomLevel(value.strip().upper())
    except ValueError:
        return None


def _parse_marks(value: Any) -> Optional[Marks]:
    """Accept 8, "8", "EIGHT" or "EIGHT_MARKS"."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        token = value.strip().upper().removesuffix("_MARKS").removesuffix(" MARKS")
        if token in _MARKS_WORDS:
            return _MARKS_WORDS[token]
        if not token.isdigit():
            return None
        value = int(token)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        return None
    try:
        return Marks(value)
    except ValueError:
        return None


def _parse_enum(enum_cls, value: Any):
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value.strip().upper().replace("-", "_").replace(" ", "_"))
    except ValueError:
        return None


def normalize_item(item: Any) -> Optional[CandidateQuestion]:
    """
    Validate one raw item from the model and fill in inferable fields.

    Returns:
        CandidateQuestion, or None if the item must be discarded
    """
    if not isinstance(item, dict):
        return None

    question = _text(item, "question", "question_text", "questionText")
    answer = _text(item, "answer", "model_answer", "modelAnswer")
    level = _parse_bloom_level(item.get("bloomLevel", item.get("bloom_level")))
    marks = _parse_marks(item.get("marks"))
    if not question or not answer or level is None or marks is None:
        return None

    style = _parse_enum(QuestionStyle, item.get("questionStyle", item.get("question_style", item.get("questionType"))))
    difficulty = _parse_enum(Difficulty, item.get("difficulty", item.get("difficultyLevel")))
    topic = _text(item, "topic") or None

    return CandidateQuestion(
        question=question,
        answer=answer,
        bloom_level=level,
        marks=marks,
        question_style=style or style_for_marks(marks),
        difficulty=difficulty or difficulty_for_level(level),
        topic=topic,
    )


class QuestionSynthesizer:
    """Generates categorized questions for one unit of processed material."""

    def __init__(
        self,
        llm: LLMProvider,
        timeout_seconds: float = 120.0,
        max_context_chars: int = 12000,
    ):
        self.llm = llm
        self.timeout_seconds = timeout_seconds
        self.max_context_chars = max_context_chars

    async def _call_model(self, messages) -> Dict:
        try:
            return await asyncio.wait_for(
                self.llm.generate_structured(
                    messages=messages,
                    response_format=QUESTIONS_SCHEMA,
                    temperature=0.6,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Question generation timed out after {self.timeout_seconds}s")
            raise GenerationFailed(
                f"Question generation timed out after {self.timeout_seconds:g} seconds"
            ) from e
        except Exception as e:
            logger.error(f"Question generation call failed: {e}")
            raise GenerationFailed(f"Question generation service error: {e}") from e

    async def synthesize(
        self,
        sections: List[Section],
        quotas: GenerationQuotas,
        unit: int,
        course_context: Optional[str] = None,
    ) -> SynthesisResult:
        """
        Generate questions for ``unit`` according to ``quotas``.

        Args:
            sections: Processed sections of the material, in document order
            quotas: Requested counts per Bloom level (plus distribution targets)
            unit: Academic unit the questions are for
            course_context: Optional one-line description of the course/material

        Returns:
            SynthesisResult; ``warning`` is set when fewer than requested were usable

        Raises:
            GenerationFailed: Model error, timeout, or no valid questions
        """
        total = quotas.total_requested
        unit_sections = select_unit_sections(sections, unit)
        context = build_context(unit_sections, self.max_context_chars)
        if not context.strip():
            raise GenerationFailed("Material has no text to generate questions from")

        logger.info(
            f"Synthesizing {total} questions for unit {unit} from "
            f"{len(unit_sections)}/{len(sections)} sections ({len(context)} chars)"
        )
        response = await self._call_model(build_messages(context, quotas, unit, course_context))

        raw_items = response.get("questions") if isinstance(response, dict) else None
        if not isinstance(raw_items, list):
            raise GenerationFailed("Question generation returned no question list")

        counter = _QuotaCounter(limits=dict(quotas.per_bloom_level), marks=set(quotas.marks))
        accepted: List[CandidateQuestion] = []
        discarded = 0
        for item in raw_items:
            candidate = normalize_item(item)
            if candidate is None or not counter.admit(candidate):
                discarded += 1
                continue
            accepted.append(candidate)

        if discarded:
            logger.warning(f"Discarded {discarded} of {len(raw_items)} generated items")

        if not accepted:
            raise GenerationFailed("Question generation produced no valid questions")

        warning = None
        if len(accepted) < total:
            warning = f"Generated {len(accepted)} of {total} requested questions"
            logger.warning(warning)

        return SynthesisResult(
            questions=accepted,
            total_requested=total,
            discarded=discarded,
            warning=warning,
        )

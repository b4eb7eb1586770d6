"""Prompt construction for exam question synthesis."""
from typing import Dict, List, Optional, Tuple

from examgen.models.jobs import GenerationQuotas
from examgen.models.questions import BloomLevel, Difficulty, Marks, QuestionStyle
from examgen.services.llm.base import LLMMessage

BLOOM_GUIDANCE: Dict[BloomLevel, str] = {
    BloomLevel.REMEMBER: "Recall facts, terms and basic concepts. Verbs: define, list, identify, name, state.",
    BloomLevel.UNDERSTAND: "Explain and interpret concepts. Verbs: explain, summarize, interpret, compare, contrast.",
    BloomLevel.APPLY: "Use knowledge in new situations. Verbs: apply, demonstrate, calculate, solve, implement.",
    BloomLevel.ANALYZE: "Break information down and relate parts. Verbs: analyze, examine, categorize, differentiate.",
    BloomLevel.EVALUATE: "Judge and justify. Verbs: evaluate, justify, critique, assess, defend.",
    BloomLevel.CREATE: "Combine ideas into something new. Verbs: design, develop, formulate, construct, propose.",
}

MARKS_GUIDANCE: Dict[Marks, str] = {
    Marks.TWO: "Brief answer: a definition, short explanation or one-step calculation.",
    Marks.EIGHT: "Detailed answer: multi-step problem solving or an explanation with examples.",
    Marks.SIXTEEN: "Extended answer: in-depth analysis of a realistic scenario covering several concepts.",
}

STYLE_GUIDANCE: Dict[QuestionStyle, str] = {
    QuestionStyle.STRAIGHTFORWARD: "asks directly about a concept",
    QuestionStyle.PROBLEM_BASED: "poses a concrete problem to solve",
    QuestionStyle.SCENARIO_BASED: "frames the question inside a realistic scenario",
}

SYSTEM_PROMPT = (
    "You are an expert academic examiner who writes university exam questions. "
    "Base every question strictly on the provided course material and never refer "
    "to the material itself in the question text."
)


def style_for_marks(marks: Marks) -> QuestionStyle:
    if marks <= Marks.TWO:
        return QuestionStyle.STRAIGHTFORWARD
    if marks <= Marks.EIGHT:
        return QuestionStyle.PROBLEM_BASED
    return QuestionStyle.SCENARIO_BASED


def difficulty_for_level(level: BloomLevel) -> Difficulty:
    if level in (BloomLevel.REMEMBER, BloomLevel.UNDERSTAND):
        return Difficulty.EASY
    if level in (BloomLevel.APPLY, BloomLevel.ANALYZE):
        return Difficulty.MEDIUM
    return Difficulty.HARD


def plan_breakdown(quotas: GenerationQuotas) -> List[Tuple[BloomLevel, Marks, int]]:
    """
    Spread each level's count over the allowed mark values.

    Lower-order levels start from the smallest mark value and higher-order levels
    from the largest, then alternate, so a mixed quota gets a mix of marks.

    Returns:
        (level, marks, count) rows with positive counts, in taxonomy order
    """
    marks = list(quotas.marks)
    rows: List[Tuple[BloomLevel, Marks, int]] = []
    for level in quotas.requested_levels():
        order = marks if difficulty_for_level(level) == Difficulty.EASY else list(reversed(marks))
        counts: Dict[Marks, int] = {}
        for i in range(quotas.per_bloom_level[level]):
            mark = order[i % len(order)]
            counts[mark] = counts.get(mark, 0) + 1
        for mark in marks:
            if counts.get(mark):
                rows.append((level, mark, counts[mark]))
    return rows


def _distribution_lines(title: str, counts: Dict, total: int) -> List[str]:
    requested = {key: value for key, value in counts.items() if value > 0}
    if not requested:
        return []
    lines = [f"{title} (of the {total} questions):"]
    lines.extend(f"- {key.value}: {value}" for key, value in requested.items())
    return lines


def build_messages(
    context: str,
    quotas: GenerationQuotas,
    unit: int,
    course_context: Optional[str] = None,
) -> List[LLMMessage]:
    """Build the system and user messages for one synthesis call."""
    total = quotas.total_requested
    breakdown = plan_breakdown(quotas)

    breakdown_lines = [
        f"- {count} x {level.value}, {int(mark)} marks, {style_for_marks(mark).value}"
        for level, mark, count in breakdown
    ]
    level_lines = [
        f"- {level.value}: {BLOOM_GUIDANCE[level]}" for level in quotas.requested_levels()
    ]
    marks_lines = [f"- {int(mark)} marks: {MARKS_GUIDANCE[mark]}" for mark in quotas.marks]
    style_lines = [f"- {style.value}: {text}" for style, text in STYLE_GUIDANCE.items()]

    distribution = _distribution_lines("Difficulty targets", quotas.per_difficulty, total)
    distribution += _distribution_lines("Question style targets", quotas.per_style, total)

    sections = [
        f"Write exactly {total} exam questions for Unit {unit}.",
    ]
    if course_context:
        sections.append(f"Course context: {course_context}")
    sections += [
        "Course material:\n\"\"\"\n" + context + "\n\"\"\"",
        "Required breakdown (count x Bloom level, marks, style):\n" + "\n".join(breakdown_lines),
        "Bloom's taxonomy guidance:\n" + "\n".join(level_lines),
        "Marks guidance:\n" + "\n".join(marks_lines),
        "Question styles:\n" + "\n".join(style_lines),
    ]
    if distribution:
        sections.append("\n".join(distribution))
    sections.append(
        "Output contract: return one JSON object of the form\n"
        '{"questions": [{"question": "...", "answer": "...", "bloomLevel": "REMEMBER", '
        '"marks": 2, "questionStyle": "STRAIGHTFORWARD", "difficulty": "EASY", "topic": "..."}]}\n'
        "bloomLevel must be one of " + ", ".join(level.value for level in BloomLevel) + "; "
        "marks must be one of " + ", ".join(str(int(m)) for m in quotas.marks) + "; "
        "answers must be model answers appropriate to the marks. No duplicate questions. "
        "Return only the JSON object."
    )

    return [
        LLMMessage(role="system", content=SYSTEM_PROMPT),
        LLMMessage(role="user", content="\n\n".join(sections)),
    ]


QUESTIONS_SCHEMA = {
    "type": "json_schema",
    "json_schema": {
        "name": "exam_questions",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "questions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "question": {"type": "string"},
                            "answer": {"type": "string"},
                            "bloomLevel": {"type": "string", "enum": [level.value for level in BloomLevel]},
                            "marks": {"type": "integer", "enum": [int(mark) for mark in Marks]},
                            "questionStyle": {"type": "string", "enum": [style.value for style in QuestionStyle]},
                            "difficulty": {"type": "string", "enum": [d.value for d in Difficulty]},
                            "topic": {"type": ["string", "null"]},
                        },
                        "required": [
                            "question",
                            "answer",
                            "bloomLevel",
                            "marks",
                            "questionStyle",
                            "difficulty",
                            "topic",
                        ],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["questions"],
            "additionalProperties": False,
        },
    },
}

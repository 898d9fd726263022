"""Readers for the named fields of block content payloads.

The payload is otherwise opaque to the player; only these fields affect gating.
Malformed authored values fall back to the defaults and are logged.
"""

import logging
from collections import Counter
from typing import Any

from quest_player.blocks.schemas import Block


logger = logging.getLogger(__name__)

DEFAULT_TABLE_MIN_ROWS = 1

# Point B form ships with ten required steps when the author did not configure any
DEFAULT_FORM_STEP_IDS: tuple[str, ...] = tuple(str(i) for i in range(1, 11))


def video_source(block: Block) -> str:
    """Configured video URL, or an empty string."""
    return str(block.content.get("url") or "").strip()


def video_threshold(block: Block, default: float) -> float:
    """Percent watched required to open an unskippable video."""
    value = block.content.get("threshold_percent")
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid threshold_percent {value!r} on video block {block.id}, using {default}")
        return default


def table_min_rows(block: Block) -> int:
    """Minimum number of rows before a diagnostic table can be completed."""
    value = block.content.get("minRows") or DEFAULT_TABLE_MIN_ROWS
    try:
        return max(DEFAULT_TABLE_MIN_ROWS, int(value))
    except (TypeError, ValueError):
        logger.warning(f"Invalid minRows {value!r} on table block {block.id}, using {DEFAULT_TABLE_MIN_ROWS}")
        return DEFAULT_TABLE_MIN_ROWS


def form_required_step_ids(block: Block) -> list[str]:
    """Ids of the sequential form steps that must be answered."""
    steps = block.content.get("steps")
    if not steps:
        return list(DEFAULT_FORM_STEP_IDS)
    if not isinstance(steps, list):
        logger.warning(f"Form block {block.id} has malformed steps, using the default steps")
        return list(DEFAULT_FORM_STEP_IDS)

    required = []
    for step in steps:
        if not isinstance(step, dict) or step.get("id") is None:
            logger.warning(f"Skipping form step without an id in block {block.id}: {step!r}")
            continue
        if step.get("required", True):
            required.append(str(step["id"]))
    return required


def _find_option(question: dict[str, Any], option_id: str) -> dict[str, Any] | None:
    for option in question.get("options") or []:
        if isinstance(option, dict) and option.get("id") is not None and str(option["id"]) == str(option_id):
            return option
    return None


def dominant_categories(content: dict[str, Any], answers: dict[str, str]) -> list[str]:
    """Categories chosen most often across the survey answers, sorted.

    Returns an empty list unless every question has a valid answer. Questions
    without an id cannot be answered and are skipped.
    """
    questions = content.get("questions") or []
    if not isinstance(questions, list):
        logger.warning(f"Survey questions are malformed: {questions!r}")
        return []

    counts: Counter[str] = Counter()
    for question in questions:
        if not isinstance(question, dict) or question.get("id") is None:
            logger.warning(f"Skipping survey question without an id: {question!r}")
            continue
        option_id = answers.get(str(question["id"]))
        if option_id is None:
            return []
        option = _find_option(question, option_id)
        if option is None:
            return []
        category = option.get("category")
        if not category:
            logger.warning(f"Survey option {option_id} of question {question['id']} has no category")
            return []
        counts[str(category)] += 1

    if not counts:
        return []
    top = max(counts.values())
    return sorted(category for category, count in counts.items() if count == top)


def derive_role(content: dict[str, Any], answers: dict[str, str]) -> str | None:
    """Role produced by a survey: the dominant category, or ``A+B`` style for ties."""
    categories = dominant_categories(content, answers)
    if not categories:
        return None
    return "+".join(categories)


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def table_aggregates(rows: list[dict[str, Any]]) -> dict[str, float] | None:
    """Point A totals: income, work and overhead hours, and the resulting hourly rate."""
    if not rows:
        return None

    total_income = sum(_number(row.get("income")) for row in rows)
    total_work_hours = sum(_number(row.get("work_hours")) for row in rows)
    total_overhead_hours = sum(_number(row.get("overhead_hours")) for row in rows)
    total_hours = total_work_hours + total_overhead_hours
    avg_hourly_rate = round(total_income / total_hours, 2) if total_hours > 0 else 0.0

    return {
        "total_income": total_income,
        "total_work_hours": total_work_hours,
        "total_overhead_hours": total_overhead_hours,
        "avg_hourly_rate": avg_hourly_rate,
    }

"""Change generation.

Maps each detected problem to exactly one FormatChange through the rule that
detected it. A fix that fails or doesn't match its problem is dropped with a
diagnostic; the rest of the pass continues.
"""

from __future__ import annotations

import logging
from typing import Iterable

from src.models.formatting import FormatChange

from .errors import FixGenerationError
from .problem_detector import DetectedProblem

logger = logging.getLogger(__name__)


def _generate_one(detection: DetectedProblem, seen_ids: set[str]) -> FormatChange:
    """Build and validate the change for one problem.

    Raises:
        FixGenerationError: If the rule fails or produces an inconsistent change.
    """
    problem, rule = detection.problem, detection.rule

    try:
        change = rule.generate_fix(problem)
    except Exception as e:
        raise FixGenerationError(rule.id, problem.id, str(e)) from e

    if not isinstance(change, FormatChange):
        raise FixGenerationError(rule.id, problem.id, f"expected FormatChange, got {type(change).__name__}")
    if change.range != problem.affected_range or change.target != problem.target:
        raise FixGenerationError(rule.id, problem.id, "change range does not match problem range")
    if change.category.value != rule.category:
        raise FixGenerationError(
            rule.id, problem.id,
            f"change category '{change.category.value}' does not match rule category '{rule.category}'",
        )
    if change.id in seen_ids:
        raise FixGenerationError(rule.id, problem.id, f"duplicate change id '{change.id}'")

    return change


def generate_changes(detections: Iterable[DetectedProblem]) -> list[FormatChange]:
    """Generate one change per detected problem, preserving order.

    Args:
        detections: Problems paired with their rules (from detect_problems).

    Returns:
        Changes for every problem whose fix could be generated.
    """
    changes: list[FormatChange] = []
    seen_ids: set[str] = set()
    dropped = 0

    for detection in detections:
        try:
            change = _generate_one(detection, seen_ids)
        except FixGenerationError as e:
            logger.warning(f"{e}; problem dropped")
            dropped += 1
            continue

        seen_ids.add(change.id)
        changes.append(change)

    logger.info(f"Generated {len(changes)} change(s), dropped {dropped}")
    return changes

"""Problem detection.

Runs each active rule against the same immutable DocumentModel. A rule that
fails contributes zero problems for the pass; other rules are unaffected.

Output order is rule registration order, then each rule's own emission order.
Problems are returned paired with the rule that produced them so fixes can be
routed back without a reverse lookup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from src.models.document import DocumentModel
from src.models.formatting import Problem

from .errors import DetectionError
from .rule_registry import FormatRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectedProblem:
    """A problem and the rule that detected it."""
    problem: Problem
    rule: FormatRule


def _run_rule(model: DocumentModel, rule: FormatRule, seen_ids: set[str]) -> list[Problem]:
    """Run one rule and validate its output against the model.

    Raises:
        DetectionError: If the rule raises, or emits an invalid problem.
    """
    try:
        problems = list(rule.detect(model))
    except Exception as e:
        raise DetectionError(rule.id, str(e)) from e

    batch_ids: set[str] = set()
    for problem in problems:
        if not isinstance(problem, Problem):
            raise DetectionError(rule.id, f"expected Problem, got {type(problem).__name__}")

        limit = model.element_count(problem.target)
        if problem.affected_range.end >= limit:
            raise DetectionError(
                rule.id,
                f"problem '{problem.id}' range {problem.affected_range.start}-"
                f"{problem.affected_range.end} is outside {limit} {problem.target.value}(s)",
            )

        if problem.id in seen_ids or problem.id in batch_ids:
            raise DetectionError(rule.id, f"duplicate problem id '{problem.id}'")
        batch_ids.add(problem.id)

    seen_ids.update(batch_ids)
    return problems


def detect_problems(model: DocumentModel, rules: Iterable[FormatRule]) -> list[DetectedProblem]:
    """Run all rules and collect their problems with provenance.

    Args:
        model: Document snapshot (read only).
        rules: Active rules, in registration order.

    Returns:
        List of DetectedProblem in deterministic order.
    """
    detected: list[DetectedProblem] = []
    seen_ids: set[str] = set()

    for rule in rules:
        try:
            problems = _run_rule(model, rule, seen_ids)
        except DetectionError as e:
            logger.warning(f"{e}; rule skipped for this pass")
            continue

        logger.debug(f"Rule '{rule.id}' found {len(problems)} problem(s)")
        detected.extend(DetectedProblem(problem=p, rule=rule) for p in problems)

    logger.info(f"Detection complete: {len(detected)} problem(s)")
    return detected


def detect(model: DocumentModel, rules: Iterable[FormatRule]) -> list[Problem]:
    """Problems only, without rule provenance."""
    return [d.problem for d in detect_problems(model, rules)]

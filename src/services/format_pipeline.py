"""Auto-format pipeline.

Template/options -> enabled rules -> detection -> changes -> apply -> audit.

Key functions:
- analyze_document: Detect problems and propose changes for a snapshot
- run_auto_format: Snapshot a host document, analyze it, apply per mode
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from src.models.document import DocumentModel
from src.models.formatting import (
    AutoFormatOptions,
    FormatChange,
    FormatMode,
    FormatTemplate,
    Problem,
    ProcessingMode,
)

from .audit_log import BaseAuditLog
from .change_applier import ApplyResult, DocumentHost, ProgressCallback, apply_changes
from .change_generator import generate_changes
from .format_rules import create_default_registry
from .problem_detector import DetectedProblem, detect_problems
from .rule_registry import RuleRegistry
from .template_store import TemplateStore

logger = logging.getLogger(__name__)

# Progress percent at which the apply stage starts
APPLY_PROGRESS_START = 70


@dataclass
class FormatAnalysis:
    """Result of one detection/generation pass."""
    options: AutoFormatOptions
    template: FormatTemplate
    detections: list[DetectedProblem] = field(default_factory=list)
    changes: list[FormatChange] = field(default_factory=list)

    @property
    def problems(self) -> list[Problem]:
        return [d.problem for d in self.detections]


def analyze_document(
    model: DocumentModel,
    options: AutoFormatOptions,
    *,
    template_store: TemplateStore,
    registry: Optional[RuleRegistry] = None,
) -> FormatAnalysis:
    """Detect problems and propose changes.

    Args:
        model: Document snapshot.
        options: Caller options; the selected template fills in unset fields.
        template_store: Source of templates.
        registry: Rules to use (default: built-in rules for the template).

    Returns:
        FormatAnalysis. In suggest mode every change comes back disabled.

    Raises:
        TemplateNotFoundError: If options.template_id is unknown.
    """
    template = template_store.get(options.template_id)
    resolved = template_store.resolve_options(options)

    if resolved.processing_mode != ProcessingMode.local:
        logger.info(
            f"Processing mode '{resolved.processing_mode.value}' requested; running local rules"
        )

    if registry is None:
        registry = create_default_registry(template)

    rules = registry.get_enabled(resolved)
    logger.info(f"Analyzing document with {len(rules)} rule(s), template '{template.id}'")

    detections = detect_problems(model, rules)
    changes = generate_changes(detections)

    if resolved.mode == FormatMode.suggest:
        changes = [c.model_copy(update={"enabled": False}) for c in changes]

    return FormatAnalysis(
        options=resolved,
        template=template,
        detections=detections,
        changes=changes,
    )


def toggle_changes(changes: Iterable[FormatChange], disabled_ids: Iterable[str]) -> list[FormatChange]:
    """Disable the listed change ids, leave the rest as they are."""
    disabled = set(disabled_ids)
    return [
        c.model_copy(update={"enabled": False}) if c.id in disabled else c
        for c in changes
    ]


@dataclass
class AutoFormatRun:
    analysis: FormatAnalysis
    result: ApplyResult


async def run_auto_format(
    host: DocumentHost,
    options: AutoFormatOptions,
    *,
    template_store: TemplateStore,
    audit_log: Optional[BaseAuditLog] = None,
    registry: Optional[RuleRegistry] = None,
    disabled_change_ids: Iterable[str] = (),
    cancel_event: Optional[asyncio.Event] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> AutoFormatRun:
    """Snapshot the host document, analyze it, and apply according to mode."""

    def report(stage: str, percent: int) -> None:
        if on_progress is not None:
            on_progress(stage, percent)

    report("Analyzing document structure...", 10)
    model = await host.build_model()

    report("Detecting formatting issues...", 30)
    analysis = analyze_document(
        model, options, template_store=template_store, registry=registry
    )

    report("Generating proposed changes...", 60)
    changes = toggle_changes(analysis.changes, disabled_change_ids)
    analysis.changes = changes

    report("Applying changes...", APPLY_PROGRESS_START)

    def report_change(stage: str, percent: int) -> None:
        # Apply progress (0-100) maps into the APPLY_PROGRESS_START-100 band
        span = 100 - APPLY_PROGRESS_START
        report(stage, APPLY_PROGRESS_START + percent * span // 100)

    result = await apply_changes(
        changes,
        analysis.options.mode,
        host,
        audit_log=audit_log,
        cancel_event=cancel_event,
        on_progress=report_change,
    )

    report("Done", 100)
    logger.info(result.audit.summary())
    return AutoFormatRun(analysis=analysis, result=result)

"""Change application.

Sequences FormatChange execution against a document host:
- suggest: nothing runs, the changes come back untouched
- auto-fix / semi-auto: enabled changes run, disabled ones are skipped

Overlapping changes on the same index space conflict. Only the change with the
larger range runs in a pass (ties: earlier start, then lower id); the others
are deferred to a later pass. Accepted changes run strictly one after another
in ascending (range.start, id) order, each awaited before the next, since
host indices aren't stable under concurrent structural edits.

Failures are recorded and excluded from the audit count. Cancellation is
cooperative and checked before each change; applied changes stay applied.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, Field, ConfigDict

from src.models.document import DocumentModel
from src.models.formatting import (
    AuditEntry,
    ChangeCommand,
    FormatCategory,
    FormatChange,
    FormatMode,
)

from .audit_log import BaseAuditLog
from .errors import ApplyError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], None]


class DocumentHost(ABC):
    """Execution strategy for change commands plus the model builder."""

    @abstractmethod
    async def execute(self, command: ChangeCommand) -> None:
        """Perform one mutation. Raise on failure."""
        pass

    @abstractmethod
    async def build_model(self) -> DocumentModel:
        """Capture a fresh snapshot of the current document."""
        pass


class FailedChange(BaseModel):
    model_config = ConfigDict(extra="forbid")

    change_id: str
    error: str


class ApplyResult(BaseModel):
    """Outcome of apply_changes."""
    model_config = ConfigDict(extra="forbid")

    audit: AuditEntry
    changes: list[FormatChange] = Field(default_factory=list, description="Input changes, unchanged")
    applied: list[str] = Field(default_factory=list, description="Change ids applied, in order")
    deferred: list[str] = Field(default_factory=list, description="Lost a range conflict")
    skipped: list[str] = Field(default_factory=list, description="Disabled, duplicate, or not reached")
    failed: list[FailedChange] = Field(default_factory=list)
    cancelled: bool = False


def _priority_key(change: FormatChange) -> tuple[int, int, str]:
    """Larger range first, then earlier start, then lower id."""
    return (-change.range.size, change.range.start, change.id)


def _order_key(change: FormatChange) -> tuple[int, str]:
    return (change.range.start, change.id)


def resolve_conflicts(changes: Iterable[FormatChange]) -> tuple[list[FormatChange], list[FormatChange]]:
    """Split changes into (accepted, deferred).

    Changes only conflict when they target the same index space and their
    ranges overlap. Accepted changes are returned in application order.
    """
    accepted: list[FormatChange] = []
    deferred: list[FormatChange] = []

    for change in sorted(changes, key=_priority_key):
        clash = next(
            (
                a for a in accepted
                if a.target == change.target and a.range.overlaps(change.range)
            ),
            None,
        )
        if clash is not None:
            logger.debug(f"Deferring change {change.id}: overlaps {clash.id}")
            deferred.append(change)
        else:
            accepted.append(change)

    accepted.sort(key=_order_key)
    deferred.sort(key=_order_key)
    return accepted, deferred


def _distinct_categories(changes: Iterable[FormatChange]) -> list[FormatCategory]:
    """Categories in first-seen order."""
    seen: list[FormatCategory] = []
    for change in changes:
        if change.category not in seen:
            seen.append(change.category)
    return seen


async def apply_changes(
    changes: list[FormatChange],
    mode: FormatMode,
    host: DocumentHost,
    *,
    audit_log: Optional[BaseAuditLog] = None,
    cancel_event: Optional[asyncio.Event] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> ApplyResult:
    """Apply a list of changes according to the format mode.

    Args:
        changes: Changes from one generation pass.
        mode: auto-fix, semi-auto, or suggest.
        host: Executes each change's command.
        audit_log: Receives the pass's AuditEntry when given.
        cancel_event: Checked before each change; set it to stop the pass.
        on_progress: Called with (stage, percent) after each change.

    Returns:
        ApplyResult with exactly one AuditEntry.
    """
    started = time.perf_counter()
    result = ApplyResult(
        audit=AuditEntry(changes_applied=0, duration_ms=0),
        changes=list(changes),
    )

    if mode == FormatMode.suggest:
        logger.info(f"Suggest mode: {len(changes)} change(s) returned without applying")
        return await _finish(result, [], started, audit_log)

    # Each logical change runs at most once per pass
    candidates: list[FormatChange] = []
    seen_ids: set[str] = set()
    for change in changes:
        if change.id in seen_ids:
            logger.warning(f"Change {change.id} listed more than once; extra copy skipped")
            result.skipped.append(change.id)
            continue
        seen_ids.add(change.id)

        if not change.enabled:
            result.skipped.append(change.id)
            continue
        candidates.append(change)

    accepted, deferred = resolve_conflicts(candidates)
    result.deferred = [c.id for c in deferred]

    applied: list[FormatChange] = []
    total = len(accepted)

    for position, change in enumerate(accepted):
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Apply pass cancelled after {len(applied)} change(s)")
            result.cancelled = True
            result.skipped.extend(c.id for c in accepted[position:])
            break

        try:
            logger.debug(f"Applying {change.id}: {change.description}")
            await host.execute(change.command)
        except Exception as e:
            error = ApplyError(change.id, str(e))
            logger.error(f"{error}")
            result.failed.append(FailedChange(change_id=change.id, error=str(error)))
        else:
            applied.append(change)
            result.applied.append(change.id)

        if on_progress is not None:
            on_progress(f"Applying: {change.description}", int((position + 1) / total * 100))

    logger.info(
        f"Apply pass ({mode.value}): {len(applied)} applied, {len(result.deferred)} deferred, "
        f"{len(result.failed)} failed, {len(result.skipped)} skipped"
    )
    return await _finish(result, applied, started, audit_log)


async def _finish(
    result: ApplyResult,
    applied: list[FormatChange],
    started: float,
    audit_log: Optional[BaseAuditLog],
) -> ApplyResult:
    result.audit = AuditEntry(
        changes_applied=len(applied),
        categories=_distinct_categories(applied),
        duration_ms=int((time.perf_counter() - started) * 1000),
    )
    if audit_log is not None:
        await audit_log.append(result.audit)
    return result

"""Unit tests for conflict resolution and sequenced change application."""

import asyncio
from typing import Optional

import pytest

from src.models import (
    ChangeCommand,
    DocumentModel,
    FormatCategory,
    FormatMode,
    TargetKind,
)
from src.services.audit_log import InMemoryAuditLog
from src.services.change_applier import DocumentHost, apply_changes, resolve_conflicts


class RecordingHost(DocumentHost):
    """Host that records executed commands and fails on request."""

    def __init__(self, fail_on: Optional[set[int]] = None, on_execute=None):
        self.calls: list[ChangeCommand] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._fail_on = fail_on or set()
        self._on_execute = on_execute

    async def execute(self, command: ChangeCommand) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if command.range.start in self._fail_on:
                raise RuntimeError(f"host rejected range starting at {command.range.start}")
            self.calls.append(command)
            if self._on_execute is not None:
                self._on_execute(command)
        finally:
            self.in_flight -= 1

    async def build_model(self) -> DocumentModel:
        return DocumentModel()


class TestResolveConflicts:

    def test_disjoint_changes_all_accepted(self, make_change):
        accepted, deferred = resolve_conflicts([
            make_change("b", 4, 6),
            make_change("a", 0, 2),
        ])
        assert [c.id for c in accepted] == ["a", "b"]
        assert deferred == []

    def test_larger_range_wins(self, make_change):
        accepted, deferred = resolve_conflicts([
            make_change("small", 2, 3),
            make_change("large", 1, 5),
        ])
        assert [c.id for c in accepted] == ["large"]
        assert [c.id for c in deferred] == ["small"]

    def test_equal_size_earlier_start_wins(self, make_change):
        accepted, deferred = resolve_conflicts([
            make_change("late", 3, 5),
            make_change("early", 2, 4),
        ])
        assert [c.id for c in accepted] == ["early"]
        assert [c.id for c in deferred] == ["late"]

    def test_identical_ranges_lower_id_wins(self, make_change):
        accepted, deferred = resolve_conflicts([
            make_change("chg-line-spacing-2", 2, 4),
            make_change("chg-body-font-2", 2, 4),
        ])
        assert [c.id for c in accepted] == ["chg-body-font-2"]
        assert [c.id for c in deferred] == ["chg-line-spacing-2"]

    def test_different_targets_never_conflict(self, make_change):
        accepted, deferred = resolve_conflicts([
            make_change("para", 0, 0),
            make_change("img", 0, 0, target=TargetKind.image, category=FormatCategory.images),
        ])
        assert {c.id for c in accepted} == {"para", "img"}
        assert deferred == []

    def test_accepted_set_is_pairwise_disjoint(self, make_change):
        changes = [
            make_change("a", 0, 3),
            make_change("b", 2, 2),
            make_change("c", 3, 6),
            make_change("d", 7, 7),
            make_change("e", 5, 9),
        ]
        accepted, deferred = resolve_conflicts(changes)
        for i, x in enumerate(accepted):
            for y in accepted[i + 1:]:
                assert not x.range.overlaps(y.range)
        assert len(accepted) + len(deferred) == len(changes)


class TestApplyModes:

    @pytest.mark.asyncio
    async def test_suggest_never_touches_host(self, make_change, audit_log):
        host = RecordingHost()
        changes = [make_change("a", 0, 0), make_change("b", 1, 1)]

        result = await apply_changes(changes, FormatMode.suggest, host, audit_log=audit_log)

        assert host.calls == []
        assert result.applied == []
        assert result.changes == changes
        assert result.audit.changes_applied == 0
        assert len(audit_log) == 1

    @pytest.mark.asyncio
    async def test_auto_fix_applies_disjoint_changes(self, make_change):
        host = RecordingHost()
        result = await apply_changes(
            [make_change("a", 0, 0), make_change("b", 2, 3, category=FormatCategory.spacing)],
            FormatMode.auto_fix,
            host,
        )
        assert result.applied == ["a", "b"]
        assert result.audit.changes_applied == 2
        assert result.audit.categories == [FormatCategory.fonts, FormatCategory.spacing]

    @pytest.mark.asyncio
    async def test_semi_auto_skips_disabled(self, make_change):
        host = RecordingHost()
        result = await apply_changes(
            [make_change("a", 0, 0), make_change("b", 1, 1, enabled=False)],
            FormatMode.semi_auto,
            host,
        )
        assert result.applied == ["a"]
        assert result.skipped == ["b"]
        assert [c.range.start for c in host.calls] == [0]

    @pytest.mark.asyncio
    async def test_disabled_change_does_not_block_overlapping_enabled_one(self, make_change):
        host = RecordingHost()
        result = await apply_changes(
            [make_change("big", 0, 5, enabled=False), make_change("small", 2, 2)],
            FormatMode.semi_auto,
            host,
        )
        assert result.applied == ["small"]
        assert result.deferred == []

    @pytest.mark.asyncio
    async def test_overlap_defers_loser(self, make_change):
        host = RecordingHost()
        result = await apply_changes(
            [make_change("chg-line-spacing-2", 2, 4), make_change("chg-body-font-2", 2, 4)],
            FormatMode.auto_fix,
            host,
        )
        assert result.applied == ["chg-body-font-2"]
        assert result.deferred == ["chg-line-spacing-2"]
        assert result.audit.changes_applied == 1


class TestSequencing:

    @pytest.mark.asyncio
    async def test_runs_in_ascending_start_order(self, make_change):
        host = RecordingHost()
        await apply_changes(
            [make_change("c", 8, 8), make_change("a", 0, 1), make_change("b", 4, 5)],
            FormatMode.auto_fix,
            host,
        )
        assert [c.range.start for c in host.calls] == [0, 4, 8]

    @pytest.mark.asyncio
    async def test_never_more_than_one_in_flight(self, make_change):
        host = RecordingHost()
        await apply_changes(
            [make_change(f"c{i}", i, i) for i in range(5)],
            FormatMode.auto_fix,
            host,
        )
        assert host.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_duplicate_id_runs_once(self, make_change):
        host = RecordingHost()
        change = make_change("same", 0, 0)
        result = await apply_changes([change, change], FormatMode.auto_fix, host)
        assert len(host.calls) == 1
        assert result.applied == ["same"]
        assert result.skipped == ["same"]


class TestFailures:

    @pytest.mark.asyncio
    async def test_failed_change_excluded_from_count(self, make_change, audit_log):
        host = RecordingHost(fail_on={2})
        result = await apply_changes(
            [make_change("a", 0, 0), make_change("b", 2, 2), make_change("c", 4, 4)],
            FormatMode.auto_fix,
            host,
            audit_log=audit_log,
        )
        assert result.applied == ["a", "c"]
        assert [f.change_id for f in result.failed] == ["b"]
        assert "host rejected" in result.failed[0].error
        assert result.audit.changes_applied == 2

        [entry] = await audit_log.list_entries()
        assert entry.changes_applied == 2

    @pytest.mark.asyncio
    async def test_failed_category_not_in_audit(self, make_change):
        host = RecordingHost(fail_on={3})
        result = await apply_changes(
            [make_change("a", 0, 0), make_change("b", 3, 3, category=FormatCategory.spacing)],
            FormatMode.auto_fix,
            host,
        )
        assert result.audit.categories == [FormatCategory.fonts]


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancel_stops_before_next_change(self, make_change, audit_log):
        cancel = asyncio.Event()
        host = RecordingHost(on_execute=lambda cmd: cancel.set())

        result = await apply_changes(
            [make_change("a", 0, 0), make_change("b", 2, 2), make_change("c", 4, 4)],
            FormatMode.auto_fix,
            host,
            audit_log=audit_log,
            cancel_event=cancel,
        )

        assert result.cancelled is True
        assert result.applied == ["a"]
        assert result.skipped == ["b", "c"]
        assert result.audit.changes_applied == 1
        assert len(audit_log) == 1

    @pytest.mark.asyncio
    async def test_already_cancelled_applies_nothing(self, make_change):
        cancel = asyncio.Event()
        cancel.set()
        host = RecordingHost()
        result = await apply_changes([make_change("a", 0, 0)], FormatMode.auto_fix, host, cancel_event=cancel)
        assert host.calls == []
        assert result.audit.changes_applied == 0


class TestProgressAndAudit:

    @pytest.mark.asyncio
    async def test_progress_reaches_100(self, make_change):
        reports = []
        await apply_changes(
            [make_change("a", 0, 0), make_change("b", 1, 1)],
            FormatMode.auto_fix,
            RecordingHost(),
            on_progress=lambda stage, pct: reports.append(pct),
        )
        assert reports == [50, 100]

    @pytest.mark.asyncio
    async def test_empty_pass_still_audited(self, audit_log):
        result = await apply_changes([], FormatMode.auto_fix, RecordingHost(), audit_log=audit_log)
        assert result.audit.changes_applied == 0
        assert result.audit.categories == []
        assert len(audit_log) == 1

    @pytest.mark.asyncio
    async def test_summary_message(self, make_change):
        result = await apply_changes([make_change("a", 0, 0)], FormatMode.auto_fix, RecordingHost())
        assert result.audit.summary() == "Applied 1 changes in 0 seconds."

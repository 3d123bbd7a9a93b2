"""
Tests for the integrity scorer
"""
import random
from datetime import datetime, timezone

from proctor_core.models import SEVERITY_BY_KIND, EventKind, ProctoringEvent, Severity
from proctor_core.utils.scoring import (
    PENALTIES,
    compute_integrity_score,
    integrity_score,
    severity_of,
)

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def make_event(kind: EventKind) -> ProctoringEvent:
    return ProctoringEvent(
        session_id="s1",
        kind=kind,
        severity=SEVERITY_BY_KIND[kind],
        description=kind.value,
        timestamp=T0,
    )


class TestPenalties:
    def test_fixed_penalties(self):
        assert PENALTIES[Severity.CRITICAL] == 15
        assert PENALTIES[Severity.MAJOR] == 10
        assert PENALTIES[Severity.MINOR] == 5

    def test_empty_log_scores_full(self):
        assert integrity_score([]) == 100

    def test_one_event_of_each_kind(self):
        events = [make_event(k) for k in EventKind]
        # 15 + 15 + 10 + 10
        assert integrity_score(events) == 50


class TestScoreBounds:
    def test_clamped_at_zero(self):
        events = [make_event(EventKind.CANDIDATE_ABSENT) for _ in range(7)]
        assert integrity_score(events) == 0

    def test_stays_zero_with_more_deductions(self):
        events = [make_event(EventKind.MULTIPLE_FACES) for _ in range(30)]
        assert integrity_score(events) == 0

    def test_monotonically_non_increasing(self):
        kinds = list(EventKind)
        log = []
        previous = integrity_score(log)
        for i in range(20):
            log.append(make_event(kinds[i % len(kinds)]))
            current = integrity_score(log)
            assert 0 <= current <= previous
            previous = current


class TestPurity:
    def test_idempotent(self):
        events = [make_event(EventKind.FOCUS_LOST), make_event(EventKind.CANDIDATE_ABSENT)]
        assert integrity_score(events) == integrity_score(events) == 75

    def test_order_independent(self):
        events = [make_event(k) for k in EventKind] * 2
        shuffled = list(events)
        random.Random(7).shuffle(shuffled)
        assert integrity_score(events) == integrity_score(shuffled)


class TestPersistedRecords:
    def test_scores_records_with_severity(self):
        records = [
            {"kind": "focus_lost", "severity": "major"},
            {"kind": "candidate_absent", "severity": "critical"},
        ]
        assert integrity_score(records) == 75

    def test_falls_back_to_kind_mapping(self):
        records = [{"event_type": "multiple_faces"}, {"kind": "unauthorized_item"}]
        assert severity_of(records[0]) == Severity.CRITICAL
        assert integrity_score(records) == 75

    def test_unknown_kind_has_no_penalty(self):
        assert integrity_score([{"kind": "tab_switch"}]) == 100

    def test_live_and_persisted_agree(self):
        events = [make_event(k) for k in EventKind]
        records = [e.to_record() for e in events]
        assert integrity_score(events) == integrity_score(records)


class TestSummary:
    def test_counts_and_deductions(self):
        events = [
            make_event(EventKind.FOCUS_LOST),
            make_event(EventKind.FOCUS_LOST),
            make_event(EventKind.MULTIPLE_FACES),
        ]
        summary = compute_integrity_score(events)
        assert summary == {
            "score": 65,
            "counts": {"focus_lost": 2, "multiple_faces": 1},
            "total_deductions": 35,
        }

"""
Tests for the event classifier and its suppression windows
"""
from datetime import datetime, timedelta, timezone

import pytest

from proctor_core.models import EventKind, FocusState, Severity, SignalTick
from proctor_core.services.classifier import (
    ClassifierRules,
    classify,
    match_restricted_items,
)

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def tick(face_count=1, focus=FocusState.FOCUSED, labels=()):
    return SignalTick(face_count=face_count, focus_state=focus, detected_object_labels=set(labels))


class Replay:
    """Feeds ticks through ``classify`` and keeps the resulting log."""

    def __init__(self, rules=None):
        self.rules = rules or ClassifierRules()
        self.log = []

    def at(self, ms, signal):
        new = classify(signal, self.log, T0 + timedelta(milliseconds=ms), "s1", rules=self.rules)
        self.log.extend(new)
        return new

    def kinds(self):
        return [e.kind for e in self.log]


class TestFocusRule:
    def test_ticks_9s_apart_emit_once(self):
        r = Replay()
        r.at(0, tick(focus=FocusState.LOST))
        r.at(9_000, tick(focus=FocusState.LOST))
        assert r.kinds() == [EventKind.FOCUS_LOST]

    def test_ticks_11s_apart_emit_twice(self):
        r = Replay()
        r.at(0, tick(focus=FocusState.LOST))
        r.at(11_000, tick(focus=FocusState.LOST))
        assert r.kinds() == [EventKind.FOCUS_LOST, EventKind.FOCUS_LOST]

    @pytest.mark.parametrize("focus", [FocusState.FOCUSED, FocusState.UNKNOWN])
    def test_no_event_unless_lost(self, focus):
        assert classify(tick(focus=focus), [], T0, "s1") == []

    def test_severity_is_major(self):
        (event,) = classify(tick(focus=FocusState.LOST), [], T0, "s1")
        assert event.severity == Severity.MAJOR
        assert event.session_id == "s1"
        assert event.timestamp == T0

    def test_window_edge_reemits(self):
        r = Replay()
        r.at(0, tick(focus=FocusState.LOST))
        r.at(9_999, tick(focus=FocusState.LOST))
        assert len(r.log) == 1
        r.at(10_000, tick(focus=FocusState.LOST))
        assert len(r.log) == 2

    def test_duration_goes_to_metadata(self):
        (event,) = classify(tick(focus=FocusState.LOST), [], T0, "s1", focus_lost_seconds=4.5)
        assert event.metadata == {"duration_seconds": 4.5}


class TestFaceRules:
    def test_absence_window_is_15s(self):
        r = Replay()
        r.at(0, tick(face_count=0))
        r.at(14_000, tick(face_count=0))
        assert r.kinds() == [EventKind.CANDIDATE_ABSENT]
        r.at(15_000, tick(face_count=0))
        assert r.kinds() == [EventKind.CANDIDATE_ABSENT] * 2

    def test_absence_is_critical(self):
        (event,) = classify(tick(face_count=0), [], T0, "s1")
        assert event.kind == EventKind.CANDIDATE_ABSENT
        assert event.severity == Severity.CRITICAL
        assert event.metadata["face_count"] == 0

    def test_multiple_faces_embeds_count(self):
        (event,) = classify(tick(face_count=3), [], T0, "s1")
        assert event.kind == EventKind.MULTIPLE_FACES
        assert event.severity == Severity.CRITICAL
        assert "3" in event.description
        assert event.metadata["face_count"] == 3

    def test_multiple_faces_window_is_10s(self):
        r = Replay()
        r.at(0, tick(face_count=2))
        r.at(9_500, tick(face_count=4))
        r.at(10_500, tick(face_count=2))
        assert r.kinds() == [EventKind.MULTIPLE_FACES] * 2

    def test_zero_faces_never_multiple(self):
        kinds = [e.kind for e in classify(tick(face_count=0), [], T0, "s1")]
        assert EventKind.MULTIPLE_FACES not in kinds

    def test_three_faces_never_absent(self):
        kinds = [e.kind for e in classify(tick(face_count=3), [], T0, "s1")]
        assert EventKind.CANDIDATE_ABSENT not in kinds

    def test_single_face_emits_nothing(self):
        assert classify(tick(face_count=1), [], T0, "s1") == []


class TestUnauthorizedItems:
    def test_different_labels_do_not_suppress_each_other(self):
        r = Replay()
        r.at(0, tick(labels={"phone"}))
        r.at(5_000, tick(labels={"book"}))
        assert [e.label for e in r.log] == ["phone", "book"]

    def test_same_label_suppressed_within_30s(self):
        r = Replay()
        r.at(0, tick(labels={"phone"}))
        assert r.at(5_000, tick(labels={"phone"})) == []
        assert len(r.at(31_000, tick(labels={"phone"}))) == 1
        assert len(r.log) == 2

    def test_substring_match_keeps_detected_label_in_description(self):
        (event,) = classify(tick(labels={"cell phone"}), [], T0, "s1")
        assert event.kind == EventKind.UNAUTHORIZED_ITEM
        assert event.severity == Severity.MAJOR
        assert event.label == "phone"
        assert "cell phone" in event.description
        assert event.metadata["object_type"] == "cell phone"

    def test_match_is_case_insensitive(self):
        (event,) = classify(tick(labels={"Laptop"}), [], T0, "s1")
        assert event.label == "laptop"
        assert "Laptop" in event.description

    def test_unrestricted_objects_ignored(self):
        assert classify(tick(labels={"cup", "person"}), [], T0, "s1") == []

    def test_one_event_per_label_per_tick(self):
        events = classify(tick(labels={"phone", "cell phone", "book"}), [], T0, "s1")
        assert sorted(e.label for e in events) == ["book", "phone"]

    def test_suppression_follows_label_not_wording(self):
        r = Replay()
        r.at(0, tick(labels={"cell phone"}))
        # detector switches wording, still the same restricted item
        assert r.at(2_000, tick(labels={"mobile phone"})) == []


class TestIndependentRules:
    def test_one_tick_can_emit_several_kinds(self):
        events = classify(tick(face_count=0, focus=FocusState.LOST, labels={"tablet"}), [], T0, "s1")
        assert sorted(e.kind.value for e in events) == [
            "candidate_absent", "focus_lost", "unauthorized_item",
        ]

    def test_suppression_is_per_kind(self):
        r = Replay()
        r.at(0, tick(focus=FocusState.LOST))
        r.at(1_000, tick(face_count=0))
        assert r.kinds() == [EventKind.FOCUS_LOST, EventKind.CANDIDATE_ABSENT]

    def test_classify_does_not_touch_log(self):
        log = []
        classify(tick(face_count=0), log, T0, "s1")
        assert log == []


class TestRules:
    def test_custom_windows(self):
        r = Replay(ClassifierRules(focus_lost_window_ms=1_000))
        r.at(0, tick(focus=FocusState.LOST))
        r.at(1_500, tick(focus=FocusState.LOST))
        assert len(r.log) == 2

    def test_restricted_items_normalised(self):
        rules = ClassifierRules(restricted_items=(" Phone", "phone", "Watch "))
        assert rules.restricted_items == ("phone", "watch")

    def test_from_settings(self):
        from proctor_core.config import Settings

        rules = ClassifierRules.from_settings(Settings(CANDIDATE_ABSENT_WINDOW_MS=5_000))
        assert rules.window_ms(EventKind.CANDIDATE_ABSENT) == 5_000
        assert rules.window_ms(EventKind.UNAUTHORIZED_ITEM) == 30_000

    def test_match_restricted_items(self):
        matches = match_restricted_items({"cell phone", "Book"}, ("phone", "book"))
        assert sorted(matches) == [("book", "Book"), ("phone", "cell phone")]

"""
Timeline Construction Tests
===========================

INVARIANTS TESTED:
1. Events ordered by (timestamp, ordinal)
2. Undated statements are left off the timeline
3. Gaps only above the threshold, levelled by duration
4. Event confidence reflects how the date was obtained
"""

from datetime import datetime, timezone

import pytest

from forensic_engine.contracts.base import EventType, SeverityLevel
from forensic_engine.temporal.timeline import TimelineBuilder, TimelineConfig

from tests.fixtures import extract, make_entry, make_statement


@pytest.fixture
def builder():
    return TimelineBuilder()


def dated(text, statement_id, timestamp, ordinal=0):
    return make_statement(text, statement_id, ordinal=ordinal, timestamp=timestamp)


class TestOrdering:

    def test_sorted_by_timestamp(self, builder):
        statements = (
            dated("Later.", "s1", "2023-03-15", ordinal=0),
            dated("Earlier.", "s2", "2023-01-01", ordinal=1),
        )
        events = builder.build_events(statements)
        assert [e.related_statement_ids for e in events] == [("s2",), ("s1",)]

    def test_equal_timestamps_keep_statement_order(self, builder):
        statements = (
            dated("Second.", "s2", "2023-01-01", ordinal=1),
            dated("First.", "s1", "2023-01-01", ordinal=0),
        )
        events = builder.build_events(statements)
        assert [e.ordinal for e in events] == [0, 1]

    def test_undated_statements_are_excluded(self, builder):
        statements = (
            dated("Dated.", "s1", "2023-01-01"),
            make_statement("No date.", "s2", ordinal=1),
            dated("Bad date.", "s3", "32/13/2023", ordinal=2),
        )
        timeline = builder.build(statements)
        assert len(timeline.events) == 1
        assert timeline.gaps == ()

    def test_empty_input(self, builder):
        timeline = builder.build(())
        assert timeline.events == ()
        assert timeline.gaps == ()


class TestGaps:

    def test_medium_gap(self, builder):
        timeline = builder.build((
            dated("Paid.", "s1", "2023-01-01"),
            dated("Not paid.", "s2", "2023-03-15", ordinal=1),
        ))
        assert len(timeline.gaps) == 1
        gap = timeline.gaps[0]
        assert gap.duration_days == 73.0
        assert gap.suspicious_level == SeverityLevel.MEDIUM
        assert gap.start_event.related_statement_ids == ("s1",)
        assert gap.end_event.related_statement_ids == ("s2",)

    @pytest.mark.parametrize("days,expected", [
        (10.0, None),
        (30.0, None),
        (30.5, SeverityLevel.MEDIUM),
        (90.0, SeverityLevel.MEDIUM),
        (100.0, SeverityLevel.HIGH),
        (365.0, SeverityLevel.HIGH),
        (400.0, SeverityLevel.CRITICAL),
    ])
    def test_gap_levels(self, builder, days, expected):
        assert builder.gap_level(days) == expected

    def test_gap_of_exactly_threshold_is_not_reported(self, builder):
        timeline = builder.build((
            dated("A.", "s1", "2023-01-01"),
            dated("B.", "s2", "2023-01-31", ordinal=1),
        ))
        assert timeline.gaps == ()

    def test_gaps_only_between_adjacent_events(self, builder):
        timeline = builder.build((
            dated("A.", "s1", "2020-01-01"),
            dated("B.", "s2", "2020-01-10", ordinal=1),
            dated("C.", "s3", "2021-06-01", ordinal=2),
        ))
        assert len(timeline.gaps) == 1
        assert timeline.gaps[0].suspicious_level == SeverityLevel.CRITICAL
        assert timeline.gaps[0].start_event.related_statement_ids == ("s2",)

    def test_thresholds_come_from_rules(self):
        from forensic_engine.rules import DEFAULT_RULES
        strict = DEFAULT_RULES.derive("test-strict", gap_threshold_days=5.0)
        builder = TimelineBuilder(rules=strict)
        assert builder.gap_level(10.0) == SeverityLevel.MEDIUM


class TestEvents:

    def test_confidence_by_date_source(self, builder):
        statements = extract(
            make_entry("a", "Alice: Paid on 2023-01-01."),
            make_entry("b", "Bob: Paid on 15 March 2023."),
            make_entry("c", "Carol: Paid later.", explicit_timestamp="2023-06-01"),
        )
        confidence = {
            e.description.split(":")[0]: e.confidence
            for e in builder.build_events(statements)
        }
        assert confidence == {"Alice": 1.0, "Bob": 0.8, "Carol": 0.7}

    def test_event_fields(self, builder):
        statement = dated("I paid the invoice.", "s1", "2023-01-01")
        event = builder.build_events((statement,))[0]

        assert event.normalized_timestamp == datetime(2023, 1, 1, tzinfo=timezone.utc)
        assert event.description == "Alice: I paid the invoice."
        assert event.event_type == EventType.PAYMENT
        assert event.raw_date_text == "2023-01-01"
        assert event.event_id.startswith("evt_")

    def test_long_description_is_truncated(self):
        builder = TimelineBuilder(config=TimelineConfig(description_length=20))
        event = builder.build_events((dated("x" * 50, "s1", "2023-01-01"),))[0]
        assert event.description == "Alice: " + "x" * 17 + "..."

    @pytest.mark.parametrize("text,expected", [
        ("The lawyer filed it.", EventType.LEGAL_ACTION),
        ("The deadline passed.", EventType.DEADLINE),
        ("We signed the contract.", EventType.AGREEMENT),
        ("We met for lunch.", EventType.MEETING),
        ("Please reply.", EventType.REQUEST),
        ("I sent an email.", EventType.COMMUNICATION),
        ("It rained.", EventType.STATEMENT),
    ])
    def test_event_type(self, builder, text, expected):
        assert builder.classify_event(text) == expected

    def test_timestamps_by_statement(self, builder):
        timeline = builder.build((
            dated("A.", "s1", "2023-01-01"),
            make_statement("B.", "s2", ordinal=1),
        ))
        assert timeline.timestamps_by_statement() == {
            "s1": datetime(2023, 1, 1, tzinfo=timezone.utc)
        }

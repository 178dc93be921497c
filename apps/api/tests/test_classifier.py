from __future__ import annotations

from datetime import datetime

import pytest

from nestlog.classifier import (
    BUCKET_DIRTY,
    BUCKET_MILK,
    BUCKET_SOLID,
    BUCKET_WELLNESS,
    BUCKET_WET,
    MixedSubjectError,
    classify,
    is_health_log_entry,
    matches_filter,
    normalize_event,
    normalize_events,
    parse_instant,
    resolve_details,
)
from nestlog.schemas import (
    ClosedInterval,
    DiaperDetails,
    Event,
    EventCategory,
    FeedDetails,
    FeedMethod,
    FilterCategory,
    MeasurementDetails,
    MeasurementType,
    OpenInterval,
    unit_for_measurement,
)


def make_event(category, start, end=None, details=None, event_id="evt", subject_id="baby-1", notes=None) -> Event:
    return Event(
        id=event_id,
        subject_id=subject_id,
        category=category,
        start_time=start,
        end_time=end,
        details=details or {},
        notes=notes,
    )


@pytest.mark.parametrize(
    "status,bucket",
    [
        ("dirty", BUCKET_DIRTY),
        ("mixed", BUCKET_DIRTY),
        ("wet", BUCKET_WET),
        (None, BUCKET_WET),
        ("pee", BUCKET_WET),
    ],
)
def test_diaper_status_buckets(status, bucket) -> None:
    details = {"status": status} if status is not None else {}
    result = classify(make_event(EventCategory.DIAPER, "2024-01-01T08:00:00", details=details))
    assert result.bucket == bucket
    assert result.is_dirty_diaper is (bucket == BUCKET_DIRTY)


def test_feed_without_method_defaults_to_bottle() -> None:
    result = classify(make_event(EventCategory.FEED, "2024-01-01T08:00:00", details={"amountMl": 120}))
    assert result.bucket == BUCKET_MILK
    assert result.feed_method == FeedMethod.BOTTLE
    assert result.volume_ml == 120
    assert result.is_milk


def test_breast_feed_counts_as_milk_without_volume() -> None:
    result = classify(make_event(EventCategory.FEED, "2024-01-01T08:00:00", details={"method": "breast", "side": "left"}))
    assert result.bucket == BUCKET_MILK
    assert result.feed_method == FeedMethod.BREAST
    assert result.volume_ml == 0


def test_solid_feed_bucket() -> None:
    result = classify(make_event(EventCategory.FEED, "2024-01-01T12:00:00", details={"method": "solid", "item": "Banana"}))
    assert result.bucket == BUCKET_SOLID
    assert result.is_solid
    assert result.volume_ml == 0


def test_legacy_amount_key_is_read() -> None:
    result = classify(make_event(EventCategory.FEED, "2024-01-01T08:00:00", details={"method": "bottle", "amountml": 90}))
    assert result.volume_ml == 90


def test_invalid_feed_method_falls_back_to_bottle() -> None:
    event = make_event(EventCategory.FEED, "2024-01-01T08:00:00", details={"method": "spoon", "amountMl": 60})
    normalized = normalize_event(event)
    assert isinstance(normalized.details, FeedDetails)
    assert normalized.classification.volume_ml == 60
    assert normalized.classification.bucket == BUCKET_MILK
    assert normalized.classification.feed_method == FeedMethod.BOTTLE


def test_closed_sleep_minutes_round_to_nearest() -> None:
    event = make_event(EventCategory.SLEEP, "2024-01-01T09:00:00", end="2024-01-01T10:30:31")
    normalized = normalize_event(event)
    assert isinstance(normalized.interval, ClosedInterval)
    assert normalized.classification.sleep_minutes == 91


def test_open_sleep_has_no_duration() -> None:
    normalized = normalize_event(make_event(EventCategory.SLEEP, "2024-01-01T21:00:00"))
    assert isinstance(normalized.interval, OpenInterval)
    assert normalized.is_open_sleep
    assert normalized.classification.sleep_minutes is None


def test_sleep_ending_before_start_is_zero_minutes() -> None:
    normalized = normalize_event(make_event(EventCategory.SLEEP, "2024-01-01T09:00:00", end="2024-01-01T08:00:00"))
    assert normalized.classification.sleep_minutes == 0


def test_non_sleep_end_time_does_not_make_an_interval() -> None:
    normalized = normalize_event(make_event(EventCategory.FEED, "2024-01-01T09:00:00", end="2024-01-01T10:00:00"))
    assert normalized.interval is None


def test_wellness_bucket_for_other_categories() -> None:
    for category in (EventCategory.SYMPTOM, EventCategory.MOVEMENT, EventCategory.MEASUREMENT, EventCategory.NOTE):
        assert classify(make_event(category, "2024-01-01T09:00:00")).bucket == BUCKET_WELLNESS


def test_malformed_timestamps_are_dropped() -> None:
    assert normalize_event(make_event(EventCategory.FEED, "not-a-date")) is None
    assert normalize_event(make_event(EventCategory.SLEEP, "2024-01-01T09:00:00", end="soon")) is None
    assert classify(make_event(EventCategory.FEED, "")) is None


def test_parse_instant_accepts_zulu_suffix() -> None:
    parsed = parse_instant("2024-01-01T09:00:00Z")
    assert parsed is not None
    assert parsed.utcoffset().total_seconds() == 0
    assert parse_instant(datetime(2024, 1, 1, 9)) == datetime(2024, 1, 1, 9)


def test_measurement_unit_is_stamped_from_type() -> None:
    details = resolve_details(EventCategory.MEASUREMENT, {"type": "temperature", "value": 99.1})
    assert isinstance(details, MeasurementDetails)
    assert details.unit == "°F"


def test_matches_filter_wellness_union() -> None:
    assert matches_filter(EventCategory.NOTE, FilterCategory.WELLNESS)
    assert matches_filter(EventCategory.MEASUREMENT, FilterCategory.WELLNESS)
    assert not matches_filter(EventCategory.FEED, FilterCategory.WELLNESS)
    assert matches_filter(EventCategory.SLEEP, FilterCategory.SLEEP)
    assert not matches_filter(EventCategory.SLEEP, FilterCategory.DIAPER)
    assert matches_filter(EventCategory.DIAPER, None)


def test_health_log_eligibility() -> None:
    symptom = normalize_event(make_event(EventCategory.SYMPTOM, "2024-01-01T09:00:00", details={"description": "Rash"}))
    temp = normalize_event(
        make_event(EventCategory.MEASUREMENT, "2024-01-01T09:00:00", details={"type": "temperature", "value": 100.2})
    )
    weight = normalize_event(
        make_event(EventCategory.MEASUREMENT, "2024-01-01T09:00:00", details={"type": "weight", "value": 12})
    )
    assert is_health_log_entry(symptom)
    assert is_health_log_entry(temp)
    assert not is_health_log_entry(weight)


def test_mixed_subjects_in_one_snapshot_raise() -> None:
    events = [
        make_event(EventCategory.FEED, "2024-01-01T09:00:00", event_id="a", subject_id="baby-1"),
        make_event(EventCategory.FEED, "2024-01-01T10:00:00", event_id="b", subject_id="baby-2"),
    ]
    with pytest.raises(MixedSubjectError):
        normalize_events(events)
    scoped = normalize_events(events, subject_id="baby-2")
    assert [event.id for event in scoped] == ["b"]


def test_unit_table_pairs_type_and_unit() -> None:
    assert unit_for_measurement("height") == "in"
    assert unit_for_measurement(MeasurementType.TEMPERATURE) == "°F"
    assert unit_for_measurement("shoe-size") == "lb"


def test_bad_side_field_keeps_dirty_status() -> None:
    normalized = normalize_event(
        make_event(EventCategory.DIAPER, "2024-01-01T08:00:00", details={"status": "dirty", "color": 5})
    )
    assert isinstance(normalized.details, DiaperDetails)
    assert normalized.details.color is None
    assert normalized.classification.bucket == BUCKET_DIRTY
    assert normalized.classification.is_dirty_diaper is True


def test_bad_side_value_keeps_breast_method() -> None:
    result = classify(make_event(EventCategory.FEED, "2024-01-01T08:00:00", details={"method": "breast", "side": "Left"}))
    assert result.bucket == BUCKET_MILK
    assert result.feed_method == FeedMethod.BREAST


def test_text_amount_keeps_solid_method() -> None:
    result = classify(
        make_event(EventCategory.FEED, "2024-01-01T12:00:00", details={"method": "solid", "amountMl": "a spoonful"})
    )
    assert result.bucket == BUCKET_SOLID
    assert result.volume_ml == 0


def test_non_numeric_temperature_stays_in_health_log() -> None:
    normalized = normalize_event(
        make_event(EventCategory.MEASUREMENT, "2024-01-01T09:00:00", details={"type": "temperature", "value": "high"})
    )
    assert isinstance(normalized.details, MeasurementDetails)
    assert normalized.details.type == MeasurementType.TEMPERATURE
    assert normalized.details.value is None
    assert normalized.details.unit == "°F"
    assert is_health_log_entry(normalized)

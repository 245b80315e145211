from __future__ import annotations

from datetime import timedelta

import pytest

from plaza_events.config import FilterConfig
from plaza_events.engine.classifier import (
    REASON_KEPT,
    REASON_MULTI_VENUE,
    REASON_NO_LOCATION,
    REASON_OUTSIDE_DISTRITO,
    REASON_OUTSIDE_RADIUS,
    REASON_TOO_OLD,
    InclusionClassifier,
)

INSIDE = {"latitude": 40.4234, "longitude": -3.7122}
OUTSIDE = {"latitude": 40.41694, "longitude": -3.70361}


@pytest.fixture
def classifier() -> InclusionClassifier:
    return InclusionClassifier(FilterConfig())


def _at(now, days: float, hours: float = 2):
    start = now - timedelta(days=days)
    return {"start_time": start, "end_time": start + timedelta(hours=hours)}


# -- cultural ----------------------------------------------------------
def test_matching_distrito_wins_over_gps(classifier, make_event, wednesday_noon) -> None:
    event = make_event(district="CENTRO", **OUTSIDE, **_at(wednesday_noon, 1))
    decision = classifier.classify_cultural(event, wednesday_noon)
    assert decision.kept
    assert decision.reason == REASON_KEPT
    assert decision.has_distrito and decision.distrito_matched
    assert not decision.within_radius


def test_other_distrito_is_rejected_even_inside_radius(classifier, make_event, wednesday_noon) -> None:
    event = make_event(district="RETIRO", **INSIDE, **_at(wednesday_noon, 1))
    decision = classifier.classify_cultural(event, wednesday_noon)
    assert not decision.kept
    assert decision.reason == REASON_OUTSIDE_DISTRITO
    assert decision.within_radius


def test_no_distrito_outside_radius_is_rejected(classifier, make_event, wednesday_noon) -> None:
    event = make_event(**OUTSIDE, **_at(wednesday_noon, 1))
    decision = classifier.classify_cultural(event, wednesday_noon)
    assert decision.reason == REASON_OUTSIDE_RADIUS
    assert decision.gps_distance_km == pytest.approx(1.02, abs=0.05)


def test_no_location_is_kept_and_text_only_recorded(classifier, make_event, wednesday_noon) -> None:
    event = make_event(venue_name="Templo de Debod", **_at(wednesday_noon, 1))
    decision = classifier.classify_cultural(event, wednesday_noon)
    assert decision.kept
    assert decision.reason == REASON_KEPT
    assert decision.text_matched
    assert not decision.has_coordinates
    assert decision.gps_distance_km is None


def test_age_overrides_location_keep(classifier, make_event, wednesday_noon) -> None:
    event = make_event(**INSIDE, **_at(wednesday_noon, 30))
    decision = classifier.classify_cultural(event, wednesday_noon)
    assert decision.within_radius
    assert decision.too_old
    assert not decision.kept
    assert decision.reason == REASON_TOO_OLD
    assert decision.days_old == 30


def test_distrito_rejection_takes_priority_over_age(classifier, make_event, wednesday_noon) -> None:
    event = make_event(district="RETIRO", **_at(wednesday_noon, 30))
    assert classifier.classify_cultural(event, wednesday_noon).reason == REASON_OUTSIDE_DISTRITO


def test_future_event_has_negative_age(classifier, make_event, wednesday_noon) -> None:
    event = make_event(**INSIDE, **_at(wednesday_noon, -3))
    decision = classifier.classify_cultural(event, wednesday_noon)
    assert decision.days_old == -3
    assert decision.kept


# -- city --------------------------------------------------------------
def test_city_outside_radius_with_text_is_multi_venue(classifier, make_event, wednesday_noon) -> None:
    event = make_event(kind="city", title="Festival en Plaza de España", **OUTSIDE, **_at(wednesday_noon, 1))
    decision = classifier.classify_city(event, wednesday_noon)
    assert decision.kept
    assert "multi-venue" in decision.reason
    assert decision.multi_venue_kept


def test_city_inside_radius_prefers_geo_over_text(classifier, make_event, wednesday_noon) -> None:
    event = make_event(kind="city", title="Festival en Plaza de España", **INSIDE, **_at(wednesday_noon, 1))
    decision = classifier.classify_city(event, wednesday_noon)
    assert decision.kept
    assert decision.reason == REASON_KEPT
    assert decision.text_matched
    assert not decision.multi_venue_kept


def test_city_without_coordinates(classifier, make_event, wednesday_noon) -> None:
    with_text = make_event(kind="city", address="Pza. de España s/n", **_at(wednesday_noon, 1))
    without_text = make_event(kind="city", address="Gran Vía 1", **_at(wednesday_noon, 1))

    kept = classifier.classify_city(with_text, wednesday_noon)
    dropped = classifier.classify_city(without_text, wednesday_noon)

    assert kept.reason == REASON_MULTI_VENUE
    assert kept.multi_venue_kept
    assert dropped.reason == REASON_NO_LOCATION
    assert not dropped.kept


def test_city_outside_radius_without_text(classifier, make_event, wednesday_noon) -> None:
    event = make_event(kind="city", **OUTSIDE, **_at(wednesday_noon, 1))
    assert classifier.classify_city(event, wednesday_noon).reason == REASON_OUTSIDE_RADIUS


def test_city_age_uses_end_date(classifier, make_event, wednesday_noon) -> None:
    long_running = make_event(kind="city", **INSIDE, **_at(wednesday_noon, 40, hours=39 * 24))
    finished = make_event(kind="city", **INSIDE, **_at(wednesday_noon, 40, hours=20 * 24))

    assert classifier.classify_city(long_running, wednesday_noon).kept
    decision = classifier.classify_city(finished, wednesday_noon)
    assert decision.reason == REASON_TOO_OLD
    assert decision.days_old == 20


def test_city_multi_venue_can_still_be_too_old(classifier, make_event, wednesday_noon) -> None:
    event = make_event(kind="city", title="Plaza de España", **_at(wednesday_noon, 30))
    assert classifier.classify_city(event, wednesday_noon).reason == REASON_TOO_OLD


# -- apply / summarize --------------------------------------------------
def test_apply_keeps_decisions_on_rejected_records(classifier, make_event, wednesday_noon) -> None:
    events = [
        make_event(id="a", district="CENTRO", **_at(wednesday_noon, 1)),
        make_event(id="b", district="RETIRO", **_at(wednesday_noon, 1)),
        make_event(id="c", **INSIDE, **_at(wednesday_noon, 1)),
        make_event(id="d", kind="city", title="Plaza de España", **_at(wednesday_noon, 1)),
        make_event(id="e", kind="city", **OUTSIDE, **_at(wednesday_noon, 1)),
    ]

    kept = classifier.apply(events, wednesday_noon)

    assert [event.id for event in kept] == ["a", "c", "d"]
    assert all(event.decision is not None for event in events)
    summary = classifier.summarize(events)
    assert (summary.total, summary.kept, summary.filtered) == (5, 3, 2)
    assert summary.reasons == {
        REASON_KEPT: 2,
        REASON_OUTSIDE_DISTRITO: 1,
        REASON_MULTI_VENUE: 1,
        REASON_OUTSIDE_RADIUS: 1,
    }
    assert summary.keep_methods == {"distrito": 1, "radius": 1, "multi_venue": 1}

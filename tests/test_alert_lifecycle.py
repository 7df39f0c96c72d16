"""Tests for the alert lifecycle state machine."""

from sensorwatch.monitoring.application.alert_lifecycle import AlertLifecycleManager
from sensorwatch.monitoring.domain.models import (
    Alert,
    AlertEventType,
    DeviceAlertState,
    Rule,
    Thresholds,
)

from tests.factories import at, reading

THRESHOLDS = Thresholds(temp_min=2, temp_max=8, rh_max=70)


def make_manager(state: DeviceAlertState | None = None, thresholds: Thresholds = THRESHOLDS):
    return AlertLifecycleManager(state or DeviceAlertState(device_id="dev-1"), thresholds)


def event_types(transitions):
    return [(t.rule, t.event.event_type) for t in transitions]


def test_breach_opens_alert():
    manager = make_manager()

    transitions = manager.apply([reading(0, temp_c=9.1)])

    assert event_types(transitions) == [(Rule.TEMP, AlertEventType.BREACH)]
    alert = transitions[0].alert
    assert alert.active
    assert alert.breach_value == 9.1
    assert alert.created_at == at(0)
    assert manager.is_active(Rule.TEMP)


def test_recurring_breach_keeps_single_alert():
    manager = make_manager()

    transitions = manager.apply([reading(0, temp_c=9), reading(5, temp_c=11), reading(10, temp_c=1)])

    assert event_types(transitions) == [(Rule.TEMP, AlertEventType.BREACH)]
    assert transitions[0].alert.breach_value == 9
    assert len(manager.state.active) == 1


def test_recovery_closes_alert():
    manager = make_manager()

    transitions = manager.apply([reading(0, temp_c=9), reading(5, temp_c=5)])

    assert event_types(transitions) == [
        (Rule.TEMP, AlertEventType.BREACH),
        (Rule.TEMP, AlertEventType.RECOVERY),
    ]
    alert = transitions[1].alert
    assert alert is transitions[0].alert
    assert not alert.active
    assert alert.recovery_value == 5
    assert alert.recovered_at == at(5)
    assert not manager.is_active(Rule.TEMP)


def test_in_range_reading_without_alert_does_nothing():
    manager = make_manager()

    assert manager.apply([reading(0, temp_c=5, rh=50)]) == []


def test_readings_are_applied_in_timestamp_order():
    manager = make_manager()

    transitions = manager.apply([reading(10, temp_c=5), reading(0, temp_c=9)])

    assert event_types(transitions) == [
        (Rule.TEMP, AlertEventType.BREACH),
        (Rule.TEMP, AlertEventType.RECOVERY),
    ]
    assert manager.watermark == at(10)


def test_oscillation_within_batch_yields_paired_events():
    manager = make_manager()

    transitions = manager.apply(
        [reading(0, temp_c=9), reading(5, temp_c=5), reading(10, temp_c=10), reading(15, temp_c=4)]
    )

    assert [t.event.event_type for t in transitions] == [
        AlertEventType.BREACH,
        AlertEventType.RECOVERY,
        AlertEventType.BREACH,
        AlertEventType.RECOVERY,
    ]
    first, second = transitions[0].alert, transitions[2].alert
    assert first is not second
    assert (first.breach_value, first.recovery_value) == (9, 5)
    assert (second.breach_value, second.recovery_value) == (10, 4)


def test_missing_value_leaves_rule_untouched():
    manager = make_manager()
    manager.apply([reading(0, temp_c=9, rh=80)])

    transitions = manager.apply([reading(5, rh=50)])

    assert event_types(transitions) == [(Rule.RH, AlertEventType.RECOVERY)]
    assert manager.is_active(Rule.TEMP)


def test_missing_value_never_opens_alert():
    manager = make_manager()

    assert manager.apply([reading(0, temp_c=None, rh=None)]) == []
    assert manager.evaluated == 1


def test_rules_are_independent():
    manager = make_manager()

    transitions = manager.apply([reading(0, temp_c=9, rh=80), reading(5, temp_c=5, rh=85)])

    assert event_types(transitions) == [
        (Rule.TEMP, AlertEventType.BREACH),
        (Rule.RH, AlertEventType.BREACH),
        (Rule.TEMP, AlertEventType.RECOVERY),
    ]
    assert manager.is_active(Rule.RH)


def test_reapplying_processed_readings_is_a_no_op():
    manager = make_manager()
    batch = [reading(0, temp_c=9), reading(5, temp_c=9.5)]
    manager.apply(batch)

    assert manager.apply(batch) == []
    assert manager.stale == 2
    assert len(manager.state.active) == 1


def test_late_reading_is_ignored():
    manager = make_manager()
    manager.apply([reading(10, temp_c=5)])

    transitions = manager.apply([reading(5, temp_c=12)])

    assert transitions == []
    assert manager.stale == 1
    assert not manager.is_active(Rule.TEMP)


def test_existing_active_alert_is_continued():
    existing = Alert(device_id="dev-1", rule=Rule.TEMP, breach_value=12, created_at=at(-30), id=7)
    state = DeviceAlertState(device_id="dev-1", active={Rule.TEMP: existing}, last_evaluated_at=at(-30))
    manager = make_manager(state)

    transitions = manager.apply([reading(0, temp_c=13), reading(5, temp_c=6)])

    assert len(transitions) == 1
    assert transitions[0].event.event_type == AlertEventType.RECOVERY
    assert transitions[0].event.alert_id == 7
    assert existing.recovery_value == 6


def test_inverted_range_never_breaches():
    manager = make_manager(thresholds=Thresholds(temp_min=20, temp_max=10))

    assert manager.apply([reading(0, temp_c=-50), reading(5, temp_c=99)]) == []

"""Tests for liveness evaluation."""

from datetime import timedelta

import pytest

from sensorwatch.monitoring.application.liveness import clamp_interval, is_offline, offline_deadline

from tests.factories import NOW


def test_never_seen_device_is_offline():
    assert is_offline(None, 15, NOW)


def test_offline_boundary_at_two_intervals():
    last_seen = NOW - timedelta(minutes=30)
    assert not is_offline(last_seen, 15, NOW)

    last_seen = NOW - timedelta(minutes=30, seconds=1)
    assert is_offline(last_seen, 15, NOW)


def test_recent_report_is_online():
    assert not is_offline(NOW - timedelta(minutes=1), 15, NOW)


def test_future_last_seen_is_online():
    assert not is_offline(NOW + timedelta(minutes=10), 15, NOW)


@pytest.mark.parametrize(
    "minutes, expected",
    [(None, 15), (0, 5), (1, 5), (5, 5), (60, 60), (120, 120), (600, 120)],
)
def test_clamp_interval(minutes, expected):
    assert clamp_interval(minutes) == expected


def test_interval_is_clamped_before_deadline():
    # 1 minute is treated as 5, so the deadline is 10 minutes out
    assert offline_deadline(NOW, 1) == NOW + timedelta(minutes=10)
    assert not is_offline(NOW - timedelta(minutes=9), 1, NOW)
    # 1000 minutes is treated as 120
    assert is_offline(NOW - timedelta(minutes=241), 1000, NOW)


def test_missing_interval_uses_default():
    assert not is_offline(NOW - timedelta(minutes=30), None, NOW)
    assert is_offline(NOW - timedelta(minutes=31), None, NOW)


def test_grace_factor_is_configurable():
    last_seen = NOW - timedelta(minutes=40)
    assert is_offline(last_seen, 15, NOW, grace_factor=2.0)
    assert not is_offline(last_seen, 15, NOW, grace_factor=3.0)


def test_naive_timestamps_are_taken_as_utc():
    naive_last_seen = (NOW - timedelta(minutes=10)).replace(tzinfo=None)
    assert not is_offline(naive_last_seen, 15, NOW)

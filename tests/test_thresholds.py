"""Tests for threshold evaluation."""

import math

import pytest

from sensorwatch.monitoring.application.thresholds import breach_direction, evaluate, find_breaches
from sensorwatch.monitoring.domain.models import BreachDirection, Reading, Rule, Thresholds

from tests.factories import NOW


@pytest.mark.parametrize(
    "value, expected",
    [
        (5, BreachDirection.LOW),
        (25, BreachDirection.HIGH),
        (15, BreachDirection.NONE),
        (10, BreachDirection.NONE),
        (20, BreachDirection.NONE),
    ],
)
def test_breach_direction_against_range(value, expected):
    assert breach_direction(value, 10, 20) == expected


def test_missing_or_non_finite_value_is_never_a_breach():
    assert breach_direction(None, 10, 20) == BreachDirection.NONE
    assert breach_direction(math.nan, 10, 20) == BreachDirection.NONE
    assert breach_direction(math.inf, 10, 20) == BreachDirection.NONE


def test_open_ended_ranges():
    assert breach_direction(-40, None, 20) == BreachDirection.NONE
    assert breach_direction(21, None, 20) == BreachDirection.HIGH
    assert breach_direction(9, 10, None) == BreachDirection.LOW
    assert breach_direction(1000, None, None) == BreachDirection.NONE


def test_inverted_range_disables_rule():
    assert breach_direction(5, 20, 10) == BreachDirection.NONE
    assert breach_direction(25, 20, 10) == BreachDirection.NONE
    assert breach_direction(15, 20, 10) == BreachDirection.NONE


def test_rules_are_evaluated_independently():
    thresholds = Thresholds(temp_min=2, temp_max=8, rh_min=30, rh_max=60)

    result = evaluate(Reading(ts=NOW, temp_c=9.5, rh=45), thresholds)

    assert result == {Rule.TEMP: BreachDirection.HIGH, Rule.RH: BreachDirection.NONE}


def test_evaluate_without_humidity_value():
    thresholds = Thresholds(rh_min=30, rh_max=60)

    assert evaluate(Reading(ts=NOW, temp_c=20), thresholds)[Rule.RH] == BreachDirection.NONE


def test_find_breaches_reports_violated_bound():
    thresholds = Thresholds(temp_min=2, temp_max=8, rh_min=30, rh_max=60)

    breaches = find_breaches(Reading(ts=NOW, temp_c=0.5, rh=72), thresholds)

    by_rule = {breach.rule: breach for breach in breaches}
    assert by_rule[Rule.TEMP].direction == BreachDirection.LOW
    assert by_rule[Rule.TEMP].bound == 2
    assert by_rule[Rule.TEMP].magnitude == pytest.approx(1.5)
    assert by_rule[Rule.RH].direction == BreachDirection.HIGH
    assert by_rule[Rule.RH].magnitude == pytest.approx(12)


def test_no_thresholds_no_breaches():
    assert Thresholds().is_empty()
    assert find_breaches(Reading(ts=NOW, temp_c=99, rh=100), Thresholds()) == []

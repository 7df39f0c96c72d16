"""Threshold evaluation: classify reading values against per-device bounds."""

from sensorwatch.monitoring.domain.models import (
    Breach,
    BreachDirection,
    Reading,
    Rule,
    Thresholds,
    finite_or_none,
)


def breach_direction(
    value: float | None, minimum: float | None = None, maximum: float | None = None
) -> BreachDirection:
    """
    Classify a value against an optional ``[minimum, maximum]`` range.

    Missing or non-finite values cannot be evaluated and yield ``NONE``. An
    inverted range (``minimum > maximum``) disables the rule.

    Args:
        value: Measured value in canonical units
        minimum: Lower bound, None for no lower limit
        maximum: Upper bound, None for no upper limit

    Returns:
        ``LOW``, ``HIGH`` or ``NONE``
    """
    value = finite_or_none(value)
    minimum = finite_or_none(minimum)
    maximum = finite_or_none(maximum)

    if value is None:
        return BreachDirection.NONE
    if minimum is not None and maximum is not None and minimum > maximum:
        return BreachDirection.NONE
    if minimum is not None and value < minimum:
        return BreachDirection.LOW
    if maximum is not None and value > maximum:
        return BreachDirection.HIGH
    return BreachDirection.NONE


def evaluate(reading: Reading, thresholds: Thresholds) -> dict[Rule, BreachDirection]:
    """Classify every rule of a reading independently."""
    return {
        rule: breach_direction(reading.value_for(rule), *thresholds.bounds(rule))
        for rule in Rule
    }


def find_breaches(reading: Reading, thresholds: Thresholds) -> list[Breach]:
    """Return the breaches of a reading with the bound each one violates."""
    breaches = []
    for rule, direction in evaluate(reading, thresholds).items():
        if direction == BreachDirection.NONE:
            continue
        minimum, maximum = thresholds.bounds(rule)
        bound = minimum if direction == BreachDirection.LOW else maximum
        breaches.append(Breach(rule=rule, direction=direction, value=reading.value_for(rule), bound=bound))
    return breaches

"""Unit conversions and reporting interval options.

The engine works in °C and %RH; conversions only happen at the presentation
boundary.
"""

DEFAULT_INTERVAL_MIN = 15
MIN_INTERVAL_MIN = 5
MAX_INTERVAL_MIN = 120
INTERVAL_STEP_MIN = 5

# 5, 10, ..., 120
INTERVAL_OPTIONS: tuple[int, ...] = tuple(range(MIN_INTERVAL_MIN, MAX_INTERVAL_MIN + 1, INTERVAL_STEP_MIN))


def c_to_f(celsius: float) -> float:
    """Convert °C to °F."""
    return celsius * 9 / 5 + 32


def f_to_c(fahrenheit: float) -> float:
    """Convert °F to °C."""
    return (fahrenheit - 32) * 5 / 9


def snap_interval(
    minutes: float | None,
    minimum: int = MIN_INTERVAL_MIN,
    maximum: int = MAX_INTERVAL_MIN,
    step: int = INTERVAL_STEP_MIN,
    default: int = DEFAULT_INTERVAL_MIN,
) -> int:
    """
    Clamp an interval into ``[minimum, maximum]`` and round it to the nearest step.

    Args:
        minutes: Requested interval, None for the default
        minimum: Smallest allowed interval
        maximum: Largest allowed interval
        step: Option granularity
        default: Interval used when ``minutes`` is None

    Returns:
        One of the persisted interval options
    """
    if minutes is None:
        return default
    clamped = max(minimum, min(maximum, float(minutes)))
    snapped = minimum + round((clamped - minimum) / step) * step
    return int(min(maximum, snapped))

"""Conversions between probabilities, correspondence costs and 16-bit cell values."""

from __future__ import annotations

from functools import lru_cache

import numpy as np

from .mathutil import clamp, round_to_int

VALUE_COUNT = 32768
UPDATE_MARKER = 1 << 15
UNKNOWN_PROBABILITY_VALUE = 0
UNKNOWN_CORRESPONDENCE_VALUE = UNKNOWN_PROBABILITY_VALUE

# Bounds are single-precision quantities; keep them bit-identical to float32.
_F32_ONE = np.float32(1.0)
MIN_PROBABILITY = float(np.float32(0.1))
MAX_PROBABILITY = float(_F32_ONE - np.float32(MIN_PROBABILITY))
MIN_CORRESPONDENCE_COST = float(_F32_ONE - np.float32(MAX_PROBABILITY))
MAX_CORRESPONDENCE_COST = float(_F32_ONE - np.float32(MIN_PROBABILITY))

_VALUE_SPAN = 32766.0


def bounded_float_to_value(float_value: float, lower_bound: float, upper_bound: float) -> int:
    """Map a float in [lower_bound, upper_bound] to an integer in [1, 32767]."""
    clamped = clamp(float_value, lower_bound, upper_bound)
    return round_to_int((clamped - lower_bound) * (_VALUE_SPAN / (upper_bound - lower_bound))) + 1


def _round_half_away(values: np.ndarray) -> np.ndarray:
    floor = np.floor(values)
    frac = values - floor
    up = (frac > 0.5) | ((frac == 0.5) & (values >= 0))
    return (floor + up).astype(np.int64)


def _bounded_floats_to_values(values: np.ndarray, lower_bound: float, upper_bound: float) -> np.ndarray:
    clamped = np.clip(values, lower_bound, upper_bound)
    return _round_half_away((clamped - lower_bound) * (_VALUE_SPAN / (upper_bound - lower_bound))) + 1


def odds(probability):
    """Odds p / (1 - p) of a probability."""
    return probability / (1.0 - probability)


def probability_from_odds(odds_value):
    """Probability corresponding to the given odds."""
    return odds_value / (odds_value + 1.0)


def probability_to_correspondence_cost(probability):
    """Correspondence cost (probability of free space) of an occupancy probability."""
    return 1.0 - probability


def correspondence_cost_to_probability(correspondence_cost):
    """Occupancy probability of a correspondence cost."""
    return 1.0 - correspondence_cost


def clamp_probability(probability: float) -> float:
    """Clamp into [MIN_PROBABILITY, MAX_PROBABILITY]."""
    return clamp(probability, MIN_PROBABILITY, MAX_PROBABILITY)


def clamp_correspondence_cost(correspondence_cost: float) -> float:
    """Clamp into [MIN_CORRESPONDENCE_COST, MAX_CORRESPONDENCE_COST]."""
    return clamp(correspondence_cost, MIN_CORRESPONDENCE_COST, MAX_CORRESPONDENCE_COST)


def correspondence_cost_to_value(correspondence_cost: float) -> int:
    """Convert a correspondence cost to a value in [1, 32767]."""
    return bounded_float_to_value(correspondence_cost, MIN_CORRESPONDENCE_COST, MAX_CORRESPONDENCE_COST)


def probability_to_value(probability: float) -> int:
    """Convert a probability to a value in [1, 32767]."""
    return bounded_float_to_value(probability, MIN_PROBABILITY, MAX_PROBABILITY)


def _precompute_value_to_bounded_float(
    unknown_value: int, unknown_result: float, lower_bound: float, upper_bound: float
) -> np.ndarray:
    values = np.arange(VALUE_COUNT, dtype=np.float64)
    scale = (upper_bound - lower_bound) / (VALUE_COUNT - 2.0)
    single = values * scale + (lower_bound - scale)
    single[unknown_value] = unknown_result
    # Repeated twice so values with and without the update marker convert alike.
    table = np.tile(single, 2).astype(np.float32)
    table.flags.writeable = False
    return table


@lru_cache(maxsize=None)
def _value_to_probability_table() -> np.ndarray:
    return _precompute_value_to_bounded_float(
        UNKNOWN_PROBABILITY_VALUE, MIN_PROBABILITY, MIN_PROBABILITY, MAX_PROBABILITY
    )


@lru_cache(maxsize=None)
def _value_to_correspondence_cost_table() -> np.ndarray:
    return _precompute_value_to_bounded_float(
        UNKNOWN_CORRESPONDENCE_VALUE,
        MAX_CORRESPONDENCE_COST,
        MIN_CORRESPONDENCE_COST,
        MAX_CORRESPONDENCE_COST,
    )


def _check_value(value: int) -> int:
    if not 0 <= value < 2 * VALUE_COUNT:
        raise IndexError(f"cell value {value} outside [0, {2 * VALUE_COUNT - 1}]")
    return value


def value_to_probability(value: int) -> float:
    """Probability of a cell value, with or without the update marker."""
    return float(_value_to_probability_table()[_check_value(value)])


def value_to_correspondence_cost(value: int) -> float:
    """Correspondence cost of a cell value, with or without the update marker."""
    return float(_value_to_correspondence_cost_table()[_check_value(value)])


def probability_value_to_correspondence_cost_value(probability_value: int) -> int:
    """Convert a probability cell value to a correspondence cost cell value."""
    if probability_value == UNKNOWN_PROBABILITY_VALUE:
        return UNKNOWN_CORRESPONDENCE_VALUE
    update_carry = probability_value > UPDATE_MARKER
    if update_carry:
        probability_value -= UPDATE_MARKER
    result = correspondence_cost_to_value(
        probability_to_correspondence_cost(value_to_probability(probability_value))
    )
    return result + UPDATE_MARKER if update_carry else result


def correspondence_cost_value_to_probability_value(correspondence_cost_value: int) -> int:
    """Convert a correspondence cost cell value to a probability cell value."""
    if correspondence_cost_value == UNKNOWN_CORRESPONDENCE_VALUE:
        return UNKNOWN_PROBABILITY_VALUE
    update_carry = correspondence_cost_value > UPDATE_MARKER
    if update_carry:
        correspondence_cost_value -= UPDATE_MARKER
    result = probability_to_value(
        correspondence_cost_to_probability(value_to_correspondence_cost(correspondence_cost_value))
    )
    return result + UPDATE_MARKER if update_carry else result


def compute_lookup_table_to_apply_odds(odds_value: float) -> np.ndarray:
    """Table mapping a probability cell value to its value after an odds update."""
    first = probability_to_value(probability_from_odds(odds_value)) + UPDATE_MARKER
    probabilities = _value_to_probability_table()[1:VALUE_COUNT].astype(np.float64)
    updated = probability_from_odds(odds_value * odds(probabilities))
    rest = _bounded_floats_to_values(updated, MIN_PROBABILITY, MAX_PROBABILITY) + UPDATE_MARKER
    return np.concatenate(([first], rest)).astype(np.uint16)


def compute_lookup_table_to_apply_correspondence_cost_odds(odds_value: float) -> np.ndarray:
    """Table mapping a correspondence cost cell value to its value after an odds update."""
    first = (
        correspondence_cost_to_value(probability_to_correspondence_cost(probability_from_odds(odds_value)))
        + UPDATE_MARKER
    )
    costs = _value_to_correspondence_cost_table()[1:VALUE_COUNT].astype(np.float64)
    updated_probability = probability_from_odds(odds_value * odds(correspondence_cost_to_probability(costs)))
    updated_cost = probability_to_correspondence_cost(updated_probability)
    rest = (
        _bounded_floats_to_values(updated_cost, MIN_CORRESPONDENCE_COST, MAX_CORRESPONDENCE_COST)
        + UPDATE_MARKER
    )
    return np.concatenate(([first], rest)).astype(np.uint16)
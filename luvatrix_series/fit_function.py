from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from luvatrix_series.domain import ChannelView
from luvatrix_series.fit_config import FitFunction, FitType

NO_DONOR = -1


@dataclass(frozen=True)
class FittedChannel:
    """Result of fitting one channel.

    `values` keeps NaN at positions that stayed gaps. `donor` is the index of
    the original datum a filled value came from, `NO_DONOR` for constant
    fills, and the position itself everywhere nothing was filled.
    """

    values: np.ndarray
    filled: np.ndarray
    donor: np.ndarray
    strategy: FitType

    def filled_count(self) -> int:
        return int(np.count_nonzero(self.filled))


def fit_channel(view: ChannelView, fit: FitFunction) -> FittedChannel:
    """Fill eligible gaps of a channel with `fit`; the input view is not modified."""
    values = view.values.copy()
    size = values.size
    idx = np.arange(size, dtype=np.int64)
    donor = idx.copy()
    filled = np.zeros(size, dtype=bool)

    gaps = view.gaps
    if fit.gaps == "null":
        eligible = view.null.copy()
    elif fit.gaps == "absent":
        eligible = view.absent.copy()
    else:
        eligible = gaps.copy()

    if fit.type == "none" or size == 0 or not np.any(eligible):
        return FittedChannel(values=values, filled=filled, donor=donor, strategy=fit.type)

    source = ~gaps
    prev_idx, next_idx = _neighbours(source)
    has_prev = prev_idx >= 0
    has_next = next_idx < size
    # Clip so fancy indexing stays in range; masked out below.
    prev_val = view.values[np.clip(prev_idx, 0, max(size - 1, 0))]
    next_val = view.values[np.clip(next_idx, 0, max(size - 1, 0))]

    if fit.type == "zero":
        _fill_constant(values, filled, donor, eligible, 0.0)
    elif fit.type == "explicit":
        assert fit.value is not None
        _fill_constant(values, filled, donor, eligible, fit.value)
    elif fit.type == "carry":
        target = eligible & has_prev
        _fill_from(values, filled, donor, target, prev_val, prev_idx)
    elif fit.type == "lookahead":
        target = eligible & has_next
        _fill_from(values, filled, donor, target, next_val, next_idx)
    elif fit.type == "nearest":
        use_prev, use_next = _nearest_side(idx, prev_idx, next_idx, has_prev, has_next)
        _fill_from(values, filled, donor, eligible & use_prev, prev_val, prev_idx)
        _fill_from(values, filled, donor, eligible & use_next, next_val, next_idx)
    elif fit.type == "average":
        target = eligible & has_prev & has_next
        mean = (prev_val + next_val) / 2.0
        _fill_from(values, filled, donor, target, mean, _nearer_donor(idx, prev_idx, next_idx))
    elif fit.type == "linear":
        target = eligible & has_prev & has_next
        span = np.where(target, next_idx - prev_idx, 1).astype(np.float64)
        step = (idx - prev_idx).astype(np.float64)
        interpolated = prev_val + (next_val - prev_val) * step / span
        _fill_from(values, filled, donor, target, interpolated, _nearer_donor(idx, prev_idx, next_idx))
    else:  # pragma: no cover - FitFunction validates the type
        raise AssertionError(f"unhandled fit type: {fit.type}")

    if fit.end_value is not None:
        _fill_edges(values, filled, donor, eligible, view.values, fit.end_value, prev_idx, next_idx)

    return FittedChannel(values=values, filled=filled, donor=donor, strategy=fit.type)


def _neighbours(source: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Index of the nearest source position at or before / at or after each position.

    Missing neighbours are -1 before the first source value and `size` after
    the last one.
    """
    size = source.size
    idx = np.arange(size, dtype=np.int64)
    prev_idx = np.maximum.accumulate(np.where(source, idx, -1)) if size else idx
    next_idx = np.minimum.accumulate(np.where(source, idx, size)[::-1])[::-1] if size else idx
    return prev_idx.astype(np.int64), next_idx.astype(np.int64)


def _nearest_side(
    idx: np.ndarray,
    prev_idx: np.ndarray,
    next_idx: np.ndarray,
    has_prev: np.ndarray,
    has_next: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    prev_dist = idx - prev_idx
    next_dist = next_idx - idx
    # Ties go to the preceding value.
    use_prev = has_prev & (~has_next | (prev_dist <= next_dist))
    use_next = has_next & ~use_prev
    return use_prev, use_next


def _nearer_donor(idx: np.ndarray, prev_idx: np.ndarray, next_idx: np.ndarray) -> np.ndarray:
    return np.where((idx - prev_idx) <= (next_idx - idx), prev_idx, next_idx)


def _fill_constant(
    values: np.ndarray, filled: np.ndarray, donor: np.ndarray, target: np.ndarray, constant: float
) -> None:
    values[target] = constant
    filled[target] = True
    donor[target] = NO_DONOR


def _fill_from(
    values: np.ndarray,
    filled: np.ndarray,
    donor: np.ndarray,
    target: np.ndarray,
    source_values: np.ndarray,
    source_idx: np.ndarray,
) -> None:
    target = target & ~filled
    values[target] = source_values[target]
    filled[target] = True
    donor[target] = source_idx[target]


def _fill_edges(
    values: np.ndarray,
    filled: np.ndarray,
    donor: np.ndarray,
    eligible: np.ndarray,
    original: np.ndarray,
    end_value: float | str,
    prev_idx: np.ndarray,
    next_idx: np.ndarray,
) -> None:
    size = values.size
    leading = eligible & ~filled & (prev_idx < 0)
    trailing = eligible & ~filled & (next_idx >= size)
    if end_value != "nearest":
        _fill_constant(values, filled, donor, leading | trailing, float(end_value))
        return
    if not np.any(next_idx < size):
        # Channel has no resolved value to extend.
        return
    first = int(next_idx[0])
    last = int(prev_idx[-1])
    _fill_from(values, filled, donor, leading, np.full(size, original[first]), np.full(size, first))
    _fill_from(values, filled, donor, trailing, np.full(size, original[last]), np.full(size, last))

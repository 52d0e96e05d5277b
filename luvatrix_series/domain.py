from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging

import numpy as np

from luvatrix_series.errors import DuplicateDatumError, InvalidDomainError
from luvatrix_series.fit_config import CHANNELS, CONTINUOUS_SCALE_TYPES, DedupePolicy, ScaleType
from luvatrix_series.series import ABSENT, Absent, RawDataSeries, RawDataSeriesDatum, XValue

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class XDomain:
    values: tuple[XValue, ...]
    ordinal: bool

    def __len__(self) -> int:
        return len(self.values)

    def index(self) -> dict[XValue, int]:
        return {x: i for i, x in enumerate(self.values)}


@dataclass(frozen=True)
class ChannelView:
    """One y channel of an aligned series, as float64 with gap masks.

    `values` holds NaN at every gap. `null` marks positions whose source
    record reported no value; `absent` marks positions with no source record.
    """

    values: np.ndarray
    null: np.ndarray
    absent: np.ndarray

    @property
    def gaps(self) -> np.ndarray:
        return self.null | self.absent


@dataclass(frozen=True)
class AlignedSeries:
    series: RawDataSeries
    domain: XDomain
    positions: tuple[RawDataSeriesDatum | Absent, ...]

    def channel(self, name: str) -> ChannelView:
        if name not in CHANNELS:
            raise ValueError(f"channel must be one of {CHANNELS}, got {name!r}")
        size = len(self.positions)
        values = np.full(size, np.nan, dtype=np.float64)
        null = np.zeros(size, dtype=bool)
        absent = np.zeros(size, dtype=bool)
        for i, datum in enumerate(self.positions):
            if datum is ABSENT:
                absent[i] = True
                continue
            value = getattr(datum, name)
            if value is None:
                null[i] = True
            else:
                values[i] = value
        return ChannelView(values=values, null=null, absent=absent)


def compute_x_domain(series: Sequence[RawDataSeries], *, x_scale_type: ScaleType = "linear") -> XDomain:
    """Union the x values of every series sharing one axis.

    Continuous scales sort distinct numeric values ascending; the ordinal
    scale keeps first-seen order across the series in input order.
    """
    ordinal = x_scale_type not in CONTINUOUS_SCALE_TYPES
    seen: dict[XValue, None] = {}
    for item in series:
        kind = _series_x_kind(item)
        if not ordinal and kind == "str":
            raise InvalidDomainError(
                f"series {item.key} has string x values on a continuous {x_scale_type} scale",
                series_key=item.key,
            )
        for datum in item.data:
            seen.setdefault(datum.x, None)
    if ordinal:
        values = tuple(seen)
    else:
        values = tuple(sorted(seen))
    return XDomain(values=values, ordinal=ordinal)


def align_series(series: RawDataSeries, domain: XDomain, *, dedupe: DedupePolicy = "reject") -> AlignedSeries:
    lookup = domain.index()
    slots: list[RawDataSeriesDatum | Absent] = [ABSENT] * len(domain)
    replaced = 0
    for datum in series.data:
        try:
            i = lookup[datum.x]
        except KeyError as exc:
            raise InvalidDomainError(
                f"x value {datum.x!r} of series {series.key} is outside the domain", series_key=series.key
            ) from exc
        if slots[i] is ABSENT:
            slots[i] = datum
            continue
        if dedupe == "reject":
            raise DuplicateDatumError(
                f"duplicate x value {datum.x!r} in series {series.key}", series_key=series.key, x=datum.x
            )
        replaced += 1
        if dedupe == "last":
            slots[i] = datum
    if replaced:
        LOGGER.debug("series=%s dedupe=%s resolved %d duplicate x values", series.key, dedupe, replaced)
    return AlignedSeries(series=series, domain=domain, positions=tuple(slots))


def align_group(
    series: Sequence[RawDataSeries],
    *,
    x_scale_type: ScaleType = "linear",
    dedupe: DedupePolicy = "reject",
) -> tuple[XDomain, tuple[AlignedSeries, ...]]:
    domain = compute_x_domain(series, x_scale_type=x_scale_type)
    return domain, tuple(align_series(item, domain, dedupe=dedupe) for item in series)


def _series_x_kind(series: RawDataSeries) -> str | None:
    kinds = {"str" if isinstance(d.x, str) else "number" for d in series.data}
    if len(kinds) > 1:
        raise InvalidDomainError(
            f"series {series.key} mixes numeric and string x values", series_key=series.key
        )
    return next(iter(kinds), None)

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging
from typing import Any

from luvatrix_series.assembler import assemble_series
from luvatrix_series.domain import AlignedSeries, XDomain, align_series, compute_x_domain
from luvatrix_series.errors import InvalidDomainError
from luvatrix_series.fit_config import CHANNELS, DedupePolicy, FitConfig, FitFunction, ScaleType, SeriesConfig
from luvatrix_series.fit_function import fit_channel
from luvatrix_series.series import DataSeries, RawDataSeries, RawDataSeriesDatum
from luvatrix_series.store import split_series

LOGGER = logging.getLogger(__name__)

# Channels a spec does not declare pass through as-is and are never filled.
UNFITTED = FitFunction("none")


@dataclass(frozen=True)
class SeriesGroupResult:
    domain: XDomain
    series: tuple[DataSeries, ...]
    skipped: int = 0

    def by_key(self) -> dict[str, DataSeries]:
        return {s.key: s for s in self.series}

    @property
    def non_empty(self) -> tuple[DataSeries, ...]:
        return tuple(s for s in self.series if not s.is_empty)


def fit_series_group(
    raw_series: Sequence[RawDataSeries],
    *,
    fit: Any = "none",
    x_scale_type: ScaleType = "linear",
    dedupe: DedupePolicy = "reject",
) -> SeriesGroupResult:
    """Fit raw series that share one x axis with a single fit configuration.

    Only `y1` and the channels a series declares (`has_y0`, `has_mark`) are filled.
    """
    fit_config = FitConfig.parse(fit)
    domain = compute_x_domain(raw_series, x_scale_type=x_scale_type)
    out = tuple(_fit_aligned(align_series(s, domain, dedupe=dedupe), fit_config) for s in raw_series)
    return SeriesGroupResult(domain=domain, series=out)


def compute_series(data: Any, config: SeriesConfig) -> SeriesGroupResult:
    """Group, align and fit the records of one series spec."""
    return compute_series_group([(data, config)])


def compute_series_group(specs: Sequence[tuple[Any, SeriesConfig]]) -> SeriesGroupResult:
    """Group, align and fit several specs drawn on the same x axis.

    Each spec keeps its own fit and dedupe configuration; the x domain is
    the union over all of them, in spec order.
    """
    if not specs:
        raise ValueError("at least one series spec is required")
    scale_types = {config.x_scale_type for _, config in specs}
    ordinal_flags = {scale == "ordinal" for scale in scale_types}
    if len(ordinal_flags) > 1:
        raise InvalidDomainError(f"specs on one axis must agree on ordinal vs continuous x, got {sorted(scale_types)}")
    x_scale_type = specs[0][1].x_scale_type

    skipped = 0
    grouped: list[tuple[RawDataSeries, SeriesConfig]] = []
    for data, config in specs:
        split = split_series(data, config)
        skipped += split.skipped
        grouped.extend((series, config) for series in split.series)

    domain = compute_x_domain([s for s, _ in grouped], x_scale_type=x_scale_type)
    out = tuple(
        _fit_aligned(align_series(series, domain, dedupe=config.dedupe), config.fit) for series, config in grouped
    )
    LOGGER.debug("fitted %d series over a %d-point x domain", len(out), len(domain))
    return SeriesGroupResult(domain=domain, series=out, skipped=skipped)


def refit_series(
    series: Sequence[DataSeries],
    *,
    fit: Any = "none",
    x_scale_type: ScaleType = "linear",
) -> SeriesGroupResult:
    """Fit already-fitted series again, treating their fitted values as source values.

    With ``fit="none"`` the fitted values are a fixed point.
    """
    raw = [to_raw_series(s) for s in series]
    return fit_series_group(raw, fit=fit, x_scale_type=x_scale_type, dedupe="reject")


def to_raw_series(series: DataSeries) -> RawDataSeries:
    return RawDataSeries(
        spec_id=series.spec_id,
        series_keys=series.series_keys,
        y_accessor=series.y_accessor,
        split_accessors=series.split_accessors,
        key=series.key,
        data=tuple(
            RawDataSeriesDatum(x=d.x, y1=d.y1, y0=d.y0, mark=d.mark, datum=d.datum) for d in series.data
        ),
        group_id=series.group_id,
        has_y0=series.has_y0,
        has_mark=series.has_mark,
    )


def _fit_aligned(aligned: AlignedSeries, fit_config: FitConfig) -> DataSeries:
    declared = aligned.series.channels
    fitted = {
        name: fit_channel(aligned.channel(name), fit_config.for_channel(name) if name in declared else UNFITTED)
        for name in CHANNELS
    }
    if LOGGER.isEnabledFor(logging.DEBUG):
        LOGGER.debug(
            "series=%s filled y0=%d y1=%d mark=%d",
            aligned.series.key,
            fitted["y0"].filled_count(),
            fitted["y1"].filled_count(),
            fitted["mark"].filled_count(),
        )
    return assemble_series(aligned, fitted)

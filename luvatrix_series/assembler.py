from __future__ import annotations

from collections.abc import Mapping
import math

import numpy as np

from luvatrix_series.domain import AlignedSeries
from luvatrix_series.fit_function import NO_DONOR, FittedChannel
from luvatrix_series.series import (
    ABSENT,
    DataSeries,
    DataSeriesDatum,
    FilledValue,
    FilledValues,
    FullDataSeriesDatum,
)


def assemble_series(aligned: AlignedSeries, fitted: Mapping[str, FittedChannel]) -> DataSeries:
    """Merge fitted channels with the original records into a `DataSeries`.

    `fitted` maps each of ``y0``, ``y1`` and ``mark`` to its fitted channel.
    Positions whose x and y1 are both resolved become `FullDataSeriesDatum`.
    """
    y0 = fitted["y0"]
    y1 = fitted["y1"]
    mark = fitted["mark"]
    data: list[DataSeriesDatum] = []
    full_count = 0
    for i, (x, source) in enumerate(zip(aligned.domain.values, aligned.positions, strict=True)):
        absent = source is ABSENT
        filled = FilledValues(
            x=absent,
            y0=_filled_value(y0, i),
            y1=_filled_value(y1, i),
            mark=_filled_value(mark, i),
        )
        fields = dict(
            x=x,
            y1=_as_float(y1.values[i]),
            y0=_as_float(y0.values[i]),
            mark=_as_float(mark.values[i]),
            initial_y1=None if absent else source.y1,
            initial_y0=None if absent else source.y0,
            datum=None if absent else source.datum,
            filled=filled if filled.any else None,
        )
        if fields["y1"] is None:
            data.append(DataSeriesDatum(**fields))
            continue
        full_count += 1
        data.append(FullDataSeriesDatum(**fields, fitting_index=_fitting_index(y1, i)))

    series = aligned.series
    return DataSeries(
        spec_id=series.spec_id,
        series_keys=series.series_keys,
        y_accessor=series.y_accessor,
        split_accessors=series.split_accessors,
        key=series.key,
        data=tuple(data),
        group_id=series.group_id,
        is_empty=full_count == 0,
        has_y0=series.has_y0,
        has_mark=series.has_mark,
    )


def _filled_value(channel: FittedChannel, i: int) -> FilledValue | None:
    if not channel.filled[i]:
        return None
    donor = int(channel.donor[i])
    return FilledValue(strategy=channel.strategy, donor=None if donor == NO_DONOR else donor)


def _fitting_index(channel: FittedChannel, i: int) -> int:
    if channel.filled[i] and channel.donor[i] != NO_DONOR:
        return int(channel.donor[i])
    return i


def _as_float(value: np.float64) -> float | None:
    out = float(value)
    return out if math.isfinite(out) else None

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
import logging
import math
from typing import Any

import numpy as np
import pandas as pd

from luvatrix_series.adapters.records import normalize_records
from luvatrix_series.errors import MalformedDatumError
from luvatrix_series.fit_config import Accessor, SeriesConfig
from luvatrix_series.series import (
    RawDataSeries,
    RawDataSeriesDatum,
    XValue,
    accessor_label,
    series_identity,
    series_key,
    series_keys_for,
    unique_labels,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitResult:
    series: tuple[RawDataSeries, ...]
    skipped: int = 0


def split_series(data: Any, config: SeriesConfig) -> SplitResult:
    """Group flat source records into one raw series per y accessor and split values.

    Series are emitted in first-seen order of their split values; within a
    spec, each y accessor yields its own series in declared order. Duplicate
    x values are kept here and resolved by the domain indexer's dedupe policy.
    """
    records = normalize_records(data)
    multi_y = len(config.y_accessors) > 1
    y_labels = unique_labels([accessor_label(a) for a in config.y_accessors])
    split_keys = unique_labels([_split_key(a) for a in config.split_accessors])
    buckets: dict[tuple[Any, ...], list[RawDataSeriesDatum]] = {}
    meta: dict[tuple[Any, ...], tuple[int, tuple[Any, ...]]] = {}
    skipped = 0

    for index, record in enumerate(records):
        try:
            parsed = _parse_record(record, index, config)
        except MalformedDatumError as exc:
            if config.on_malformed == "raise":
                raise
            skipped += 1
            LOGGER.warning("skipping malformed record spec=%s index=%d: %s", config.spec_id, index, exc)
            continue
        split_values, rows = parsed
        for y_index, raw_datum in enumerate(rows):
            identity = series_identity(config.spec_id, y_index, split_values)
            if identity not in buckets:
                buckets[identity] = []
                meta[identity] = (y_index, split_values)
            buckets[identity].append(raw_datum)

    # Keep declared y accessor order ahead of split first-seen order.
    identities = sorted(buckets, key=lambda ident: meta[ident][0])

    out: list[RawDataSeries] = []
    for identity in identities:
        y_index, split_values = meta[identity]
        y_label = y_labels[y_index]
        out.append(
            RawDataSeries(
                spec_id=config.spec_id,
                series_keys=series_keys_for(config.spec_id, y_label, split_values, multi_y=multi_y),
                y_accessor=config.y_accessors[y_index],
                split_accessors=dict(zip(split_keys, split_values, strict=True)),
                key=series_key(config.spec_id, y_label, split_values),
                data=tuple(buckets[identity]),
                group_id=config.group_id,
                has_y0=bool(config.y0_accessors),
                has_mark=config.mark_accessor is not None,
            )
        )
    if skipped:
        LOGGER.warning("spec=%s skipped %d of %d records", config.spec_id, skipped, len(records))
    LOGGER.debug("spec=%s grouped %d records into %d series", config.spec_id, len(records) - skipped, len(out))
    return SplitResult(series=tuple(out), skipped=skipped)


def read_accessor(record: Any, accessor: Accessor) -> Any:
    """Extract a field from a record; raise KeyError when it is missing."""
    if callable(accessor):
        return accessor(record)
    if isinstance(record, Mapping):
        return record[accessor]
    if isinstance(accessor, int) and isinstance(record, Sequence) and not isinstance(record, (str, bytes)):
        return record[accessor]
    if isinstance(accessor, str) and hasattr(record, accessor):
        return getattr(record, accessor)
    raise KeyError(accessor)


def coerce_x(value: Any, *, ordinal: bool) -> XValue:
    if value is None or isinstance(value, bool):
        raise ValueError(f"x must be a number or string, got {value!r}")
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, (pd.Timestamp, datetime)):
        return float(pd.Timestamp(value).value // 1_000_000)
    if isinstance(value, date):
        return float(pd.Timestamp(value).value // 1_000_000)
    if isinstance(value, str):
        return value
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"x must be finite, got {value!r}")
        return value
    if ordinal:
        return str(value)
    raise ValueError(f"x must be a number or string, got {type(value)!r}")


def coerce_y(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"y value must be numeric, got {value!r}")
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, (int, float, Decimal)):
        out = float(value)
        return out if math.isfinite(out) else None
    raise ValueError(f"y value must be numeric, got {type(value)!r}")


def _parse_record(
    record: Any, index: int, config: SeriesConfig
) -> tuple[tuple[Any, ...], list[RawDataSeriesDatum]]:
    x = _read(record, index, config, config.x_accessor, "x")
    split_values = tuple(_read(record, index, config, a, "split") for a in config.split_accessors)
    for value in split_values:
        try:
            hash(value)
        except TypeError as exc:
            raise MalformedDatumError(
                f"split value must be hashable, got {type(value)!r}",
                spec_id=config.spec_id,
                record_index=index,
            ) from exc
    mark = None
    if config.mark_accessor is not None:
        mark = _read_y(record, index, config, config.mark_accessor, "mark")

    rows: list[RawDataSeriesDatum] = []
    for i, y_accessor in enumerate(config.y_accessors):
        y1 = _read_y(record, index, config, y_accessor, "y")
        y0 = None
        if config.y0_accessors:
            y0 = _read_y(record, index, config, config.y0_accessors[i], "y0")
        rows.append(RawDataSeriesDatum(x=x, y1=y1, y0=y0, mark=mark, datum=record))
    return split_values, rows


def _read(record: Any, index: int, config: SeriesConfig, accessor: Accessor, role: str) -> Any:
    try:
        value = read_accessor(record, accessor)
    except (KeyError, IndexError, AttributeError, TypeError) as exc:
        raise MalformedDatumError(
            f"record is missing {role} accessor {accessor!r}",
            spec_id=config.spec_id,
            record_index=index,
            accessor=accessor,
        ) from exc
    if role == "x":
        try:
            return coerce_x(value, ordinal=config.is_ordinal)
        except ValueError as exc:
            raise MalformedDatumError(
                str(exc), spec_id=config.spec_id, record_index=index, accessor=accessor
            ) from exc
    return value


def _read_y(record: Any, index: int, config: SeriesConfig, accessor: Accessor, role: str) -> float | None:
    value = _read(record, index, config, accessor, role)
    try:
        return coerce_y(value)
    except ValueError as exc:
        raise MalformedDatumError(
            f"{role} accessor {accessor!r}: {exc}", spec_id=config.spec_id, record_index=index, accessor=accessor
        ) from exc


def _split_key(accessor: Any) -> Any:
    if isinstance(accessor, (str, int)):
        return accessor
    return getattr(accessor, "__name__", repr(accessor))

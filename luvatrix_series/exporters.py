from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict
import json
from pathlib import Path
from typing import Any

import pandas as pd

from luvatrix_series.engine import SeriesGroupResult
from luvatrix_series.errors import SeriesDataError
from luvatrix_series.series import DataSeries, DataSeriesDatum, FullDataSeriesDatum, accessor_label


def datum_to_dict(datum: DataSeriesDatum) -> dict[str, Any]:
    out: dict[str, Any] = {
        "x": datum.x,
        "y1": datum.y1,
        "y0": datum.y0,
        "mark": datum.mark,
        "initial_y1": datum.initial_y1,
        "initial_y0": datum.initial_y0,
        "filled": asdict(datum.filled) if datum.filled is not None else None,
    }
    if isinstance(datum, FullDataSeriesDatum):
        out["fitting_index"] = datum.fitting_index
    return out


def series_to_dict(series: DataSeries, *, full_only: bool = False) -> dict[str, Any]:
    data: Sequence[DataSeriesDatum] = series.full_data if full_only else series.data
    return {
        "spec_id": series.spec_id,
        "key": series.key,
        "series_keys": [_json_scalar(k) for k in series.series_keys],
        "y_accessor": accessor_label(series.y_accessor),
        "split_accessors": {str(k): _json_scalar(v) for k, v in series.split_accessors.items()},
        "is_empty": series.is_empty,
        "data": [datum_to_dict(d) for d in data],
    }


def result_to_dict(result: SeriesGroupResult, *, full_only: bool = False) -> dict[str, Any]:
    return {
        "domain": {"ordinal": result.domain.ordinal, "values": list(result.domain.values)},
        "skipped": result.skipped,
        "series": [series_to_dict(s, full_only=full_only) for s in result.series],
    }


def read_records(path: str | Path) -> Any:
    """Load records from a JSON array, JSON Lines or CSV file."""
    records_path = Path(path)
    if not records_path.exists():
        raise FileNotFoundError(f"records file not found: {records_path}")
    suffix = records_path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(records_path)
    if suffix in {".jsonl", ".ndjson"}:
        rows: list[Any] = []
        with records_path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError as exc:
                    raise SeriesDataError(f"{records_path}:{lineno}: invalid JSON line") from exc
        return rows
    payload = json.loads(records_path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise SeriesDataError(f"{records_path}: expected a JSON array of records")
    return payload


def _json_scalar(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)

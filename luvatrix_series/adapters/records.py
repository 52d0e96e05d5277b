from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import numpy as np

try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except Exception:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]

from luvatrix_series.errors import SeriesDataError


def normalize_records(data: Any) -> list[Any]:
    """Return source records as a list, preserving source order.

    Accepts a sequence of records (mappings or sequences), a pandas
    ``DataFrame`` (one mapping per row), or a columnar mapping whose values
    are equal-length sequences, numpy arrays, pandas ``Series`` or 1-D torch
    tensors.
    """
    if data is None:
        raise SeriesDataError("records input is required")
    if pd is not None and isinstance(data, pd.DataFrame):
        return _records_from_frame(data)
    if isinstance(data, Mapping):
        return _records_from_columns(data)
    if isinstance(data, (str, bytes, bytearray)):
        raise SeriesDataError(f"unsupported records input type: {type(data)!r}")
    if isinstance(data, (Sequence, Iterable)):
        return list(data)
    raise SeriesDataError(f"unsupported records input type: {type(data)!r}")


def _records_from_frame(frame: Any) -> list[dict[str, Any]]:
    columns = [str(c) if not isinstance(c, (str, int)) else c for c in frame.columns]
    if len(set(columns)) != len(columns):
        raise SeriesDataError("DataFrame columns must be unique")
    out: list[dict[str, Any]] = []
    for row in frame.itertuples(index=False, name=None):
        out.append({col: _unbox(value) for col, value in zip(columns, row, strict=True)})
    return out


def _records_from_columns(columns: Mapping[Any, Any]) -> list[dict[Any, Any]]:
    if not columns:
        return []
    arrays = {name: _coerce_column(values, label=str(name)) for name, values in columns.items()}
    lengths = {name: len(values) for name, values in arrays.items()}
    if len(set(lengths.values())) != 1:
        raise SeriesDataError(f"column length mismatch: {lengths}")
    size = next(iter(lengths.values()))
    return [{name: values[i] for name, values in arrays.items()} for i in range(size)]


def _coerce_column(value: Any, *, label: str) -> list[Any]:
    if torch is not None and isinstance(value, torch.Tensor):
        tensor = value.detach()
        if tensor.ndim != 1:
            raise SeriesDataError(f"column {label} must be 1-D")
        if tensor.is_cuda:
            tensor = tensor.cpu()
        return tensor.to(torch.float64).numpy().tolist()

    if pd is not None and isinstance(value, pd.Series):
        return [_unbox(v) for v in value.tolist()]

    if isinstance(value, np.ndarray):
        if value.ndim != 1:
            raise SeriesDataError(f"column {label} must be 1-D")
        return value.tolist()

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return list(value)

    raise SeriesDataError(f"unsupported column {label} input type: {type(value)!r}")


def _unbox(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if pd is None:
        return value
    if value is pd.NaT:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value

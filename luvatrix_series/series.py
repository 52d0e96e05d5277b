from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from luvatrix_series.fit_config import FitType


XValue = Union[int, float, str]
SplitKey = tuple[Any, ...]

SERIES_KEY_SEPARATOR = "___"


class Absent:
    """Marker for a domain position that no source record reported."""

    _instance: "Absent | None" = None

    def __new__(cls) -> "Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = Absent()


@dataclass(frozen=True)
class RawDataSeriesDatum:
    x: XValue
    y1: float | None
    y0: float | None = None
    mark: float | None = None
    datum: Any = None


@dataclass(frozen=True)
class FilledValue:
    strategy: FitType
    # None for constant fills (zero, explicit, numeric end_value).
    donor: int | None = None


@dataclass(frozen=True)
class FilledValues:
    x: bool = False
    y0: FilledValue | None = None
    y1: FilledValue | None = None
    mark: FilledValue | None = None

    @property
    def any(self) -> bool:
        return self.x or self.y0 is not None or self.y1 is not None or self.mark is not None


@dataclass(frozen=True)
class DataSeriesDatum:
    x: XValue
    y1: float | None
    y0: float | None
    mark: float | None
    initial_y1: float | None
    initial_y0: float | None
    datum: Any = None
    filled: FilledValues | None = None


@dataclass(frozen=True)
class FullDataSeriesDatum(DataSeriesDatum):
    """Datum with both `x` and `y1` resolved; the only shape scales and renderers accept."""

    fitting_index: int = 0


@dataclass(frozen=True)
class RawDataSeries:
    spec_id: str
    series_keys: tuple[Any, ...]
    y_accessor: Any
    split_accessors: Mapping[Any, Any]
    key: str
    data: tuple[RawDataSeriesDatum, ...] = ()
    group_id: str = "__global__"
    has_y0: bool = False
    has_mark: bool = False

    @property
    def channels(self) -> tuple[str, ...]:
        """Channels the source spec declared; `y1` always is."""
        return declared_channels(self.has_y0, self.has_mark)


@dataclass(frozen=True)
class DataSeries:
    spec_id: str
    series_keys: tuple[Any, ...]
    y_accessor: Any
    split_accessors: Mapping[Any, Any]
    key: str
    data: tuple[DataSeriesDatum, ...] = ()
    group_id: str = "__global__"
    is_empty: bool = field(default=True)
    has_y0: bool = False
    has_mark: bool = False

    @property
    def full_data(self) -> tuple[FullDataSeriesDatum, ...]:
        return tuple(d for d in self.data if isinstance(d, FullDataSeriesDatum))


def declared_channels(has_y0: bool, has_mark: bool) -> tuple[str, ...]:
    channels = ["y1"]
    if has_y0:
        channels.append("y0")
    if has_mark:
        channels.append("mark")
    return tuple(channels)


def series_identity(spec_id: str, y_index: int, split_values: SplitKey) -> tuple[Any, ...]:
    """Grouping identity; the y accessor is identified by its declared position."""
    return (spec_id, y_index, *split_values)


def series_key(spec_id: str, y_label: str, split_values: SplitKey) -> str:
    split_part = "|".join(_stable_label(v) for v in split_values)
    return SERIES_KEY_SEPARATOR.join((spec_id, y_label, split_part))


def series_keys_for(spec_id: str, y_label: str, split_values: SplitKey, *, multi_y: bool) -> tuple[Any, ...]:
    keys: list[Any] = list(split_values)
    if multi_y:
        keys.append(y_label)
    if not keys:
        keys.append(spec_id)
    return tuple(keys)


def accessor_label(accessor: Any) -> str:
    if isinstance(accessor, str):
        return accessor
    if isinstance(accessor, int):
        return f"[{accessor}]"
    return getattr(accessor, "__name__", repr(accessor))


def unique_labels(labels: Sequence[Any]) -> tuple[Any, ...]:
    """Suffix colliding labels with their position, e.g. two lambdas become ``<lambda>#0`` and ``<lambda>#1``."""
    counts = Counter(labels)
    return tuple(f"{label}#{i}" if counts[label] > 1 else label for i, label in enumerate(labels))


def _stable_label(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)

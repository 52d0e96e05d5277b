"""Default-filled builders for series fixtures used in tests."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, fields, replace
from typing import Any

import numpy as np

from luvatrix_series.series import (
    DataSeries,
    DataSeriesDatum,
    FilledValues,
    FullDataSeriesDatum,
    RawDataSeries,
    RawDataSeriesDatum,
)

DEFAULT_SEED = 1337

# x -> y1 with interior, leading and trailing gaps.
FIT_FUNCTION_VALUES: tuple[tuple[int, float | None], ...] = (
    (0, None),
    (1, 3.0),
    (2, 5.0),
    (3, None),
    (4, 4.0),
    (5, None),
    (6, None),
    (7, 12.0),
    (8, 10.0),
    (9, None),
    (10, 7.0),
    (11, 8.0),
    (12, None),
)


@dataclass(frozen=True)
class DomainRange:
    min: float = 0.0
    max: float = 1.0
    fraction_digits: int = 0
    inclusive: bool = True


def random_number(rng: np.random.Generator, domain: DomainRange | None = None) -> float:
    domain = domain or DomainRange()
    high = np.nextafter(domain.max, np.inf) if domain.inclusive else domain.max
    return round(float(rng.uniform(domain.min, high)), domain.fraction_digits)


def fit_function_data(*, ordinal: bool = False) -> list[RawDataSeriesDatum]:
    out: list[RawDataSeriesDatum] = []
    for x, y1 in FIT_FUNCTION_VALUES:
        xv: Any = chr(97 + x) if ordinal else x
        out.append(RawDataSeriesDatum(x=xv, y1=y1, y0=None, mark=None, datum={"x": xv, "y1": y1}))
    return out


class MockRawDataSeriesDatum:
    base = RawDataSeriesDatum(x=1, y1=1.0, y0=None, mark=None, datum={"x": 1, "y1": 1, "y0": 1})

    @classmethod
    def default(cls, **partial: Any) -> RawDataSeriesDatum:
        return replace(cls.base, **partial)

    @classmethod
    def simple(cls, x: Any, y1: float | None = None, y0: float | None = None) -> RawDataSeriesDatum:
        """Raw datum with missing values defaulted to None."""
        return RawDataSeriesDatum(x=x, y1=y1, y0=y0, mark=None, datum={"x": x, "y1": y1, "y0": y0})

    @classmethod
    def ordinal(cls, **partial: Any) -> RawDataSeriesDatum:
        return replace(cls.base, **{"x": "a", **partial})


class MockRawDataSeries:
    base = RawDataSeries(
        spec_id="spec1",
        series_keys=("spec1",),
        y_accessor="y",
        split_accessors={},
        key="spec1",
        data=(),
    )

    @classmethod
    def default(cls, data: Sequence[dict[str, Any]] | None = None, **partial: Any) -> RawDataSeries:
        series = replace(cls.base, **partial)
        if data is not None:
            series = replace(series, data=tuple(MockRawDataSeriesDatum.default(**d) for d in data))
        return series

    @classmethod
    def defaults(
        cls, partials: Sequence[dict[str, Any]], defaults: dict[str, Any] | None = None
    ) -> list[RawDataSeries]:
        return [cls.default(**{**(defaults or {}), **partial}) for partial in partials]

    @classmethod
    def from_data(cls, data: Sequence[Sequence[dict[str, Any]]], **defaults: Any) -> list[RawDataSeries]:
        """One series per inner list, numbered spec1/key1, spec2/key2, ..."""
        base = replace(cls.base, **defaults)
        return [
            replace(
                base,
                spec_id=f"spec{i + 1}",
                series_keys=(f"spec{i + 1}",),
                key=f"key{i + 1}",
                data=tuple(MockRawDataSeriesDatum.default(**d) for d in rows),
            )
            for i, rows in enumerate(data)
        ]

    @classmethod
    def fit_function(
        cls, *, shuffle: bool = True, ordinal: bool = False, seed: int = DEFAULT_SEED
    ) -> RawDataSeries:
        data = fit_function_data(ordinal=ordinal)
        if shuffle and not ordinal:
            order = np.random.default_rng(seed).permutation(len(data))
            data = [data[i] for i in order]
        return replace(cls.base, data=tuple(data))


class MockDataSeriesDatum:
    base = DataSeriesDatum(x=1, y1=1.0, y0=None, mark=None, initial_y1=None, initial_y0=1.0, datum=None)

    @classmethod
    def default(cls, **partial: Any) -> DataSeriesDatum:
        return replace(cls.base, **partial)

    @classmethod
    def simple(
        cls,
        x: Any,
        y1: float | None = None,
        y0: float | None = None,
        mark: float | None = None,
        filled: FilledValues | None = None,
    ) -> DataSeriesDatum:
        """Datum whose initial values match its fitted values."""
        return DataSeriesDatum(
            x=x,
            y1=y1,
            y0=y0,
            mark=mark,
            initial_y1=y1,
            initial_y0=y0,
            datum={"x": x, "y1": y1, "y0": y0},
            filled=filled,
        )

    @classmethod
    def full(
        cls,
        x: Any,
        y1: float,
        y0: float | None = None,
        mark: float | None = None,
        fitting_index: int = 0,
        filled: FilledValues | None = None,
    ) -> FullDataSeriesDatum:
        simple = cls.simple(x, y1=y1, y0=y0, mark=mark, filled=filled)
        return FullDataSeriesDatum(**{f.name: getattr(simple, f.name) for f in fields(simple)}, fitting_index=fitting_index)

    @classmethod
    def ordinal(cls, **partial: Any) -> DataSeriesDatum:
        return replace(cls.base, **{"x": "a", **partial})

    @classmethod
    def random(
        cls,
        rng: np.random.Generator,
        *,
        x: DomainRange | None = None,
        y: DomainRange | None = None,
        mark: DomainRange | None = None,
        include_mark: bool = False,
    ) -> DataSeriesDatum:
        return cls.simple(
            x=random_number(rng, x),
            y1=random_number(rng, y),
            mark=random_number(rng, mark) if include_mark else None,
        )


class MockDataSeries:
    base = DataSeries(
        spec_id="spec1",
        series_keys=("spec1",),
        y_accessor="y",
        split_accessors={},
        key="spec1",
        data=(),
    )

    @classmethod
    def default(cls, **partial: Any) -> DataSeries:
        return replace(cls.base, **partial)

    @classmethod
    def from_data(cls, data: Sequence[DataSeriesDatum]) -> DataSeries:
        data = tuple(data)
        return replace(
            cls.base,
            data=data,
            is_empty=all(d.y1 is None for d in data),
            has_y0=any(d.y0 is not None for d in data),
            has_mark=any(d.mark is not None for d in data),
        )

    @classmethod
    def random(
        cls,
        *,
        count: int = 10,
        x: DomainRange | None = None,
        y: DomainRange | None = None,
        mark: DomainRange | None = None,
        include_mark: bool = False,
        seed: int = DEFAULT_SEED,
    ) -> DataSeries:
        rng = np.random.default_rng(seed)
        return cls.from_data(
            [MockDataSeriesDatum.random(rng, x=x, y=y, mark=mark, include_mark=include_mark) for _ in range(count)]
        )

    @classmethod
    def fit_function(
        cls, *, shuffle: bool = True, ordinal: bool = False, seed: int = DEFAULT_SEED
    ) -> DataSeries:
        """The fit-function fixture as unfitted datums, letters for x when ordinal."""
        data = [MockDataSeriesDatum.simple(x=d.x, y1=d.y1) for d in fit_function_data(ordinal=ordinal)]
        if shuffle and not ordinal:
            order = np.random.default_rng(seed).permutation(len(data))
            data = [data[i] for i in order]
        return cls.from_data(data)

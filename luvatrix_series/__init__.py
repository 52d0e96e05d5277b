from luvatrix_series.domain import AlignedSeries, XDomain, align_group, align_series, compute_x_domain
from luvatrix_series.engine import (
    SeriesGroupResult,
    compute_series,
    compute_series_group,
    fit_series_group,
    refit_series,
)
from luvatrix_series.errors import (
    DuplicateDatumError,
    InvalidDomainError,
    MalformedDatumError,
    SeriesDataError,
    UnknownFitStrategyError,
)
from luvatrix_series.fit_config import FitConfig, FitFunction, SeriesConfig, load_series_config
from luvatrix_series.fit_function import FittedChannel, fit_channel
from luvatrix_series.series import (
    ABSENT,
    DataSeries,
    DataSeriesDatum,
    FilledValue,
    FilledValues,
    FullDataSeriesDatum,
    RawDataSeries,
    RawDataSeriesDatum,
)
from luvatrix_series.store import SplitResult, split_series

__all__ = [
    "ABSENT",
    "AlignedSeries",
    "DataSeries",
    "DataSeriesDatum",
    "DuplicateDatumError",
    "FilledValue",
    "FilledValues",
    "FitConfig",
    "FitFunction",
    "FittedChannel",
    "FullDataSeriesDatum",
    "InvalidDomainError",
    "MalformedDatumError",
    "RawDataSeries",
    "RawDataSeriesDatum",
    "SeriesConfig",
    "SeriesDataError",
    "SeriesGroupResult",
    "SplitResult",
    "UnknownFitStrategyError",
    "XDomain",
    "align_group",
    "align_series",
    "compute_series",
    "compute_series_group",
    "compute_x_domain",
    "fit_channel",
    "fit_series_group",
    "load_series_config",
    "refit_series",
    "split_series",
]

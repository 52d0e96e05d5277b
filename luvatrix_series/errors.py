from __future__ import annotations

from typing import Any


class SeriesDataError(ValueError):
    """Base error for invalid series input or fitting configuration."""


class MalformedDatumError(SeriesDataError):
    def __init__(
        self,
        message: str,
        *,
        spec_id: str | None = None,
        record_index: int | None = None,
        accessor: Any = None,
    ) -> None:
        super().__init__(message)
        self.spec_id = spec_id
        self.record_index = record_index
        self.accessor = accessor


class UnknownFitStrategyError(SeriesDataError):
    def __init__(self, message: str, *, strategy: Any = None) -> None:
        super().__init__(message)
        self.strategy = strategy


class InvalidDomainError(SeriesDataError):
    def __init__(self, message: str, *, series_key: str | None = None) -> None:
        super().__init__(message)
        self.series_key = series_key


class DuplicateDatumError(SeriesDataError):
    def __init__(self, message: str, *, series_key: str | None = None, x: Any = None) -> None:
        super().__init__(message)
        self.series_key = series_key
        self.x = x

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
import math
import tomllib
from typing import Any, Literal, Union, get_args

from luvatrix_series.errors import UnknownFitStrategyError


FitType = Literal["none", "zero", "explicit", "carry", "lookahead", "nearest", "average", "linear"]
GapKind = Literal["all", "null", "absent"]
ScaleType = Literal["linear", "time", "log", "ordinal"]
DedupePolicy = Literal["reject", "first", "last"]
MalformedPolicy = Literal["skip", "raise"]
Channel = Literal["y0", "y1", "mark"]

Accessor = Union[str, int, Callable[[Any], Any]]

FIT_TYPES: tuple[str, ...] = get_args(FitType)
CHANNELS: tuple[str, ...] = get_args(Channel)
CONTINUOUS_SCALE_TYPES = frozenset({"linear", "time", "log"})

_FIT_ALIASES = {
    "locf": "carry",
    "nocb": "lookahead",
}


@dataclass(frozen=True)
class FitFunction:
    type: FitType = "none"
    value: float | None = None
    end_value: float | Literal["nearest"] | None = None
    gaps: GapKind = "all"

    def __post_init__(self) -> None:
        if self.type not in FIT_TYPES:
            raise UnknownFitStrategyError(f"unknown fit strategy: {self.type!r}", strategy=self.type)
        if self.type == "explicit":
            if not _is_finite_number(self.value):
                raise UnknownFitStrategyError(
                    "explicit fit requires a finite numeric value", strategy=self.type
                )
            object.__setattr__(self, "value", float(self.value))
        elif self.value is not None:
            raise ValueError(f"fit value is only valid for explicit fit, got type={self.type!r}")
        if self.end_value is not None and self.end_value != "nearest":
            if not _is_finite_number(self.end_value):
                raise ValueError("end_value must be a finite number or 'nearest'")
            object.__setattr__(self, "end_value", float(self.end_value))
        if self.gaps not in get_args(GapKind):
            raise ValueError(f"gaps must be one of {get_args(GapKind)}, got {self.gaps!r}")

    @classmethod
    def parse(cls, raw: Any) -> "FitFunction":
        """Build a fit function from a name, a mapping or an existing instance.

        Accepted forms: ``"carry"``, ``{"type": "explicit", "value": 3}``,
        ``{"type": "linear", "end_value": "nearest", "gaps": "absent"}``.
        """
        if isinstance(raw, FitFunction):
            return raw
        if raw is None:
            return cls()
        if isinstance(raw, str):
            return cls(type=_resolve_fit_type(raw))
        if isinstance(raw, Mapping):
            if "type" not in raw:
                raise UnknownFitStrategyError("fit mapping is missing `type`", strategy=None)
            unknown = set(raw) - {"type", "value", "end_value", "gaps"}
            if unknown:
                raise ValueError(f"unsupported fit fields: {sorted(unknown)}")
            return cls(
                type=_resolve_fit_type(raw["type"]),
                value=raw.get("value"),
                end_value=raw.get("end_value"),
                gaps=raw.get("gaps", "all"),
            )
        raise UnknownFitStrategyError(f"unsupported fit strategy: {raw!r}", strategy=raw)


@dataclass(frozen=True)
class FitConfig:
    default: FitFunction = field(default_factory=FitFunction)
    overrides: Mapping[str, FitFunction] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for channel in self.overrides:
            if channel not in CHANNELS:
                raise ValueError(f"fit override channel must be one of {CHANNELS}, got {channel!r}")
        object.__setattr__(self, "overrides", dict(self.overrides))

    def for_channel(self, channel: str) -> FitFunction:
        return self.overrides.get(channel, self.default)

    @classmethod
    def parse(cls, raw: Any) -> "FitConfig":
        if isinstance(raw, FitConfig):
            return raw
        if isinstance(raw, Mapping) and "channels" in raw:
            base = {k: v for k, v in raw.items() if k != "channels"}
            channels = raw["channels"]
            if not isinstance(channels, Mapping):
                raise ValueError("fit.channels must be a table")
            default = FitFunction.parse(base) if base else FitFunction()
            return cls(
                default=default,
                overrides={str(name): FitFunction.parse(spec) for name, spec in channels.items()},
            )
        return cls(default=FitFunction.parse(raw))


@dataclass(frozen=True)
class SeriesConfig:
    spec_id: str
    x_accessor: Accessor = "x"
    y_accessors: tuple[Accessor, ...] = ("y",)
    y0_accessors: tuple[Accessor, ...] = ()
    split_accessors: tuple[Accessor, ...] = ()
    mark_accessor: Accessor | None = None
    x_scale_type: ScaleType = "linear"
    fit: FitConfig = field(default_factory=FitConfig)
    dedupe: DedupePolicy = "reject"
    on_malformed: MalformedPolicy = "skip"
    group_id: str = "__global__"

    def __post_init__(self) -> None:
        if not self.spec_id:
            raise ValueError("spec_id must be a non-empty string")
        y_accessors = _as_accessor_tuple(self.y_accessors, "y_accessors")
        if not y_accessors:
            raise ValueError("y_accessors must declare at least one accessor")
        y0_accessors = _as_accessor_tuple(self.y0_accessors, "y0_accessors")
        if y0_accessors and len(y0_accessors) != len(y_accessors):
            raise ValueError("y0_accessors must pair one-to-one with y_accessors")
        object.__setattr__(self, "y_accessors", y_accessors)
        object.__setattr__(self, "y0_accessors", y0_accessors)
        object.__setattr__(self, "split_accessors", _as_accessor_tuple(self.split_accessors, "split_accessors"))
        object.__setattr__(self, "fit", FitConfig.parse(self.fit))
        if self.x_scale_type not in get_args(ScaleType):
            raise ValueError(f"x_scale_type must be one of {get_args(ScaleType)}, got {self.x_scale_type!r}")
        if self.dedupe not in get_args(DedupePolicy):
            raise ValueError(f"dedupe must be one of {get_args(DedupePolicy)}, got {self.dedupe!r}")
        if self.on_malformed not in get_args(MalformedPolicy):
            raise ValueError(f"on_malformed must be one of {get_args(MalformedPolicy)}, got {self.on_malformed!r}")

    @property
    def is_ordinal(self) -> bool:
        return self.x_scale_type == "ordinal"

    def with_fit(self, fit: Any) -> "SeriesConfig":
        return replace(self, fit=FitConfig.parse(fit))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "SeriesConfig":
        try:
            spec_id = str(raw["spec_id"])
        except KeyError as exc:
            raise ValueError(f"series config missing required field: {exc.args[0]}") from exc
        unknown = set(raw) - _CONFIG_FIELDS
        if unknown:
            raise ValueError(f"unsupported series config fields: {sorted(unknown)}")
        kwargs: dict[str, Any] = {"spec_id": spec_id}
        if "x_accessor" in raw:
            kwargs["x_accessor"] = _coerce_accessor(raw["x_accessor"], "x_accessor")
        for name in ("y_accessors", "y0_accessors", "split_accessors"):
            if name in raw:
                kwargs[name] = tuple(_coerce_accessor(a, name) for a in _coerce_list(raw[name], name))
        if raw.get("mark_accessor") is not None:
            kwargs["mark_accessor"] = _coerce_accessor(raw["mark_accessor"], "mark_accessor")
        for name in ("x_scale_type", "dedupe", "on_malformed", "group_id"):
            if name in raw:
                kwargs[name] = _coerce_str(raw[name], name)
        if "fit" in raw:
            kwargs["fit"] = FitConfig.parse(raw["fit"])
        return cls(**kwargs)


_CONFIG_FIELDS = frozenset(
    {
        "spec_id",
        "x_accessor",
        "y_accessors",
        "y0_accessors",
        "split_accessors",
        "mark_accessor",
        "x_scale_type",
        "fit",
        "dedupe",
        "on_malformed",
        "group_id",
    }
)


def load_series_config(path: str | Path) -> SeriesConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"series config not found: {config_path}")
    with config_path.open("rb") as f:
        raw = tomllib.load(f)
    return SeriesConfig.from_mapping(raw)


def _resolve_fit_type(name: Any) -> str:
    if not isinstance(name, str):
        raise UnknownFitStrategyError(f"fit strategy must be a string, got {name!r}", strategy=name)
    key = name.strip().lower()
    key = _FIT_ALIASES.get(key, key)
    if key not in FIT_TYPES:
        raise UnknownFitStrategyError(f"unknown fit strategy: {name!r}", strategy=name)
    return key


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _as_accessor_tuple(value: Any, field_name: str) -> tuple[Accessor, ...]:
    if isinstance(value, (str, int)) or callable(value):
        return (value,)
    if not isinstance(value, Sequence):
        raise ValueError(f"{field_name} must be a sequence of accessors")
    return tuple(value)


def _coerce_list(value: Any, field_name: str) -> list[Any]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list")
    return value


def _coerce_accessor(value: Any, field_name: str) -> Accessor:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError(f"{field_name} entries must be strings or integers")
    return value


def _coerce_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    return value

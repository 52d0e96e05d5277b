from __future__ import annotations

import argparse
from dataclasses import asdict
import json
import logging
from pathlib import Path
import sys

from luvatrix_series import SeriesDataError, compute_series, load_series_config
from luvatrix_series.exporters import read_records, result_to_dict
from luvatrix_series.fit_config import FIT_TYPES
from luvatrix_series.series import accessor_label


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="luvatrix-series")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    fit = sub.add_parser("fit", help="Group and fit records into chart-ready series (JSON on stdout).")
    fit.add_argument("records", type=Path, help="Records file: .json array, .jsonl, or .csv.")
    fit.add_argument("--config", type=Path, required=True, help="Series config TOML.")
    fit.add_argument(
        "--fit",
        choices=sorted(FIT_TYPES),
        default=None,
        help="Override the config's default fit strategy.",
    )
    fit.add_argument("--full-only", action="store_true", help="Emit only datums with resolved x and y1.")
    fit.add_argument("--indent", type=int, default=2)

    check = sub.add_parser("check-config", help="Validate a series config TOML and print it.")
    check.add_argument("config", type=Path)
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "fit":
            config = load_series_config(args.config)
            if args.fit is not None:
                if args.fit == "explicit":
                    raise SeriesDataError("explicit fit needs a value; set it in the config file")
                config = config.with_fit(args.fit)
            result = compute_series(read_records(args.records), config)
            print(json.dumps(result_to_dict(result, full_only=args.full_only), indent=args.indent))
            return 0

        if args.command == "check-config":
            config = load_series_config(args.config)
            print(
                json.dumps(
                    {
                        "spec_id": config.spec_id,
                        "x_accessor": accessor_label(config.x_accessor),
                        "y_accessors": [accessor_label(a) for a in config.y_accessors],
                        "y0_accessors": [accessor_label(a) for a in config.y0_accessors],
                        "split_accessors": [accessor_label(a) for a in config.split_accessors],
                        "mark_accessor": None if config.mark_accessor is None else accessor_label(config.mark_accessor),
                        "x_scale_type": config.x_scale_type,
                        "dedupe": config.dedupe,
                        "on_malformed": config.on_malformed,
                        "fit": {
                            "default": asdict(config.fit.default),
                            "channels": {k: asdict(v) for k, v in config.fit.overrides.items()},
                        },
                    },
                    indent=2,
                    sort_keys=True,
                )
            )
            return 0
    except (ValueError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    raise RuntimeError(f"unsupported command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())

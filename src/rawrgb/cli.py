from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from rawrgb.config import (
    AppConfig,
    app_config_from_mapping,
    canonical_mapping,
    load_config_mapping,
    resolve_output_policy,
)
from rawrgb.utils.logging_utils import configure_logging
from rawrgb.utils.params import format_params


logger = logging.getLogger(__name__)

_CONVERSION_OVERRIDES = ("cfa", "bit_depth", "darkness_level", "saturation_level", "interpolate")


def _add_conversion_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="Path to YAML config")
    parser.add_argument("--cfa", default=None, help="RGGB, BGGR, GRBG, GBRG or XTrans")
    parser.add_argument("--bit-depth", type=int, default=None, help="Valid bit depth of the raw data")
    parser.add_argument("--darkness", type=float, default=None, help="Darkness (black) level")
    parser.add_argument("--saturation", type=float, default=None, help="Saturation level (default 2^bit-1)")
    parser.add_argument(
        "--interpolate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Demosaic to full resolution instead of subsampling",
    )
    parser.add_argument("--format", default=None, help="npy, ppm, tiff, png or none")
    parser.add_argument("--suffix", default=None, help="Suffix appended to output file names")
    parser.add_argument("--out-dir", default=None, help="Output directory (default: beside each input)")
    parser.add_argument("--decoder", default=None, help="libraw, dcraw or pgm")
    parser.add_argument("--workers", type=int, default=None, help="Parallel frames in batch mode")
    parser.add_argument(
        "--keep-intermediate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Keep the temporary .pgm written by dcraw",
    )
    parser.add_argument(
        "--rename-with-info",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Add exposure, F number, ISO and capture time to output names",
    )
    parser.add_argument(
        "--persist",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Write the converted image to disk",
    )
    parser.add_argument("--verbose", action="store_true", default=None, help="Print conversion parameters")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rawrgb")
    sub = parser.add_subparsers(dest="command", required=True)

    convert = sub.add_parser("convert", help="Convert a raw file, or every file matching a wildcard")
    convert.add_argument("input", help="Input raw path; a wildcard such as 'shots/*.NEF' runs a batch")
    convert.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    _add_conversion_args(convert)

    show = sub.add_parser("show-config", help="Print the resolved conversion parameters")
    _add_conversion_args(show)

    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    mapping = {
        "cfa": args.cfa,
        "bit_depth": args.bit_depth,
        "darkness_level": args.darkness,
        "saturation_level": args.saturation,
        "interpolate": args.interpolate,
        "format": args.format,
        "suffix": args.suffix,
        "output_dir": str(Path(args.out_dir).expanduser().resolve()) if args.out_dir else None,
        "keep_intermediate": args.keep_intermediate,
        "rename_with_info": args.rename_with_info,
        "persist": args.persist,
    }
    return {k: v for k, v in mapping.items() if v is not None}


def _resolve_config(args: argparse.Namespace) -> AppConfig:
    raw: dict[str, Any] = {}
    base = Path.cwd()
    if args.config:
        cfg_path = Path(args.config).expanduser().resolve()
        raw = load_config_mapping(cfg_path)
        base = cfg_path.parent

    raw = canonical_mapping(raw)
    for key, value in _overrides(args).items():
        section = "conversion" if key in _CONVERSION_OVERRIDES else "output"
        raw[section][key] = value
    if args.decoder is not None:
        raw["decoder"] = args.decoder
    if args.workers is not None:
        raw["max_workers"] = args.workers
    if args.verbose:
        raw["verbose"] = True
    return app_config_from_mapping(raw, base=base)


def _cmd_convert(args: argparse.Namespace) -> int:
    from rawrgb.service import convert_batch, convert_file, expand_inputs

    config = _resolve_config(args)
    configure_logging(config.log_level, config.log_file, verbose=config.verbose)

    inputs = expand_inputs(args.input)
    if len(inputs) == 1 and not any(ch in args.input for ch in "*?["):
        # A lone file from the command line is always written; there is no caller to return it to.
        config.output = resolve_output_policy(config.output, batch=True)
        result = convert_file(config, inputs[0])
        payload = {
            "input": str(result.source_path),
            "output": str(result.output_path) if result.output_path else None,
            "shape": list(result.image.shape),
        }
        if args.json:
            print(json.dumps(payload, indent=2))
        else:
            print(payload["output"])
        return 0

    report = convert_batch(config, inputs)
    if args.json:
        payload = {
            "count": len(inputs),
            "outputs": [str(p) for p in report.outputs],
            "failures": [
                {"input": str(f.source_path), "error": f.error, "type": f.error_type} for f in report.failures
            ],
        }
        print(json.dumps(payload, indent=2))
    else:
        print(f"Converted: {len(report.outputs)}/{len(inputs)}")
        for p in report.outputs:
            print(f"  {p}")
        for failure in report.failures:
            print(f"  failed {failure.source_path.name}: {failure.error}", file=sys.stderr)
    return 0 if not report.failures else 1


def _cmd_show_config(args: argparse.Namespace) -> int:
    config = _resolve_config(args)
    print(format_params(config))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "convert":
            return _cmd_convert(args)
        if args.command == "show-config":
            return _cmd_show_config(args)

        parser.error(f"unknown command: {args.command}")
        return 2
    except Exception as exc:
        logger.exception("fatal error")
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

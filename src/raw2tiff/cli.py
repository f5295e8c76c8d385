from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

from raw2tiff.config import (
    AppConfig,
    DebayerBackendKind,
    PipelineConfig,
    Predictor,
    TiffCompression,
    load_config,
)
from raw2tiff.errors import DeviceError
from raw2tiff.utils.logging_utils import configure_logging


logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="raw2tiff")
    sub = parser.add_subparsers(dest="command", required=True)

    convert = sub.add_parser("convert", help="Convert one Bayer RAW file to a 16-bit TIFF")
    convert.add_argument("input", help="Input RAW file path")
    convert.add_argument("--out", default=None, help="Output TIFF path (default: input path with .tiff suffix)")
    convert.add_argument("--config", default=None, help="Optional path to YAML config")
    convert.add_argument(
        "--backend",
        choices=[k.value for k in DebayerBackendKind],
        default=None,
        help="Debayer backend override",
    )
    convert.add_argument("--no-debayer", action="store_true", help="Write the raw mosaic as 16-bit grayscale")
    convert.add_argument(
        "--compression",
        choices=[c.value for c in TiffCompression],
        default=None,
        help="TIFF compression override",
    )
    convert.add_argument(
        "--predictor",
        choices=[p.value for p in Predictor],
        default=None,
        help="TIFF predictor override",
    )
    convert.add_argument("--timings", action="store_true", help="Print the per-stage timing summary")
    convert.add_argument("--json", action="store_true", help="Emit machine-readable JSON")

    compare = sub.add_parser(
        "compare-backends",
        help="Debayer one RAW file with every GPU backend and report the difference to the CPU reference",
    )
    compare.add_argument("input", help="Input RAW file path")
    compare.add_argument("--config", default=None, help="Optional path to YAML config")
    compare.add_argument("--json", action="store_true", help="Emit machine-readable JSON report")

    return parser


def _load_app_config(path: str | None) -> AppConfig:
    config = load_config(path) if path else AppConfig()
    configure_logging(config.log_level, config.log_file)
    return config


def _cmd_convert(args: argparse.Namespace) -> int:
    from raw2tiff.converter import RawToTiffConverter

    config = _load_app_config(args.config)

    pipeline = config.pipeline
    builder = PipelineConfig.builder()
    builder.compression(args.compression or pipeline.compression)
    builder.predictor(args.predictor or pipeline.predictor)
    builder.validate_dimensions(pipeline.validate_dimensions)
    builder.max_dimension(pipeline.max_dimension)
    builder.debayer(pipeline.debayer and not args.no_debayer)
    builder.backend(args.backend or pipeline.backend)
    pipeline = builder.build()

    input_path = Path(args.input).expanduser().resolve()
    out_path = Path(args.out).expanduser().resolve() if args.out else input_path.with_suffix(".tiff")

    with RawToTiffConverter(pipeline) as converter:
        timings = converter.convert_file(input_path, out_path)

    if args.json:
        payload = {
            "input": str(input_path),
            "output": str(out_path),
            "backend": pipeline.backend.value if pipeline.debayer else None,
            "compression": pipeline.compression.value,
            "predictor": pipeline.predictor.value,
            "color_version": converter.color_version,
            "timings": timings.to_json_dict(),
        }
        print(json.dumps(payload, indent=2))
        return 0

    print(str(out_path))
    if args.timings:
        for line in timings.summary_lines():
            print(line)
    return 0


def _cmd_compare_backends(args: argparse.Namespace) -> int:
    from raw2tiff.debayer.factory import create_backend
    from raw2tiff.debayer.gpu_context import GpuContext
    from raw2tiff.debayer.parity import BackendParity, compare_backends
    from raw2tiff.decode.libraw_decoder import LibRawDecoder

    _load_app_config(args.config)

    input_path = Path(args.input).expanduser().resolve()
    frame = LibRawDecoder().decode(input_path.read_bytes())

    with GpuContext() as context:
        backends = []
        unavailable = []
        for kind in (DebayerBackendKind.GPU_CUSTOM_KERNEL, DebayerBackendKind.GPU_VENDOR_PRIMITIVE):
            try:
                backends.append(create_backend(kind, context))
            except DeviceError as exc:
                logger.warning("backend %s unavailable: %s", kind.value, exc)
                unavailable.append(BackendParity(backend=kind.value, error=str(exc)))
        report = compare_backends(frame, backends)
        report.results.extend(unavailable)

    payload = report.to_json_dict()
    payload["input"] = str(input_path)
    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        print(f"Input RAW: {input_path}")
        print(f"Size: {report.width}x{report.height}  tolerance: {report.tolerance}")
        for r in report.results:
            if r.error:
                print(f"  {r.backend:<22} error={r.error}")
                continue
            scope = "interior" if r.interior_only else "full"
            verdict = "ok" if r.within_tolerance else "MISMATCH"
            print(f"  {r.backend:<22} max_abs_diff={r.max_abs_diff} ({scope}) {verdict}")

    return 0 if all(r.within_tolerance for r in report.results) else 1


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "convert":
            return _cmd_convert(args)
        if args.command == "compare-backends":
            return _cmd_compare_backends(args)

        parser.error(f"unknown command: {args.command}")
        return 2
    except Exception as exc:
        logger.exception("fatal error")
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

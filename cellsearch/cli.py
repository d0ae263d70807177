#!/usr/bin/env python3
"""cellsearch CLI entrypoint (package module)."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from cellsearch.detection.dedup import SAME_CELL_SPAN_HZ
from cellsearch.sweep.config import DEFAULT_CORRECTION, DEFAULT_PPM, SearchConfig
from cellsearch.sweep.runner import run_search
from cellsearch.util.errors import ConfigurationError
from cellsearch.util.exit_codes import ExitCode
from cellsearch.util.logging import configure_logging

USAGE_NOTES = """\
'c' is the correction factor to apply and indicates that if the desired
center frequency is fc, the SDR should be instructed to tune to frequency
fc*c so that its true frequency shall be fc. Default: 1.0
'ppm' is the remaining frequency error of the crystal. Default: 100

If the crystal has not been used for a long time use the default values for
'ppm' and 'c' until a cell is successfully located. The program will return
a 'c' value that can be used in the future, assuming that the crystal's
frequency accuracy does not change significantly.

Even if a correction factor has been calculated, there is usually some
remaining frequency error in the crystal. Thus, after a c value is calculated,
the ppm value can be reduced, but typically not to 0. After a reliable c value
has been determined, ppm can be reduced to 10.
"""


class _UsageAction(argparse.Action):
    """Print the usage screen and exit with a nonzero status."""

    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings=option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        parser.exit(ExitCode.HELP)


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer '{text}'") from exc
    if value < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="cellsearch",
        description="Blind LTE cell search using an RTL-SDR or any SoapySDR device",
        epilog=USAGE_NOTES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    p.add_argument("-h", "--help", action=_UsageAction, help="print this help screen")

    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", dest="verbosity", action="store_const", const=2, help="increase status messages from program")
    verbosity.add_argument("-b", "--brief", dest="verbosity", action="store_const", const=0, help="reduce status messages from program")

    p.add_argument("-s", "--freq-start", dest="freq_start", type=float, required=True, help="frequency where cell search should start [Hz]")
    p.add_argument("-e", "--freq-end", dest="freq_end", type=float, default=None, help="frequency where cell search should end [Hz] (default: start)")
    p.add_argument("-p", "--ppm", type=float, default=DEFAULT_PPM, help="crystal remaining PPM error (default 100)")
    p.add_argument("-c", "--correction", type=float, default=DEFAULT_CORRECTION, help="crystal correction factor (default 1.0)")

    capture = p.add_mutually_exclusive_group()
    capture.add_argument("-r", "--record", action="store_true", help="save captured data in the files capbuf_XXXXX.npy")
    capture.add_argument("-l", "--load", action="store_true", help="use data in capbuf_XXXXX.npy files instead of live data")
    p.add_argument("-d", "--data-dir", dest="data_dir", default=".", help="directory where capbuf_XXXXX.npy files are located")

    p.add_argument("--driver", default="rtlsdr", help="Soapy driver key (e.g., rtlsdr, hackrf, airspy) or 'rtlsdr_native' for direct librtlsdr (default rtlsdr)")
    p.add_argument("--soapy-args", dest="soapy_args", default=None, help="Comma-separated Soapy device args (e.g., 'serial=00000001,index=0')")
    p.add_argument("--gain", default="auto", help='Gain in dB or "auto" (default auto)')
    p.add_argument("--kernels", default=None, help="Signal-processing backend as 'package.module:attr' or an entry point name (default $CELLSEARCH_KERNELS)")

    p.add_argument("--jsonl", default=None, help="Append search events as line-delimited JSON to this path")
    p.add_argument("--json", action="store_true", help="Print the final cell list as JSON instead of a table")
    p.add_argument("--log-json", dest="log_json", default=None, help="Also write log records as JSON lines to this path")

    p.add_argument("--dedup-span-hz", dest="dedup_span_hz", type=float, default=SAME_CELL_SPAN_HZ, help="Detections of one cell id closer than this are merged (default 1e6)")
    p.add_argument("--fa-per-search", dest="fa_per_search", action="store_true", help="Spread the false-alarm budget over all offset hypotheses instead of per hypothesis")
    p.add_argument("--max-peaks", dest="max_peaks", type=_positive_int, default=None, help="Examine at most this many correlation peaks per center frequency")
    p.set_defaults(verbosity=1)
    return p


def _normalize_gain(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    gain = str(args.gain).strip()
    if gain.lower() == "auto":
        args.gain = "auto"
        return
    try:
        args.gain = float(gain)
    except ValueError:
        parser.error(f"--gain must be a number or 'auto', got '{gain}'")


def parse_args(argv: Optional[List[str]] = None, parser: Optional[argparse.ArgumentParser] = None) -> argparse.Namespace:
    if argv is None:
        argv = sys.argv[1:]
    p = parser or build_parser()
    args = p.parse_args(argv)
    _normalize_gain(args, p)
    return args


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parse_args(argv, parser)
    configure_logging(verbosity=args.verbosity, json_file=args.log_json)
    config = SearchConfig.from_args(args)
    try:
        grid = config.validate()
    except ConfigurationError as exc:
        parser.error(str(exc))
    return run_search(config, grid=grid)


if __name__ == "__main__":
    sys.exit(main())

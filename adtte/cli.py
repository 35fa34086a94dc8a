#!/usr/bin/env python3
"""
Time-to-event derivation CLI.

Usage:
    adtte --adsl adsl.csv --event death_event --censor lastalv_censor \\
          --paramcd OS --param "Overall Survival" --out adtte.csv
    adtte --adsl adsl.csv --source adae=adae.csv --event ae_ser_event \\
          --censor eot_censor --paramcd TTSAE --out adtte.csv
    adtte --list-sources
"""

import argparse
import logging
import sys
import warnings

import pandas as pd

from .derivation import derive_param_tte
from .presets import get_tte_source, list_tte_source_objects
from .tte_data import TTEData_from_adtte
from .utils import csv_sniffer, set_verbosity


def print_header(text):
    """Print a formatted header."""
    print("\n" + "=" * 60)
    print(text)
    print("=" * 60)


def parse_source(text: str):
    """Parse a ``name=path`` source dataset option."""
    if '=' not in text:
        raise argparse.ArgumentTypeError(f"Invalid source {text!r}, expected name=path")
    name, path = text.split('=', 1)
    return name.strip(), path.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Derive an ADaM time-to-event parameter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  adtte --adsl adsl.csv --event death_event --censor lastalv_censor --paramcd OS
  adtte --list-sources
        """
    )

    parser.add_argument("--adsl", help="Subject-level dataset (CSV), registered as 'adsl'")
    parser.add_argument("--source", action="append", default=[], type=parse_source,
                        metavar="NAME=PATH", help="Additional source dataset (CSV)")
    parser.add_argument("--event", action="append", default=[],
                        help="Predefined event source (repeatable)")
    parser.add_argument("--censor", action="append", default=[],
                        help="Predefined censoring source (repeatable)")
    parser.add_argument("--start-date", default="TRTSDT",
                        help="Start date column of ADSL (default: TRTSDT)")
    parser.add_argument("--paramcd", help="Parameter code")
    parser.add_argument("--param", help="Parameter description")
    parser.add_argument("--subject-keys", default="STUDYID,USUBJID",
                        help="Comma separated subject key columns")
    parser.add_argument("--unit", default="days",
                        help="Unit of AVAL (default: days)")
    parser.add_argument("--check-type", default="warning",
                        choices=["warning", "error", "none"],
                        help="Handling of records with the same extreme date")
    parser.add_argument("--out", help="Output CSV path (default: print records)")
    parser.add_argument("--list-sources", action="store_true",
                        help="List the predefined sources and exit")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    return parser


def run(args) -> pd.DataFrame:
    """Derive the parameter described by parsed CLI arguments."""
    adsl = csv_sniffer(args.adsl)
    source_datasets = {'adsl': adsl}
    for name, path in args.source:
        source_datasets[name] = csv_sniffer(path)

    set_values_to = {}
    if args.paramcd:
        set_values_to['PARAMCD'] = args.paramcd
    if args.param:
        set_values_to['PARAM'] = args.param

    return derive_param_tte(
        dataset_adsl=adsl,
        source_datasets=source_datasets,
        event_conditions=[get_tte_source(name) for name in args.event],
        censor_conditions=[get_tte_source(name) for name in args.censor],
        start_date=args.start_date,
        set_values_to=set_values_to,
        subject_keys=[k.strip() for k in args.subject_keys.split(',')],
        out_unit=args.unit,
        check_type=args.check_type,
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig()
        set_verbosity(logging.DEBUG)

    if args.list_sources:
        print(list_tte_source_objects().to_string(index=False))
        return 0

    if not args.adsl:
        parser.error("--adsl is required")

    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            adtte = run(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for w in caught:
        print(f"Warning: {w.message}", file=sys.stderr)

    if args.out:
        adtte.to_csv(args.out, index=False, date_format="%Y-%m-%d")
        print(f"Wrote {len(adtte)} records to {args.out}")
    else:
        print(adtte.to_string(index=False))

    print_header("SUMMARY")
    keys = [k.strip() for k in args.subject_keys.split(',')]
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        print(TTEData_from_adtte(adtte, subject_keys=keys, unit=args.unit))

    return 0


if __name__ == "__main__":
    sys.exit(main())

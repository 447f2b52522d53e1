"""
Ad-hoc Wi-Fi echo sweep.

Runs one ns-3 simulation per node count, prints per-flow statistics and
writes the flow monitor and animation traces for every run.

Exit status is 0 on success, 1 when the sweep aborts and 2 when the run
parameters are invalid.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from experiment import NodeSweep
from models import RunParameters, SweepError
from ns3_engine import Ns3Engine
from plots import plot_sweep_summary

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--min-nodes", type=int, default=2, help="Smallest node count in the sweep")
    parser.add_argument("--max-nodes", type=int, default=30, help="Largest node count in the sweep")
    parser.add_argument("--interval", type=int, default=None, help="Interval between packets in milliseconds")
    parser.add_argument("--max-packets", type=int, default=None, help="Max packets to send")
    parser.add_argument("--config", type=Path, default=None, help="JSON file with run parameter overrides")
    parser.add_argument("--output-dir", type=Path, default=Path("."), help="Directory for XML traces")
    parser.add_argument("--json", type=Path, default=None, help="Write sweep results as JSON")
    parser.add_argument("--csv", type=Path, default=None, help="Write per-flow results as CSV")
    parser.add_argument("--plot", type=Path, default=None, help="Save a summary plot")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser


def load_parameters(args: argparse.Namespace) -> RunParameters:
    params = RunParameters()
    if args.config is not None:
        params = RunParameters.from_dict(json.loads(args.config.read_text()))
    if args.interval is not None:
        params = replace(params, interval_ms=args.interval)
    if args.max_packets is not None:
        params = replace(params, max_packets=args.max_packets)
    return params


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        params = load_parameters(args)
    except (OSError, ValueError, TypeError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    sweep = NodeSweep(
        engine_factory=Ns3Engine,
        min_nodes=args.min_nodes,
        max_nodes=args.max_nodes,
        template=params,
        output_dir=args.output_dir,
    )

    try:
        sweep.run(on_report=print)
    except (SweepError, ValueError) as exc:
        logger.error("Sweep aborted: %s", exc)
        return 1

    print("\n" + sweep.summary_table())

    if args.json:
        sweep.to_json(args.json)
    if args.csv:
        sweep.to_csv(args.csv)
    if args.plot:
        plot_sweep_summary(sweep.results, save_path=args.plot, show_plot=False)

    return 0


if __name__ == "__main__":
    sys.exit(main())

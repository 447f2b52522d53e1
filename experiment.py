import csv
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Union

from engine import EngineFactory, SimulationContext
from metrics import reduce_run, summarize_flows
from models import ArtifactWriteError, RunParameters, RunReport
from scenario import ScenarioRunner
from traffic import validate_node_count

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "node_count",
    "flow_id",
    "tx_bytes",
    "rx_bytes",
    "tx_packets",
    "rx_packets",
    "lost_packets",
    "delay_sum",
    "tx_bitrate_kbps",
    "rx_bitrate_kbps",
    "mean_delay",
    "loss_ratio_percent",
]


def run_single(
    params: RunParameters,
    engine_factory: EngineFactory,
    output_dir: Union[str, Path] = ".",
) -> RunReport:
    validate_node_count(params.node_count)

    with SimulationContext(engine_factory) as context:
        runner = ScenarioRunner(context)
        handle = runner.prepare(params)
        result = runner.execute(handle)
        try:
            artifacts = runner.export_artifacts(handle, output_dir)
        except ArtifactWriteError as exc:
            logger.warning("Skipping artifacts for %d nodes: %s", params.node_count, exc)
            artifacts = None

    flows = reduce_run(result)
    return RunReport(
        node_count=result.node_count,
        duration=result.duration,
        flows=flows,
        summary=summarize_flows(flows),
        artifacts=artifacts,
    )


def iter_sweep(
    min_nodes: int,
    max_nodes: int,
    template: RunParameters,
    engine_factory: EngineFactory,
    output_dir: Union[str, Path] = ".",
) -> Iterator[RunReport]:
    if min_nodes > max_nodes:
        raise ValueError(f"min_nodes ({min_nodes}) must not exceed max_nodes ({max_nodes})")
    template.validate()
    validate_node_count(min_nodes)

    for node_count in range(min_nodes, max_nodes + 1):
        report = run_single(template.with_node_count(node_count), engine_factory, output_dir)
        logger.info("Finished run with %d nodes (%d flows reported)", node_count, len(report.flows))
        yield report


def run_sweep(
    min_nodes: int,
    max_nodes: int,
    template: RunParameters,
    engine_factory: EngineFactory,
    output_dir: Union[str, Path] = ".",
) -> List[RunReport]:
    return list(iter_sweep(min_nodes, max_nodes, template, engine_factory, output_dir))


@dataclass
class NodeSweep:
    engine_factory: EngineFactory
    min_nodes: int = 2
    max_nodes: int = 30
    template: RunParameters = field(default_factory=RunParameters)
    output_dir: Path = Path(".")
    results: List[RunReport] = field(default_factory=list)

    def run(self, on_report: Optional[Callable[[RunReport], None]] = None) -> "NodeSweep":
        self.results = []
        for report in iter_sweep(
            self.min_nodes, self.max_nodes, self.template, self.engine_factory, self.output_dir
        ):
            self.results.append(report)
            if on_report is not None:
                on_report(report)
        return self

    def to_json(self, filepath: Optional[Path] = None) -> str:
        data = {
            "parameters": self.template.to_dict(),
            "runs": [r.to_dict() for r in self.results],
        }
        json_str = json.dumps(data, indent=2)
        if filepath:
            filepath.write_text(json_str)
        return json_str

    def to_csv(self, filepath: Path) -> None:
        if not self.results:
            raise ValueError("No results to export. Run the sweep first.")
        with open(filepath, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
            writer.writeheader()
            for run in self.results:
                for flow in run.flows:
                    row = {"node_count": run.node_count}
                    row.update(flow.to_dict())
                    writer.writerow(row)

    def summary_table(self) -> str:
        if not self.results:
            return "No results. Run the sweep first."

        def cell(value: Optional[float], fmt: str) -> str:
            return format(value, fmt) if value is not None else "None"

        header = (
            f"{'Nodes':>5} | {'Flows':>5} | {'TX pkts':>7} | {'RX pkts':>7} | "
            f"{'RX kbit/s':>10} | {'Delay (s)':>10} | {'Loss %':>7}"
        )
        separator = "-" * len(header)

        rows = [header, separator]
        for r in self.results:
            s = r.summary
            rows.append(
                f"{r.node_count:>5} | {s.flows:>5} | {s.tx_packets:>7} | {s.rx_packets:>7} | "
                f"{cell(s.mean_rx_bitrate_kbps, '.4f'):>10} | {cell(s.mean_delay, '.6f'):>10} | "
                f"{cell(s.mean_loss_ratio_percent, '.1f'):>7}"
            )

        return "\n".join(rows)

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from engine import SimulationContext
from models import (
    AppRole,
    ArtifactPaths,
    ArtifactWriteError,
    ClientConfig,
    EngineRunError,
    EngineSetupError,
    RunParameters,
    RunResult,
    SinkConfig,
    TrafficAssignment,
)
from topology import Position, animation_positions, place_from_parameters
from traffic import build_ring_assignment

logger = logging.getLogger(__name__)


def flow_report_filename(node_count: int) -> str:
    return f"flowmonitor-{node_count}-nodes.xml"


def animation_filename(node_count: int) -> str:
    return f"anim-{node_count}-nodes.xml"


@dataclass
class RunHandle:
    params: RunParameters
    assignment: TrafficAssignment
    positions: Dict[int, Position]
    nodes: Any
    addresses: Dict[int, str]
    monitor: Any
    applications: List[Any] = field(default_factory=list)
    executed: bool = False


class ScenarioRunner:
    def __init__(self, context: SimulationContext):
        self.context = context

    @property
    def engine(self):
        return self.context.engine

    def prepare(self, params: RunParameters) -> RunHandle:
        assignment = build_ring_assignment(params.node_count, params.port)
        positions = place_from_parameters(params)

        if self.context.closed or self.context.torn_down:
            raise EngineSetupError("simulation context is no longer usable")

        try:
            self.engine.configure_defaults(params.device)
            nodes = self.engine.create_nodes(params.node_count, positions)
            addresses = self.engine.install_network_stack(nodes, params.device)
            monitor = self.engine.install_flow_instrumentation(nodes)
            applications = self._install_applications(nodes, addresses, assignment, params)
        except EngineSetupError:
            raise
        except Exception as exc:
            raise EngineSetupError(
                f"engine rejected configuration for {params.node_count} nodes: {exc}"
            ) from exc

        logger.debug(
            "Prepared run: %d nodes, sink=%d, %d applications",
            params.node_count,
            assignment.sink,
            len(applications),
        )
        return RunHandle(
            params=params,
            assignment=assignment,
            positions=positions,
            nodes=nodes,
            addresses=addresses,
            monitor=monitor,
            applications=applications,
        )

    def _install_applications(
        self,
        nodes: Any,
        addresses: Dict[int, str],
        assignment: TrafficAssignment,
        params: RunParameters,
    ) -> List[Any]:
        applications = []
        for client, destination in enumerate(assignment.destinations):
            config = ClientConfig(
                destination_address=addresses[destination],
                port=assignment.port,
                max_packets=params.max_packets,
                interval_ms=params.interval_ms,
                packet_size=params.packet_size,
                start_time=params.start_time,
                stop_time=params.stop_time,
            )
            applications.append(self.engine.install_application(nodes, client, AppRole.CLIENT, config))

        sink_config = SinkConfig(
            port=assignment.port,
            start_time=params.start_time,
            stop_time=params.stop_time,
        )
        applications.append(self.engine.install_application(nodes, assignment.sink, AppRole.SINK, sink_config))
        return applications

    def execute(self, handle: RunHandle) -> RunResult:
        if handle.executed:
            raise RuntimeError(f"run with {handle.params.node_count} nodes was already executed")
        handle.executed = True

        logger.info("Simulation running...")
        try:
            self.engine.advance_to(handle.params.stop_time)
            records = dict(self.engine.get_flow_records(handle.monitor))
        except Exception as exc:
            raise EngineRunError(
                f"simulation with {handle.params.node_count} nodes failed: {exc}"
            ) from exc
        finally:
            self.context.teardown()

        return RunResult(
            node_count=handle.params.node_count,
            flow_records=records,
            duration=handle.params.duration,
        )

    def export_artifacts(self, handle: RunHandle, output_dir: Union[str, Path] = ".") -> ArtifactPaths:
        node_count = handle.params.node_count
        directory = Path(output_dir)
        flow_path = directory / flow_report_filename(node_count)
        anim_path = directory / animation_filename(node_count)

        self.context.mark_used()
        try:
            directory.mkdir(parents=True, exist_ok=True)
            self.engine.serialize_flow_report(handle.monitor, str(flow_path))
            self.engine.serialize_animation_trace(
                handle.nodes,
                str(anim_path),
                animation_positions(node_count, handle.params.animation_spacing),
            )
        except Exception as exc:
            raise ArtifactWriteError(f"could not write artifacts for {node_count} nodes: {exc}") from exc

        return ArtifactPaths(flow_report=str(flow_path), animation=str(anim_path))

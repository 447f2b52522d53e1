"""In-memory engine used by the tests.

Every client sends ``max_packets`` packets of ``packet_size`` bytes. Packets
reach their destination only when a sink listens there on the client's port;
otherwise they are counted as lost. Flow ids follow client install order and
start at 1.
"""

from pathlib import Path

from engine import SimulationEngine
from models import AppRole, FlowRecord

SUPPORTED_STANDARDS = {"80211a", "80211b", "80211g", "80211n", "80211p", "80211ac", "80211ax"}
PER_PACKET_DELAY = 0.002


class FakeNodes:
    def __init__(self, count, positions):
        self.count = count
        self.positions = dict(positions)


class FakeEngine(SimulationEngine):
    def __init__(self, factory=None):
        self.factory = factory
        self.calls = []
        self.nodes = None
        self.addresses = {}
        self.clients = {}
        self.sinks = {}
        self.records = {}
        self.teardowns = 0
        self.stop_time = None
        self.written = []

    def configure_defaults(self, device):
        self.calls.append("configure_defaults")
        if device.wifi_standard not in SUPPORTED_STANDARDS:
            raise ValueError(f"unsupported wifi standard {device.wifi_standard}")

    def create_nodes(self, node_count, positions):
        self.calls.append("create_nodes")
        if self.factory is not None and node_count in self.factory.reject_nodes:
            raise RuntimeError("invalid MAC/PHY parameters")
        self.nodes = FakeNodes(node_count, positions)
        return self.nodes

    def install_network_stack(self, nodes, device):
        self.calls.append("install_network_stack")
        base = device.network_base.rsplit(".", 1)[0]
        self.addresses = {index: f"{base}.{index + 1}" for index in range(nodes.count)}
        return dict(self.addresses)

    def install_application(self, nodes, index, role, config):
        self.calls.append(f"install_{role.value}")
        if role is AppRole.CLIENT:
            self.clients[index] = config
        else:
            self.sinks[index] = config
        return (role, index)

    def install_flow_instrumentation(self, nodes):
        self.calls.append("install_flow_instrumentation")
        return "monitor"

    def advance_to(self, stop_time):
        self.calls.append("advance_to")
        if self.factory is not None and self.nodes.count in self.factory.fail_run:
            raise RuntimeError("simulator aborted")
        self.stop_time = stop_time
        by_address = {address: index for index, address in self.addresses.items()}
        for flow_id, client in enumerate(sorted(self.clients), start=1):
            config = self.clients[client]
            destination = by_address[config.destination_address]
            sink = self.sinks.get(destination)
            sent = config.max_packets
            delivered = sent if sink is not None and sink.port == config.port else 0
            self.records[flow_id] = FlowRecord(
                tx_bytes=sent * config.packet_size,
                rx_bytes=delivered * config.packet_size,
                tx_packets=sent,
                rx_packets=delivered,
                lost_packets=sent - delivered,
                delay_sum=delivered * PER_PACKET_DELAY,
            )

    def teardown(self):
        self.calls.append("teardown")
        self.teardowns += 1

    def get_flow_records(self, monitor):
        self.calls.append("get_flow_records")
        return dict(self.records)

    def _check_writable(self):
        if self.factory is not None and self.nodes.count in self.factory.fail_artifacts:
            raise OSError("disk full")

    def serialize_flow_report(self, monitor, path):
        self.calls.append("serialize_flow_report")
        self._check_writable()
        Path(path).write_text(f"<FlowMonitor flows=\"{len(self.records)}\"/>")
        self.written.append(path)

    def serialize_animation_trace(self, nodes, path, positions):
        self.calls.append("serialize_animation_trace")
        self._check_writable()
        Path(path).write_text(f"<anim nodes=\"{len(positions)}\"/>")
        self.written.append(path)


class FakeEngineFactory:
    def __init__(self, reject_nodes=(), fail_artifacts=(), fail_run=()):
        self.reject_nodes = set(reject_nodes)
        self.fail_artifacts = set(fail_artifacts)
        self.fail_run = set(fail_run)
        self.engines = []

    def __call__(self):
        engine = FakeEngine(self)
        self.engines.append(engine)
        return engine

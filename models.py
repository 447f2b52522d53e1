from dataclasses import dataclass, field, asdict, replace
from typing import Dict, List, Optional, Tuple
from enum import Enum


class AppRole(Enum):
    CLIENT = "client"
    SINK = "sink"


@dataclass(frozen=True)
class DeviceParameters:
    wifi_standard: str = "80211p"
    mac_type: str = "ns3::AdhocWifiMac"
    rts_cts_threshold: int = 1000
    network_base: str = "10.1.1.0"
    network_mask: str = "255.255.255.0"
    enable_pcap: bool = True
    pcap_prefix: str = "wifi-node"
    log_echo_applications: bool = True


@dataclass(frozen=True)
class RunParameters:
    node_count: int = 2
    interval_ms: int = 5
    max_packets: int = 10
    port: int = 443
    packet_size: int = 512
    start_time: float = 1.0
    stop_time: float = 25.0
    grid_width: int = 6
    min_x: float = 0.0
    min_y: float = 0.0
    delta_x: float = 5.0
    delta_y: float = 10.0
    animation_spacing: float = 10.0
    device: DeviceParameters = field(default_factory=DeviceParameters)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        for name in ("interval_ms", "max_packets", "packet_size", "grid_width"):
            value = getattr(self, name)
            if value <= 0:
                raise InvalidRunParameters(f"{name} must be positive, got {value}")
        if not 0 < self.port <= 65535:
            raise InvalidRunParameters(f"port must be in 1..65535, got {self.port}")
        if self.start_time < 0:
            raise InvalidRunParameters(f"start_time must not be negative, got {self.start_time}")
        if self.stop_time <= self.start_time:
            raise InvalidRunParameters(
                f"stop_time ({self.stop_time}) must be after start_time ({self.start_time})"
            )

    @property
    def duration(self) -> float:
        return self.stop_time - self.start_time

    def with_node_count(self, node_count: int) -> "RunParameters":
        return replace(self, node_count=node_count)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "RunParameters":
        values = dict(data)
        device = values.pop("device", None)
        unknown = set(values) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown run parameters: {', '.join(sorted(unknown))}")
        if device is not None:
            unknown_device = set(device) - set(DeviceParameters.__dataclass_fields__)
            if unknown_device:
                raise ValueError(f"Unknown device parameters: {', '.join(sorted(unknown_device))}")
            values["device"] = DeviceParameters(**device)
        return cls(**values)


@dataclass(frozen=True)
class TrafficAssignment:
    node_count: int
    destinations: Tuple[int, ...]
    sink: int
    port: int

    def destination_of(self, client: int) -> int:
        return self.destinations[client]


@dataclass(frozen=True)
class ClientConfig:
    destination_address: str
    port: int
    max_packets: int
    interval_ms: int
    packet_size: int
    start_time: float
    stop_time: float


@dataclass(frozen=True)
class SinkConfig:
    port: int
    start_time: float
    stop_time: float


@dataclass(frozen=True)
class FlowRecord:
    tx_bytes: int = 0
    rx_bytes: int = 0
    tx_packets: int = 0
    rx_packets: int = 0
    lost_packets: int = 0
    delay_sum: float = 0.0


def _format_optional(value: Optional[float], unit: str = "") -> str:
    if value is None:
        return "None"
    return f"{value:g}{unit}"


@dataclass(frozen=True)
class FlowMetrics:
    tx_bitrate_kbps: Optional[float]
    rx_bitrate_kbps: Optional[float]
    mean_delay: Optional[float]
    loss_ratio_percent: Optional[float]


@dataclass(frozen=True)
class FlowReport:
    flow_id: int
    record: FlowRecord
    metrics: FlowMetrics

    def __str__(self) -> str:
        return (
            f"======= FlowID: {self.flow_id} =======\n"
            f"TX bitrates: {_format_optional(self.metrics.tx_bitrate_kbps, ' kbit/s')}\n"
            f"RX bitrate: {_format_optional(self.metrics.rx_bitrate_kbps, ' kbit/s')}\n"
            f"TX packets: {self.record.tx_packets}\n"
            f"RX packets: {self.record.rx_packets}\n"
            f"Mean delay: {_format_optional(self.metrics.mean_delay, ' s')}\n"
            f"Packet loss ratio: {_format_optional(self.metrics.loss_ratio_percent, '%')}"
        )

    def to_dict(self) -> dict:
        row = {"flow_id": self.flow_id}
        row.update(asdict(self.record))
        row.update(asdict(self.metrics))
        return row


@dataclass(frozen=True)
class RunResult:
    node_count: int
    flow_records: Dict[int, FlowRecord]
    duration: float


@dataclass(frozen=True)
class ArtifactPaths:
    flow_report: str
    animation: str


@dataclass(frozen=True)
class RunSummary:
    flows: int
    tx_packets: int
    rx_packets: int
    lost_packets: int
    mean_tx_bitrate_kbps: Optional[float]
    mean_rx_bitrate_kbps: Optional[float]
    mean_delay: Optional[float]
    mean_loss_ratio_percent: Optional[float]
    silent_flows: int

    def __str__(self) -> str:
        return (
            f"Run summary ({self.flows} flows):\n"
            f"  Packets TX/RX/lost: {self.tx_packets}/{self.rx_packets}/{self.lost_packets}\n"
            f"  Mean TX bitrate:    {_format_optional(self.mean_tx_bitrate_kbps, ' kbit/s')}\n"
            f"  Mean RX bitrate:    {_format_optional(self.mean_rx_bitrate_kbps, ' kbit/s')}\n"
            f"  Mean delay:         {_format_optional(self.mean_delay, ' s')}\n"
            f"  Mean loss ratio:    {_format_optional(self.mean_loss_ratio_percent, '%')}\n"
            f"  Silent flows:       {self.silent_flows}"
        )


@dataclass
class RunReport:
    node_count: int
    duration: float
    flows: List[FlowReport]
    summary: RunSummary
    artifacts: Optional[ArtifactPaths] = None

    def __str__(self) -> str:
        blocks = [str(flow) for flow in self.flows]
        blocks.append(f"Simulation for {self.node_count} nodes")
        return "\n".join(blocks)

    def to_dict(self) -> dict:
        return {
            "node_count": self.node_count,
            "duration": self.duration,
            "flows": [flow.to_dict() for flow in self.flows],
            "summary": asdict(self.summary),
            "artifacts": asdict(self.artifacts) if self.artifacts else None,
        }


class SweepError(Exception):
    pass


class InvalidTopologySize(SweepError, ValueError):
    pass


class InvalidRunParameters(SweepError, ValueError):
    pass


class EngineSetupError(SweepError):
    pass


class EngineRunError(SweepError):
    pass


class ArtifactWriteError(SweepError):
    pass

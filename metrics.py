from typing import Iterable, List, Mapping, Optional, Sequence

import numpy as np

from models import FlowMetrics, FlowRecord, FlowReport, RunResult, RunSummary

FIRST_CLIENT_FLOW_ID = 2


def validate_duration(duration: float) -> None:
    if duration <= 0:
        raise ValueError(f"run duration must be positive, got {duration}")


def _bitrate_kbps(byte_count: int, duration: float) -> Optional[float]:
    if byte_count > 0:
        return (byte_count * 8.0) / (duration * 1000.0)
    return None


def reduce_flow(record: FlowRecord, duration: float) -> FlowMetrics:
    validate_duration(duration)

    mean_delay = record.delay_sum / record.rx_packets if record.rx_packets > 0 else None
    # absent rather than NaN when nothing was sent
    if record.tx_packets > 0:
        loss_ratio = record.lost_packets / record.tx_packets * 100.0
    else:
        loss_ratio = None

    return FlowMetrics(
        tx_bitrate_kbps=_bitrate_kbps(record.tx_bytes, duration),
        rx_bitrate_kbps=_bitrate_kbps(record.rx_bytes, duration),
        mean_delay=mean_delay,
        loss_ratio_percent=loss_ratio,
    )


def client_flow_ids(node_count: int) -> range:
    return range(FIRST_CLIENT_FLOW_ID, node_count + 1)


def reduce_records(
    records: Mapping[int, FlowRecord],
    node_count: int,
    duration: float,
) -> List[FlowReport]:
    reports = []
    for flow_id in client_flow_ids(node_count):
        record = records.get(flow_id, FlowRecord())
        reports.append(FlowReport(flow_id=flow_id, record=record, metrics=reduce_flow(record, duration)))
    return reports


def reduce_run(result: RunResult) -> List[FlowReport]:
    return reduce_records(result.flow_records, result.node_count, result.duration)


def _present_mean(values: Iterable[Optional[float]]) -> Optional[float]:
    samples = np.array([np.nan if v is None else v for v in values], dtype=float)
    if samples.size == 0 or np.isnan(samples).all():
        return None
    return float(np.nanmean(samples))


def summarize_flows(flows: Sequence[FlowReport]) -> RunSummary:
    return RunSummary(
        flows=len(flows),
        tx_packets=sum(f.record.tx_packets for f in flows),
        rx_packets=sum(f.record.rx_packets for f in flows),
        lost_packets=sum(f.record.lost_packets for f in flows),
        mean_tx_bitrate_kbps=_present_mean(f.metrics.tx_bitrate_kbps for f in flows),
        mean_rx_bitrate_kbps=_present_mean(f.metrics.rx_bitrate_kbps for f in flows),
        mean_delay=_present_mean(f.metrics.mean_delay for f in flows),
        mean_loss_ratio_percent=_present_mean(f.metrics.loss_ratio_percent for f in flows),
        silent_flows=sum(1 for f in flows if f.metrics.rx_bitrate_kbps is None),
    )

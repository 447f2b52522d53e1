import pytest

from metrics import client_flow_ids, reduce_flow, reduce_records, reduce_run, summarize_flows
from models import FlowRecord, RunResult


def test_tx_bitrate_formula():
    metrics = reduce_flow(FlowRecord(tx_bytes=51200, tx_packets=100), duration=24.0)

    assert metrics.tx_bitrate_kbps == pytest.approx(17.0667, rel=1e-4)
    assert metrics.rx_bitrate_kbps is None


def test_rx_bitrate_uses_received_bytes():
    record = FlowRecord(tx_bytes=5120, rx_bytes=2560, tx_packets=10, rx_packets=5)

    metrics = reduce_flow(record, duration=24.0)

    assert metrics.rx_bitrate_kbps == pytest.approx(2560 * 8 / 24000)


def test_zero_tx_bytes_is_absent_not_zero():
    metrics = reduce_flow(FlowRecord(), duration=24.0)

    assert metrics.tx_bitrate_kbps is None
    assert metrics.tx_bitrate_kbps != 0


def test_mean_delay_absent_without_received_packets():
    record = FlowRecord(tx_bytes=5120, tx_packets=10, lost_packets=10, delay_sum=0.0)

    assert reduce_flow(record, duration=24.0).mean_delay is None


def test_mean_delay_divides_by_received_packets():
    record = FlowRecord(tx_bytes=5120, rx_bytes=5120, tx_packets=10, rx_packets=4, delay_sum=0.02)

    assert reduce_flow(record, duration=24.0).mean_delay == pytest.approx(0.005)


def test_loss_ratio_percent():
    record = FlowRecord(tx_bytes=5120, tx_packets=10, rx_packets=8, lost_packets=2)

    assert reduce_flow(record, duration=24.0).loss_ratio_percent == pytest.approx(20.0)


def test_loss_ratio_absent_when_nothing_was_sent():
    metrics = reduce_flow(FlowRecord(lost_packets=0, tx_packets=0), duration=24.0)

    assert metrics.loss_ratio_percent is None


def test_full_loss_is_one_hundred_percent():
    record = FlowRecord(tx_bytes=5120, tx_packets=10, lost_packets=10)

    assert reduce_flow(record, duration=24.0).loss_ratio_percent == pytest.approx(100.0)


@pytest.mark.parametrize("duration", [0.0, -1.0])
def test_non_positive_duration_is_rejected(duration):
    with pytest.raises(ValueError):
        reduce_flow(FlowRecord(tx_bytes=1, tx_packets=1), duration=duration)


def test_reported_flow_ids_skip_zero_and_one():
    assert list(client_flow_ids(4)) == [2, 3, 4]
    assert list(client_flow_ids(2)) == [2]


def test_missing_flow_reads_as_empty_record():
    records = {1: FlowRecord(tx_bytes=10, tx_packets=1), 3: FlowRecord(tx_bytes=512, tx_packets=1)}

    reports = reduce_records(records, node_count=3, duration=24.0)

    assert [r.flow_id for r in reports] == [2, 3]
    assert reports[0].record == FlowRecord()
    assert reports[0].metrics.tx_bitrate_kbps is None
    assert reports[0].metrics.loss_ratio_percent is None
    assert reports[1].metrics.tx_bitrate_kbps == pytest.approx(512 * 8 / 24000)


def test_reduce_run_ignores_control_flows():
    result = RunResult(
        node_count=2,
        flow_records={
            1: FlowRecord(tx_bytes=999, tx_packets=9),
            2: FlowRecord(tx_bytes=512, rx_bytes=512, tx_packets=1, rx_packets=1, delay_sum=0.004),
        },
        duration=24.0,
    )

    reports = reduce_run(result)

    assert len(reports) == 1
    assert reports[0].flow_id == 2
    assert reports[0].metrics.mean_delay == pytest.approx(0.004)


def test_summary_averages_present_values_only():
    records = {
        2: FlowRecord(tx_bytes=5120, rx_bytes=5120, tx_packets=10, rx_packets=10, delay_sum=0.01),
        3: FlowRecord(tx_bytes=5120, tx_packets=10, lost_packets=10),
    }
    flows = reduce_records(records, node_count=4, duration=24.0)

    summary = summarize_flows(flows)

    assert summary.flows == 3
    assert summary.tx_packets == 20
    assert summary.rx_packets == 10
    assert summary.lost_packets == 10
    assert summary.mean_rx_bitrate_kbps == pytest.approx(5120 * 8 / 24000)
    assert summary.mean_delay == pytest.approx(0.001)
    assert summary.mean_loss_ratio_percent == pytest.approx(50.0)
    assert summary.silent_flows == 2


def test_summary_of_silent_run_has_no_means():
    summary = summarize_flows(reduce_records({}, node_count=3, duration=24.0))

    assert summary.mean_tx_bitrate_kbps is None
    assert summary.mean_rx_bitrate_kbps is None
    assert summary.mean_delay is None
    assert summary.mean_loss_ratio_percent is None
    assert summary.silent_flows == 2


def test_summary_of_no_flows():
    summary = summarize_flows([])

    assert summary.flows == 0
    assert summary.mean_loss_ratio_percent is None

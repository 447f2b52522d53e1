"""
ns-3 implementation of the simulation engine interface.

Requires the ns-3 Python bindings (``from ns import ns``), available from the
``ns3`` wheel or a local ns-3 build with bindings enabled. The bindings are
loaded when the engine is constructed, so the rest of the package imports
without them.
"""

import ipaddress
import logging
from pathlib import Path
from typing import Any, Dict, Mapping

from engine import SimulationEngine
from models import AppRole, ClientConfig, DeviceParameters, EngineSetupError, FlowRecord, SinkConfig
from topology import Position

logger = logging.getLogger(__name__)


def load_bindings():
    try:
        from ns import ns
    except ModuleNotFoundError as exc:
        raise EngineSetupError(
            "ns-3 Python module not found; Python bindings may not be enabled"
            " or your PYTHONPATH might not be properly configured"
        ) from exc
    return ns


def pcap_filename(prefix: str, index: int) -> str:
    return f"{prefix}-{index}.pcap"


class Ns3Engine(SimulationEngine):
    def __init__(self):
        self.ns = load_bindings()
        self._flow_helper = None
        self._phy = None

    def configure_defaults(self, device: DeviceParameters) -> None:
        ns = self.ns
        if device.log_echo_applications:
            ns.LogComponentEnable("UdpEchoClientApplication", ns.LOG_LEVEL_INFO)
            ns.LogComponentEnable("UdpEchoServerApplication", ns.LOG_LEVEL_INFO)
        ns.Config.SetDefault(
            "ns3::WifiRemoteStationManager::RtsCtsThreshold",
            ns.UintegerValue(device.rts_cts_threshold),
        )

    def create_nodes(self, node_count: int, positions: Mapping[int, Position]) -> Any:
        ns = self.ns
        nodes = ns.NodeContainer()
        nodes.Create(node_count)

        allocator = ns.CreateObject[ns.ListPositionAllocator]()
        for index in range(node_count):
            x, y = positions[index]
            allocator.Add(ns.Vector(x, y, 0.0))

        mobility = ns.MobilityHelper()
        mobility.SetPositionAllocator(allocator)
        mobility.SetMobilityModel("ns3::ConstantPositionMobilityModel")
        mobility.Install(nodes)
        return nodes

    def install_network_stack(self, nodes: Any, device: DeviceParameters) -> Dict[int, str]:
        ns = self.ns
        wifi = ns.WifiHelper()
        wifi.SetStandard(getattr(ns, f"WIFI_STANDARD_{device.wifi_standard}"))

        self._phy = ns.YansWifiPhyHelper()
        channel = ns.YansWifiChannelHelper.Default()
        self._phy.SetChannel(channel.Create())

        mac = ns.WifiMacHelper()
        mac.SetType(device.mac_type)
        devices = wifi.Install(self._phy, mac, nodes)

        stack = ns.InternetStackHelper()
        stack.Install(nodes)

        address = ns.Ipv4AddressHelper()
        address.SetBase(ns.Ipv4Address(device.network_base), ns.Ipv4Mask(device.network_mask))
        interfaces = address.Assign(devices)
        ns.Ipv4GlobalRoutingHelper.PopulateRoutingTables()

        if device.enable_pcap:
            for index in range(devices.GetN()):
                self._phy.EnablePcap(pcap_filename(device.pcap_prefix, index), devices.Get(index), False, True)

        return {
            index: str(ipaddress.IPv4Address(int(interfaces.GetAddress(index).Get())))
            for index in range(nodes.GetN())
        }

    def install_application(self, nodes: Any, index: int, role: AppRole, config: Any) -> Any:
        ns = self.ns
        if role is AppRole.CLIENT:
            helper = self._client_helper(config)
        elif role is AppRole.SINK:
            helper = ns.UdpEchoServerHelper(config.port)
        else:
            raise ValueError(f"Unknown application role: {role}")

        apps = helper.Install(nodes.Get(index))
        apps.Start(ns.Seconds(config.start_time))
        apps.Stop(ns.Seconds(config.stop_time))
        return apps

    def _client_helper(self, config: ClientConfig) -> Any:
        ns = self.ns
        remote = ns.Ipv4Address(config.destination_address).ConvertTo()
        helper = ns.UdpEchoClientHelper(remote, config.port)
        helper.SetAttribute("MaxPackets", ns.UintegerValue(config.max_packets))
        helper.SetAttribute("Interval", ns.TimeValue(ns.MilliSeconds(config.interval_ms)))
        helper.SetAttribute("PacketSize", ns.UintegerValue(config.packet_size))
        return helper

    def install_flow_instrumentation(self, nodes: Any) -> Any:
        self._flow_helper = self.ns.FlowMonitorHelper()
        return self._flow_helper.InstallAll()

    def advance_to(self, stop_time: float) -> None:
        ns = self.ns
        ns.Simulator.Stop(ns.Seconds(stop_time))
        ns.Simulator.Run()

    def teardown(self) -> None:
        self.ns.Simulator.Destroy()

    def get_flow_records(self, monitor: Any) -> Dict[int, FlowRecord]:
        monitor.CheckForLostPackets()
        records = {}
        for flow_id, stats in monitor.GetFlowStats():
            records[int(flow_id)] = FlowRecord(
                tx_bytes=int(stats.txBytes),
                rx_bytes=int(stats.rxBytes),
                tx_packets=int(stats.txPackets),
                rx_packets=int(stats.rxPackets),
                lost_packets=int(stats.lostPackets),
                delay_sum=stats.delaySum.GetSeconds(),
            )
        logger.debug("Collected %d flow records", len(records))
        return records

    def serialize_flow_report(self, monitor: Any, path: str) -> None:
        monitor.SerializeToXmlFile(path, True, True)
        # the engine does not report stream errors
        if not Path(path).exists():
            raise OSError(f"flow monitor did not write {path}")

    def serialize_animation_trace(self, nodes: Any, path: str, positions: Mapping[int, Position]) -> None:
        anim = self.ns.AnimationInterface(path)
        for index, (x, y) in positions.items():
            anim.SetConstantPosition(nodes.Get(index), x, y)
        # the trace is flushed when the interface is destroyed
        del anim

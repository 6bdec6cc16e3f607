"""Pydantic models and enums for topology snapshots, traced paths and grades."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


class DeviceRole(str, Enum):
    GATEWAY = "Gateway"
    SWITCH = "Switch"
    ACCESS_POINT = "AccessPoint"
    CELLULAR_MODEM = "CellularModem"
    CLIENT_ADJACENT = "ClientAdjacent"


class UplinkMedium(str, Enum):
    WIRE = "wire"
    WIRELESS = "wireless"


class HopType(str, Enum):
    CLIENT = "Client"
    WIRELESS_CLIENT = "WirelessClient"
    SWITCH = "Switch"
    ACCESS_POINT = "AccessPoint"
    GATEWAY = "Gateway"
    SERVER = "Server"
    VPN = "Vpn"
    WAN = "Wan"


class PerformanceGrade(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    CRITICAL = "Critical"


# ── topology snapshot ────────────────────────────────────────────────


class PortInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    port_idx: int
    name: str = ""
    speed: int = 0  # Mbps, 0 when down or unknown
    up: bool = False


class Device(BaseModel):
    model_config = ConfigDict(frozen=True)

    mac: str
    name: str = ""
    model: str = ""
    model_display: str = ""
    ip: str = ""
    role: DeviceRole = DeviceRole.CLIENT_ADJACENT
    uplink_mac: Optional[str] = None
    uplink_port: Optional[int] = None
    uplink_medium: UplinkMedium = UplinkMedium.WIRE
    uplink_speed: int = 0  # Mbps
    uplink_tx_rate_kbps: int = 0
    uplink_rx_rate_kbps: int = 0
    uplink_radio: str = ""
    uplink_channel: Optional[int] = None
    uplink_signal: Optional[int] = None
    ports: dict[int, PortInfo] = Field(default_factory=dict)

    @property
    def display_model(self) -> str:
        return self.model_display or self.model

    @property
    def label(self) -> str:
        return self.name or self.mac

    @property
    def has_wireless_uplink(self) -> bool:
        return self.uplink_medium == UplinkMedium.WIRELESS

    @property
    def wireless_uplink_mbps(self) -> int:
        """Mesh PHY rate in Mbps, falling back to the reported uplink speed."""
        if self.uplink_tx_rate_kbps:
            return self.uplink_tx_rate_kbps // 1000
        return self.uplink_speed


class Client(BaseModel):
    model_config = ConfigDict(frozen=True)

    mac: str
    name: str = ""
    hostname: str = ""
    ip: str = ""
    is_wired: bool = True
    attached_mac: Optional[str] = None
    attached_port: Optional[int] = None
    network_id: str = ""
    network_name: str = ""
    vlan: Optional[int] = None
    tx_rate_kbps: int = 0
    rx_rate_kbps: int = 0
    radio: str = ""
    radio_proto: str = ""
    channel: Optional[int] = None
    signal: Optional[int] = None

    @property
    def label(self) -> str:
        return self.name or self.hostname or self.ip or self.mac


class Network(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    vlan: Optional[int] = None
    ip_subnet: str = ""
    enabled: bool = True
    purpose: str = ""


class Topology(BaseModel):
    """Immutable snapshot of one controller inventory read."""

    model_config = ConfigDict(frozen=True)

    devices: list[Device] = Field(default_factory=list)
    clients: list[Client] = Field(default_factory=list)
    networks: list[Network] = Field(default_factory=list)
    discovered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ServerPosition(BaseModel):
    """Where the measurement server is attached."""

    model_config = ConfigDict(frozen=True)

    ip: str
    mac: str = ""
    name: str = ""
    switch_mac: Optional[str] = None
    switch_port: Optional[int] = None
    switch_name: str = ""
    switch_model: str = ""
    network_name: str = ""
    vlan: Optional[int] = None
    is_wired: bool = True
    tx_rate_kbps: int = 0
    radio: str = ""


# ── resolution results ───────────────────────────────────────────────


class NotFound(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str


class DeviceMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    device: Device
    resolved_ip: str = ""


class ClientMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    client: Client
    resolved_ip: str = ""


TargetMatch = Union[DeviceMatch, ClientMatch]


# ── traced path ──────────────────────────────────────────────────────


class Hop(BaseModel):
    order: int
    type: HopType
    device_mac: str = ""
    device_name: str = ""
    device_model: str = ""
    device_ip: str = ""
    ingress_port: Optional[int] = None
    ingress_port_name: str = ""
    ingress_speed_mbps: int = 0
    egress_port: Optional[int] = None
    egress_port_name: str = ""
    egress_speed_mbps: int = 0
    is_wireless_ingress: bool = False
    is_wireless_egress: bool = False
    wireless_band: str = ""
    wireless_channel: Optional[int] = None
    wireless_signal_dbm: Optional[int] = None
    wireless_tx_rate_mbps: int = 0
    wireless_rx_rate_mbps: int = 0
    is_bottleneck: bool = False
    notes: str = ""


class NetworkPath(BaseModel):
    source_host: str = ""
    source_mac: str = ""
    source_vlan: Optional[int] = None
    source_network: str = ""
    destination_host: str = ""
    destination_mac: str = ""
    destination_vlan: Optional[int] = None
    destination_network: str = ""
    requires_routing: bool = False
    gateway_device: str = ""
    gateway_model: str = ""
    hops: list[Hop] = Field(default_factory=list)
    theoretical_max_mbps: int = 0
    realistic_max_mbps: int = 0
    has_real_bottleneck: bool = False
    bottleneck_description: str = ""
    bottleneck_is_wireless: bool = False
    target_is_gateway: bool = False
    target_is_access_point: bool = False
    target_is_device: bool = False
    is_valid: bool = True
    error_message: str = ""
    calculated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def switch_hop_count(self) -> int:
        return sum(1 for h in self.hops if h.type == HopType.SWITCH)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_wireless_segment(self) -> bool:
        return any(h.type == HopType.ACCESS_POINT for h in self.hops)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_wireless_connection(self) -> bool:
        """True if any link on the path is carried over Wi-Fi.

        An AP with a wired uplink does not make the path wireless; a client
        or another AP directly in front of an AP does.
        """
        if any(h.is_wireless_ingress or h.is_wireless_egress or h.type == HopType.WIRELESS_CLIENT for h in self.hops):
            return True
        for a, b in zip(self.hops, self.hops[1:]):
            if b.type != HopType.ACCESS_POINT:
                continue
            if a.type in (HopType.CLIENT, HopType.WIRELESS_CLIENT, HopType.ACCESS_POINT):
                return True
        return False


class PathAnalysisResult(BaseModel):
    path: NetworkPath
    measured_from_device_mbps: float = 0.0
    measured_to_device_mbps: float = 0.0
    from_device_efficiency_percent: float = 0.0
    to_device_efficiency_percent: float = 0.0
    from_device_grade: Optional[PerformanceGrade] = None
    to_device_grade: Optional[PerformanceGrade] = None
    from_device_retransmits: int = 0
    to_device_retransmits: int = 0
    from_device_bytes: int = 0
    to_device_bytes: int = 0
    insights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class RetransmitCounters(BaseModel):
    """Raw retransmit and byte counters of a speed test, per direction."""

    from_device_retransmits: int = 0
    to_device_retransmits: int = 0
    from_device_bytes: int = 0
    to_device_bytes: int = 0

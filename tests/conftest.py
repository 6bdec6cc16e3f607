"""Shared fixtures for the netpath test suite."""

from __future__ import annotations

import copy
from unittest.mock import MagicMock

import pytest

from netpath.controller.models import ClientRecord, DeviceRecord, NetworkRecord
from netpath.pathtrace.models import Hop, HopType, NetworkPath
from netpath.pathtrace.server import resolve_server_position
from netpath.pathtrace.topology import build_topology

GATEWAY_MAC = "aa:aa:aa:00:00:01"
SWITCH1_MAC = "aa:aa:aa:00:00:02"
SWITCH2_MAC = "aa:aa:aa:00:00:03"
AP1_MAC = "aa:aa:aa:00:00:04"
AP2_MAC = "aa:aa:aa:00:00:05"


def _ports(speeds: dict[int, int]) -> list[dict]:
    return [{"port_idx": idx, "name": f"Port {idx}", "speed": speed, "up": speed > 0} for idx, speed in speeds.items()]


# Home lab used throughout the tracer tests:
#
#   gateway (port 9, 10G)
#     └─ switch-1
#          ├─ port 5 (1G)    nas
#          ├─ port 6 (2.5G)  ap-1 ~~ wireless mesh ~~ ap-2 ~~ Wi-Fi ~~ phone
#          └─ port 8 (10G)   switch-2
#                              ├─ port 3 (2.5G) speedtest-server
#                              └─ port 4 (1G)   desktop
_HOME_LAB = {
    "networks": [
        {
            "_id": "net-lan",
            "name": "LAN",
            "vlan_enabled": False,
            "ip_subnet": "192.168.1.1/24",
            "enabled": True,
            "purpose": "corporate",
        },
        {
            "_id": "net-iot",
            "name": "IoT",
            "vlan": 20,
            "vlan_enabled": True,
            "ip_subnet": "192.168.20.1/24",
            "enabled": True,
            "purpose": "corporate",
        },
    ],
    "devices": [
        {
            "mac": GATEWAY_MAC,
            "name": "gateway",
            "type": "udm",
            "model": "UDMPRO",
            "model_display": "UDM Pro",
            "ip": "192.168.1.1",
            "port_table": _ports({9: 10000}),
        },
        {
            "mac": SWITCH1_MAC,
            "name": "switch-1",
            "type": "usw",
            "model": "USWED76",
            "model_display": "USW Pro Max 16",
            "ip": "192.168.1.2",
            "uplink": {"uplink_mac": GATEWAY_MAC, "uplink_remote_port": 9, "type": "wire", "speed": 10000},
            "port_table": _ports({5: 1000, 6: 2500, 8: 10000}),
        },
        {
            "mac": SWITCH2_MAC,
            "name": "switch-2",
            "type": "usw",
            "model": "USF5P",
            "model_display": "USW Flex 2.5G",
            "ip": "192.168.1.3",
            "uplink": {"uplink_mac": SWITCH1_MAC, "uplink_remote_port": 8, "type": "wire", "speed": 10000},
            "port_table": _ports({3: 2500, 4: 1000}),
        },
        {
            "mac": AP1_MAC,
            "name": "ap-1",
            "type": "uap",
            "model": "U7PRO",
            "model_display": "U7 Pro",
            "ip": "192.168.1.4",
            "uplink": {"uplink_mac": SWITCH1_MAC, "uplink_remote_port": 6, "type": "wire", "speed": 2500},
            "port_table": _ports({1: 2500}),
        },
        {
            "mac": AP2_MAC,
            "name": "ap-2",
            "type": "uap",
            "model": "U6M",
            "model_display": "U6 Mesh",
            "ip": "192.168.1.5",
            "uplink": {
                "uplink_mac": AP1_MAC,
                "type": "wireless",
                "tx_rate": 866000,
                "rx_rate": 780000,
                "radio": "na",
                "channel": 36,
                "signal": -60,
            },
        },
    ],
    "clients": [
        {
            "mac": "bb:bb:bb:00:00:01",
            "hostname": "speedtest-server",
            "ip": "192.168.1.50",
            "is_wired": True,
            "sw_mac": SWITCH2_MAC,
            "sw_port": 3,
            "network": "LAN",
            "network_id": "net-lan",
        },
        {
            "mac": "bb:bb:bb:00:00:02",
            "hostname": "nas",
            "ip": "192.168.1.60",
            "is_wired": True,
            "sw_mac": SWITCH1_MAC,
            "sw_port": 5,
            "network": "LAN",
            "network_id": "net-lan",
        },
        {
            "mac": "bb:bb:bb:00:00:03",
            "hostname": "desktop",
            "ip": "192.168.1.70",
            "is_wired": True,
            "sw_mac": SWITCH2_MAC,
            "sw_port": 4,
            "network": "LAN",
            "network_id": "net-lan",
        },
        {
            "mac": "bb:bb:bb:00:00:04",
            "hostname": "phone",
            "ip": "192.168.1.80",
            "is_wired": False,
            "ap_mac": AP2_MAC,
            "tx_rate": 433000,
            "rx_rate": 390000,
            "radio": "na",
            "radio_proto": "ac",
            "channel": 36,
            "signal": -55,
            "network": "LAN",
            "network_id": "net-lan",
        },
    ],
}


# ── inventory fixtures ────────────────────────────────────────────────


@pytest.fixture()
def home_lab():
    """Fresh, mutable copy of the raw home lab inventory (controller JSON shape)."""
    return copy.deepcopy(_HOME_LAB)


@pytest.fixture()
def find_raw():
    """Return the raw record in a section with the given name or hostname."""

    def _find(inventory: dict, section: str, name: str) -> dict:
        for record in inventory[section]:
            if record.get("name") == name or record.get("hostname") == name:
                return record
        raise KeyError(name)

    return _find


@pytest.fixture()
def build():
    """Turn a raw inventory dict into a Topology via the controller records."""

    def _build(inventory: dict):
        return build_topology(
            [DeviceRecord.from_unifi(d) for d in inventory["devices"]],
            [ClientRecord.from_unifi(c) for c in inventory["clients"]],
            [NetworkRecord.from_unifi(n) for n in inventory["networks"]],
        )

    return _build


@pytest.fixture()
def home_topology(home_lab, build):
    return build(home_lab)


@pytest.fixture()
def server_position(home_topology):
    """Server position of speedtest-server (switch-2 port 3)."""
    return resolve_server_position(home_topology, ["192.168.1.50"])


@pytest.fixture()
def mock_source(home_lab):
    """MagicMock inventory source serving the home lab."""
    source = MagicMock()
    source.list_devices.return_value = [DeviceRecord.from_unifi(d) for d in home_lab["devices"]]
    source.list_clients.return_value = [ClientRecord.from_unifi(c) for c in home_lab["clients"]]
    source.list_networks.return_value = [NetworkRecord.from_unifi(n) for n in home_lab["networks"]]
    return source


# ── hand-built path fixtures ──────────────────────────────────────────


@pytest.fixture()
def make_path():
    """Factory fixture building a NetworkPath from (type, ingress, egress) tuples."""

    def _make(hop_rows, **path_fields):
        hops = []
        for order, row in enumerate(hop_rows):
            hop_type, ingress, egress = row[:3]
            extra = dict(row[3]) if len(row) > 3 else {}
            hops.append(
                Hop(
                    order=order,
                    type=HopType(hop_type),
                    device_name=extra.pop("device_name", f"{hop_type.lower()}-{order}"),
                    ingress_speed_mbps=ingress,
                    egress_speed_mbps=egress,
                    **extra,
                )
            )
        return NetworkPath(hops=hops, **path_fields)

    return _make

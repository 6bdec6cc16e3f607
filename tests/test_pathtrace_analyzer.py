"""Tests for netpath.pathtrace.analyzer.NetworkPathAnalyzer."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from netpath.controller.exceptions import APIError, ControllerError
from netpath.controller.snapshot import JsonInventorySource
from netpath.controller.unifi import UniFiRESTTransport
from netpath.pathtrace.analyzer import NetworkPathAnalyzer
from netpath.pathtrace.models import HopType, NotFound, PerformanceGrade, ServerPosition, Topology


@pytest.fixture()
def analyzer(mock_source):
    return NetworkPathAnalyzer(mock_source, local_ips=["192.168.1.50"], dns_lookup=lambda name: None)


class TestTopology:
    """Test topology retrieval and caching."""

    def test_fetch_reads_all_three_lists(self, analyzer, mock_source):
        """Devices, clients and networks are read."""
        topology = analyzer.fetch_topology()
        assert isinstance(topology, Topology)
        assert len(topology.devices) == 5
        mock_source.list_devices.assert_called_once()
        mock_source.list_clients.assert_called_once()
        mock_source.list_networks.assert_called_once()

    def test_topology_is_cached(self, analyzer, mock_source):
        """A second call within the TTL is served from cache."""
        first = analyzer.get_topology()
        second = analyzer.get_topology()
        assert first is second
        assert mock_source.list_devices.call_count == 1

    def test_invalidate_forces_refetch(self, analyzer, mock_source):
        """Invalidation drops the cached snapshot."""
        analyzer.get_topology()
        analyzer.invalidate()
        analyzer.get_topology()
        assert mock_source.list_devices.call_count == 2

    def test_empty_device_list_is_an_error(self, analyzer, mock_source):
        """No devices is a controller error."""
        mock_source.list_devices.return_value = []
        with pytest.raises(ControllerError, match="no devices"):
            analyzer.get_topology()

    def test_source_error_propagates_and_is_not_cached(self, analyzer, mock_source):
        """Failed fetches are retried on the next call."""
        devices = mock_source.list_devices.return_value
        mock_source.list_devices.side_effect = APIError("GET stat/device failed", status_code=500)
        with pytest.raises(APIError):
            analyzer.get_topology()

        mock_source.list_devices.side_effect = None
        mock_source.list_devices.return_value = devices
        assert len(analyzer.get_topology().devices) == 5


class TestServerPosition:
    """Test server discovery."""

    def test_discovered_from_configured_ips(self, analyzer):
        """Configured IPs locate the server."""
        position = analyzer.discover_server_position()
        assert isinstance(position, ServerPosition)
        assert position.switch_name == "switch-2"

    def test_position_cached(self, analyzer):
        """A found position is cached."""
        first = analyzer.discover_server_position()
        with patch("netpath.pathtrace.analyzer.resolve_server_position") as mock_resolve:
            assert analyzer.discover_server_position() is first
            mock_resolve.assert_not_called()

    def test_not_found_is_not_cached(self, mock_source):
        """A miss is retried on the next call."""
        analyzer = NetworkPathAnalyzer(mock_source, local_ips=["10.1.1.1"])
        assert isinstance(analyzer.discover_server_position(), NotFound)
        analyzer.local_ips = ["192.168.1.50"]
        assert isinstance(analyzer.discover_server_position(), ServerPosition)

    @patch("netpath.pathtrace.analyzer.get_local_ipv4_addresses", return_value=["192.168.1.50"])
    def test_local_ips_enumerated_when_not_configured(self, mock_ips, mock_source):
        """Interface addresses are used by default."""
        analyzer = NetworkPathAnalyzer(mock_source)
        assert isinstance(analyzer.discover_server_position(), ServerPosition)
        mock_ips.assert_called_once()


class TestCalculatePath:
    """Test path calculation."""

    def test_traces_target(self, analyzer):
        """A known target yields a valid path."""
        path = analyzer.calculate_path("nas")
        assert path.is_valid
        assert [h.type for h in path.hops][-1] == HopType.SERVER
        assert path.source_host == "speedtest-server"

    def test_controller_failure_gives_invalid_path(self, analyzer, mock_source):
        """Controller errors become an invalid path."""
        mock_source.list_clients.side_effect = APIError("GET stat/sta failed: 502", status_code=502)
        path = analyzer.calculate_path("nas")
        assert not path.is_valid
        assert path.error_message.startswith("Controller data unavailable:")
        assert path.destination_host == "nas"

    def test_server_not_found_gives_invalid_path(self, mock_source):
        """An unknown server becomes an invalid path."""
        analyzer = NetworkPathAnalyzer(mock_source, local_ips=["10.1.1.1"])
        path = analyzer.calculate_path("nas")
        assert not path.is_valid
        assert "Server not found" in path.error_message

    def test_unknown_target_gives_invalid_path(self, analyzer):
        """An unknown target becomes an invalid path."""
        path = analyzer.calculate_path("nowhere")
        assert not path.is_valid
        assert "Could not resolve" in path.error_message

    @patch("netpath.controller.unifi.requests.Session")
    def test_non_json_controller_response_gives_invalid_path(self, mock_session_class):
        """A controller answering with HTML yields an invalid path, not an exception."""
        html = MagicMock(status_code=200, headers={})
        html.json.side_effect = requests.JSONDecodeError("Expecting value", "<html>", 0)
        mock_session = MagicMock()
        mock_session.post.return_value = MagicMock(status_code=200, headers={})
        mock_session.get.return_value = html
        mock_session_class.return_value = mock_session

        analyzer = NetworkPathAnalyzer(UniFiRESTTransport(host="10.0.0.1"), local_ips=["192.168.1.50"])
        path = analyzer.calculate_path("nas")
        assert not path.is_valid
        assert path.error_message.startswith("Controller data unavailable:")

    def test_malformed_inventory_record_gives_invalid_path(self, tmp_path, home_lab):
        """A wrongly typed record in the inventory yields an invalid path."""
        home_lab["devices"][0]["name"] = 12345
        inventory = tmp_path / "site.json"
        inventory.write_text(json.dumps(home_lab))

        analyzer = NetworkPathAnalyzer(JsonInventorySource(inventory), local_ips=["192.168.1.50"])
        path = analyzer.calculate_path("nas")
        assert not path.is_valid
        assert "Malformed device record" in path.error_message


class TestAnalyzeSpeedTest:
    """Test grading through the analyzer."""

    def test_grades_against_traced_path(self, analyzer):
        """The result wraps the traced path."""
        path = analyzer.calculate_path("nas")
        result = analyzer.analyze_speed_test(path, 940, 930)
        assert result.path is path
        assert result.from_device_grade == PerformanceGrade.EXCELLENT
        assert result.to_device_grade == PerformanceGrade.EXCELLENT
        assert "Maxing out 1 GbE - consider 2.5G or 10G upgrade for higher speeds" in result.recommendations

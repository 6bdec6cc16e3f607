"""Tests for netpath.pathtrace.grading."""

from __future__ import annotations

import pytest

from netpath.pathtrace.grading import grade_for_efficiency, grade_result
from netpath.pathtrace.models import NetworkPath, PerformanceGrade, RetransmitCounters

WIRELESS_INSIGHT = "Path includes wireless segment - speeds may vary with signal quality"
SATURATION_REC = "Maxing out 1 GbE - consider 2.5G or 10G upgrade for higher speeds"
ASYMMETRY_REC = "Large asymmetry detected - check for half-duplex links or congestion"


@pytest.fixture()
def wired_path(make_path):
    """Gigabit wired path, realistic max 960 Mbps."""
    return make_path(
        [("Client", 1000, 1000), ("Switch", 1000, 10000), ("Server", 10000, 0)],
        theoretical_max_mbps=1000,
        realistic_max_mbps=960,
    )


@pytest.fixture()
def wireless_path(make_path):
    """Wi-Fi client path, realistic max 600 Mbps."""
    return make_path(
        [
            ("WirelessClient", 0, 1000, {"is_wireless_egress": True}),
            ("AccessPoint", 1000, 2500, {"is_wireless_ingress": True}),
            ("Server", 2500, 0),
        ],
        theoretical_max_mbps=1000,
        realistic_max_mbps=600,
        bottleneck_is_wireless=True,
    )


class TestGradeForEfficiency:
    """Test efficiency to grade mapping."""

    @pytest.mark.parametrize(
        "percent,grade",
        [
            (120.0, PerformanceGrade.EXCELLENT),
            (90.0, PerformanceGrade.EXCELLENT),
            (89.9, PerformanceGrade.GOOD),
            (75.0, PerformanceGrade.GOOD),
            (74.9, PerformanceGrade.FAIR),
            (50.0, PerformanceGrade.FAIR),
            (49.9, PerformanceGrade.POOR),
            (25.0, PerformanceGrade.POOR),
            (24.9, PerformanceGrade.CRITICAL),
            (0.0, PerformanceGrade.CRITICAL),
        ],
    )
    def test_thresholds(self, percent, grade):
        """Grade boundaries are inclusive lower bounds."""
        assert grade_for_efficiency(percent) == grade


class TestUngradable:
    """Paths that cannot be graded."""

    def test_invalid_path(self):
        """Invalid paths carry their error as an insight."""
        path = NetworkPath(is_valid=False, error_message="Target not found")
        result = grade_result(path, 500, 500)
        assert result.insights == ["Path analysis unavailable - cannot grade performance", "Target not found"]
        assert result.from_device_grade is None
        assert result.to_device_grade is None
        assert result.recommendations == []

    def test_zero_realistic_max(self, make_path):
        """A zero realistic max cannot be graded."""
        path = make_path([("Server", 0, 0)], realistic_max_mbps=0)
        result = grade_result(path, 100, 100)
        assert result.insights == ["Path analysis unavailable - cannot grade performance"]
        assert result.from_device_efficiency_percent == 0.0


class TestEfficiency:
    """Test efficiency computation."""

    def test_efficiency_and_grades(self, wired_path):
        """Efficiency is measured over realistic max."""
        result = grade_result(wired_path, 912, 480)
        assert result.from_device_efficiency_percent == pytest.approx(95.0)
        assert result.to_device_efficiency_percent == pytest.approx(50.0)
        assert result.from_device_grade == PerformanceGrade.EXCELLENT
        assert result.to_device_grade == PerformanceGrade.FAIR
        assert result.measured_from_device_mbps == 912

    def test_retransmit_counters_copied(self, wired_path):
        """Counters are copied onto the result."""
        counters = RetransmitCounters(
            from_device_retransmits=3, to_device_retransmits=4, from_device_bytes=10, to_device_bytes=20
        )
        result = grade_result(wired_path, 900, 900, counters)
        assert (result.from_device_retransmits, result.to_device_retransmits) == (3, 4)
        assert (result.from_device_bytes, result.to_device_bytes) == (10, 20)


class TestShortCircuits:
    """Rules that end evaluation early."""

    def test_gateway_target_only_reports_cpu_limit(self, wired_path):
        """Gateway tests only report the CPU limit."""
        wired_path.target_is_gateway = True
        result = grade_result(wired_path, 900, 100)
        assert result.insights == ["Gateway speed test - results limited by gateway CPU, not network"]
        assert result.recommendations == []
        assert result.to_device_grade == PerformanceGrade.CRITICAL

    def test_fast_ap_target_reports_ap_cpu_limit(self, make_path):
        """AP tests above 4.4 Gbps only report the CPU limit."""
        path = make_path([("AccessPoint", 10000, 10000), ("Server", 10000, 0)], realistic_max_mbps=9910)
        path.target_is_access_point = True
        result = grade_result(path, 4500, 1000)
        assert result.insights == ["AP speed test - results limited by AP CPU, not network"]
        assert result.recommendations == []

    def test_slow_ap_target_is_graded_normally(self, make_path):
        """Slower AP tests go through the normal rules."""
        path = make_path(
            [("AccessPoint", 2500, 2500), ("Server", 2500, 0)], theoretical_max_mbps=2500, realistic_max_mbps=2390
        )
        path.target_is_access_point = True
        result = grade_result(path, 2000, 2000)
        assert not any("AP CPU" in i for i in result.insights)


class TestInsights:
    """Test insight rules."""

    def test_wireless_path_insight(self, wireless_path):
        """Wireless paths get a variability insight."""
        result = grade_result(wireless_path, 580, 570)
        assert WIRELESS_INSIGHT in result.insights

    def test_wired_path_has_no_wireless_insight(self, wired_path):
        """Wired paths do not."""
        result = grade_result(wired_path, 900, 900)
        assert WIRELESS_INSIGHT not in result.insights

    def test_below_expected(self, wired_path):
        """Under 25% is below expected."""
        result = grade_result(wired_path, 900, 200)
        assert "Performance below expected - possible congestion or network issue" in result.insights

    def test_moderate(self, wired_path):
        """Under 75% is moderate."""
        result = grade_result(wired_path, 700, 700)
        assert "Performance is moderate - some overhead or minor congestion" in result.insights

    def test_good_performance_has_no_commentary(self, wired_path):
        """Good results add no insight."""
        result = grade_result(wired_path, 900, 900)
        assert result.insights == []


class TestRecommendations:
    """Test recommendation rules."""

    def test_asymmetry(self, wired_path):
        """More than 20 points between directions is asymmetric."""
        result = grade_result(wired_path, 912, 480)
        assert ASYMMETRY_REC in result.recommendations

    def test_symmetric_within_threshold(self, wired_path):
        """Up to 20 points is fine."""
        result = grade_result(wired_path, 900, 720)
        assert ASYMMETRY_REC not in result.recommendations

    def test_gigabit_saturation(self, wired_path):
        """A saturated 1 GbE path suggests an upgrade."""
        result = grade_result(wired_path, 930, 940)
        assert SATURATION_REC in result.recommendations

    def test_gigabit_not_saturated(self, wired_path):
        """Below 90% average no upgrade is suggested."""
        result = grade_result(wired_path, 800, 800)
        assert SATURATION_REC not in result.recommendations

    def test_fast_ethernet_link(self, make_path):
        """A 100 Mbps bottleneck hints at cabling."""
        path = make_path([("Client", 100, 100), ("Server", 1000, 0)], theoretical_max_mbps=100, realistic_max_mbps=94)
        result = grade_result(path, 90, 90)
        assert "10/100 Mbps link detected - cable quality or auto-negotiation may be faulty" in result.recommendations

    def test_wireless_path_gets_no_link_recommendations(self, wireless_path):
        """Link advice is for wired paths only."""
        result = grade_result(wireless_path, 590, 590)
        assert SATURATION_REC not in result.recommendations
        assert not any("10/100" in r for r in result.recommendations)


class TestRetransmits:
    """Test packet loss analysis."""

    # 1_500_000_000 bytes = 1_000_000 nominal packets
    BYTES = 1_500_000_000

    def _counters(self, to_retrans=0, from_retrans=0):
        return RetransmitCounters(
            to_device_retransmits=to_retrans,
            from_device_retransmits=from_retrans,
            to_device_bytes=self.BYTES,
            from_device_bytes=self.BYTES,
        )

    def test_elevated_loss_to_client(self, wired_path):
        """0.7% to a client is elevated."""
        result = grade_result(wired_path, 900, 900, self._counters(to_retrans=7000))
        assert "Elevated packet loss to device (7,000 retransmits, 0.70%)" in result.insights

    def test_high_loss_from_client(self, wired_path):
        """Twice the threshold is high."""
        result = grade_result(wired_path, 900, 900, self._counters(from_retrans=13000))
        assert "High packet loss from device (13,000 retransmits, 1.30%)" in result.insights

    def test_below_threshold_is_silent(self, wired_path):
        """0.5% to a client is not reported."""
        result = grade_result(wired_path, 900, 900, self._counters(to_retrans=5000))
        assert not any("packet loss" in i for i in result.insights)

    def test_device_target_uses_higher_threshold(self, wired_path):
        """Infrastructure targets tolerate 1%."""
        wired_path.target_is_device = True
        result = grade_result(wired_path, 900, 900, self._counters(to_retrans=7000))
        assert not any("packet loss" in i for i in result.insights)

    def test_no_bytes_means_no_loss(self, wired_path):
        """Without a byte count no loss is computed."""
        counters = RetransmitCounters(to_device_retransmits=50000)
        result = grade_result(wired_path, 900, 900, counters)
        assert not any("packet loss" in i for i in result.insights)

    def test_bidirectional_loss_on_wired_path(self, wired_path):
        """Loss both ways on a wired path points at cabling."""
        result = grade_result(wired_path, 900, 900, self._counters(to_retrans=8000, from_retrans=8000))
        assert "Bidirectional packet loss - check for network congestion or faulty cables" in result.recommendations

    def test_wifi_client_recommendations(self, wireless_path):
        """Wi-Fi clients get signal advice instead."""
        result = grade_result(wireless_path, 580, 580, self._counters(to_retrans=8000, from_retrans=8000))
        assert "Retransmits to device on Wi-Fi - check signal strength and interference" in result.recommendations
        assert (
            "Retransmits from device on Wi-Fi - client may have weak signal or interference" in result.recommendations
        )
        assert not any(r.startswith("Bidirectional") for r in result.recommendations)

    def test_meshed_ap_recommendations(self, make_path):
        """Meshed AP targets get backhaul advice."""
        path = make_path(
            [("AccessPoint", 866, 866, {"is_wireless_ingress": True}), ("AccessPoint", 866, 2500), ("Server", 2500, 0)],
            theoretical_max_mbps=866,
            realistic_max_mbps=520,
            target_is_access_point=True,
            target_is_device=True,
        )
        result = grade_result(path, 500, 500, self._counters(to_retrans=12000))
        assert "Retransmits to device on wireless mesh - check mesh backhaul signal quality" in result.recommendations

"""Grade a measured speed test against a traced path.

Insight and recommendation rules are evaluated in a fixed order and add to
the result independently, except where a rule ends the evaluation.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from netpath.pathtrace.models import (
    NetworkPath,
    PathAnalysisResult,
    PerformanceGrade,
    RetransmitCounters,
)

GRADE_THRESHOLDS: tuple[tuple[float, PerformanceGrade], ...] = (
    (90, PerformanceGrade.EXCELLENT),
    (75, PerformanceGrade.GOOD),
    (50, PerformanceGrade.FAIR),
    (25, PerformanceGrade.POOR),
)

# Above this an AP's own CPU is the limit, not the network
AP_CPU_LIMIT_MBPS = 4400

ASYMMETRY_THRESHOLD_PERCENT = 20
SATURATION_THRESHOLD_PERCENT = 90
BELOW_EXPECTED_PERCENT = 25
MODERATE_PERCENT = 75

NOMINAL_PACKET_BYTES = 1500
# Elevated packet loss (%); "High" at twice the value
CLIENT_LOSS_THRESHOLD_PERCENT = 0.6
DEVICE_LOSS_THRESHOLD_PERCENT = 1.0


def grade_for_efficiency(percent: float) -> PerformanceGrade:
    for lower_bound, grade in GRADE_THRESHOLDS:
        if percent >= lower_bound:
            return grade
    return PerformanceGrade.CRITICAL


def _loss_percent(retransmits: int, transferred_bytes: int) -> float:
    packets = transferred_bytes // NOMINAL_PACKET_BYTES
    if retransmits <= 0 or packets <= 0:
        return 0.0
    return retransmits * 100.0 / packets


def _analyze_retransmits(result: PathAnalysisResult) -> None:
    path = result.path
    threshold = DEVICE_LOSS_THRESHOLD_PERCENT if path.target_is_device else CLIENT_LOSS_THRESHOLD_PERCENT
    wireless = path.has_wireless_connection
    wireless_client = wireless and not path.target_is_access_point
    meshed_ap = wireless and path.target_is_access_point

    to_pct = _loss_percent(result.to_device_retransmits, result.to_device_bytes)
    from_pct = _loss_percent(result.from_device_retransmits, result.from_device_bytes)

    if to_pct >= threshold:
        severity = "High" if to_pct >= threshold * 2 else "Elevated"
        result.insights.append(
            f"{severity} packet loss to device ({result.to_device_retransmits:,} retransmits, {to_pct:.2f}%)"
        )
        if wireless_client:
            result.recommendations.append("Retransmits to device on Wi-Fi - check signal strength and interference")
        elif meshed_ap:
            result.recommendations.append(
                "Retransmits to device on wireless mesh - check mesh backhaul signal quality"
            )

    if from_pct >= threshold:
        severity = "High" if from_pct >= threshold * 2 else "Elevated"
        result.insights.append(
            f"{severity} packet loss from device ({result.from_device_retransmits:,} retransmits, {from_pct:.2f}%)"
        )
        if wireless_client:
            result.recommendations.append(
                "Retransmits from device on Wi-Fi - client may have weak signal or interference"
            )
        elif meshed_ap:
            result.recommendations.append(
                "Retransmits from device on wireless mesh - may indicate mesh uplink contention"
            )

    if to_pct >= threshold and from_pct >= threshold and not wireless:
        result.recommendations.append("Bidirectional packet loss - check for network congestion or faulty cables")


def grade_result(
    path: NetworkPath,
    from_mbps: float,
    to_mbps: float,
    retransmits: Optional[RetransmitCounters] = None,
) -> PathAnalysisResult:
    """Grade measured throughput (from and to the target) against ``path``."""
    result = PathAnalysisResult(path=path, measured_from_device_mbps=from_mbps, measured_to_device_mbps=to_mbps)
    if retransmits is not None:
        result.from_device_retransmits = retransmits.from_device_retransmits
        result.to_device_retransmits = retransmits.to_device_retransmits
        result.from_device_bytes = retransmits.from_device_bytes
        result.to_device_bytes = retransmits.to_device_bytes

    if not path.is_valid or path.realistic_max_mbps <= 0:
        result.insights.append("Path analysis unavailable - cannot grade performance")
        if path.error_message:
            result.insights.append(path.error_message)
        return result

    realistic = path.realistic_max_mbps
    result.from_device_efficiency_percent = from_mbps / realistic * 100
    result.to_device_efficiency_percent = to_mbps / realistic * 100
    result.from_device_grade = grade_for_efficiency(result.from_device_efficiency_percent)
    result.to_device_grade = grade_for_efficiency(result.to_device_efficiency_percent)
    logger.debug(
        f"Efficiency from={result.from_device_efficiency_percent:.1f}% ({result.from_device_grade.value}) "
        f"to={result.to_device_efficiency_percent:.1f}% ({result.to_device_grade.value})"
    )

    if path.target_is_gateway:
        result.insights.append("Gateway speed test - results limited by gateway CPU, not network")
        return result

    if path.target_is_access_point and (from_mbps > AP_CPU_LIMIT_MBPS or to_mbps > AP_CPU_LIMIT_MBPS):
        result.insights.append("AP speed test - results limited by AP CPU, not network")
        return result

    if path.has_wireless_connection:
        result.insights.append("Path includes wireless segment - speeds may vary with signal quality")

    lowest = min(result.from_device_efficiency_percent, result.to_device_efficiency_percent)
    if lowest < BELOW_EXPECTED_PERCENT:
        result.insights.append("Performance below expected - possible congestion or network issue")
    elif lowest < MODERATE_PERCENT:
        result.insights.append("Performance is moderate - some overhead or minor congestion")

    if abs(result.from_device_efficiency_percent - result.to_device_efficiency_percent) > ASYMMETRY_THRESHOLD_PERCENT:
        result.recommendations.append("Large asymmetry detected - check for half-duplex links or congestion")

    if not path.has_wireless_connection and not path.bottleneck_is_wireless:
        average = (result.from_device_efficiency_percent + result.to_device_efficiency_percent) / 2
        if path.theoretical_max_mbps in (10, 100):
            result.recommendations.append(
                "10/100 Mbps link detected - cable quality or auto-negotiation may be faulty"
            )
        elif path.theoretical_max_mbps == 1000 and average >= SATURATION_THRESHOLD_PERCENT:
            result.recommendations.append("Maxing out 1 GbE - consider 2.5G or 10G upgrade for higher speeds")

    _analyze_retransmits(result)
    return result

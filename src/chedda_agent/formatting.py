"""Numeric formatting used by the pool, account and portfolio info actions.

The rules are fixed for compatibility with what the agent already relays to
users; do not change thresholds or precision here.
"""

from __future__ import annotations

from dataclasses import dataclass

WAD = 10**18
APY_DIVISOR = 10**16


@dataclass(frozen=True)
class HealthStatus:
    status: str
    risk: str


NO_POSITIONS = HealthStatus(status="No Active Positions", risk="None")

# (minimum raw health factor, status) checked top-down; integer thresholds so
# values just below a boundary never round up into the next bucket
_HEALTH_BUCKETS: tuple[tuple[int, HealthStatus], ...] = (
    (2 * WAD, HealthStatus("Excellent", "Very Low")),
    (15 * WAD // 10, HealthStatus("Strong", "Low")),
    (12 * WAD // 10, HealthStatus("Good", "Moderate")),
    (11 * WAD // 10, HealthStatus("Moderate", "High")),
    (WAD, HealthStatus("Caution", "High")),
)
_AT_RISK = HealthStatus("At Risk", "Very High")


def format_big_number(value: int) -> str:
    """Compact a raw integer: ``1_500_000 -> "1.50M"``, ``2_500 -> "2.50K"``, ``999 -> "999"``."""
    if value >= 1_000_000:
        return f"{value / 1e6:.2f}M"
    if value >= 1_000:
        return f"{value / 1e3:.2f}K"
    return str(value)


def apy_percentage(raw_apy: int) -> float:
    """Raw on-chain APY is a 1e18-scaled fraction; dividing by 1e16 gives percent."""
    return raw_apy / APY_DIVISOR


def format_apy(raw_apy: int) -> str:
    return f"{apy_percentage(raw_apy):.2f}%"


def utilization_rate(total_borrowed: int, total_supplied: int) -> str:
    if total_supplied == 0:
        return "0%"
    return f"{total_borrowed * 100 / total_supplied:.2f}%"


def health_factor(raw: int) -> float:
    return raw / WAD


def format_health_factor(raw: int) -> str:
    return f"{health_factor(raw):.2f}"


def health_status(raw: int) -> HealthStatus:
    """Bucket a raw (1e18-scaled) health factor into a status and risk tier."""
    for minimum, status in _HEALTH_BUCKETS:
        if raw >= minimum:
            return status
    return _AT_RISK

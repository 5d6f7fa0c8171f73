"""Risk assessment: composite score, sizing, weekly loss breaker."""

from trend_trader.risk.manager import (
    RiskAssessment,
    RiskAssessor,
    RiskFactor,
    risk_level,
    safe_position_value,
    within_weekly_loss_limit,
)

__all__ = [
    "RiskAssessment",
    "RiskAssessor",
    "RiskFactor",
    "risk_level",
    "safe_position_value",
    "within_weekly_loss_limit",
]

"""Decision engine: guardrails and the position state machine."""

from trend_trader.decision.engine import Decision, DecisionContext, DecisionEngine

__all__ = ["Decision", "DecisionContext", "DecisionEngine"]

"""Competition rule multipliers and labels."""

from __future__ import annotations

from alphatrack.contracts.types import RuleType

_MULTIPLIERS: dict[RuleType, float] = {
    RuleType.TRADE_ALL: 1.0,
    RuleType.BUY_ONLY: 0.5,  # Assumes buy/sell symmetry
    RuleType.TRADE_X4: 4.0,
}

_LABELS: dict[RuleType, str] = {
    RuleType.TRADE_ALL: "Trade all",
    RuleType.BUY_ONLY: "Buy only",
    RuleType.TRADE_X4: "Trade x4",
}


def rule_multiplier(rule_type: RuleType) -> float:
    """
    Factor applied to projected volume for a rule.

    Args:
        rule_type: Competition rule.

    Returns:
        Volume multiplier.

    Raises:
        ValueError: If rule_type has no registered multiplier.
    """
    try:
        return _MULTIPLIERS[rule_type]
    except KeyError:
        raise ValueError(f"Unsupported rule type: {rule_type!r}") from None


def rule_label(rule_type: RuleType) -> str:
    """Human-readable rule name."""
    try:
        return _LABELS[rule_type]
    except KeyError:
        raise ValueError(f"Unsupported rule type: {rule_type!r}") from None

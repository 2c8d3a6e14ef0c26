"""Enums shared by the tracker contracts."""

from enum import Enum


class RuleType(str, Enum):
    """How trade volume counts towards a competition."""

    TRADE_ALL = "trade_all"  # Buys and sells both count
    BUY_ONLY = "buy_only"  # Only buys count
    TRADE_X4 = "trade_x4"  # Volume counts four times


class CompetitionStatus(str, Enum):
    """Competition lifecycle state."""

    LIVE = "LIVE"
    FINALIZED = "FINALIZED"  # Terminal


class PriceStatus(str, Enum):
    """Classification of the latest price move."""

    NORMAL = "NORMAL"
    SLIPPAGE = "SLIPPAGE"  # Down more than 0.5%
    DUMPING = "DUMPING"  # Down more than 1.5%
    PUMPING = "PUMPING"  # Up more than 0.5%

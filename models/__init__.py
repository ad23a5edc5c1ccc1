"""Data models for the character-market bot engine.

The pricing core, settlement, bots and scheduler all import from models.
"""

from models.account import Account, BotPersonality, Money, TradeRecord
from models.config import (
    BASE_IMPACT,
    BASE_LIQUIDITY,
    MAX_PRICE_CHANGE_PERCENT,
    MIN_PRICE,
    BotTraderConfig,
    EconomyConfig,
    MaintenanceWindow,
    SchedulerConfig,
    SettlementConfig,
)
from models.document import StoredDocument
from models.market import MarketState, PricePoint
from models.order import Order, OrderAction, SettlementResult
from models.report import BotTurnLog, RoundReport

__all__ = [
    # account
    "Account",
    "BotPersonality",
    "Money",
    "TradeRecord",
    # config
    "BASE_IMPACT",
    "BASE_LIQUIDITY",
    "MAX_PRICE_CHANGE_PERCENT",
    "MIN_PRICE",
    "BotTraderConfig",
    "EconomyConfig",
    "MaintenanceWindow",
    "SchedulerConfig",
    "SettlementConfig",
    # document
    "StoredDocument",
    # market
    "MarketState",
    "PricePoint",
    # order
    "Order",
    "OrderAction",
    "SettlementResult",
    # report
    "BotTurnLog",
    "RoundReport",
]

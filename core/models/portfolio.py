"""Portfolio models -- user holdings and their valuation."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class Holding(BaseModel):
    """A user-entered position."""

    symbol: str
    name: str = ""
    average_price: float = Field(default=0.0, ge=0.0)
    quantity: float = Field(default=0.0, ge=0.0)


class Portfolio(BaseModel):
    """The single local user's portfolio."""

    total_investment: float = Field(default=0.0, ge=0.0)
    cash_amount: float = Field(default=0.0, ge=0.0)
    holdings: list[Holding] = Field(default_factory=list)


class HoldingValuation(BaseModel):
    symbol: str
    name: str = ""
    quantity: float
    average_price: float
    current_price: float | None = None
    current_value: float
    pnl: float | None = None
    pnl_percent: float | None = None


class RebalanceTarget(BaseModel):
    """Amount needed to bring the portfolio to the advised ratio."""

    side: Literal["buy", "sell"]
    target_ratio: int
    target_amount: float
    trade_amount: float


class PortfolioSummary(BaseModel):
    """Valued view of the portfolio at current prices."""

    total_investment: float = 0.0
    cash_amount: float = 0.0
    stock_value: float = 0.0
    total_assets: float = 0.0
    stock_ratio: float = 0.0
    cash_ratio: float = 0.0
    holdings: list[HoldingValuation] = Field(default_factory=list)
    rebalance: RebalanceTarget | None = None

"""Portfolio valuation and rebalancing amounts."""

from __future__ import annotations

from core.models.portfolio import HoldingValuation, Portfolio, PortfolioSummary, RebalanceTarget
from core.models.rules import ActionAdvice


def _ratio(part: float, total: float) -> float:
    return part / total * 100 if total > 0 else 0.0


def value_holdings(portfolio: Portfolio, prices: dict[str, float]) -> list[HoldingValuation]:
    """Value each holding at its quoted price, or at cost when unquoted."""
    valuations = []
    for holding in portfolio.holdings:
        price = prices.get(holding.symbol.upper())
        cost = holding.quantity * holding.average_price
        if price is None:
            valuations.append(HoldingValuation(
                symbol=holding.symbol,
                name=holding.name,
                quantity=holding.quantity,
                average_price=holding.average_price,
                current_value=cost,
            ))
            continue

        value = holding.quantity * price
        pnl = value - cost
        valuations.append(HoldingValuation(
            symbol=holding.symbol,
            name=holding.name,
            quantity=holding.quantity,
            average_price=holding.average_price,
            current_price=price,
            current_value=value,
            pnl=pnl,
            pnl_percent=_ratio(pnl, cost) if cost > 0 else None,
        ))
    return valuations


def rebalance_target(
    advice: ActionAdvice,
    stock_value: float,
    cash_amount: float,
) -> RebalanceTarget | None:
    """Trade needed to reach the advised ratio.

    Sell advice targets a cash ratio, buy advice a stock ratio. A buy never
    deploys more than the available cash.
    """
    if advice.action == "hold" or advice.percentage is None:
        return None

    total = stock_value + cash_amount
    target = total * advice.percentage / 100

    if advice.action == "sell":
        trade = min(max(0.0, target - cash_amount), stock_value)
    else:
        trade = min(max(0.0, target - stock_value), cash_amount)

    return RebalanceTarget(
        side=advice.action,
        target_ratio=advice.percentage,
        target_amount=target,
        trade_amount=trade,
    )


def summarize_portfolio(
    portfolio: Portfolio,
    prices: dict[str, float],
    advice: ActionAdvice | None = None,
) -> PortfolioSummary:
    holdings = value_holdings(portfolio, prices)
    stock_value = sum(h.current_value for h in holdings)
    total_assets = stock_value + portfolio.cash_amount

    return PortfolioSummary(
        total_investment=portfolio.total_investment,
        cash_amount=portfolio.cash_amount,
        stock_value=stock_value,
        total_assets=total_assets,
        stock_ratio=_ratio(stock_value, total_assets),
        cash_ratio=_ratio(portfolio.cash_amount, total_assets),
        holdings=holdings,
        rebalance=rebalance_target(advice, stock_value, portfolio.cash_amount) if advice else None,
    )

"""Dashboard -- one evaluation cycle from quotes to advice.

Flow:
    gateway (index + top securities, concurrently)
      -> crash signal, filtered to one count per trading session
      -> panic lifecycle transition (persisted under a lock)
      -> market status -> advice + band -> leadership risk -> rebound flag
      -> portfolio valuation -> optional briefing
      -> cached MarketOverview + events

Degraded inputs (demo data, failed briefings) never stop a cycle.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from uuid import uuid4

from core.config import RulesConfig
from core.models.events import Event, EventTypes
from core.models.market import IndexSnapshot, SecuritySnapshot
from core.models.overview import BriefingRequest, DataProvenance, MarketOverview
from core.models.portfolio import Portfolio
from core.models.rules import CrisisState, LeadershipRisk, RateMode
from core.protocols import EventBus, MarketDataError
from engine.briefing import BriefingService
from engine.gateway import MarketGateway, SecurityResult
from engine.portfolio import summarize_portfolio
from engine.state import StateRepository
from rules.advice import compose_advice, current_band
from rules.crisis import advance_crisis, classify_transition, market_status, reset_crisis
from rules.detectors import detect_leadership_risk, detect_rebound_above_two_steps

logger = logging.getLogger(__name__)

_TRANSITION_EVENTS = {
    "started": EventTypes.CRISIS_STARTED,
    "extended": EventTypes.CRISIS_EXTENDED,
    "ended": EventTypes.CRISIS_ENDED,
}


class Dashboard:
    """Runs evaluation cycles and keeps the latest overview.

    Usage:
        dashboard = Dashboard(gateway, state, briefing, bus)
        overview = await dashboard.evaluate()
    """

    def __init__(
        self,
        gateway: MarketGateway,
        state: StateRepository,
        briefing: BriefingService | None = None,
        bus: EventBus | None = None,
        rules_config: RulesConfig | None = None,
        include_briefing: bool = True,
    ) -> None:
        self._gateway = gateway
        self._state = state
        self._briefing = briefing
        self._bus = bus
        self._rules = rules_config or RulesConfig()
        self._include_briefing = include_briefing
        self._lock = asyncio.Lock()
        self._latest: MarketOverview | None = None

    @property
    def latest(self) -> MarketOverview | None:
        return self._latest

    @property
    def state(self) -> StateRepository:
        return self._state

    # ------------------------------------------------------------------
    # Evaluation cycle
    # ------------------------------------------------------------------

    async def evaluate(
        self,
        now: datetime | None = None,
        include_briefing: bool | None = None,
    ) -> MarketOverview:
        """Run one full cycle and return (and cache) the overview."""
        now = now or datetime.now(timezone.utc)
        if include_briefing is None:
            include_briefing = self._include_briefing
        correlation_id = uuid4().hex[:12]

        index_result, top_result = await asyncio.gather(
            self._gateway.get_index(),
            self._gateway.get_top_securities(),
        )
        index = index_result.data
        securities = top_result.data
        top = securities[0]
        rate_mode = self._state.load_rate_mode()

        crisis = await self._advance_crisis(index, now, correlation_id)
        status = market_status(index.crash_flag, crisis)

        advice = compose_advice(top, status, crisis, rate_mode)
        band = current_band(top, status, rate_mode)
        leadership = self._leadership_risk(securities)
        rebound = None if top_result.is_demo else self._track_rebound(securities, crisis, rate_mode)

        prices = await self._holding_prices(securities, top_result.is_demo)
        portfolio = summarize_portfolio(self._state.load_portfolio(), prices, advice)

        briefing = None
        if include_briefing and self._briefing is not None:
            briefing = await self._briefing.generate(BriefingRequest(
                index=index,
                top_security=top,
                market_status=status,
                rate_mode=rate_mode,
                crisis_state=crisis,
            ))

        overview = MarketOverview(
            index=index,
            top_securities=securities,
            provenance=DataProvenance(
                index_is_demo=index_result.is_demo,
                securities_is_demo=top_result.is_demo,
            ),
            market_status=status,
            crisis_state=crisis,
            rate_mode=rate_mode,
            current_band=band,
            advice=advice,
            leadership_risk=leadership,
            rebound_detected=rebound,
            portfolio=portfolio,
            briefing=briefing,
            last_updated=now,
        )

        previous = self._latest
        self._latest = overview
        await self._publish(EventTypes.CYCLE_COMPLETED, correlation_id, {
            "market_status": status,
            "index_is_demo": index_result.is_demo,
            "securities_is_demo": top_result.is_demo,
        })
        if previous is None or previous.advice != advice:
            await self._publish(EventTypes.ADVICE_UPDATED, correlation_id, {
                "symbol": top.symbol,
                **advice.model_dump(),
            })

        logger.info(
            "Cycle done: %s, %s %s (%s)",
            status, advice.action, advice.percentage if advice.has_target else "-", top.symbol,
        )
        return overview

    async def _advance_crisis(self, index: IndexSnapshot, now: datetime, correlation_id: str) -> CrisisState:
        """Load, transition and persist the panic state under the crisis lock."""
        async with self._lock:
            before = self._state.load_crisis_state()
            fresh = self._fresh_crash_signal(index, now)
            after = advance_crisis(
                before,
                fresh,
                now,
                base_wait_days=self._rules.base_wait_days,
                extended_wait_days=self._rules.extended_wait_days,
                extended_after_drops=self._rules.extended_after_drops,
            )
            if after != before:
                self._state.save_crisis_state(after)
            transition = classify_transition(before, after)
            if transition == "ended":
                self._state.clear_panic_lows()

        if transition is not None:
            logger.info(
                "Panic period %s (drops=%d, remaining=%d days)",
                transition, after.drop_count, after.remaining_days,
            )
            await self._publish(_TRANSITION_EVENTS[transition], correlation_id, after.model_dump(mode="json"))
        return after

    def _fresh_crash_signal(self, index: IndexSnapshot, now: datetime) -> bool:
        """A crash flag counts once per trading session."""
        if not index.crash_flag:
            return False
        session: date = index.session_date or now.date()
        counted = self._state.load_counted_crash_session()
        if counted is not None and counted >= session:
            return False
        self._state.save_counted_crash_session(session)
        return True

    def _leadership_risk(self, securities: list[SecuritySnapshot]) -> LeadershipRisk | None:
        if len(securities) < 2 or securities[0].market_cap <= 0:
            return None
        leader, runner_up = securities[0], securities[1]
        return detect_leadership_risk(
            leader.market_cap,
            runner_up.market_cap,
            self._rules.leadership_gap_percent,
            leader=leader.symbol,
            runner_up=runner_up.symbol,
        )

    def _track_rebound(
        self,
        securities: list[SecuritySnapshot],
        crisis: CrisisState,
        rate_mode: RateMode,
    ) -> bool | None:
        """Record panic lows and report whether the top security bounced two steps."""
        if not crisis.is_active:
            return None
        lows = {
            s.symbol: self._state.record_panic_low(s.symbol, s.current_price)
            for s in securities
        }
        top = securities[0]
        return detect_rebound_above_two_steps(
            top.current_price,
            lows[top.symbol],
            top.all_time_high,
            rate_mode,
        )

    async def _holding_prices(self, securities: list[SecuritySnapshot], is_demo: bool) -> dict[str, float]:
        """Live prices for held symbols; demo prices never value a portfolio."""
        prices = {} if is_demo else {s.symbol: s.current_price for s in securities}
        missing = {
            h.symbol.upper() for h in self._state.load_portfolio().holdings
        } - prices.keys()
        if not missing:
            return prices

        results = await asyncio.gather(
            *(self._try_get_security(symbol) for symbol in sorted(missing))
        )
        for result in results:
            if result is not None and not result.is_demo:
                prices[result.data.symbol] = result.data.current_price
        return prices

    async def _try_get_security(self, symbol: str) -> SecurityResult | None:
        try:
            return await self._gateway.get_security(symbol)
        except MarketDataError:
            return None

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    async def reset_crisis(self) -> CrisisState:
        """Force the panic state back to inactive."""
        async with self._lock:
            state = reset_crisis()
            self._state.save_crisis_state(state)
            self._state.clear_panic_lows()
        logger.info("Panic period reset by operator")
        await self._publish(EventTypes.CRISIS_RESET, uuid4().hex[:12], state.model_dump(mode="json"))
        return state

    async def set_rate_mode(self, mode: RateMode) -> RateMode:
        """Persist the rate mode. Raises ValueError for unknown modes."""
        previous = self._state.load_rate_mode()
        self._state.save_rate_mode(mode)
        if mode != previous:
            logger.info("Rate mode changed: %s -> %s", previous, mode)
            await self._publish(EventTypes.RATE_MODE_CHANGED, uuid4().hex[:12], {
                "previous": previous,
                "rate_mode": mode,
            })
        return mode

    async def update_portfolio(self, portfolio: Portfolio) -> Portfolio:
        self._state.save_portfolio(portfolio)
        await self._publish(EventTypes.PORTFOLIO_UPDATED, uuid4().hex[:12], {
            "holdings": len(portfolio.holdings),
            "cash_amount": portfolio.cash_amount,
        })
        return portfolio

    async def _publish(self, event_type: str, correlation_id: str, payload: dict) -> None:
        if self._bus is None:
            return
        await self._bus.publish(Event(
            type=event_type,
            correlation_id=correlation_id,
            source="dashboard",
            payload=payload,
        ))

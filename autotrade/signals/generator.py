"""
Signal generation: snapshot -> three agents in parallel -> meta -> persisted Active signal.
"""

from __future__ import annotations
import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence

from autotrade.agents.base import AnalysisAgent
from autotrade.agents.meta import MetaAggregator
from autotrade.agents.reversal import ReversalAgent
from autotrade.agents.trend import TrendAgent
from autotrade.agents.volume import VolumeAgent
from autotrade.core.errors import TradingError, UpstreamError
from autotrade.core.types import SignalStatus, TradeOpinion, TradingSignal, new_record_id, utc_now
from autotrade.data.snapshot import MarketSnapshot, SnapshotBuilder
from autotrade.llm.client import LLMClient
from autotrade.signals.lifecycle import SignalLifecycle

logger = logging.getLogger("autotrade.signals.generator")


def default_agents() -> List[AnalysisAgent]:
    return [TrendAgent(), ReversalAgent(), VolumeAgent()]


class SignalGenerator:
    """
    Runs the agents concurrently on one shared snapshot. Each agent's result
    lands in the slot named after it; the first failure aborts the request.
    """

    def __init__(
        self,
        snapshots: SnapshotBuilder,
        llm: LLMClient,
        lifecycle: SignalLifecycle,
        leverage_for,
        agents: Optional[Sequence[AnalysisAgent]] = None,
        meta: Optional[MetaAggregator] = None,
    ):
        self.snapshots = snapshots
        self.llm = llm
        self.lifecycle = lifecycle
        self.leverage_for = leverage_for
        self.agents = list(agents) if agents is not None else default_agents()
        self.meta = meta or MetaAggregator()

    def run_agents(self, snapshot: MarketSnapshot, model: str) -> Dict[str, TradeOpinion]:
        pool = ThreadPoolExecutor(max_workers=len(self.agents), thread_name_prefix="agent")
        try:
            futures = {
                agent.name: pool.submit(agent.analyze, self.llm, snapshot, model)
                for agent in self.agents
            }
            done, _ = wait(futures.values(), return_when=FIRST_EXCEPTION)
            for name, future in futures.items():
                if future in done and future.exception() is not None:
                    err = future.exception()
                    logger.error("%s agent failed for %s: %s", name, snapshot.symbol, err)
                    if isinstance(err, TradingError):
                        raise type(err)(f"{name} agent error: {err.message}") from err
                    raise UpstreamError(f"{name} agent error: {err}") from err
            return {name: future.result() for name, future in futures.items()}
        finally:
            # Unstarted calls are cancelled; running ones are abandoned
            pool.shutdown(wait=False, cancel_futures=True)

    def generate(self, symbol: str, model: str, timeframes: Sequence[str]) -> TradingSignal:
        symbol = symbol.upper()
        logger.info("Generating signal for %s model=%s timeframes=%s", symbol, model, list(timeframes))
        snapshot = self.snapshots.build(symbol, timeframes)
        opinions = self.run_agents(snapshot, model)
        final = self.meta.aggregate(self.llm, symbol, opinions, model)

        signal = TradingSignal(
            id=new_record_id(),
            symbol=final.symbol or symbol,
            direction=final.direction,
            entry=final.entry,
            stop_loss=final.stop_loss,
            take_profit=final.take_profit,
            risk_reward=final.risk_reward,
            confidence=final.confidence,
            thoughts=final.thoughts,
            leverage=self.leverage_for(symbol),
            created_at=utc_now(),
            status=SignalStatus.ACTIVE,
            model_used=model,
            timeframes_analyzed=list(timeframes),
        )
        return self.lifecycle.save(signal)

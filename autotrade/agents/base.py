"""Abstract analysis agent: lens instructions + shared market data and output contract."""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod

from autotrade.agents.opinion import parse_opinion
from autotrade.core.types import TradeOpinion
from autotrade.data.snapshot import MarketSnapshot, render_market_data
from autotrade.llm.client import LLMClient

logger = logging.getLogger("autotrade.agents")


def output_contract(symbol: str) -> str:
    """JSON shape and trading rules every agent (and the meta-agent) must follow."""
    return f"""
Output ONLY valid JSON in this structure. No markdown, no backticks, no code fences:
{{
  "symbol": "{symbol}",
  "direction": "LONG" or "SHORT",
  "entry": <entry_price_number>,
  "sl": <stop_loss_price_number>,
  "tp": <take_profit_price_number>,
  "rr": <risk_reward_ratio_number>,
  "confidence": <integer_0_to_100>,
  "thoughts": "<structured technical reasoning for this recommendation>"
}}

Rules:
- Escape newlines inside strings as \\n; the JSON must be strict.
- One direction per signal; never mention both LONG and SHORT as the call.
- SL must be below entry for LONG and above entry for SHORT; TP must be above entry for LONG and below entry for SHORT.
- RR = (TP-Entry)/(Entry-SL) for LONG, (Entry-TP)/(SL-Entry) for SHORT.
- Confidence is an honest integer between 0 and 100, never a percentage string.
- Multi-timeframe reasoning is required.
- If no valid setup exists, set all prices to 0, confidence to 0 and explain why in "thoughts". Direction must still be "LONG" or "SHORT" (the more probable one), never "NONE".
"""


AGENT_PRICE_RULES = """
- ENTRY must equal the provided current_price exactly.
- SL and TP must come from visible structure in the candles (recent swing high/low, support/resistance). If placement is ambiguous, use 1x ATR of the last 14 candles away from ENTRY.
- Do not invent levels; reference the exact candles used in "thoughts".
- If you cannot justify SL or TP from the data, confidence must be 0.
"""


class AnalysisAgent(ABC):
    """Stateless: identical snapshot in, one TradeOpinion out. Subclasses only supply the lens."""

    name: str = "agent"

    @abstractmethod
    def instructions(self, symbol: str) -> str:
        """Lens-specific analysis instructions."""
        pass

    def build_prompt(self, snapshot: MarketSnapshot) -> str:
        return "\n".join([
            self.instructions(snapshot.symbol),
            "",
            render_market_data(snapshot),
            output_contract(snapshot.symbol),
            AGENT_PRICE_RULES,
        ])

    def analyze(self, llm: LLMClient, snapshot: MarketSnapshot, model: str) -> TradeOpinion:
        text = llm.complete(model, self.build_prompt(snapshot))
        opinion = parse_opinion(text, snapshot.symbol)
        logger.info(
            "%s agent: %s conf=%d entry=%.6f sl=%.6f tp=%.6f",
            self.name, opinion.direction.value, opinion.confidence,
            opinion.entry, opinion.stop_loss, opinion.take_profit,
        )
        return opinion

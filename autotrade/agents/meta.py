"""
Meta-aggregation: merge the three agent opinions into one trade decision.

The consensus policy is sent to the reasoning provider as instructions. The
same policy is also evaluated locally (`evaluate_consensus`); its verdict is
embedded in the prompt and compared with the model's answer. A mismatch is
only logged.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Dict, List

from autotrade.agents.base import output_contract
from autotrade.agents.opinion import parse_opinion
from autotrade.core.types import Direction, TradeOpinion
from autotrade.llm.client import LLMClient

logger = logging.getLogger("autotrade.agents.meta")

UNANIMOUS_MIN_CONFIDENCE = 60
MAJORITY_MIN_AVG_CONFIDENCE = 70
STRONG_OPPOSITION_CONFIDENCE = 70
STANDALONE_MIN_CONFIDENCE = 90


@dataclass
class ConsensusVerdict:
    direction: Direction
    tradeable: bool
    rule: str  # unanimous | majority | standalone | none
    reason: str = ""


def _opposed(opinions: List[TradeOpinion], direction: Direction) -> List[TradeOpinion]:
    return [o for o in opinions if o.direction is not direction]


def _strongly_opposed(opinions: List[TradeOpinion], direction: Direction) -> bool:
    return any(o.confidence >= STRONG_OPPOSITION_CONFIDENCE for o in _opposed(opinions, direction))


def evaluate_consensus(opinions: List[TradeOpinion]) -> ConsensusVerdict:
    """
    Apply the consensus policy to agent opinions.

    1. Unanimous: all agree and every confidence > 60.
    2. Majority: the larger side's average confidence > 70 and no opposing
       opinion at >= 70.
    3. Standalone: one opinion > 90 and no opposing opinion at >= 70.
    Otherwise not tradeable; direction is still the majority side.
    """
    if not opinions:
        raise ValueError("evaluate_consensus needs at least one opinion")

    longs = [o for o in opinions if o.direction is Direction.LONG]
    shorts = [o for o in opinions if o.direction is Direction.SHORT]
    if len(longs) > len(shorts):
        majority, side = longs, Direction.LONG
    elif len(shorts) > len(longs):
        majority, side = shorts, Direction.SHORT
    else:
        # Tie: the side carrying more total confidence.
        long_conf = sum(o.confidence for o in longs)
        short_conf = sum(o.confidence for o in shorts)
        majority, side = (longs, Direction.LONG) if long_conf >= short_conf else (shorts, Direction.SHORT)

    if len(majority) == len(opinions) and all(o.confidence > UNANIMOUS_MIN_CONFIDENCE for o in opinions):
        return ConsensusVerdict(side, True, "unanimous", "all agents agree with confidence > 60")

    avg = sum(o.confidence for o in majority) / len(majority) if majority else 0.0
    if len(majority) > len(opinions) / 2 and avg > MAJORITY_MIN_AVG_CONFIDENCE \
            and not _strongly_opposed(opinions, side):
        return ConsensusVerdict(side, True, "majority", f"majority {side.value} avg confidence {avg:.1f}")

    standout = max(opinions, key=lambda o: o.confidence)
    if standout.confidence > STANDALONE_MIN_CONFIDENCE and not _strongly_opposed(opinions, standout.direction):
        return ConsensusVerdict(
            standout.direction, True, "standalone",
            f"single {standout.direction.value} opinion at {standout.confidence} with no strong opposition",
        )

    return ConsensusVerdict(side, False, "none", "no consensus rule satisfied")


def _meta_instructions(symbol: str) -> str:
    return f"""You are the Meta-Agent. Combine the analyses of three independent agents (Trend, Reversal, Volume/Orderflow) for {symbol} and produce a single final trading signal in the same JSON format.

Each agent provides direction, entry, sl, tp, rr, confidence and thoughts.

Consensus rules:
- If all agents agree on direction and each confidence is above 60, issue that signal.
- If two of three agree and their average confidence is above 70, issue the majority signal unless the third agent strongly contradicts it (confidence 70 or more in the opposite direction).
- If agents disagree, only issue a signal if one has confidence above 90 and the others are not strongly opposed; otherwise set confidence to 0.
- If no trade is justified, set confidence to 0 and explain why in "thoughts". Direction must still be LONG or SHORT (the more probable one).

Price rules:
- For LONG, SL must be below entry and TP above entry. For SHORT, the reverse.
- Use the entry, SL and TP of the majority or strongest agent, adjusted if needed to respect the rules above.
- If SL/TP are invalid or cannot be justified, set confidence to 0.
- In "thoughts", summarize the reasoning of all three agents and explain how the final signal was derived.
"""


class MetaAggregator:
    """Builds the meta prompt from named opinions and parses the final decision."""

    def build_prompt(self, symbol: str, opinions: Dict[str, TradeOpinion], verdict: ConsensusVerdict) -> str:
        parts = [_meta_instructions(symbol), "Agent analyses:"]
        for name, opinion in opinions.items():
            parts.append(f"{name.capitalize()} Agent:")
            parts.append(json.dumps(opinion.to_dict(), indent=2))
        parts.append(
            f"Pre-computed consensus: direction={verdict.direction.value} "
            f"tradeable={str(verdict.tradeable).lower()} rule={verdict.rule} ({verdict.reason})"
        )
        parts.append(output_contract(symbol))
        return "\n".join(parts)

    def aggregate(
        self,
        llm: LLMClient,
        symbol: str,
        opinions: Dict[str, TradeOpinion],
        model: str,
    ) -> TradeOpinion:
        verdict = evaluate_consensus(list(opinions.values()))
        logger.info(
            "Consensus for %s: %s tradeable=%s rule=%s",
            symbol, verdict.direction.value, verdict.tradeable, verdict.rule,
        )
        text = llm.complete(model, self.build_prompt(symbol, opinions, verdict))
        final = parse_opinion(text, symbol)

        if final.confidence > 0 and not verdict.tradeable:
            logger.warning(
                "Meta output for %s trades %s at %d but local consensus found no trade",
                symbol, final.direction.value, final.confidence,
            )
        elif verdict.tradeable and (final.confidence == 0 or final.direction is not verdict.direction):
            logger.warning(
                "Meta output for %s (%s conf=%d) differs from local consensus %s (%s)",
                symbol, final.direction.value, final.confidence, verdict.direction.value, verdict.rule,
            )
        return final

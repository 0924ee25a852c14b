from autotrade.agents.base import AnalysisAgent
from autotrade.agents.meta import ConsensusVerdict, MetaAggregator, evaluate_consensus
from autotrade.agents.opinion import parse_opinion, prices_consistent, risk_reward
from autotrade.agents.reversal import ReversalAgent
from autotrade.agents.trend import TrendAgent
from autotrade.agents.volume import VolumeAgent

__all__ = [
    "AnalysisAgent",
    "TrendAgent",
    "ReversalAgent",
    "VolumeAgent",
    "MetaAggregator",
    "ConsensusVerdict",
    "evaluate_consensus",
    "parse_opinion",
    "prices_consistent",
    "risk_reward",
]

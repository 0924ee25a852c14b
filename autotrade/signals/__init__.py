from autotrade.signals.generator import SignalGenerator, default_agents
from autotrade.signals.lifecycle import SignalLifecycle

__all__ = ["SignalGenerator", "SignalLifecycle", "default_agents"]

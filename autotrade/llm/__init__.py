"""LLM: text-generation client and response helpers."""

from autotrade.llm.client import LLMClient, strip_code_fence

__all__ = ["LLMClient", "strip_code_fence"]

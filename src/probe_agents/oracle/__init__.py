"""Decision oracle backed by language models."""

from probe_agents.oracle.llm_oracle import LLMDecisionOracle, extract_json_object

__all__ = ["LLMDecisionOracle", "extract_json_object"]

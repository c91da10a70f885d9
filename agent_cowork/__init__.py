"""Agent Cowork - a tool-calling agent loop for OpenAI-compatible models."""

__version__ = "0.1.0"

from agent_cowork.config import Config
from agent_cowork.runner import AgentRunner, RunnerHandle, run_agent

__all__ = ["Config", "AgentRunner", "RunnerHandle", "run_agent", "__version__"]

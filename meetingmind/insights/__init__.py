"""LLM-generated questions, insights and meeting summaries."""

from .engine import InsightEngine, InsightBackend, create_insight_engine
from .coordinator import InsightCoordinator
from .chatgpt_engine import ChatGPTBackend
from .parser import parse_sections

__all__ = [
    "InsightEngine",
    "InsightBackend",
    "create_insight_engine",
    "InsightCoordinator",
    "ChatGPTBackend",
    "parse_sections",
]

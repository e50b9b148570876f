"""Turns a transcript snapshot into an InsightBundle via an LLM backend."""

import asyncio
import logging
import time
from typing import Optional, Protocol

from .chatgpt_engine import ChatGPTBackend
from .parser import parse_sections
from .prompts import build_prompt
from ..errors import InsightAuthError, InsightError, InsightTimeout
from ..models.insights import InsightBundle, InsightStatus

logger = logging.getLogger(__name__)


class InsightBackend(Protocol):
    """Protocol for LLM backends."""

    async def send_prompt(self, prompt: str, temperature: float = 0.7, max_tokens: int = 2000) -> str:
        """Send a prompt and return the completion text."""
        ...


class InsightEngine:
    """Stateless: ``generate`` may be called any number of times, concurrently.

    Never raises for backend problems; a timeout, an API failure or a missing
    backend yields a degraded bundle whose ``status_message`` says why.
    """

    def __init__(self, backend: Optional[InsightBackend], temperature: float = 0.7, max_tokens: int = 2000):
        self.backend = backend
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def available(self) -> bool:
        return self.backend is not None

    async def generate(self, transcript_text: str, timeout: float, final: bool = False) -> InsightBundle:
        chars = len(transcript_text)
        label = "AI summary" if final else "AI suggestions"

        if self.backend is None:
            return InsightBundle.degraded(InsightStatus.UNAVAILABLE,
                                          "AI insights unavailable: no API key configured",
                                          is_final=final, transcript_chars=chars)

        prompt = build_prompt(transcript_text, final=final)
        start_time = time.time()
        try:
            raw = await asyncio.wait_for(
                self.backend.send_prompt(prompt, temperature=self.temperature, max_tokens=self.max_tokens),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, InsightTimeout):
            logger.warning(f"{label} timed out after {timeout:.1f}s ({chars} transcript chars)")
            return InsightBundle.degraded(InsightStatus.TIMED_OUT, f"{label} timed out",
                                          is_final=final, transcript_chars=chars)
        except InsightAuthError as e:
            logger.error(f"{label} failed authentication: {e}")
            return InsightBundle.degraded(InsightStatus.FAILED, f"{label} unavailable: API key rejected",
                                          is_final=final, transcript_chars=chars)
        except InsightError as e:
            logger.error(f"{label} failed: {e}")
            return InsightBundle.degraded(InsightStatus.FAILED, f"{label} failed: {e}",
                                          is_final=final, transcript_chars=chars)

        sections = parse_sections(raw, default_section="summary" if final else "meeting_insights")
        logger.info(f"{label} generated in {time.time() - start_time:.2f}s: "
                    f"{len(sections['suggested_questions'])} questions, "
                    f"{len(sections['meeting_insights'])} insights")
        return InsightBundle(**sections, is_final=final, transcript_chars=chars, raw_text=raw)


def create_insight_engine(config) -> InsightEngine:
    """Build the engine from configuration; without an API key it only yields UNAVAILABLE bundles."""
    api_key = config.get_openai_api_key()
    backend = ChatGPTBackend(api_key, model=config.get('insights.model', 'gpt-4o-mini')) if api_key else None
    if backend is None:
        logger.warning("No OpenAI API key configured; AI suggestions and summaries are disabled")
    return InsightEngine(
        backend,
        temperature=config.get('insights.temperature', 0.7),
        max_tokens=config.get('insights.max_tokens', 2000),
    )

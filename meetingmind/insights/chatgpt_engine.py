"""ChatGPT backend for sending prompts and getting responses."""

import asyncio
import logging
import aiohttp

from ..errors import InsightAuthError, InsightError, InsightTimeout

logger = logging.getLogger(__name__)


class ChatGPTBackend:
    """Simple backend for sending prompts to ChatGPT and getting responses."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini",
                 base_url: str = "https://api.openai.com/v1/chat/completions"):
        """Initialize ChatGPT backend.

        Args:
            api_key: OpenAI API key
            model: Chat completion model to use
            base_url: Chat completions endpoint
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url

        logger.info(f"ChatGPTBackend initialized with model: {model}")

    async def send_prompt(self, prompt: str, temperature: float = 0.7, max_tokens: int = 2000) -> str:
        """Send a prompt to ChatGPT and get the response.

        Args:
            prompt: Prompt to send to ChatGPT
            temperature: Temperature for response generation (0.0 to 1.0)
            max_tokens: Maximum tokens in response

        Returns:
            Response text from ChatGPT

        Raises:
            InsightAuthError: the API key was rejected
            InsightTimeout: the HTTP request timed out
            InsightError: any other API or transport failure
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        data = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": prompt
                }
            ],
            "temperature": temperature,
            "max_tokens": max_tokens
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(self.base_url, headers=headers, json=data) as response:
                    if response.status in (401, 403):
                        raise InsightAuthError(f"ChatGPT API rejected the API key ({response.status})")
                    if response.status != 200:
                        error_text = await response.text()
                        raise InsightError(f"ChatGPT API error: {response.status} - {error_text}")

                    result = await response.json()
        except asyncio.TimeoutError as e:
            raise InsightTimeout("ChatGPT request timed out") from e
        except aiohttp.ClientError as e:
            raise InsightError(f"ChatGPT request failed: {e}") from e

        try:
            return result["choices"][0]["message"]["content"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise InsightError(f"Unexpected ChatGPT response shape: {e}") from e

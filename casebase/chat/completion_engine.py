"""ChatGPT completion engine for sending a conversation and getting the reply."""

import asyncio
import json
import logging
from typing import Dict, List

import aiohttp

from ..exceptions import CompletionError, ConfigurationError, NetworkError

logger = logging.getLogger(__name__)


class ChatGPTCompletionEngine:
    """Sends the conversation so far plus a new user turn and returns the reply."""

    BASE_URL = "https://api.openai.com/v1/chat/completions"

    def __init__(self,
                 api_key: str,
                 model: str = "gpt-3.5-turbo",
                 temperature: float = 0.7,
                 timeout: float = 30.0,
                 base_url: str = BASE_URL):
        """Initialize ChatGPT completion engine.

        Args:
            api_key: OpenAI API key; without one every request fails with ConfigurationError
            model: ChatGPT model to use
            temperature: Temperature for response generation (0.0 to 1.0)
            timeout: Request timeout in seconds
            base_url: Chat completions endpoint
        """
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.base_url = base_url

        logger.info(f"ChatGPTCompletionEngine initialized with model: {model}")

    async def complete(self, prior_turns: List[Dict[str, str]], new_user_text: str) -> str:
        """Send the conversation to ChatGPT and get the reply text.

        Args:
            prior_turns: Earlier messages as ``{"role", "content"}`` pairs
            new_user_text: The user turn being answered

        Returns:
            Reply text from ChatGPT

        Raises:
            ConfigurationError: No API key was configured
            CompletionError: Non-200 status or a body without a reply
            NetworkError: Transport failure or timeout
        """
        if not self.api_key:
            raise ConfigurationError("OpenAI API key is required")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        data = {
            "model": self.model,
            "messages": [*prior_turns, {"role": "user", "content": new_user_text}],
            "temperature": self.temperature,
        }

        logger.debug(f"Sending {len(data['messages'])} messages to {self.model}")
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.base_url, headers=headers, json=data) as response:
                    status = response.status
                    raw = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Chat request failed: {e}")
            raise NetworkError(f"Failed to process chat request: {e}") from e

        text = raw.decode("utf-8", errors="replace")
        try:
            result = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise CompletionError(f"Failed to parse response: {e}", status=status, body=text) from e

        if status != 200:
            message = "Unknown error"
            if isinstance(result, dict) and isinstance(result.get("error"), dict):
                message = result["error"].get("message") or message
            logger.error(f"API Error: {status} - {text}")
            raise CompletionError(f"OpenAI API error: {message}", status=status, body=text)

        try:
            return result["choices"][0]["message"]["content"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise CompletionError("Completion response has no reply", status=status, body=text) from e

"""
Reply Generator for the Chat Relay
Calls an OpenAI-compatible chat-completions endpoint (DeepSeek by default)
"""

import logging
from typing import Optional

import requests

from ..utils.error_handling import GenerationError

logger = logging.getLogger(__name__)


class ReplyGenerator:
    """
    Thin client around a remote chat-completions API.

    Each call is a single attempt: there is no retry or backoff, so a
    transient network error surfaces to the relay as GenerationError.
    """

    def __init__(self,
                 api_url: str,
                 api_key: str,
                 model: str = 'deepseek-reasoner',
                 system_prompt: Optional[str] = None,
                 temperature: float = 0.7,
                 max_tokens: int = 1000,
                 timeout: int = 60):
        """
        Args:
            api_url: Full URL of the chat-completions endpoint
            api_key: Bearer key for the service
            model: Model identifier sent with every request
            system_prompt: Instruction prepended to each conversation
            temperature: Sampling temperature
            max_tokens: Upper bound on reply length
            timeout: Seconds to wait for the service before giving up
        """
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.system_prompt = system_prompt or "You are a helpful AI assistant."
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        if not self.api_key:
            logger.error("Reply service API key is not set; configure LLM_API_KEY")

    @classmethod
    def from_config(cls, config) -> 'ReplyGenerator':
        return cls(
            api_url=config.get('LLM_API_URL'),
            api_key=config.get('LLM_API_KEY', ''),
            model=config.get('LLM_MODEL', 'deepseek-reasoner'),
            system_prompt=config.get('LLM_SYSTEM_PROMPT'),
            temperature=config.get('LLM_TEMPERATURE', 0.7),
            max_tokens=config.get('LLM_MAX_TOKENS', 1000),
            timeout=config.get('LLM_TIMEOUT', 60),
        )

    def generate_response(self, text: str) -> str:
        """
        Ask the service for a reply to a single user message.

        Raises:
            GenerationError: transport failure, timeout, non-2xx status, or a
                body without a usable `choices[0].message.content`.
        """
        try:
            response = requests.post(
                self.api_url,
                headers={
                    'Authorization': f'Bearer {self.api_key}',
                    'Content-Type': 'application/json',
                },
                json={
                    'model': self.model,
                    'messages': [
                        {'role': 'system', 'content': self.system_prompt},
                        {'role': 'user', 'content': text},
                    ],
                    'temperature': self.temperature,
                    'max_tokens': self.max_tokens,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error("Reply service timeout - request took too long")
            raise GenerationError("Reply service timed out", cause=e)
        except requests.exceptions.RequestException as e:
            logger.error(f"Reply service request failed: {e}")
            raise GenerationError(f"Unable to get AI reply: {e}", cause=e)

        if not 200 <= response.status_code < 300:
            logger.error(f"Reply service error: {response.status_code} {response.text[:500]}")
            raise GenerationError(
                f"Reply service returned status {response.status_code}",
                details={'status_code': response.status_code},
            )

        try:
            result = response.json()
            content = result['choices'][0]['message']['content']
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Malformed reply service response: {e}")
            raise GenerationError("Invalid reply service response format", cause=e)

        if not isinstance(content, str) or not content.strip():
            raise GenerationError("Reply service returned an empty reply")
        return content.strip()

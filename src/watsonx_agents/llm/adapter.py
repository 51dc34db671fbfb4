"""
Generic chat model backed by LiteLLM's chat completion API.

Useful for running the examples against a local or non-watsonx model
(e.g. ``ollama/llama3.1``) while keeping the same ChatLLM interface.
"""

from typing import Any, Dict, List, Optional

import litellm
from pydantic import SecretStr

from watsonx_agents.llm.base import ChatLLM, ChatLLMOutput, Message, Role
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)


class LiteLLMChatLLM(ChatLLM):
    """
    Chat model using ``litellm.acompletion``.

    Attributes:
        temperature: Sampling temperature.
        max_tokens: Maximum number of tokens to generate.
        timeout: Request timeout in seconds.
        api_key: Optional provider API key (otherwise read from the environment).
        api_base: Optional provider endpoint.
    """

    provider_id = "litellm"

    def __init__(
        self,
        model_id: str,
        *,
        temperature: float = 0.0,
        max_tokens: int = 1000,
        timeout: int = 60,
        api_key: Optional[SecretStr] = None,
        api_base: Optional[str] = None,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        context_window: Optional[int] = None,
    ):
        if not 0.0 <= temperature <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")
        if max_tokens < 1:
            raise ValueError("max_tokens must be positive")

        super().__init__(
            model_id,
            retry_attempts=retry_attempts,
            retry_delay=retry_delay,
            context_window=context_window,
        )
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.api_key = api_key
        self.api_base = api_base

        logger.info(
            "Initialized LiteLLMChatLLM",
            extra={"model": model_id, "temperature": temperature, "max_tokens": max_tokens},
        )

    def _build_params(self, options: Dict[str, Any]) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": self.model_id,
            "temperature": options.pop("temperature", self.temperature),
            "max_tokens": options.pop("max_tokens", self.max_tokens),
            "timeout": options.pop("timeout", self.timeout),
        }
        if self.api_key is not None:
            params["api_key"] = self.api_key.get_secret_value()
        if self.api_base:
            params["api_base"] = self.api_base
        params.update(options)
        return params

    async def _generate(self, messages: List[Message], **options: Any) -> ChatLLMOutput:
        params = self._build_params(dict(options))
        response = await litellm.acompletion(
            messages=[message.to_llm_dict() for message in messages],
            **params,
        )
        return self._normalize_response(response)

    def _normalize_response(self, response: Any) -> ChatLLMOutput:
        content = ""
        finish_reason = None
        choices = getattr(response, "choices", None) or []
        if choices:
            choice = choices[0]
            if hasattr(choice, "message") and hasattr(choice.message, "content"):
                content = choice.message.content or ""
            finish_reason = getattr(choice, "finish_reason", None)

        usage = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
        response_usage = getattr(response, "usage", None)
        if response_usage is not None:
            for key in usage:
                usage[key] = getattr(response_usage, key, 0) or 0

        return ChatLLMOutput(
            messages=[Message.of(Role.ASSISTANT, content)],
            raw=response,
            usage=usage,
            finish_reason=finish_reason,
        )

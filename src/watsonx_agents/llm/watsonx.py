"""
watsonx.ai text generation and chat models.

WatsonxLLM calls the hosted text-generation endpoint through LiteLLM's
``watsonx_text`` provider. WatsonxChatLLM turns a conversation into a single
prompt with a model-specific template and delegates to a WatsonxLLM.

Example:
    >>> llm = WatsonxLLM(
    ...     model_id="meta-llama/llama-3-70b-instruct",
    ...     project_id="...",
    ...     base_url="https://us-south.ml.cloud.ibm.com",
    ...     api_key=SecretStr("..."),
    ...     parameters={"decoding_method": "greedy", "max_new_tokens": 500},
    ... )
    >>> chat_llm = WatsonxChatLLM(llm, messages_to_prompt=llama3_messages_to_prompt)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import litellm
from pydantic import SecretStr

from watsonx_agents.config import WatsonxConfig
from watsonx_agents.llm.base import ChatLLM, ChatLLMOutput, Message, Role
from watsonx_agents.llm.prompts import llama3_messages_to_prompt
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)

# Sends the rendered prompt unchanged instead of LiteLLM's own chat template
_PASSTHROUGH_ROLES = {
    "system": {"pre_message": "", "post_message": ""},
    "user": {"pre_message": "", "post_message": ""},
    "assistant": {"pre_message": "", "post_message": ""},
}


@dataclass
class TextGenerationOutput:
    """
    Result of a text-generation request.

    Attributes:
        text: Generated text.
        usage: Token usage statistics.
        finish_reason: Why generation stopped.
        raw: The LiteLLM response object.
    """

    text: str
    usage: Dict[str, int] = field(default_factory=dict)
    finish_reason: Optional[str] = None
    raw: Any = None


class WatsonxLLM:
    """
    Hosted watsonx.ai text-generation model.

    Attributes:
        model_id: Foundation model identifier.
        project_id: watsonx.ai project.
        base_url: Regional endpoint.
        api_key: IBM Cloud API key.
        parameters: Generation parameters (decoding_method, max_new_tokens, ...).
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        model_id: str,
        *,
        project_id: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key: Optional[SecretStr] = None,
        parameters: Optional[Dict[str, Any]] = None,
        timeout: int = 60,
    ):
        self.model_id = model_id
        self.project_id = project_id
        self.base_url = base_url
        self.api_key = api_key
        self.parameters: Dict[str, Any] = dict(parameters or {})
        self.timeout = timeout

        logger.info(
            "Initialized WatsonxLLM",
            extra={"model": model_id, "parameters": self.parameters},
        )

    @classmethod
    def from_config(cls, config: WatsonxConfig) -> "WatsonxLLM":
        """Create a model from the watsonx settings section."""
        config.require_credentials()
        return cls(
            config.model_id,
            project_id=config.project_id,
            base_url=config.base_url,
            api_key=config.api_key,
            parameters={
                "decoding_method": config.decoding_method,
                "max_new_tokens": config.max_new_tokens,
            },
            timeout=config.timeout,
        )

    @property
    def litellm_model(self) -> str:
        return f"watsonx_text/{self.model_id}"

    def _build_params(self, overrides: Dict[str, Any]) -> Dict[str, Any]:
        parameters = {**self.parameters, **overrides}
        params: Dict[str, Any] = {
            "model": self.litellm_model,
            "timeout": parameters.pop("timeout", self.timeout),
            "roles": _PASSTHROUGH_ROLES,
        }
        if "max_new_tokens" in parameters:
            params["max_tokens"] = parameters.pop("max_new_tokens")
        if "stop_sequences" in parameters:
            params["stop"] = parameters.pop("stop_sequences")
        if self.project_id:
            params["project_id"] = self.project_id
        if self.base_url:
            params["api_base"] = self.base_url
        if self.api_key is not None:
            params["api_key"] = self.api_key.get_secret_value()
        params.update(parameters)
        return params

    async def generate(self, prompt: str, **overrides: Any) -> TextGenerationOutput:
        """
        Generate a continuation for the prompt.

        Args:
            prompt: Fully rendered prompt.
            **overrides: Generation parameters overriding the configured ones.

        Returns:
            TextGenerationOutput with the generated text and usage.
        """
        params = self._build_params(overrides)
        response = await litellm.atext_completion(prompt=prompt, **params)
        return self._normalize_response(response)

    def _normalize_response(self, response: Any) -> TextGenerationOutput:
        text = ""
        finish_reason = None
        choices = getattr(response, "choices", None) or []
        if choices:
            text = getattr(choices[0], "text", "") or ""
            finish_reason = getattr(choices[0], "finish_reason", None)

        usage = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
        response_usage = getattr(response, "usage", None)
        if response_usage is not None:
            for key in usage:
                usage[key] = getattr(response_usage, key, 0) or 0

        return TextGenerationOutput(text=text, usage=usage, finish_reason=finish_reason, raw=response)

    def __repr__(self) -> str:
        return f"<WatsonxLLM(model_id='{self.model_id}')>"


class WatsonxChatLLM(ChatLLM):
    """
    Chat model over a watsonx text-generation model.

    The conversation is rendered into one prompt with messages_to_prompt,
    which defaults to the Llama-3 instruct format.
    """

    provider_id = "watsonx"

    def __init__(
        self,
        llm: WatsonxLLM,
        messages_to_prompt: Callable[[List[Message]], str] = llama3_messages_to_prompt,
        *,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        context_window: Optional[int] = None,
    ):
        super().__init__(
            llm.model_id,
            retry_attempts=retry_attempts,
            retry_delay=retry_delay,
            context_window=context_window,
        )
        self.llm = llm
        self.messages_to_prompt = messages_to_prompt

    @property
    def token_model(self) -> str:
        return f"watsonx/{self.model_id}"

    def describe_input(self, messages: List[Message]) -> str:
        return self.messages_to_prompt(messages)

    async def _generate(self, messages: List[Message], **options: Any) -> ChatLLMOutput:
        prompt = self.messages_to_prompt(messages)
        output = await self.llm.generate(prompt, **options)
        return ChatLLMOutput(
            messages=[Message.of(Role.ASSISTANT, output.text)],
            raw=output,
            usage=output.usage,
            finish_reason=output.finish_reason,
        )

    def get_model_info(self) -> Dict[str, Any]:
        info = super().get_model_info()
        info["parameters"] = dict(self.llm.parameters)
        return info

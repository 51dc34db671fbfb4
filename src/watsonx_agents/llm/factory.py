"""
Factory for creating chat models with pre-configured settings.

Provides the known watsonx foundation models with their context windows and
builds the chat backend selected in the settings.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from watsonx_agents.config import Settings, WatsonxConfig, get_settings
from watsonx_agents.llm.adapter import LiteLLMChatLLM
from watsonx_agents.llm.base import ChatLLM
from watsonx_agents.llm.prompts import llama3_messages_to_prompt
from watsonx_agents.llm.watsonx import WatsonxChatLLM, WatsonxLLM
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)


class PromptFormat(str, Enum):
    """Chat prompt formats a text-generation model was tuned with."""

    LLAMA3 = "llama3"


# Known watsonx.ai foundation models
MODEL_CONFIGS: Dict[str, Dict[str, Any]] = {
    "meta-llama/llama-3-70b-instruct": {
        "context_window": 8192,
        "max_new_tokens": 4096,
        "prompt_format": PromptFormat.LLAMA3,
    },
    "meta-llama/llama-3-8b-instruct": {
        "context_window": 8192,
        "max_new_tokens": 4096,
        "prompt_format": PromptFormat.LLAMA3,
    },
    "meta-llama/llama-3-1-70b-instruct": {
        "context_window": 131072,
        "max_new_tokens": 4096,
        "prompt_format": PromptFormat.LLAMA3,
    },
    "meta-llama/llama-3-1-8b-instruct": {
        "context_window": 131072,
        "max_new_tokens": 4096,
        "prompt_format": PromptFormat.LLAMA3,
    },
    "meta-llama/llama-3-3-70b-instruct": {
        "context_window": 131072,
        "max_new_tokens": 4096,
        "prompt_format": PromptFormat.LLAMA3,
    },
}

_PROMPT_FORMATTERS = {
    PromptFormat.LLAMA3: llama3_messages_to_prompt,
}


def get_model_config(model_id: str) -> Dict[str, Any]:
    """
    Get the configuration of a known watsonx model.

    Raises:
        ValueError: If the model is not known.
    """
    if model_id not in MODEL_CONFIGS:
        raise ValueError(
            f"Unknown watsonx model '{model_id}'. "
            f"Available models: {', '.join(list_models())}"
        )
    return MODEL_CONFIGS[model_id].copy()


def list_models() -> List[str]:
    """List the known watsonx model identifiers."""
    return sorted(MODEL_CONFIGS)


def create_watsonx_llm(config: Optional[WatsonxConfig] = None) -> WatsonxLLM:
    """
    Create a watsonx text-generation model from settings.

    Raises:
        ConfigurationError: If credentials are missing.
    """
    config = config or get_settings().watsonx
    return WatsonxLLM.from_config(config)


def create_watsonx_chat_llm(config: Optional[WatsonxConfig] = None) -> WatsonxChatLLM:
    """
    Create a watsonx chat model with the prompt format of the configured model.

    Unknown models fall back to the Llama-3 format without a known context
    window.
    """
    config = config or get_settings().watsonx
    model_config = MODEL_CONFIGS.get(config.model_id, {})
    if not model_config:
        logger.warning(
            f"Model '{config.model_id}' is not in MODEL_CONFIGS, assuming Llama-3 prompt format",
        )

    prompt_format = model_config.get("prompt_format", PromptFormat.LLAMA3)
    return WatsonxChatLLM(
        create_watsonx_llm(config),
        messages_to_prompt=_PROMPT_FORMATTERS[prompt_format],
        retry_attempts=config.retry_attempts,
        retry_delay=config.retry_delay,
        context_window=model_config.get("context_window"),
    )


def get_chat_llm(settings: Optional[Settings] = None) -> ChatLLM:
    """
    Create the chat model selected by ``LLM_BACKEND``.

    Args:
        settings: Settings to use. Defaults to the cached settings.

    Returns:
        A WatsonxChatLLM for the "watsonx" backend, otherwise a LiteLLMChatLLM
        for ``LLM_MODEL``.

    Example:
        >>> llm = get_chat_llm()
        >>> output = await llm.generate([Message.of("user", "Hello")])
    """
    settings = settings or get_settings()

    if settings.llm_backend == "watsonx":
        llm: ChatLLM = create_watsonx_chat_llm(settings.watsonx)
    else:
        llm = LiteLLMChatLLM(
            settings.llm_model,
            retry_attempts=settings.watsonx.retry_attempts,
            retry_delay=settings.watsonx.retry_delay,
        )

    logger.info(
        "Created chat LLM",
        extra={"backend": settings.llm_backend, "model": llm.model_id},
    )
    return llm

"""
Abstract base class and message types for chat language models.

Every chat model exposes the same asynchronous generate() call. The base
class validates the conversation, retries transient failures with
exponential backoff and reports its lifecycle through an Emitter:

- ``start``: ``{"input": ..., "options": {...}}`` before the first attempt
- ``retry``: ``{"attempt": n, "error": exc}`` before each new attempt
- ``success``: ``{"value": ChatLLMOutput}``
- ``error``: ``{"error": LLMError, "input": ...}``

Example:
    >>> messages = [
    ...     Message.of(Role.SYSTEM, "You are a helpful assistant."),
    ...     Message.of(Role.USER, "Why is the sky blue?"),
    ... ]
    >>> output = await chat_llm.generate(messages)
    >>> print(output.text)
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from litellm import token_counter

from watsonx_agents.emitter import Emitter
from watsonx_agents.errors import AbortError, LLMError
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)


class Role(str, Enum):
    """Role of a message author."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """
    Represents a single message in a conversation.

    Attributes:
        role: The role of the message author.
        text: The text content of the message.
        meta: Additional metadata about the message.
        created_at: When the message was created.
    """

    role: Role
    text: str
    meta: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.role = Role(self.role)

    @classmethod
    def of(cls, role: Union[Role, str], text: str, **meta: Any) -> "Message":
        """Create a message, e.g. ``Message.of("user", "Hello")``."""
        return cls(role=Role(role), text=text, meta=meta)

    def to_llm_dict(self) -> Dict[str, str]:
        """Convert to the OpenAI-style dictionary used by LiteLLM."""
        return {"role": self.role.value, "content": self.text}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with ISO timestamp."""
        data = asdict(self)
        data["role"] = self.role.value
        data["created_at"] = self.created_at.isoformat()
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Message":
        """Create from dictionary."""
        data = data.copy()
        if "created_at" in data and isinstance(data["created_at"], str):
            data["created_at"] = datetime.fromisoformat(data["created_at"])
        return Message(**data)


@dataclass
class ChatLLMOutput:
    """
    Result of a chat model generation.

    Attributes:
        messages: Generated assistant messages.
        raw: Provider response the output was built from.
        usage: Token usage (prompt_tokens, completion_tokens, total_tokens).
        finish_reason: Why generation stopped (e.g. "stop", "length").
    """

    messages: List[Message]
    raw: Any = None
    usage: Dict[str, int] = field(
        default_factory=lambda: {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
    )
    finish_reason: Optional[str] = None

    @property
    def text(self) -> str:
        """Concatenated text of the generated messages."""
        return "".join(message.text for message in self.messages)


class ChatLLM(ABC):
    """
    Abstract base class for chat language models.

    Subclasses implement _generate() for a single provider call. The public
    generate() adds validation, retries and lifecycle events.

    Attributes:
        model_id: Provider model identifier.
        provider_id: Short provider name used in the emitter namespace.
        retry_attempts: How often a retryable failure is retried.
        retry_delay: Initial backoff delay in seconds.
        context_window: Maximum context size in tokens, if known.
    """

    provider_id: str = "chat"

    def __init__(
        self,
        model_id: str,
        *,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        context_window: Optional[int] = None,
    ):
        self.model_id = model_id
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.context_window = context_window
        self.emitter = Emitter.root().child(namespace=["llm", self.provider_id], creator=self)
        self._token_cache: Dict[str, int] = {}

    @property
    def token_model(self) -> str:
        """Model name handed to LiteLLM's token counter."""
        return self.model_id

    def describe_input(self, messages: List[Message]) -> Any:
        """Representation of the input reported in the ``start`` event."""
        return messages

    async def generate(
        self,
        messages: List[Message],
        *,
        signal: Optional[asyncio.Event] = None,
        **options: Any,
    ) -> ChatLLMOutput:
        """
        Generate a response for the conversation with retry logic.

        Args:
            messages: Conversation to complete.
            signal: Optional abort signal; generation stops once it is set.
            **options: Provider-specific overrides.

        Returns:
            ChatLLMOutput with the generated assistant message.

        Raises:
            ValueError: If messages are invalid.
            AbortError: If the signal was set.
            LLMError: If all retry attempts fail.
        """
        self.validate_messages(messages)
        await self.emitter.emit("start", {"input": self.describe_input(messages), "options": options})

        logger.debug(
            "Sending generation request",
            extra={"model": self.model_id, "message_count": len(messages)},
        )

        last_error: Optional[Exception] = None
        error_info: Dict[str, Any] = {"is_retryable": False}
        for attempt in range(self.retry_attempts + 1):
            if signal is not None and signal.is_set():
                abort_error = AbortError("Generation has been aborted", context={"model": self.model_id})
                await self.emitter.emit("error", {"error": abort_error, "input": self.describe_input(messages)})
                raise abort_error

            if attempt > 0:
                await self.emitter.emit("retry", {"attempt": attempt, "error": last_error})

            try:
                output = await self._generate(messages, **options)

                logger.debug(
                    "Generation successful",
                    extra={"model": self.model_id, "tokens": output.usage.get("total_tokens", 0)},
                )
                await self.emitter.emit("success", {"value": output})
                return output

            except AbortError:
                raise

            except Exception as e:
                last_error = e
                error_info = self.format_error(e)

                logger.warning(
                    f"Generation attempt {attempt + 1} failed: {error_info['error_message']}",
                    extra={"attempt": attempt + 1, "is_retryable": error_info["is_retryable"]},
                )

                if not error_info["is_retryable"] or attempt >= self.retry_attempts:
                    break

                # Exponential backoff
                await asyncio.sleep(self.retry_delay * (2**attempt))

        logger.error(
            "All generation attempts failed",
            extra={"model": self.model_id, "attempts": attempt + 1},
        )
        error = LLMError(
            f"Generation with model '{self.model_id}' failed: {last_error}",
            cause=last_error,
            is_retryable=error_info["is_retryable"],
            context={"model": self.model_id, "attempts": attempt + 1},
        )
        await self.emitter.emit("error", {"error": error, "input": self.describe_input(messages)})
        raise error from last_error

    @abstractmethod
    async def _generate(self, messages: List[Message], **options: Any) -> ChatLLMOutput:
        """
        Perform a single provider call.

        Args:
            messages: Validated conversation.
            **options: Provider-specific overrides.

        Returns:
            ChatLLMOutput for the call.
        """

    def count_tokens(self, text: str) -> int:
        """
        Count tokens in text using LiteLLM's token counter.

        Results are cached per text. Falls back to an estimate of one token
        per four characters when the tokenizer is unavailable.
        """
        cached = self._token_cache.get(text)
        if cached is not None:
            return cached
        try:
            count = token_counter(model=self.token_model, text=text)
        except Exception as e:
            logger.warning(f"Token counting failed, using estimate: {e}")
            count = len(text) // 4
        if len(self._token_cache) < 1000:
            self._token_cache[text] = count
        return count

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the model."""
        return {
            "name": self.model_id,
            "provider": self.provider_id,
            "context_window": self.context_window,
            "retry_attempts": self.retry_attempts,
        }

    def validate_messages(self, messages: List[Message]) -> bool:
        """
        Validate that messages are properly formed.

        Raises:
            ValueError: If the list is empty, an item is not a Message, or
                        a text is not a non-empty string.
        """
        if not messages:
            raise ValueError("Messages list cannot be empty")

        for i, message in enumerate(messages):
            if not isinstance(message, Message):
                raise ValueError(f"Message {i} must be a Message, got {type(message).__name__}")

            if not isinstance(message.text, str):
                raise ValueError(f"Message {i} text must be a string")

            if not message.text.strip():
                raise ValueError(f"Message {i} text cannot be empty")

        return True

    def format_error(self, error: Exception) -> Dict[str, Any]:
        """
        Format an exception into a standardized error dictionary.

        Returns:
            Dictionary with error_type, error_message, is_retryable and
            original_error.
        """
        error_type = type(error).__name__
        error_message = str(error)

        retryable_errors = [
            "timeout",
            "timed out",
            "rate limit",
            "ratelimit",
            "429",
            "503",
            "502",
            "500",
            "connection",
            "network",
            "serviceunavailable",
        ]
        haystack = f"{error_type} {error_message}".lower()
        is_retryable = any(keyword in haystack for keyword in retryable_errors)

        return {
            "error_type": error_type,
            "error_message": error_message,
            "is_retryable": is_retryable,
            "original_error": error,
        }

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(model_id='{self.model_id}')>"

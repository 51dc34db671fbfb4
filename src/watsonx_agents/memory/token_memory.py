"""
Token-budgeted conversation memory.

TokenMemory keeps the conversation within a token budget derived from the
model's context window. When a new message does not fit, the oldest
non-system messages are evicted first; system messages are always kept.
"""

from typing import Dict, List, Optional

from watsonx_agents.errors import MemoryFatalError
from watsonx_agents.llm.base import ChatLLM, Message, Role
from watsonx_agents.memory.base import BaseMemory
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 4000


class TokenMemory(BaseMemory):
    """
    Memory bounded by a token budget.

    Attributes:
        llm: Model whose tokenizer is used for counting.
        max_tokens: Token budget for all stored messages.

    Example:
        >>> memory = TokenMemory(llm, max_tokens=2000)
        >>> await memory.add(Message.of("user", "What is the weather in Las Vegas?"))
        >>> memory.tokens_used
        9
    """

    def __init__(
        self,
        llm: ChatLLM,
        max_tokens: Optional[int] = None,
        capacity_threshold: float = 0.75,
    ):
        if not 0.0 < capacity_threshold <= 1.0:
            raise ValueError("capacity_threshold must be in (0, 1]")

        if max_tokens is None:
            if llm.context_window:
                max_tokens = int(llm.context_window * capacity_threshold)
            else:
                max_tokens = DEFAULT_MAX_TOKENS
        if max_tokens < 1:
            raise ValueError("max_tokens must be positive")

        self.llm = llm
        self.max_tokens = max_tokens
        self._messages: List[Message] = []
        # Token count per stored entry, parallel to _messages
        self._tokens: List[int] = []

        logger.debug("Initialized TokenMemory", extra={"max_tokens": max_tokens})

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    @property
    def tokens_used(self) -> int:
        return sum(self._tokens)

    def _count(self, message: Message) -> int:
        return self.llm.count_tokens(message.text)

    def _removal_candidate(self) -> Optional[Message]:
        for message in self._messages:
            if message.role != Role.SYSTEM:
                return message
        return None

    async def add(self, message: Message, index: Optional[int] = None) -> None:
        """
        Store a message, evicting old messages to stay within budget.

        Raises:
            MemoryFatalError: If the message alone exceeds the budget, or no
                              evictable message is left to make room.
        """
        tokens = self._count(message)
        if tokens > self.max_tokens:
            raise MemoryFatalError(
                f"Message has {tokens} tokens which exceeds the memory budget of {self.max_tokens}",
                context={"tokens": tokens, "max_tokens": self.max_tokens},
            )

        while self.tokens_used + tokens > self.max_tokens:
            candidate = self._removal_candidate()
            if candidate is None:
                raise MemoryFatalError(
                    "Memory is full of system messages and cannot store the message",
                    context={"tokens": tokens, "max_tokens": self.max_tokens},
                )
            await self.delete(candidate)
            logger.debug(
                "Evicted message from memory",
                extra={"role": candidate.role.value, "tokens_used": self.tokens_used},
            )

        if index is None:
            self._messages.append(message)
            self._tokens.append(tokens)
        else:
            self._messages.insert(index, message)
            self._tokens.insert(index, tokens)

    async def delete(self, message: Message) -> bool:
        for i, stored in enumerate(self._messages):
            if stored is message:
                del self._messages[i]
                del self._tokens[i]
                return True
        return False

    def reset(self) -> None:
        self._messages.clear()
        self._tokens.clear()

    def stats(self) -> Dict[str, int]:
        return {
            "messages": len(self._messages),
            "tokens_used": self.tokens_used,
            "max_tokens": self.max_tokens,
        }

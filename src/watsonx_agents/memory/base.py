"""
Conversation memory for agents.

A memory stores prior conversation turns which agents re-supply to the model
as context on the next run.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Iterator, List, Optional

from watsonx_agents.llm.base import Message
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)


class BaseMemory(ABC):
    """
    Abstract base class for conversation memories.

    Example:
        >>> memory = UnconstrainedMemory()
        >>> await memory.add(Message.of("user", "Hello!"))
        >>> len(memory.messages)
        1
    """

    @property
    @abstractmethod
    def messages(self) -> List[Message]:
        """Stored messages, oldest first."""

    @abstractmethod
    async def add(self, message: Message, index: Optional[int] = None) -> None:
        """
        Store a message.

        Args:
            message: The message to store.
            index: Position to insert at. Appends when None.
        """

    @abstractmethod
    async def delete(self, message: Message) -> bool:
        """Remove a message. Returns False if it was not stored."""

    @abstractmethod
    def reset(self) -> None:
        """Remove all messages."""

    async def add_many(self, messages: Iterable[Message], start: Optional[int] = None) -> None:
        """Store several messages in order."""
        for offset, message in enumerate(messages):
            await self.add(message, None if start is None else start + offset)

    async def delete_many(self, messages: Iterable[Message]) -> None:
        for message in list(messages):
            await self.delete(message)

    def is_empty(self) -> bool:
        return not self.messages

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    def __len__(self) -> int:
        return len(self.messages)


class UnconstrainedMemory(BaseMemory):
    """Memory that keeps every message."""

    def __init__(self):
        self._messages: List[Message] = []

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    async def add(self, message: Message, index: Optional[int] = None) -> None:
        if index is None:
            self._messages.append(message)
        else:
            self._messages.insert(index, message)

    async def delete(self, message: Message) -> bool:
        for i, stored in enumerate(self._messages):
            if stored is message:
                del self._messages[i]
                return True
        return False

    def reset(self) -> None:
        self._messages.clear()
        logger.debug("Memory reset")

"""
Structured-output driver that forces model answers into a Pydantic schema.

The driver renders a system prompt containing the JSON schema of the
expected answer, parses the model output as JSON and validates it. Invalid
answers are sent back to the model together with the validation error until
a valid answer arrives or the retry budget is spent.

Example:
    >>> driver = JsonDriver.from_template(SYSTEM_PROMPT, chat_llm)
    >>> response = await driver.generate(AgentOutput, messages, max_retries=3)
    >>> print(response.parsed.final_answer)
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from watsonx_agents.errors import DriverError
from watsonx_agents.llm.base import ChatLLM, ChatLLMOutput, Message, Role
from watsonx_agents.templates import PromptTemplate
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

RetryCallback = Callable[[int, Exception], Awaitable[None]]

DEFAULT_MAX_RETRIES = 3

JSON_CORRECTION_PROMPT = """Your previous answer could not be accepted:
{error}

Answer again with a single JSON object that satisfies the schema from the system instructions.
Do not add any text outside of the JSON object."""

_fence_pattern = re.compile(r"```(?:json)?\s*([\s\S]+?)\s*```")


class SystemPromptInput(BaseModel):
    """Variables of a driver system prompt."""

    output_schema: str = Field(alias="schema", min_length=1)


@dataclass
class DriverResponse(Generic[T]):
    """
    Result of a structured generation.

    Attributes:
        raw: Output of the final, successful LLM call.
        parsed: The validated answer.
        messages: Conversation sent with the final call.
    """

    raw: ChatLLMOutput
    parsed: T
    messages: List[Message]


class JsonDriver:
    """Generates JSON answers that validate against a Pydantic model."""

    def __init__(self, llm: ChatLLM, system_prompt: PromptTemplate[SystemPromptInput]):
        self.llm = llm
        self.system_prompt = system_prompt

    @classmethod
    def from_template(cls, template: PromptTemplate[SystemPromptInput], llm: ChatLLM) -> "JsonDriver":
        """Create a driver from a system prompt with a ``schema`` variable."""
        return cls(llm, template)

    @staticmethod
    def schema_to_string(schema: Type[BaseModel]) -> str:
        """Serialize the JSON schema of a Pydantic model for the prompt."""
        return json.dumps(schema.model_json_schema(), indent=2)

    @staticmethod
    def extract_json(text: str) -> str:
        """Strip a Markdown code fence and surrounding text from a JSON answer."""
        match = _fence_pattern.search(text)
        if match:
            return match.group(1).strip()

        start, end = text.find("{"), text.rfind("}")
        if start != -1 and end > start:
            return text[start : end + 1]
        return text.strip()

    def parse(self, text: str, schema: Type[T]) -> T:
        """
        Parse and validate a model answer.

        Raises:
            json.JSONDecodeError: If the answer is not JSON.
            ValidationError: If the JSON does not satisfy the schema.
        """
        data: Any = json.loads(self.extract_json(text))
        return schema.model_validate(data)

    async def generate(
        self,
        schema: Type[T],
        messages: List[Message],
        *,
        max_retries: Optional[int] = None,
        signal: Any = None,
        on_retry: Optional[RetryCallback] = None,
    ) -> DriverResponse[T]:
        """
        Generate an answer that validates against the schema.

        Args:
            schema: Pydantic model describing the answer.
            messages: Conversation to answer (without a system message).
            max_retries: How many invalid answers are corrected before giving up.
            signal: Optional abort signal passed to the model.
            on_retry: Awaited with (attempt, error) before every retry.

        Returns:
            DriverResponse with the parsed answer.

        Raises:
            DriverError: If no valid answer was produced.
        """
        max_retries = DEFAULT_MAX_RETRIES if max_retries is None else max_retries
        system = Message.of(Role.SYSTEM, self.system_prompt.render(schema=self.schema_to_string(schema)))
        conversation = [system, *messages]

        last_error: Optional[Exception] = None
        for attempt in range(max_retries + 1):
            output = await self.llm.generate(conversation, signal=signal)
            try:
                parsed = self.parse(output.text, schema)
                return DriverResponse(raw=output, parsed=parsed, messages=conversation)
            except (json.JSONDecodeError, ValidationError) as e:
                last_error = e
                logger.warning(
                    f"Invalid structured answer on attempt {attempt + 1}: {e}",
                    extra={"schema": schema.__name__, "attempt": attempt + 1},
                )
                if attempt >= max_retries:
                    break

                conversation = [
                    *conversation,
                    Message.of(Role.ASSISTANT, output.text or "(empty answer)"),
                    Message.of(Role.USER, JSON_CORRECTION_PROMPT.format(error=e)),
                ]
                if on_retry is not None:
                    await on_retry(attempt + 1, e)

        raise DriverError(
            f"Failed to generate a valid '{schema.__name__}' after {max_retries + 1} attempts",
            cause=last_error,
            context={"schema": schema.__name__, "attempts": max_retries + 1},
        ) from last_error

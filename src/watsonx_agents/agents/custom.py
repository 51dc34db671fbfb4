"""
Custom agent that answers in German with a structured thought/answer pair.

The agent has no tools. Every answer is produced through the JsonDriver, so
the model has to reply with a JSON object containing a ``thought`` and a
``final_answer``; invalid replies are corrected and retried.

Example:
    >>> agent = CustomGermanAgent(llm=chat_llm, memory=UnconstrainedMemory())
    >>> response = await agent.run(
    ...     RunInput(message=Message.of("user", "What is your name and why is the sky blue?")),
    ...     RunOptions(max_retries=3),
    ... )
    >>> print(response.message.text)
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from watsonx_agents.agents.base import AgentMeta, AgentUpdate, BaseAgent, RunContext
from watsonx_agents.drivers.json_driver import JsonDriver, SystemPromptInput
from watsonx_agents.llm.base import ChatLLM, Message, Role
from watsonx_agents.memory.base import BaseMemory
from watsonx_agents.templates import PromptTemplate
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = PromptTemplate(
    SystemPromptInput,
    """## System Instructions

You are a knowledgeable and friendly AI assistant named Thomas.
Your role is to help users by answering their questions, providing information, and offering guidance to the best of your abilities.
When responding, use a warm and professional tone, and break down complex topics into easy-to-understand explanations.
If you are unsure about an answer, it's okay to say you don't know rather than guessing.
You must understand all languages but you must answer always in proper german language.
If there are terms which are technical topics in english and they are commonly known in english, don't translate the keywords.

```
{{ schema }}
```

IMPORTANT: Every answer must be a parsable JSON string without additional output.
""",
)


class AgentOutput(BaseModel):
    """Structured answer of the custom agent."""

    thought: str = Field(
        min_length=1,
        description="Describe your thought process before coming with a final answer",
    )
    final_answer: str = Field(
        min_length=1,
        description="Here you should provide concise answer to the original question.",
    )


@dataclass
class RunInput:
    message: Message


@dataclass
class RunOptions:
    max_retries: Optional[int] = None


@dataclass
class RunOutput:
    """
    Result of a run.

    Attributes:
        message: Assistant message holding the final answer.
        state: The full structured answer.
    """

    message: Message
    state: AgentOutput


class CustomGermanAgent(BaseAgent[RunInput, RunOutput, RunOptions]):
    """Tool-less agent answering in German through a JSON driver."""

    namespace = ["custom"]

    def __init__(self, llm: ChatLLM, memory: BaseMemory):
        super().__init__(memory)
        self.llm = llm
        self.driver = JsonDriver.from_template(SYSTEM_PROMPT, llm)

    async def _run(self, input: RunInput, options: Optional[RunOptions], context: RunContext) -> RunOutput:
        options = options or RunOptions()
        await context.emitter.emit("start", {"meta": self.meta, "input": input.message})

        async def on_retry(attempt: int, error: Exception) -> None:
            await context.emitter.emit("retry", {"attempt": attempt, "error": error, "meta": self.meta})

        response = await self.driver.generate(
            AgentOutput,
            [*self.memory.messages, input.message],
            max_retries=options.max_retries,
            signal=context.signal,
            on_retry=on_retry,
        )

        state = response.parsed
        for key, value in state.model_dump().items():
            await context.emitter.emit(
                "update",
                {"data": state, "update": AgentUpdate(key=key, value=value), "meta": self.meta},
            )

        result = Message.of(Role.ASSISTANT, state.final_answer, thought=state.thought)
        await self.memory.add(input.message)
        await self.memory.add(result)

        logger.debug("Custom agent answered", extra={"answer_length": len(result.text)})
        return RunOutput(message=result, state=state)

    @property
    def meta(self) -> AgentMeta:
        return AgentMeta(
            name="CustomAgent",
            description="Simple Custom Agent is a simple LLM agent to answer in German.",
            tools=[],
        )

    def create_snapshot(self) -> Dict[str, Any]:
        return {**super().create_snapshot(), "driver": self.driver, "llm": self.llm}

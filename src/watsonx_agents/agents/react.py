"""
Tool-using agent following the ReAct (reason + act) pattern.

The model answers in instruction lines::

    Thought: I need the current weather in Las Vegas.
    Function Name: open_meteo
    Function Input: {"location_name": "Las Vegas", "country": "US"}

The agent runs the function, feeds back ``Function Output: ...`` and asks
again until the model writes ``Final Answer: ...``. Each parsed line is
reported as an ``update`` event, each new iteration as ``start`` and each
correction as ``retry``.

Example:
    >>> agent = ReActAgent(
    ...     llm=chat_llm,
    ...     memory=TokenMemory(chat_llm),
    ...     tools=[OpenMeteoTool(), WikipediaTool()],
    ... )
    >>> response = await agent.run(ReActRunInput(prompt="What is the current weather in Las Vegas?"))
    >>> print(response.result.text)
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from watsonx_agents.agents.base import AgentMeta, AgentUpdate, BaseAgent, RunContext
from watsonx_agents.config import ExecutionConfig
from watsonx_agents.errors import AbortError, AgentError, ToolError
from watsonx_agents.llm.base import ChatLLM, ChatLLMOutput, Message, Role
from watsonx_agents.memory.base import BaseMemory
from watsonx_agents.templates import PromptTemplate
from watsonx_agents.tools.base import BaseTool, ToolResult, create_tool_error
from watsonx_agents.tools.registry import ToolRegistry
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)


class ToolDescription(BaseModel):
    name: str
    description: str
    input_schema: str


class ReActSystemPromptInput(BaseModel):
    tools: List[ToolDescription]


SYSTEM_PROMPT = PromptTemplate(
    ReActSystemPromptInput,
    """# Available functions
{% if tools %}You can only use the following functions. Always use all required parameters.
{% for tool in tools %}
Function Name: {{ tool.name }}
Description: {{ tool.description }}
Parameters: {{ tool.input_schema }}
{% endfor %}{% else %}No functions are available.
{% endif %}
# Communication structure
You communicate only in instruction lines. The format is: "Instruction: expected output". You must only use these instruction lines and must not enter empty lines or anything else between instruction lines.
{% if tools %}You must skip the instruction lines Function Name, Function Input and Function Output if no function calling is required.
{% endif %}
Thought: A single-line plan of how to answer the user's message. It must be immediately followed by Final Answer{% if tools %} or Function Name{% endif %}.
{% if tools %}Function Name: Name of the function. It must be one of the available functions.
Function Input: The parameters of the function as a single-line JSON object that matches the function's parameters.
Function Output: Output of the function. You never write this line yourself, it is provided to you.
{% endif %}Final Answer: Answer the user or ask for more information or clarification. It must always be preceded by Thought.

## Examples
Message: Can you translate "How are you" into French?
Thought: The user wants to translate a text into French. I can do that.
Final Answer: Comment vas-tu?
{% if tools %}
Message: What is the weather in Prague?
Thought: I need the current weather in Prague, so I call the weather function.
Function Name: {{ tools[0].name }}
Function Input: {}
Function Output: ...
Thought: I have the information the user asked for.
Final Answer: ...
{% endif %}
# Instructions
User can only see the Final Answer, all answers must be provided there.
Do not invent function outputs; wait for the Function Output line.
Always answer in the language of the user's message.
""",
)

INVALID_OUTPUT_PROMPT = """The previous answer could not be processed: {error}
Answer again using only the instruction lines. Start with "Thought:" and end with either "Function Input:" or "Final Answer:"."""

_LINE_PATTERN = re.compile(r"^\s*(Thought|Function Name|Function Input|Function Output|Final Answer)\s*:\s?(.*)$")

_KEYS = {
    "Thought": "thought",
    "Function Name": "tool_name",
    "Function Input": "tool_input",
    "Function Output": "tool_output",
    "Final Answer": "final_answer",
}


class ReActParseError(AgentError):
    """Raised when the model output does not follow the instruction-line format."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("is_fatal", False)
        kwargs.setdefault("is_retryable", True)
        super().__init__(message, **kwargs)


@dataclass
class ReActStep:
    """One parsed model answer."""

    thought: Optional[str] = None
    tool_name: Optional[str] = None
    tool_input: Dict[str, Any] = field(default_factory=dict)
    tool_output: Optional[str] = None
    final_answer: Optional[str] = None

    @property
    def is_tool_call(self) -> bool:
        return bool(self.tool_name)

    def updates(self) -> List[Tuple[str, Any]]:
        """Parsed keys in the order they are reported."""
        pairs: List[Tuple[str, Any]] = []
        if self.thought:
            pairs.append(("thought", self.thought))
        if self.is_tool_call:
            pairs.append(("tool_name", self.tool_name))
            pairs.append(("tool_input", self.tool_input))
        elif self.final_answer:
            pairs.append(("final_answer", self.final_answer))
        return pairs

    def to_text(self) -> str:
        """Render the step back into instruction lines."""
        lines = []
        if self.thought:
            lines.append(f"Thought: {self.thought}")
        if self.is_tool_call:
            lines.append(f"Function Name: {self.tool_name}")
            lines.append(f"Function Input: {json.dumps(self.tool_input, ensure_ascii=False)}")
        elif self.final_answer:
            lines.append(f"Final Answer: {self.final_answer}")
        return "\n".join(lines)


def parse_react_output(text: str) -> ReActStep:
    """
    Parse instruction lines produced by the model.

    Lines that do not start with an instruction continue the previous one.
    Everything from the first ``Function Output`` line on is ignored since the
    model must not write it.

    Raises:
        ReActParseError: If neither a function call nor a final answer is present,
                         or the function input is not a JSON object.
    """
    values: Dict[str, List[str]] = {}
    current: Optional[str] = None

    for line in text.strip().splitlines():
        match = _LINE_PATTERN.match(line)
        if match:
            key = _KEYS[match.group(1)]
            if key == "tool_output":
                break
            if key in values:
                # A second block means the model continued on its own
                break
            values[key] = [match.group(2).strip()]
            current = key
        elif current is not None:
            values[current].append(line.rstrip())

    def joined(key: str) -> Optional[str]:
        if key not in values:
            return None
        return "\n".join(values[key]).strip()

    step = ReActStep(thought=joined("thought"), final_answer=joined("final_answer"))

    tool_name = joined("tool_name")
    if tool_name:
        raw_input = joined("tool_input") or "{}"
        try:
            tool_input = json.loads(raw_input)
        except json.JSONDecodeError as e:
            raise ReActParseError(f"Function Input is not valid JSON: {raw_input}", cause=e) from e
        if not isinstance(tool_input, dict):
            raise ReActParseError("Function Input must be a JSON object")
        step.tool_name = tool_name
        step.tool_input = tool_input
        return step

    if not step.final_answer:
        raise ReActParseError(
            "The answer must contain either a 'Function Name' with 'Function Input' or a 'Final Answer'",
            context={"output": text[:500]},
        )
    return step


@dataclass
class ReActRunInput:
    prompt: str


@dataclass
class ReActRunOptions:
    execution: Optional[ExecutionConfig] = None


@dataclass
class IterationMeta:
    iteration: int


@dataclass
class ReActIteration:
    """Record of one iteration: the parsed step and the raw model output."""

    step: ReActStep
    raw: ChatLLMOutput


@dataclass
class ReActRunOutput:
    """
    Result of a run.

    Attributes:
        result: Assistant message with the final answer.
        iterations: Every iteration of the run.
        memory: The agent memory after the run.
    """

    result: Message
    iterations: List[ReActIteration]
    memory: BaseMemory


class ReActAgent(BaseAgent[ReActRunInput, ReActRunOutput, ReActRunOptions]):
    """Agent that answers by reasoning and calling tools."""

    namespace = ["react"]

    def __init__(
        self,
        llm: ChatLLM,
        memory: BaseMemory,
        tools: Sequence[BaseTool] = (),
        execution: Optional[ExecutionConfig] = None,
    ):
        super().__init__(memory)
        self.llm = llm
        self.registry = ToolRegistry.from_tools(tools)
        self.execution = execution or ExecutionConfig()

        logger.info(
            "Initialized ReActAgent",
            extra={
                "model": llm.model_id,
                "tools_count": self.registry.get_tool_count(),
                "max_iterations": self.execution.max_iterations,
            },
        )

    def _system_message(self) -> Message:
        tools = [
            ToolDescription(
                name=tool.name,
                description=tool.description,
                input_schema=json.dumps(tool.input_schema.model_json_schema()),
            )
            for tool in self.registry.get_all_tools()
        ]
        return Message.of(Role.SYSTEM, SYSTEM_PROMPT.render(tools=[t.model_dump() for t in tools]))

    @staticmethod
    def _check_retries(step_retries: int, total_retries: int, execution: ExecutionConfig, error: Exception) -> None:
        if step_retries > execution.max_retries_per_step:
            raise AgentError(
                f"The maximum number of retries per step ({execution.max_retries_per_step}) has been reached",
                cause=error,
            ) from error
        if total_retries > execution.total_max_retries:
            raise AgentError(
                f"The maximum number of total retries ({execution.total_max_retries}) has been reached",
                cause=error,
            ) from error

    async def _run(
        self,
        input: ReActRunInput,
        options: Optional[ReActRunOptions],
        context: RunContext,
    ) -> ReActRunOutput:
        execution = (options.execution if options and options.execution else None) or self.execution
        system = self._system_message()

        # Memory is only updated once the run succeeds
        prompt = Message.of(Role.USER, input.prompt)
        scratchpad: List[Message] = [prompt]
        iterations: List[ReActIteration] = []
        total_retries = 0

        for iteration in range(1, execution.max_iterations + 1):
            meta = IterationMeta(iteration=iteration)
            await context.emitter.emit("start", {"meta": meta, "tools": self.registry.get_tool_names()})

            step_retries = 0
            while True:
                if context.aborted:
                    raise AbortError("Agent run has been aborted")

                output = await self.llm.generate(
                    [system, *self.memory.messages, *scratchpad],
                    signal=context.signal,
                )
                try:
                    step = parse_react_output(output.text)
                    break
                except ReActParseError as e:
                    step_retries += 1
                    total_retries += 1
                    self._check_retries(step_retries, total_retries, execution, e)
                    logger.warning(
                        f"Unparsable model output in iteration {iteration}: {e.message}",
                        extra={"iteration": iteration, "step_retries": step_retries},
                    )
                    await context.emitter.emit("retry", {"meta": meta, "error": e, "retries": step_retries})
                    scratchpad.extend(
                        [
                            Message.of(Role.ASSISTANT, output.text or "(empty answer)"),
                            Message.of(Role.USER, INVALID_OUTPUT_PROMPT.format(error=e.message)),
                        ]
                    )

            for key, value in step.updates():
                await context.emitter.emit(
                    "update",
                    {"data": step, "update": AgentUpdate(key=key, value=value), "meta": meta},
                )

            iterations.append(ReActIteration(step=step, raw=output))

            if not step.is_tool_call:
                result = Message.of(Role.ASSISTANT, step.final_answer or "")
                await self.memory.add_many([prompt, result])
                logger.info(
                    f"Final answer after {iteration} iterations",
                    extra={"iterations": iteration, "total_retries": total_retries},
                )
                return ReActRunOutput(result=result, iterations=iterations, memory=self.memory)

            tool_result = await self._execute_tool(step.tool_name or "", step.tool_input)
            step.tool_output = tool_result.output if tool_result.success else f"Error: {tool_result.error}"
            await context.emitter.emit(
                "update",
                {"data": step, "update": AgentUpdate(key="tool_output", value=step.tool_output), "meta": meta},
            )

            if not tool_result.success:
                total_retries += 1
                tool_error = AgentError(
                    f"Function '{step.tool_name}' failed: {tool_result.error}",
                    is_fatal=False,
                    is_retryable=True,
                )
                self._check_retries(0, total_retries, execution, tool_error)
                await context.emitter.emit("retry", {"meta": meta, "error": tool_error, "retries": total_retries})

            scratchpad.extend(
                [
                    Message.of(Role.ASSISTANT, step.to_text()),
                    Message.of(Role.USER, f"Function Output: {step.tool_output}"),
                ]
            )

        raise AgentError(
            f"Agent was not able to resolve the task in {execution.max_iterations} iterations",
            context={"max_iterations": execution.max_iterations, "total_retries": total_retries},
        )

    async def _execute_tool(self, tool_name: str, tool_input: Dict[str, Any]) -> ToolResult:
        tool = self.registry.get_tool(tool_name)
        if tool is None:
            available = ", ".join(self.registry.get_tool_names()) or "none"
            error = ToolError(
                f"Function '{tool_name}' does not exist. Available functions: {available}",
                is_fatal=False,
                is_retryable=True,
                context={"tool": tool_name},
            )
            logger.warning(error.message)
            return create_tool_error(error)

        logger.info(f"Executing tool: {tool_name}", extra={"tool": tool_name, "tool_args": tool_input})
        return await tool.arun(**tool_input)

    @property
    def meta(self) -> AgentMeta:
        return AgentMeta(
            name="ReActAgent",
            description="Agent that reasons step by step and calls functions to answer the user.",
            tools=self.registry.get_tool_names(),
        )

"""
Base agent abstraction with observable runs.

``agent.run(input)`` returns a Run. Awaiting the Run executes the agent;
before that, observers can attach to the run's emitter:

    >>> response = await agent.run(RunInput(message=message)).observe(
    ...     lambda emitter: emitter.on("update", print_update)
    ... )

Agents emit ``start``, ``update``, ``retry``, ``error`` and ``success`` on
their own namespace. Events of the LLM calls made during the run are
delivered to the run's emitter as well.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Generator, Generic, List, Optional, TypeVar

from watsonx_agents.emitter import Callback, Emitter, run_scope
from watsonx_agents.errors import AgentError, FrameworkError
from watsonx_agents.memory.base import BaseMemory
from watsonx_agents.utils.logger import clear_run_id, get_logger, set_run_id

logger = get_logger(__name__)

TInput = TypeVar("TInput")
TOutput = TypeVar("TOutput")
TOptions = TypeVar("TOptions")


@dataclass
class AgentMeta:
    """
    Description of an agent.

    Attributes:
        name: Display name.
        description: What the agent does.
        tools: Names of the tools the agent may call.
    """

    name: str
    description: str
    tools: List[str] = field(default_factory=list)


@dataclass
class AgentUpdate:
    """Payload of an ``update`` event: one parsed key of the model answer."""

    key: str
    value: Any


class RunContext:
    """
    Per-run state shared with everything the agent calls.

    Attributes:
        run_id: Unique identifier of the run.
        emitter: Emitter observers attach to.
        signal: Abort signal, set by abort().
        created_at: When the run was created.
    """

    def __init__(self, emitter: Emitter):
        self.run_id = uuid.uuid4().hex
        self.emitter = emitter
        self.signal = asyncio.Event()
        self.created_at = datetime.now()

    def abort(self) -> None:
        """Request cancellation of the run."""
        self.signal.set()

    @property
    def aborted(self) -> bool:
        return self.signal.is_set()


class Run(Generic[TOutput]):
    """Pending agent run. Await it to execute the agent."""

    def __init__(self, handler: Callable[[RunContext], Awaitable[TOutput]], context: RunContext):
        self._handler = handler
        self.context = context

    def observe(self, fn: Callable[[Emitter], Any]) -> "Run[TOutput]":
        """Call fn with the run's emitter so it can register listeners."""
        fn(self.context.emitter)
        return self

    def on(self, name: str, callback: Callback) -> "Run[TOutput]":
        """Register a listener for one of the agent's events."""
        self.context.emitter.on(name, callback)
        return self

    def abort(self) -> None:
        self.context.abort()

    def __await__(self) -> Generator[Any, None, TOutput]:
        return self._handler(self.context).__await__()


class BaseAgent(ABC, Generic[TInput, TOutput, TOptions]):
    """
    Abstract base class for agents.

    Subclasses set ``namespace`` and implement _run() and meta.

    Attributes:
        emitter: Emitter of the agent (``agent.<namespace>``).
        memory: Conversation memory of the agent.
        is_running: Whether a run is in progress.
    """

    namespace: List[str] = ["base"]

    def __init__(self, memory: BaseMemory):
        self.memory = memory
        self.is_running = False
        self.emitter = Emitter.root().child(namespace=["agent", *self.namespace], creator=self)

    def run(self, input: TInput, options: Optional[TOptions] = None) -> Run[TOutput]:
        """
        Prepare a run of the agent.

        Args:
            input: Agent-specific input.
            options: Agent-specific run options.

        Returns:
            A Run; await it to execute the agent.
        """
        context = RunContext(self.emitter.child(creator=self))

        async def handler(ctx: RunContext) -> TOutput:
            return await self._execute(input, options, ctx)

        return Run(handler, context)

    async def _execute(self, input: TInput, options: Optional[TOptions], context: RunContext) -> TOutput:
        if self.is_running:
            raise AgentError("Agent is already running!", context={"agent": self.meta.name})

        self.is_running = True
        set_run_id(context.run_id)
        logger.info(f"Starting run of {self.meta.name}", extra={"run_id": context.run_id})
        try:
            with run_scope(context.emitter):
                try:
                    output = await self._run(input, options, context)
                except Exception as e:
                    error = e if isinstance(e, FrameworkError) else AgentError(str(e) or type(e).__name__, cause=e)
                    logger.error(
                        f"Run of {self.meta.name} failed: {error.message}",
                        extra={"run_id": context.run_id, "error_type": type(error).__name__},
                    )
                    await context.emitter.emit("error", {"error": error, "meta": self.meta})
                    if error is e:
                        raise
                    raise error from e

                await context.emitter.emit("success", {"output": output, "meta": self.meta})
                logger.info(f"Run of {self.meta.name} finished", extra={"run_id": context.run_id})
                return output
        finally:
            self.is_running = False
            clear_run_id()

    @abstractmethod
    async def _run(self, input: TInput, options: Optional[TOptions], context: RunContext) -> TOutput:
        """Agent logic for a single run."""

    @property
    @abstractmethod
    def meta(self) -> AgentMeta:
        """Description of the agent."""

    def create_snapshot(self) -> Dict[str, Any]:
        """Copy the agent state."""
        return {
            "is_running": False,
            "emitter": self.emitter,
            "memory": self.memory,
        }

    def load_snapshot(self, snapshot: Dict[str, Any]) -> None:
        """Restore state produced by create_snapshot()."""
        for key, value in snapshot.items():
            setattr(self, key, value)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.meta.name}')>"

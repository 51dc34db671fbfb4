"""
Console trace of agent runs.

Attach to a run with ``run.observe(lambda emitter: observe_agent_run(emitter, reader, llm))``
to print iterations, parsed updates, retries and errors, plus the raw model
input and output of the given LLM.
"""

from typing import Any, Callable, List, Optional

from watsonx_agents.emitter import Emitter, EventMeta
from watsonx_agents.errors import FrameworkError
from watsonx_agents.llm.base import ChatLLM
from watsonx_agents.utils.io import ConsoleReader

AGENT_LABEL = "Agent 🤖 : "


def observe_agent_run(
    emitter: Emitter,
    reader: ConsoleReader,
    llm: Optional[ChatLLM] = None,
) -> Callable[[], None]:
    """
    Register the console trace callbacks on a run emitter.

    Args:
        emitter: The run's emitter.
        reader: Console to print to.
        llm: When given, also print the input and output of this model.

    Returns:
        A function removing every registered callback.
    """
    cleanups: List[Callable[[], None]] = []

    def on_start(data: Any, event: EventMeta) -> None:
        reader.write(AGENT_LABEL, "starting new iteration")

    def on_error(data: Any, event: EventMeta) -> None:
        reader.write(AGENT_LABEL, FrameworkError.ensure(data["error"]).dump())

    def on_retry(data: Any, event: EventMeta) -> None:
        reader.write(AGENT_LABEL, "retrying the action...")

    def on_update(data: Any, event: EventMeta) -> None:
        update = data["update"]
        reader.write(f"Agent ({update.key}) 🤖 : ", update.value)

    cleanups.append(emitter.on("start", on_start))
    cleanups.append(emitter.on("error", on_error))
    cleanups.append(emitter.on("retry", on_retry))
    cleanups.append(emitter.on("update", on_update))

    if llm is not None:

        def on_llm_event(data: Any, event: EventMeta) -> None:
            if event.creator is not llm:
                return
            if event.name == "start":
                reader.console.print("[bold]LLM Input[/bold]")
                reader.console.print(data["input"], markup=False)
            elif event.name == "success":
                reader.console.print("[bold]LLM Output[/bold]")
                reader.console.print(data["value"].text, markup=False)
            elif event.name == "error":
                reader.console.print(FrameworkError.ensure(data["error"]).explain(), markup=False)

        cleanups.append(emitter.match("*.*", on_llm_event))

    def cleanup() -> None:
        for remove in cleanups:
            remove()

    return cleanup

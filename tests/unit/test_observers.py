"""
Unit tests for the console trace of agent runs and the console helpers.
"""

import io
import json
import sys

import pytest

from watsonx_agents.agents.custom import CustomGermanAgent, RunInput
from watsonx_agents.emitter import Emitter
from watsonx_agents.errors import DriverError
from watsonx_agents.llm.base import Message, Role
from watsonx_agents.memory.base import UnconstrainedMemory
from watsonx_agents.observers import observe_agent_run
from watsonx_agents.utils.io import ConsoleReader, create_console_reader, get_prompt

ANSWER = json.dumps({"thought": "Eine einfache Frage.", "final_answer": "Ich heiße Thomas."})


def output_of(reader):
    return reader.console.file.getvalue()


@pytest.mark.unit
class TestObserveAgentRun:
    """Test cases for observe_agent_run()."""

    @pytest.mark.asyncio
    async def test_prints_run_trace(self, fake_llm, console_reader):
        llm = fake_llm(["not json", ANSWER])
        agent = CustomGermanAgent(llm=llm, memory=UnconstrainedMemory())

        await agent.run(RunInput(message=Message.of(Role.USER, "Wie heißt du?"))).observe(
            lambda emitter: observe_agent_run(emitter, console_reader)
        )

        lines = output_of(console_reader).splitlines()
        assert lines == [
            "Agent 🤖 : starting new iteration",
            "Agent 🤖 : retrying the action...",
            "Agent (thought) 🤖 : Eine einfache Frage.",
            "Agent (final_answer) 🤖 : Ich heiße Thomas.",
        ]

    @pytest.mark.asyncio
    async def test_prints_llm_input_and_output(self, fake_llm, console_reader):
        llm = fake_llm([ANSWER])
        agent = CustomGermanAgent(llm=llm, memory=UnconstrainedMemory())

        await agent.run(RunInput(message=Message.of(Role.USER, "Wie heißt du?"))).observe(
            lambda emitter: observe_agent_run(emitter, console_reader, llm=llm)
        )

        output = output_of(console_reader)
        assert "LLM Input" in output
        assert "Wie heißt du?" in output
        assert "LLM Output" in output
        assert output.index("LLM Input") < output.index("LLM Output")

    @pytest.mark.asyncio
    async def test_llm_events_of_other_models_are_ignored(self, fake_llm, console_reader):
        llm = fake_llm([ANSWER])
        other = fake_llm([])
        agent = CustomGermanAgent(llm=llm, memory=UnconstrainedMemory())

        await agent.run(RunInput(message=Message.of(Role.USER, "Hallo"))).observe(
            lambda emitter: observe_agent_run(emitter, console_reader, llm=other)
        )

        assert "LLM Input" not in output_of(console_reader)

    @pytest.mark.asyncio
    async def test_error_is_dumped(self, console_reader):
        emitter = Emitter(namespace=["agent", "custom"])
        observe_agent_run(emitter, console_reader)
        error = DriverError("no valid answer", context={"schema": "AgentOutput"})

        await emitter.emit("error", {"error": error})

        output = output_of(console_reader)
        assert output.startswith("Agent 🤖 : DriverError: no valid answer")
        assert '"schema": "AgentOutput"' in output

    @pytest.mark.asyncio
    async def test_foreign_errors_are_wrapped(self, console_reader):
        emitter = Emitter(namespace=["agent"])
        observe_agent_run(emitter, console_reader)

        await emitter.emit("error", {"error": ValueError("boom")})

        assert "Caused by: ValueError: boom" in output_of(console_reader)

    @pytest.mark.asyncio
    async def test_cleanup(self, console_reader):
        emitter = Emitter(namespace=["agent"])
        cleanup = observe_agent_run(emitter, console_reader)
        cleanup()

        await emitter.emit("start", {})

        assert output_of(console_reader) == ""


@pytest.mark.unit
class TestConsoleReader:
    """Test cases for the console helpers."""

    def test_write_does_not_interpret_markup(self, console_reader):
        console_reader.write("Agent 🤖 : ", "[bold]not bold[/bold]")
        assert output_of(console_reader) == "Agent 🤖 : [bold]not bold[/bold]\n"

    def test_fallback_prompts_when_not_interactive(self, console_reader, monkeypatch):
        monkeypatch.setattr(sys, "stdin", io.StringIO())
        console_reader._fallback = ["Hallo", "quit", "never"]

        assert list(console_reader) == ["Hallo"]
        assert console_reader.prompt() is None

    def test_create_console_reader(self):
        reader = create_console_reader(fallback=["Hi"], input_prompt="Du: ")
        assert isinstance(reader, ConsoleReader)
        assert reader.input_prompt == "Du: "

    def test_get_prompt_from_arguments(self):
        assert get_prompt("fallback", argv=["What", "is", "the", "weather?"]) == "What is the weather?"

    def test_get_prompt_fallback(self):
        assert get_prompt("What is the current weather in Las Vegas?", argv=[]) == (
            "What is the current weather in Las Vegas?"
        )

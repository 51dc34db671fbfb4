"""
Example: Observed tool-using agent

A ReAct agent with a weather and a Wikipedia tool answers a question given on
the command line (or a default question) while its iterations, parsed
updates and retries are printed to the console.

Usage:
    python examples/agent_observe.py "What is the current weather in Prague?"
"""

import asyncio
import sys

from dotenv import load_dotenv

from watsonx_agents.agents.react import ReActAgent, ReActRunInput, ReActRunOptions
from watsonx_agents.config import ExecutionConfig, get_settings
from watsonx_agents.errors import FrameworkError
from watsonx_agents.llm.factory import get_chat_llm
from watsonx_agents.memory.token_memory import TokenMemory
from watsonx_agents.observers import observe_agent_run
from watsonx_agents.tools.weather import OpenMeteoTool
from watsonx_agents.tools.wikipedia import WikipediaTool
from watsonx_agents.utils.io import create_console_reader, get_prompt
from watsonx_agents.utils.logger import get_logger

load_dotenv()

logger = get_logger("app")


async def main() -> None:
    """Run the observed agent example."""
    settings = get_settings()
    reader = create_console_reader()

    llm = get_chat_llm(settings)
    agent = ReActAgent(
        llm=llm,
        memory=TokenMemory(llm),
        tools=[OpenMeteoTool(), WikipediaTool()],
    )

    prompt = get_prompt("What is the current weather in Las Vegas?")
    reader.write("User 👤 : ", prompt)

    response = await agent.run(
        ReActRunInput(prompt=prompt),
        ReActRunOptions(
            execution=ExecutionConfig(
                max_iterations=8,
                max_retries_per_step=3,
                total_max_retries=10,
            )
        ),
    ).observe(lambda emitter: observe_agent_run(emitter, reader))

    reader.write("Agent 🤖 : ", response.result.text)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except Exception as e:
        logger.error(FrameworkError.ensure(e).dump())
    finally:
        sys.exit(0)

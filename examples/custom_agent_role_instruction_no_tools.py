"""
Example: Custom agent with a role instruction and no tools

A custom agent named Thomas answers in German. The answer is forced into a
JSON object with a thought and a final answer, and every step of the run is
traced to the console.
"""

import asyncio
import sys

from dotenv import load_dotenv

from watsonx_agents.agents.custom import CustomGermanAgent, RunInput, RunOptions
from watsonx_agents.config import get_settings
from watsonx_agents.errors import FrameworkError
from watsonx_agents.llm.base import Message, Role
from watsonx_agents.llm.prompts import llama3_messages_to_prompt
from watsonx_agents.llm.watsonx import WatsonxChatLLM, WatsonxLLM
from watsonx_agents.memory.base import UnconstrainedMemory
from watsonx_agents.observers import observe_agent_run
from watsonx_agents.utils.io import create_console_reader
from watsonx_agents.utils.logger import get_logger

load_dotenv()

logger = get_logger("app", level="TRACE")


async def main() -> None:
    """Run the custom agent example."""
    reader = create_console_reader()
    watsonx = get_settings().watsonx
    watsonx.require_credentials()

    # 1. Text generation model
    llm = WatsonxLLM(
        watsonx.model_id,
        project_id=watsonx.project_id,
        base_url=watsonx.base_url,
        api_key=watsonx.api_key,
        parameters={
            "decoding_method": "greedy",
            "max_new_tokens": 500,
        },
    )

    # 2. Chat model rendering messages in the Llama-3 format
    chat_llm = WatsonxChatLLM(llm, messages_to_prompt=llama3_messages_to_prompt)

    # 3. Agent
    agent = CustomGermanAgent(llm=chat_llm, memory=UnconstrainedMemory())

    message = Message.of(Role.USER, "What is your name and why is the sky blue?")
    reader.write("User 👤 : ", message.text)

    response = await agent.run(RunInput(message=message), RunOptions(max_retries=3)).observe(
        lambda emitter: observe_agent_run(emitter, reader, llm=chat_llm)
    )

    reader.write("Agent 🤖 : ", response.message.text)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except Exception as e:
        logger.error(FrameworkError.ensure(e).dump())
    finally:
        sys.exit(0)

"""
Chat prompt templates that flatten a conversation into a single prompt.

Text-generation endpoints take one prompt string, so chat messages have to be
rendered in the special-token format the model was instruction-tuned with.
"""

from typing import List, Literal

from pydantic import BaseModel

from watsonx_agents.llm.base import Message
from watsonx_agents.templates import PromptTemplate


class PromptMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    text: str


class ChatPromptInput(BaseModel):
    messages: List[PromptMessage]


LLAMA3_CHAT_TEMPLATE = PromptTemplate(
    ChatPromptInput,
    "{% for message in messages %}"
    "{% if message.role == 'system' %}<|begin_of_text|>{% endif %}"
    "<|start_header_id|>{{ message.role }}<|end_header_id|>\n\n"
    "{{ message.text }}<|eot_id|>"
    "{% endfor %}"
    "<|start_header_id|>assistant<|end_header_id|>\n\n",
)


def llama3_messages_to_prompt(messages: List[Message]) -> str:
    """
    Render messages in the Llama-3 instruct format.

    Messages keep their order. The prompt ends with an open assistant header
    so that the model continues as the assistant.
    """
    return LLAMA3_CHAT_TEMPLATE.render(
        messages=[{"role": message.role.value, "text": message.text} for message in messages]
    )

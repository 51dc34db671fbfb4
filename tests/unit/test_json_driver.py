"""
Unit tests for the structured-output JsonDriver.
"""

import json

import pytest
from pydantic import ValidationError

from watsonx_agents.agents.custom import SYSTEM_PROMPT, AgentOutput
from watsonx_agents.drivers.json_driver import JsonDriver
from watsonx_agents.errors import DriverError
from watsonx_agents.llm.base import Message, Role

VALID_ANSWER = json.dumps({"thought": "Simple question.", "final_answer": "Ich heiße Thomas."})


@pytest.fixture
def question():
    return [Message.of(Role.USER, "What is your name?")]


@pytest.mark.unit
class TestJsonExtraction:
    """Test cases for answer parsing."""

    def test_plain_json(self):
        assert JsonDriver.extract_json('{"a": 1}') == '{"a": 1}'

    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"a": 1}\n```\nDone.'
        assert JsonDriver.extract_json(text) == '{"a": 1}'

    def test_json_with_surrounding_text(self):
        assert JsonDriver.extract_json('Sure! {"a": {"b": 2}} Thanks') == '{"a": {"b": 2}}'


@pytest.mark.unit
class TestAgentOutputSchema:
    """The output schema requires non-empty thought and final_answer."""

    def test_valid_output(self):
        output = AgentOutput.model_validate({"thought": "t", "final_answer": "a"})
        assert output.final_answer == "a"

    @pytest.mark.parametrize(
        "data",
        [
            {"final_answer": "a"},
            {"thought": "t"},
            {"thought": "", "final_answer": "a"},
            {"thought": "t", "final_answer": ""},
        ],
    )
    def test_invalid_output_is_rejected(self, data):
        with pytest.raises(ValidationError):
            AgentOutput.model_validate(data)

    def test_schema_declares_required_fields(self):
        schema = AgentOutput.model_json_schema()
        assert set(schema["required"]) == {"thought", "final_answer"}
        assert schema["properties"]["thought"]["minLength"] == 1
        assert schema["properties"]["final_answer"]["minLength"] == 1


@pytest.mark.unit
class TestJsonDriverGenerate:
    """Test cases for JsonDriver.generate()."""

    @pytest.mark.asyncio
    async def test_valid_answer_on_first_attempt(self, fake_llm, question):
        llm = fake_llm([VALID_ANSWER])
        driver = JsonDriver.from_template(SYSTEM_PROMPT, llm)

        response = await driver.generate(AgentOutput, question)

        assert response.parsed == AgentOutput(thought="Simple question.", final_answer="Ich heiße Thomas.")
        assert response.raw.text == VALID_ANSWER
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_system_prompt_contains_schema(self, fake_llm, question):
        llm = fake_llm([VALID_ANSWER])
        driver = JsonDriver.from_template(SYSTEM_PROMPT, llm)

        response = await driver.generate(AgentOutput, question)

        system = response.messages[0]
        assert system.role == Role.SYSTEM
        assert JsonDriver.schema_to_string(AgentOutput) in system.text
        assert response.messages[1:] == question

    @pytest.mark.asyncio
    async def test_fenced_answer_is_accepted(self, fake_llm, question):
        llm = fake_llm([f"```json\n{VALID_ANSWER}\n```"])
        driver = JsonDriver.from_template(SYSTEM_PROMPT, llm)

        response = await driver.generate(AgentOutput, question)

        assert response.parsed.final_answer == "Ich heiße Thomas."

    @pytest.mark.asyncio
    async def test_missing_field_is_corrected(self, fake_llm, question):
        llm = fake_llm(['{"thought": "only a thought"}', VALID_ANSWER])
        driver = JsonDriver.from_template(SYSTEM_PROMPT, llm)
        retries = []

        async def on_retry(attempt, error):
            retries.append((attempt, type(error).__name__))

        response = await driver.generate(AgentOutput, question, max_retries=2, on_retry=on_retry)

        assert response.parsed.thought == "Simple question."
        assert retries == [(1, "ValidationError")]

        second_call = llm.calls[1]
        assert second_call[-2].role == Role.ASSISTANT
        assert second_call[-2].text == '{"thought": "only a thought"}'
        assert second_call[-1].role == Role.USER
        assert "final_answer" in second_call[-1].text

    @pytest.mark.asyncio
    async def test_retries_exhausted_raises_driver_error(self, fake_llm, question):
        llm = fake_llm(["not json", "still not json", '{"thought": ""}'])
        driver = JsonDriver.from_template(SYSTEM_PROMPT, llm)

        with pytest.raises(DriverError) as exc_info:
            await driver.generate(AgentOutput, question, max_retries=2)

        assert len(llm.calls) == 3
        assert isinstance(exc_info.value.cause, ValidationError)
        assert exc_info.value.context == {"schema": "AgentOutput", "attempts": 3}

    @pytest.mark.asyncio
    async def test_zero_retries(self, fake_llm, question):
        llm = fake_llm(["nope"])
        driver = JsonDriver.from_template(SYSTEM_PROMPT, llm)

        with pytest.raises(DriverError):
            await driver.generate(AgentOutput, question, max_retries=0)

        assert len(llm.calls) == 1

"""
Unit tests for the example scripts' top-level error handling.
"""

import logging
import runpy
from pathlib import Path

import pytest

import watsonx_agents.utils.logger  # noqa: F401  installs the logging handlers before capture starts
from watsonx_agents.config import get_settings

EXAMPLES_DIR = Path(__file__).resolve().parents[2] / "examples"


@pytest.fixture
def without_credentials(monkeypatch, tmp_path):
    """Run with no watsonx credentials and no .env file in reach."""
    for name in ["WATSONX_API_KEY", "WATSONX_PROJECT_ID", "LLM_BACKEND"]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.unit
class TestExampleScripts:
    """Test cases for running the example scripts."""

    @pytest.mark.parametrize(
        "script",
        ["custom_agent_role_instruction_no_tools.py", "agent_observe.py"],
    )
    def test_missing_credentials_are_dumped_and_exit_cleanly(self, script, without_credentials, caplog):
        with caplog.at_level(logging.ERROR, logger="app"):
            with pytest.raises(SystemExit) as exc_info:
                runpy.run_path(str(EXAMPLES_DIR / script), run_name="__main__")

        assert exc_info.value.code == 0
        assert "ConfigurationError: Missing watsonx credentials" in caplog.text
        assert "WATSONX_API_KEY" in caplog.text
        assert '"missing": ["WATSONX_API_KEY", "WATSONX_PROJECT_ID"]' in caplog.text

"""
Tool registry used by agents to resolve the tools the model asks for.

Example:
    >>> registry = ToolRegistry.from_tools([OpenMeteoTool(), WikipediaTool()])
    >>> tool = registry.get_tool("open_meteo")
    >>> result = await tool.arun(location_name="Las Vegas")
"""

import re
from typing import Dict, Iterable, List, Optional

from watsonx_agents.tools.base import BaseTool
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)


class ToolRegistry:
    """
    Registry of the tools available to an agent.

    Tools are kept in registration order, which is also the order in which
    they are presented to the model.
    """

    def __init__(self):
        self._tools: Dict[str, BaseTool] = {}

    @classmethod
    def from_tools(cls, tools: Iterable[BaseTool]) -> "ToolRegistry":
        """Create a registry holding the given tools."""
        registry = cls()
        for tool in tools:
            registry.register(tool)
        return registry

    def register(self, tool: BaseTool) -> None:
        """
        Register a tool in the registry.

        Raises:
            ValueError: If tool name is invalid or already registered.
            TypeError: If tool doesn't inherit from BaseTool.
        """
        if not isinstance(tool, BaseTool):
            raise TypeError(
                f"Tool must inherit from BaseTool, got {type(tool).__name__}"
            )

        if not self._is_valid_tool_name(tool.name):
            raise ValueError(
                f"Invalid tool name '{tool.name}'. "
                "Names must be lowercase with underscores only."
            )

        if tool.name in self._tools:
            raise ValueError(
                f"Tool '{tool.name}' is already registered. "
                "Use unregister() first if you want to replace it."
            )

        self._tools[tool.name] = tool

        logger.debug(
            f"Registered tool: {tool.name}",
            extra={"tool": tool.name, "category": tool.category},
        )

    def unregister(self, tool_name: str) -> None:
        """Remove a tool from the registry."""
        if tool_name not in self._tools:
            logger.warning(f"Attempted to unregister unknown tool: {tool_name}")
            return

        del self._tools[tool_name]
        logger.debug(f"Unregistered tool: {tool_name}")

    def get_tool(self, tool_name: str) -> Optional[BaseTool]:
        """Get a tool by name, or None if not found."""
        return self._tools.get(tool_name)

    def get_all_tools(self) -> List[BaseTool]:
        return list(self._tools.values())

    def get_tool_names(self) -> List[str]:
        return list(self._tools)

    def get_tool_schemas(self) -> List[Dict]:
        """
        Get schemas for all registered tools.

        Returns:
            List of dictionaries with name, description and input schema.
        """
        return [tool.get_schema() for tool in self._tools.values()]

    def get_tool_count(self) -> int:
        return len(self._tools)

    def clear(self) -> None:
        """Remove all tools from the registry."""
        count = len(self._tools)
        self._tools.clear()
        logger.debug(f"Cleared registry ({count} tools removed)")

    @staticmethod
    def _is_valid_tool_name(name: str) -> bool:
        # Lowercase letters, numbers, underscores; must not start with a number
        pattern = r"^[a-z][a-z0-9_]*$"
        return bool(re.match(pattern, name))

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

"""
Abstract base classes for tools.

Tools are actions that agents can take, such as looking up the weather or
searching an encyclopedia. They are asynchronous first since they mostly
wait on HTTP requests; run() is a blocking convenience wrapper.

Example:
    >>> from pydantic import Field
    >>> from watsonx_agents.tools.base import BaseTool, ToolInput, ToolResult
    >>>
    >>> class EchoInput(ToolInput):
    ...     text: str = Field(description="Text to echo back")
    >>>
    >>> class EchoTool(BaseTool):
    ...     name = "echo"
    ...     description = "Repeat the given text"
    ...     input_schema = EchoInput
    ...
    ...     async def _arun(self, text: str) -> ToolResult:
    ...         return ToolResult(success=True, output=text)
    >>>
    >>> result = await EchoTool().arun(text="hello")
    >>> print(result.output)  # "hello"
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError

from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)


class ToolInput(BaseModel):
    """
    Base class for tool input schemas.

    All tool-specific input classes should inherit from this.
    Use Pydantic Field() to add descriptions and validation.
    """

    model_config = ConfigDict(extra="forbid")


@dataclass
class ToolResult:
    """
    Result returned by a tool execution.

    Attributes:
        success: Whether the tool execution succeeded.
        output: The output/result from the tool (empty string if failed).
        error: Error message if execution failed (None if successful).
        metadata: Additional metadata about the execution (timing, etc.).
    """

    success: bool
    output: str
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        if self.success:
            return f"Success: {self.output[:100]}..." if len(self.output) > 100 else f"Success: {self.output}"
        return f"Error: {self.error}"


class BaseTool(ABC):
    """
    Abstract base class for all tools.

    Each tool must define:
    - name: Unique identifier for the tool
    - description: Description the model uses to decide when to call it
    - input_schema: Pydantic model defining the tool's inputs

    and implement _arun().
    """

    name: str
    description: str
    input_schema: Type[ToolInput]

    category: Optional[str] = None

    def __init_subclass__(cls, **kwargs):
        """Validate that subclasses define required attributes."""
        super().__init_subclass__(**kwargs)

        if not hasattr(cls, "name") or cls.name == "":
            raise TypeError(f"{cls.__name__} must define 'name' attribute")
        if not hasattr(cls, "description") or cls.description == "":
            raise TypeError(f"{cls.__name__} must define 'description' attribute")
        if not hasattr(cls, "input_schema"):
            raise TypeError(f"{cls.__name__} must define 'input_schema' attribute")

    @abstractmethod
    async def _arun(self, **kwargs: Any) -> ToolResult:
        """
        Tool execution logic.

        Receives the validated inputs as keyword arguments.

        Example:
            >>> async def _arun(self, url: str) -> ToolResult:
            ...     async with httpx.AsyncClient() as client:
            ...         response = await client.get(url)
            ...         return ToolResult(success=True, output=response.text)
        """

    async def arun(self, /, **kwargs: Any) -> ToolResult:
        """
        Execute the tool with input validation and error handling.

        Wraps _arun() with input validation, exception handling, execution
        timing and logging. Never raises; failures are returned as results.
        """
        start_time = time.time()

        try:
            validated_input = self.validate_input(**kwargs)

            logger.debug(
                f"Executing tool: {self.name}",
                extra={"tool": self.name, "inputs": kwargs},
            )

            result = await self._arun(**validated_input.model_dump())

            execution_time = time.time() - start_time
            result.metadata["execution_time"] = execution_time

            logger.debug(
                f"Tool execution completed: {self.name}",
                extra={
                    "tool": self.name,
                    "success": result.success,
                    "execution_time": execution_time,
                },
            )

            return result

        except ValidationError as e:
            error_msg = f"Input validation failed: {str(e)}"
            logger.warning(
                f"Tool validation error: {self.name}",
                extra={"tool": self.name, "error": error_msg},
            )
            return ToolResult(success=False, output="", error=error_msg)

        except Exception as e:
            logger.error(
                f"Tool execution error: {self.name}",
                extra={"tool": self.name, "error": str(e)},
                exc_info=True,
            )
            return create_tool_error(e)

    def run(self, /, **kwargs: Any) -> ToolResult:
        """Execute the tool from synchronous code."""
        return asyncio.run(self.arun(**kwargs))

    def get_schema(self) -> Dict[str, Any]:
        """
        Get the JSON schema for this tool.

        Returns:
            Dictionary with the tool name, description and input schema.
        """
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema.model_json_schema(),
            "category": self.category,
        }

    def validate_input(self, /, **kwargs: Any) -> ToolInput:
        """
        Validate input parameters using the tool's input schema.

        Raises:
            ValidationError: If validation fails.
        """
        return self.input_schema(**kwargs)

    def __str__(self) -> str:
        return f"{self.name}: {self.description}"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"


def create_tool_error(error: Exception) -> ToolResult:
    """
    Create a ToolResult from an exception.

    Args:
        error: The exception that occurred.

    Returns:
        ToolResult with success=False and error message.
    """
    error_type = type(error).__name__
    error_message = str(error)

    return ToolResult(
        success=False,
        output="",
        error=f"{error_type}: {error_message}",
        metadata={"error_type": error_type},
    )

"""
Error hierarchy shared by the agent runtime.

Every error raised by the runtime is a FrameworkError. Foreign exceptions are
wrapped with FrameworkError.ensure() so that top-level handlers can always
call dump() to print the full cause chain.

Example:
    >>> try:
    ...     await agent.run(RunInput(message=message))
    ... except Exception as e:
    ...     logger.error(FrameworkError.ensure(e).dump())
"""

import json
from typing import Any, Dict, Iterator, Optional


class FrameworkError(Exception):
    """
    Base error carrying a cause chain and retry/fatal flags.

    Attributes:
        message: Human-readable description of the failure.
        cause: The underlying exception, if any.
        is_fatal: Whether the failure should stop the current run.
        is_retryable: Whether repeating the operation may succeed.
        context: Structured details attached to the error.
    """

    def __init__(
        self,
        message: str = "Framework error",
        *,
        cause: Optional[BaseException] = None,
        is_fatal: bool = True,
        is_retryable: bool = False,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.is_fatal = is_fatal
        self.is_retryable = is_retryable
        self.context: Dict[str, Any] = dict(context or {})
        if cause is not None:
            self.__cause__ = cause

    @classmethod
    def ensure(cls, error: BaseException) -> "FrameworkError":
        """
        Return the error as a FrameworkError, wrapping it when needed.

        Args:
            error: Any exception.

        Returns:
            The same instance if it already is a FrameworkError, otherwise
            a new FrameworkError whose cause is the given exception.
        """
        if isinstance(error, FrameworkError):
            return error
        return cls(str(error) or type(error).__name__, cause=error)

    def traverse(self) -> Iterator[BaseException]:
        """Iterate over the cause chain, starting with the direct cause."""
        seen = {id(self)}
        current = self.cause if self.cause is not None else self.__cause__
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            yield current
            current = getattr(current, "cause", None) or current.__cause__

    def explain(self) -> str:
        """
        Summarize the error chain in a few readable lines.

        Returns:
            One line per error, outermost first, indented by depth.
        """
        lines = [f"{type(self).__name__}: {self.message}"]
        for depth, error in enumerate(self.traverse(), start=1):
            message = getattr(error, "message", None) or str(error)
            lines.append(f"{'  ' * depth}{type(error).__name__}: {message}")
        return "\n".join(lines)

    def dump(self) -> str:
        """
        Render a detailed report of the error and its causes.

        Unlike explain(), the report includes the fatal/retryable flags and
        the attached context of every FrameworkError in the chain.

        Returns:
            Multi-line report suitable for logging.
        """
        lines = []
        chain = [self, *self.traverse()]
        for depth, error in enumerate(chain):
            indent = "  " * depth
            prefix = "" if depth == 0 else "Caused by: "
            message = getattr(error, "message", None) or str(error)
            lines.append(f"{indent}{prefix}{type(error).__name__}: {message}")
            if isinstance(error, FrameworkError):
                lines.append(
                    f"{indent}  is_fatal={error.is_fatal} "
                    f"is_retryable={error.is_retryable}"
                )
                if error.context:
                    context = json.dumps(error.context, default=str, ensure_ascii=False)
                    lines.append(f"{indent}  context={context}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.message


class ConfigurationError(FrameworkError):
    """Raised when required settings are missing or invalid."""


class LLMError(FrameworkError):
    """Raised when a language model call fails."""


class AbortError(FrameworkError):
    """Raised when an operation is cancelled through its abort signal."""

    def __init__(self, message: str = "Operation has been aborted", **kwargs: Any):
        kwargs.setdefault("is_fatal", True)
        kwargs.setdefault("is_retryable", False)
        super().__init__(message, **kwargs)


class TemplateError(FrameworkError):
    """Raised when a prompt template cannot be rendered."""


class DriverError(FrameworkError):
    """Raised when structured output cannot be obtained from the model."""


class MemoryFatalError(FrameworkError):
    """Raised when a message cannot be stored in memory."""


class ToolError(FrameworkError):
    """Raised when a tool cannot be resolved or executed."""


class AgentError(FrameworkError):
    """Raised when an agent run fails."""

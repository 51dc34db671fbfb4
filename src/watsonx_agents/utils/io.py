"""
Console helpers for the example scripts.

Example:
    >>> reader = create_console_reader(fallback=["What is the weather in Las Vegas?"])
    >>> for prompt in reader:
    ...     reader.write("Agent 🤖 : ", await answer(prompt))
"""

import sys
from typing import Any, Iterator, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape

CLOSE_COMMANDS = frozenset(["q", "quit", "exit"])


class ConsoleReader:
    """
    Reads prompts from the terminal and writes role-labelled output.

    Attributes:
        console: Rich console used for all output.
        input_prompt: Label shown when asking for input.
    """

    def __init__(
        self,
        fallback: Optional[Sequence[str]] = None,
        input_prompt: str = "User 👤 : ",
        console: Optional[Console] = None,
    ):
        self.console = console or Console()
        self.input_prompt = input_prompt
        self._fallback: List[str] = list(fallback or [])
        self._closed = False

    def write(self, role: str, data: Any) -> None:
        """Print a bold red role label followed by the data."""
        self.console.print(f"[bold red]{escape(role)}[/bold red]{escape(str(data))}")

    def prompt(self) -> Optional[str]:
        """
        Ask for one line of input.

        Returns fallback prompts first when stdin is not interactive.

        Returns:
            The stripped input, or None at end of input.
        """
        if self._closed:
            return None

        if self._fallback and not sys.stdin.isatty():
            value = self._fallback.pop(0)
            self.write(self.input_prompt, value)
            return value

        try:
            value = self.console.input(f"[bold red]{escape(self.input_prompt)}[/bold red]")
        except (EOFError, KeyboardInterrupt):
            self.close()
            return None
        return value.strip()

    def __iter__(self) -> Iterator[str]:
        while True:
            value = self.prompt()
            if value is None or value.lower() in CLOSE_COMMANDS:
                self.close()
                return
            if not value:
                self.write("", "Empty message is not allowed. Please try again.")
                continue
            yield value

    def close(self) -> None:
        self._closed = True


def create_console_reader(
    fallback: Optional[Sequence[str]] = None,
    input_prompt: str = "User 👤 : ",
    console: Optional[Console] = None,
) -> ConsoleReader:
    """Create a ConsoleReader."""
    return ConsoleReader(fallback=fallback, input_prompt=input_prompt, console=console)


def get_prompt(fallback: str, argv: Optional[Sequence[str]] = None) -> str:
    """
    Get the user prompt from the command line.

    Args:
        fallback: Prompt used when no arguments are given.
        argv: Arguments to use instead of sys.argv[1:].

    Returns:
        The arguments joined by spaces, or the fallback.
    """
    args = sys.argv[1:] if argv is None else argv
    prompt = " ".join(args).strip()
    return prompt or fallback

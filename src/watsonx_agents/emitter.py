"""
Namespaced event emitter used for observing agents and language models.

Emitters form a tree: the process-wide root, children per component
(``agent.custom``, ``llm.watsonx``), and a short-lived child per agent run.
An event is delivered to the emitter that emitted it and to all of its
ancestors. While an agent run is active, events emitted anywhere are also
delivered to the run's emitter, so an observer attached to a run sees the
LLM calls made on its behalf.

Example:
    >>> emitter = Emitter.root().child(namespace=["agent", "custom"])
    >>> emitter.on("update", lambda data, event: print(data))
    >>> await emitter.emit("update", {"key": "thought", "value": "..."})
"""

import fnmatch
import inspect
import re
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterator, List, Optional, Pattern, Sequence, Union

from watsonx_agents.utils.logger import get_logger, get_run_id

logger = get_logger(__name__)

Callback = Callable[[Any, "EventMeta"], Any]
Matcher = Union[str, Pattern[str], Callable[["EventMeta"], bool]]

# Emitter of the agent run currently executing in this context
_run_emitter: ContextVar[Optional["Emitter"]] = ContextVar("run_emitter", default=None)


@dataclass
class EventMeta:
    """
    Metadata describing a single emitted event.

    Attributes:
        name: Event name, e.g. "start".
        path: Fully qualified name, e.g. "agent.custom.start".
        creator: Object that owns the emitting emitter.
        source: The emitter the event was emitted on.
        created_at: When the event was emitted.
        run_id: Identifier of the agent run active at emission time.
    """

    name: str
    path: str
    creator: Any = None
    source: Optional["Emitter"] = None
    created_at: datetime = field(default_factory=datetime.now)
    run_id: Optional[str] = None


@dataclass
class _Listener:
    predicate: Callable[[EventMeta], bool]
    callback: Callback


class Emitter:
    """
    Event emitter with hierarchical namespaces.

    Listeners registered with on() fire for events emitted at exactly this
    emitter's namespace. Listeners registered with match() can select events
    from any namespace that reaches this emitter.
    """

    _root: Optional["Emitter"] = None

    def __init__(
        self,
        namespace: Optional[Sequence[str]] = None,
        creator: Any = None,
        parent: Optional["Emitter"] = None,
    ):
        self.namespace: List[str] = list(namespace or [])
        self.creator = creator
        self.parent = parent
        self._listeners: List[_Listener] = []

    @classmethod
    def root(cls) -> "Emitter":
        """Get the process-wide root emitter."""
        if cls._root is None:
            cls._root = cls()
        return cls._root

    @property
    def path(self) -> str:
        """Dotted namespace of this emitter."""
        return ".".join(self.namespace)

    def child(
        self,
        namespace: Optional[Sequence[str]] = None,
        creator: Any = None,
    ) -> "Emitter":
        """
        Create a nested emitter.

        Args:
            namespace: Segments appended to this emitter's namespace.
            creator: Owner of the new emitter. Defaults to this emitter's creator.

        Returns:
            The child emitter.
        """
        return Emitter(
            namespace=[*self.namespace, *(namespace or [])],
            creator=creator if creator is not None else self.creator,
            parent=self,
        )

    def on(self, name: str, callback: Callback) -> Callable[[], None]:
        """
        Listen for an event emitted at this emitter's namespace.

        Args:
            name: Event name, e.g. "start".
            callback: Called with (data, event). May be a coroutine function.

        Returns:
            A function that removes the listener.
        """
        expected = f"{self.path}.{name}" if self.path else name
        return self._add(lambda event: event.path == expected, callback)

    def match(self, matcher: Matcher, callback: Callback) -> Callable[[], None]:
        """
        Listen for every event selected by the matcher.

        Args:
            matcher: "*" for all events at this namespace, "*.*" for all
                     events including nested and piped ones, a glob or a
                     compiled regex tested against the event path, or a
                     predicate receiving the EventMeta.
            callback: Called with (data, event). May be a coroutine function.

        Returns:
            A function that removes the listener.
        """
        return self._add(self._build_predicate(matcher), callback)

    def _build_predicate(self, matcher: Matcher) -> Callable[[EventMeta], bool]:
        if matcher == "*":
            return lambda event: event.path.rpartition(".")[0] == self.path
        if matcher == "*.*":
            return lambda event: True
        if isinstance(matcher, re.Pattern):
            return lambda event: matcher.search(event.path) is not None
        if isinstance(matcher, str):
            return lambda event: fnmatch.fnmatchcase(event.path, matcher)
        if callable(matcher):
            return matcher
        raise TypeError(f"Unsupported matcher: {matcher!r}")

    def _add(self, predicate: Callable[[EventMeta], bool], callback: Callback) -> Callable[[], None]:
        listener = _Listener(predicate=predicate, callback=callback)
        self._listeners.append(listener)

        def cleanup() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return cleanup

    def lineage(self) -> Iterator["Emitter"]:
        """Yield this emitter followed by its ancestors up to the root."""
        current: Optional[Emitter] = self
        while current is not None:
            yield current
            current = current.parent

    async def emit(self, name: str, value: Any = None) -> None:
        """
        Emit an event to this emitter, its ancestors and the active run.

        Args:
            name: Event name.
            value: Event payload passed to the callbacks.
        """
        event = EventMeta(
            name=name,
            path=f"{self.path}.{name}" if self.path else name,
            creator=self.creator,
            source=self,
            run_id=get_run_id(),
        )

        targets = list(self.lineage())
        run_emitter = _run_emitter.get()
        if run_emitter is not None and run_emitter not in targets:
            targets.append(run_emitter)

        for target in targets:
            await target._dispatch(event, value)

    async def _dispatch(self, event: EventMeta, value: Any) -> None:
        for listener in list(self._listeners):
            if not listener.predicate(event):
                continue
            result = listener.callback(value, event)
            if inspect.isawaitable(result):
                await result

    def destroy(self) -> None:
        """Remove every listener registered on this emitter."""
        self._listeners.clear()

    def __repr__(self) -> str:
        return f"<Emitter(namespace='{self.path}', listeners={len(self._listeners)})>"


@contextmanager
def run_scope(emitter: Emitter) -> Iterator[Emitter]:
    """
    Route every event emitted in the current context to the given emitter.

    Used by agents for the duration of a run.
    """
    token = _run_emitter.set(emitter)
    try:
        yield emitter
    finally:
        _run_emitter.reset(token)

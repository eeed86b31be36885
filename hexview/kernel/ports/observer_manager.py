"""Observer Manager Port - interface for read-only event observation.

Observers watch turns, rebuilds and renders. They can never affect the
session: a failing or slow observer is logged and skipped.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Callable, Iterable
from typing import Any, Protocol, runtime_checkable

from hexview.kernel.orchestration.events import Event

# Type aliases for observer functions
ObserverFunc = Callable[[Event], None]
AsyncObserverFunc = Callable[[Event], Any]  # Returns awaitable


class Observer(Protocol):
    """Protocol for observers that monitor events."""

    async def handle(self, event: Event) -> None:
        """Handle an event (read-only, no return value)."""
        ...


@runtime_checkable
class ObserverManager(Protocol):
    """Port interface for event observation systems."""

    @abstractmethod
    def register(
        self,
        handler: Observer | ObserverFunc | AsyncObserverFunc,
        *,
        observer_id: str | None = None,
        event_types: Iterable[type[Event]] | type[Event] | None = None,
        timeout: float | None = None,
    ) -> str:
        """Register an observer with optional event type filtering.

        Args
        ----
            handler: Either an Observer protocol implementation or
                    a function (sync/async) that takes an event
            observer_id: Optional ID for the observer
            event_types: Event type or collection of types to observe (None = all events)
            timeout: Optional timeout override for this observer

        Returns
        -------
            str: The ID of the registered observer
        """
        ...

    @abstractmethod
    def unregister(self, handler_id: str) -> bool:
        """Unregister an observer by ID.

        Returns
        -------
            bool: True if observer was found and removed, False otherwise
        """
        ...

    @abstractmethod
    async def notify(self, event: Event) -> None:
        """Notify all interested observers of an event.

        Observer errors are logged and never propagate to the caller.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove all registered observers."""
        ...

    @abstractmethod
    def __len__(self) -> int:
        """Return number of registered observers."""
        ...


__all__ = ["AsyncObserverFunc", "Observer", "ObserverFunc", "ObserverManager"]

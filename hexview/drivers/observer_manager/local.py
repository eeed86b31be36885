"""Local Observer Manager - in-process fan-out of session events.

Observers are called concurrently for each event, each under its own
timeout. Failures are isolated: they are logged and the remaining
observers still run.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from typing import TYPE_CHECKING, Any, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hexview.kernel.logging import get_logger
from hexview.kernel.orchestration.events import Event

if TYPE_CHECKING:
    from collections.abc import Iterable

    from hexview.kernel.ports.observer_manager import (
        AsyncObserverFunc,
        Observer,
        ObserverFunc,
    )

logger = get_logger(__name__)

DEFAULT_OBSERVER_TIMEOUT = 5.0


class FunctionObserver:
    """Wrapper to make functions implement the Observer protocol."""

    def __init__(self, func: ObserverFunc | AsyncObserverFunc) -> None:
        self._func = func
        self.__name__ = getattr(func, "__name__", "anonymous_observer")

    async def handle(self, event: Event) -> None:
        """Handle the event by calling the wrapped function."""
        result = self._func(event)
        if inspect.isawaitable(result):
            await result


class ObserverRegistrationConfig(BaseModel):
    """Validated configuration for observer registration."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    observer_id: str | None = None
    event_types: frozenset[type] | None = None
    timeout: float | None = Field(None, gt=0)

    @field_validator("event_types", mode="before")
    @classmethod
    def normalize_event_types(cls, value: Any) -> frozenset[type] | None:
        if value is None:
            return None
        types = frozenset({value}) if isinstance(value, type) else frozenset(value)
        for event_type in types:
            if not (isinstance(event_type, type) and issubclass(event_type, Event)):
                raise ValueError(f"{event_type!r} is not an Event subclass")
        return types


class LocalObserverManager:
    """In-process implementation of the ObserverManager port.

    Parameters
    ----------
    timeout : float
        Default per-observer timeout in seconds
    """

    def __init__(self, timeout: float = DEFAULT_OBSERVER_TIMEOUT) -> None:
        self._timeout = timeout
        self._handlers: dict[str, Observer] = {}
        self._event_filters: dict[str, frozenset[type] | None] = {}
        self._observer_timeouts: dict[str, float] = {}

    def register(
        self,
        handler: Observer | ObserverFunc | AsyncObserverFunc,
        *,
        observer_id: str | None = None,
        event_types: Iterable[type[Event]] | type[Event] | None = None,
        timeout: float | None = None,
    ) -> str:
        """Register an observer with optional event type filtering."""
        config = ObserverRegistrationConfig(
            observer_id=observer_id, event_types=event_types, timeout=timeout
        )
        resolved_id = config.observer_id or str(uuid.uuid4())
        if resolved_id in self._handlers:
            raise ValueError(f"Observer '{resolved_id}' already registered")

        if hasattr(handler, "handle"):
            observer = cast("Observer", handler)
        elif callable(handler):
            observer = FunctionObserver(handler)
        else:
            raise TypeError(
                f"Observer must be callable or implement Observer protocol, got {type(handler)}"
            )

        self._handlers[resolved_id] = observer
        self._event_filters[resolved_id] = config.event_types
        if config.timeout is not None:
            self._observer_timeouts[resolved_id] = config.timeout
        return resolved_id

    def unregister(self, handler_id: str) -> bool:
        self._event_filters.pop(handler_id, None)
        self._observer_timeouts.pop(handler_id, None)
        return self._handlers.pop(handler_id, None) is not None

    async def notify(self, event: Event) -> None:
        """Notify all interested observers of an event."""
        observers = [
            (observer_id, observer)
            for observer_id, observer in self._handlers.items()
            if self._should_notify(observer_id, event)
        ]
        if not observers:
            return
        await asyncio.gather(
            *(self._safe_invoke(oid, observer, event) for oid, observer in observers)
        )

    def clear(self) -> None:
        """Remove all registered observers."""
        self._handlers.clear()
        self._event_filters.clear()
        self._observer_timeouts.clear()

    def __len__(self) -> int:
        return len(self._handlers)

    def _should_notify(self, observer_id: str, event: Event) -> bool:
        """Check if observer should be notified of this event type."""
        event_filter = self._event_filters.get(observer_id)
        if event_filter is None:
            return True
        # Subclasses of a registered type match too
        return isinstance(event, tuple(event_filter))

    async def _safe_invoke(self, observer_id: str, observer: Observer, event: Event) -> None:
        """Invoke an observer under its timeout, logging any failure."""
        timeout_value = self._observer_timeouts.get(observer_id, self._timeout)
        name = getattr(observer, "__name__", observer.__class__.__name__)
        try:
            await asyncio.wait_for(observer.handle(event), timeout=timeout_value)
        except TimeoutError:
            logger.warning(
                "Observer {name} timed out after {timeout}s on {event}",
                name=name,
                timeout=timeout_value,
                event=type(event).__name__,
            )
        except Exception as exc:
            logger.warning(
                "Observer {name} failed for {event}: {error}",
                name=name,
                event=type(event).__name__,
                error=exc,
            )


__all__ = ["FunctionObserver", "LocalObserverManager"]

"""
Ledger Event Bus

DESIGN DECISION: Change signals go through an explicit bus owned by the
finance service, not a module-level emitter. Subscribers are told that
something changed and are expected to refetch; the optional payload is a
hint, never a contract.

Handlers may be plain functions or coroutine functions. A failing handler
is logged and skipped; it never aborts the ledger operation that
published the event.

Events published inside `deferred()` are queued and delivered when the
block exits. The finance service wraps its writer lock in it, so handlers
run after the lock is released and may call mutating operations.
"""

import inspect
from contextlib import asynccontextmanager
from contextvars import ContextVar
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

import structlog


logger = structlog.get_logger("finguard.events")


class LedgerEvent(str, Enum):
    """Signals published after a ledger change completes."""
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    BUDGET_UPDATED = "budget_updated"
    BUDGETS_RESET = "budgets_reset"
    BALANCE_CHANGED = "balance_changed"
    NOTIFICATION_ADDED = "notification_added"
    AUTOPAY_DISABLED = "autopay_disabled"


EventHandler = Callable[
    [LedgerEvent, Optional[dict[str, Any]]],
    Union[None, Awaitable[None]],
]


class EventBus:
    """Explicit publish/subscribe channel for ledger signals."""

    def __init__(self):
        self._handlers: dict[LedgerEvent, list[EventHandler]] = {}
        # Queue of the outermost deferred() block in the current task
        self._pending: ContextVar[Optional[list[tuple[LedgerEvent, Optional[dict[str, Any]]]]]] = (
            ContextVar(f"finguard_pending_events_{id(self)}", default=None)
        )

    def subscribe(self, event: LedgerEvent, handler: EventHandler) -> Callable[[], None]:
        """
        Register a handler for one event.

        Returns:
            A callable that removes the subscription
        """
        self._handlers.setdefault(event, []).append(handler)
        return lambda: self.unsubscribe(event, handler)

    def unsubscribe(self, event: LedgerEvent, handler: EventHandler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def subscriber_count(self, event: LedgerEvent) -> int:
        return len(self._handlers.get(event, []))

    @asynccontextmanager
    async def deferred(self):
        """
        Hold back events published inside the block.

        Queued events are delivered in publish order when the block exits,
        including when it exits with an exception, since the changes that
        published them are already stored. Nested blocks share the
        outermost queue.
        """
        if self._pending.get() is not None:
            yield
            return

        queue: list[tuple[LedgerEvent, Optional[dict[str, Any]]]] = []
        token = self._pending.set(queue)
        try:
            yield
        finally:
            self._pending.reset(token)
            for event, payload in queue:
                await self._deliver(event, payload)

    async def publish(
        self,
        event: LedgerEvent,
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        """Deliver an event to every subscriber, or queue it inside deferred()."""
        queue = self._pending.get()
        if queue is not None:
            queue.append((event, payload))
            return
        await self._deliver(event, payload)

    async def _deliver(
        self,
        event: LedgerEvent,
        payload: Optional[dict[str, Any]],
    ) -> None:
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(event, payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "event_handler_failed",
                    ledger_event=event.value,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                )

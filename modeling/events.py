"""
SteelCad - Notification Bus
===========================

Synchronous publish/subscribe between the core and its collaborators
(renderer proxies, panels, the connection graph itself).

Every current subscriber of an event is called once per publish, in the
same tick. There is no queueing, ordering contract or retry.
"""

from typing import Any, Callable, Dict, List

from loguru import logger

# Event names
CONNECTION_CREATED = "connection:created"
CONNECTION_UPDATED = "connection:updated"
CONNECTION_DELETED = "connection:deleted"
ELEMENT_MOVED = "element:moved"
ELEMENT_UPDATED = "element:updated"
ELEMENT_DELETED = "element:deleted"
ELEMENT_ADDED = "element:added"

Handler = Callable[[Dict[str, Any]], None]


class EventBus:
    """
    Minimal synchronous event bus.

    Usage:
        bus = EventBus()
        bus.subscribe(ELEMENT_MOVED, lambda data: print(data["elementId"]))
        bus.publish(ELEMENT_MOVED, {"elementId": "E1"})
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {}

    def subscribe(self, event_name: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler``. Returns a callable that removes it again."""
        self._handlers.setdefault(event_name, []).append(handler)

        def _unsubscribe():
            self.unsubscribe(event_name, handler)

        return _unsubscribe

    def unsubscribe(self, event_name: str, handler: Handler) -> bool:
        handlers = self._handlers.get(event_name)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        if not handlers:
            del self._handlers[event_name]
        return True

    def publish(self, event_name: str, data: Dict[str, Any] = None) -> None:
        handlers = self._handlers.get(event_name)
        if not handlers:
            return
        # snapshot: handlers may (un)subscribe while we iterate
        for handler in list(handlers):
            handler(data if data is not None else {})

    def subscriber_count(self, event_name: str) -> int:
        return len(self._handlers.get(event_name, []))

    def clear(self) -> None:
        self._handlers.clear()
        logger.debug("[EVENTS] All subscriptions cleared")

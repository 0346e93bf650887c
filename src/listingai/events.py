"""In-process broadcast events shared between controllers.

Handlers run synchronously in subscription order; there is no
acknowledgment and no delivery guarantee beyond that.
"""

import logging
from collections import defaultdict
from typing import Callable, DefaultDict, List, Optional, Type, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Event(BaseModel):
    pass


class CredentialUpdated(Event):
    credential: str


class CredentialCleared(Event):
    pass


class ImageSelected(Event):
    filename: str
    data_url: str
    path: Optional[str] = None


E = TypeVar("E", bound=Event)
Handler = Callable[[E], None]


class EventBus:
    def __init__(self):
        self._handlers: DefaultDict[Type[Event], List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[E], handler: Handler) -> None:
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)

    def publish(self, event: Event) -> None:
        handlers = list(self._handlers[type(event)])
        logger.debug(f"Dispatching {type(event).__name__} to {len(handlers)} handler(s)")
        for handler in handlers:
            handler(event)

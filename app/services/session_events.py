# app/services/session_events.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from ..utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

SIGNED_IN = "signed_in"
SIGNED_OUT = "signed_out"


@dataclass
class SessionChange:
    kind: str                 # SIGNED_IN | SIGNED_OUT
    user_id: str
    session_id: str
    name: Optional[str] = None
    at: datetime = field(default_factory=now_utc)


Listener = Callable[[SessionChange], Awaitable[None]]


class SessionHub:
    """
    Single subscription point for sign-in / sign-out events.
    Created at app startup (app.state.session_hub), closed at shutdown.
    The hub keeps no per-session state; listeners own whatever they track.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def publish(self, event: SessionChange) -> int:
        """
        Fans the event out to every listener. A failing listener is logged and
        does not stop the others or the sign-in/out that produced the event.
        Returns how many listeners received it.
        """
        if self._closed:
            logger.warning("Session hub closed; dropping %s for %s", event.kind, event.user_id)
            return 0

        delivered = 0
        for listener in list(self._listeners):
            try:
                await listener(event)
                delivered += 1
            except Exception:
                logger.exception("Session listener %r failed on %s", listener, event.kind)
        return delivered

    def close(self) -> None:
        self._listeners.clear()
        self._closed = True


async def log_session_change(event: SessionChange) -> None:
    logger.info("Session %s: user=%s session=%s", event.kind, event.user_id, event.session_id)

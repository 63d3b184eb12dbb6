"""Per-client push of full sensor snapshots on a fixed cadence.

Each connected client gets its own ``StreamSession``. The gateway polls the
store on the session's own timer rather than subscribing to writes, which
keeps the message rate bounded regardless of how often sensors change.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from threading import Lock
from typing import Any, AsyncIterator, Dict, Optional
from uuid import uuid4

from datastore.sensor_store import SensorDataStore, build_default_store
from models.records import utc_now
from settings import get_settings

logger = logging.getLogger(__name__)

INITIAL_MESSAGE = "initial_data"
UPDATE_MESSAGE = "sensor_update"


class StreamState(str, Enum):
    connecting = "connecting"
    streaming = "streaming"
    closed = "closed"


@dataclass
class StreamSession:
    session_id: str
    transport: str
    state: StreamState = StreamState.connecting
    messages_sent: int = 0
    _closed: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    def close(self) -> None:
        """Signal that the client went away; wakes any pending tick."""
        self._closed.set()

    @property
    def is_closing(self) -> bool:
        return self._closed.is_set()

    async def wait_closed(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._closed.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True


class StreamingGateway:
    def __init__(self, store: SensorDataStore, interval: float = 2.0) -> None:
        self.store = store
        self.interval = interval
        self._sessions: Dict[str, StreamSession] = {}
        self._lock = Lock()

    def open_session(self, transport: str) -> StreamSession:
        session = StreamSession(session_id=uuid4().hex, transport=transport)
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info(
            "Stream client connected",
            extra={"session_id": session.session_id, "transport": transport},
        )
        return session

    def active_sessions(self) -> int:
        with self._lock:
            return len(self._sessions)

    def build_message(self, kind: str) -> Dict[str, Any]:
        readings = sorted(self.store.list_readings(), key=lambda reading: reading.sensor_id)
        return {
            "type": kind,
            "sensors": [
                reading.model_dump(mode="json", exclude_none=True) for reading in readings
            ],
            "count": len(readings),
            "timestamp": utc_now().isoformat(),
        }

    async def stream(self, session: StreamSession) -> AsyncIterator[Dict[str, Any]]:
        """Yield the initial snapshot, then one update per tick until closed.

        The caller must close the generator (``aclosing``) so the session is
        released as soon as the transport stops consuming.
        """
        try:
            if session.is_closing:
                return
            yield self.build_message(INITIAL_MESSAGE)
            session.messages_sent += 1
            session.state = StreamState.streaming
            while not await session.wait_closed(self.interval):
                yield self.build_message(UPDATE_MESSAGE)
                session.messages_sent += 1
        finally:
            self._release(session)

    def _release(self, session: StreamSession) -> None:
        session.close()
        session.state = StreamState.closed
        with self._lock:
            self._sessions.pop(session.session_id, None)
        logger.info(
            "Stream client disconnected",
            extra={
                "session_id": session.session_id,
                "transport": session.transport,
                "message_count": session.messages_sent,
            },
        )


@lru_cache
def build_default_gateway(interval: Optional[float] = None) -> StreamingGateway:
    settings = get_settings()
    tick = interval if interval is not None else settings.stream_interval
    return StreamingGateway(store=build_default_store(), interval=tick)

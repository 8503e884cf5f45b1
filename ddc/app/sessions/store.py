"""
In-memory session store.

Sessions are addressed by an opaque identifier and live for a fixed
period counted from creation. Lookups never extend a session's life.
Expired sessions are invisible immediately and are physically removed by
a periodic sweep.

Concurrency model:
- the id -> record map is only touched from the event loop and no map
  operation awaits, so the map needs no lock
- each record carries its own ``asyncio.Lock``; ``session()`` holds it
  for the whole operation, including scanning and rendering
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, Optional

from ddc.app.core.errors import SessionNotFoundError

logger = logging.getLogger("ddc.sessions")


class SessionKind(str, enum.Enum):
    BUILDER = "builder"
    EXTRACTOR = "extractor"


@dataclass
class SessionRecord:
    kind: SessionKind
    state: Any
    created: float
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


def _new_id() -> str:
    return str(uuid.uuid4())


class SessionStore:
    """Identifier to session mapping with absolute expiration."""

    MAX_ID_ATTEMPTS = 16

    def __init__(
        self,
        ttl_seconds: float,
        sweep_interval_seconds: float = 30.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._id_factory = id_factory
        self._records: Dict[str, SessionRecord] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # Map operations
    # ------------------------------------------------------------------

    def _expired(self, record: SessionRecord, now: float) -> bool:
        return now - record.created >= self.ttl_seconds

    def create(self, kind: SessionKind, state: Any) -> str:
        """Store a new session and return its identifier."""
        for _ in range(self.MAX_ID_ATTEMPTS):
            session_id = self._id_factory()
            if session_id not in self._records:
                break
        else:
            raise RuntimeError("unable to allocate a unique session id")

        self._records[session_id] = SessionRecord(
            kind=kind,
            state=state,
            created=self._clock(),
        )
        logger.info(
            "session_created",
            extra={"session_id": session_id, "kind": kind.value},
        )
        return session_id

    def get(self, session_id: str) -> SessionRecord:
        record = self._records.get(session_id)
        if record is None or self._expired(record, self._clock()):
            raise SessionNotFoundError()
        return record

    def delete(self, session_id: str) -> None:
        """Forget a session. Unknown identifiers are ignored."""
        if self._records.pop(session_id, None) is not None:
            logger.info("session_dropped", extra={"session_id": session_id})

    def sweep(self) -> int:
        """Remove every expired record and return how many were removed."""
        now = self._clock()
        expired = [
            session_id
            for session_id, record in self._records.items()
            if self._expired(record, now)
        ]
        for session_id in expired:
            del self._records[session_id]

        if expired:
            logger.info(
                "sessions_expired",
                extra={"count": len(expired), "remaining": len(self._records)},
            )
        return len(expired)

    def clear(self) -> None:
        self._records.clear()

    # ------------------------------------------------------------------
    # Exclusive access
    # ------------------------------------------------------------------

    @contextlib.asynccontextmanager
    async def session(
        self,
        session_id: str,
        kind: SessionKind,
    ) -> AsyncIterator[Any]:
        """
        Yield the state of a live session of ``kind`` under its lock.

        A session of the other family is reported as unknown. The record
        is re-checked after the lock is acquired because it may have been
        dropped or expired while this call was waiting.
        """
        record = self.get(session_id)
        if record.kind is not kind:
            raise SessionNotFoundError()

        async with record.lock:
            current = self._records.get(session_id)
            if current is not record or self._expired(record, self._clock()):
                raise SessionNotFoundError()
            yield record.state

    # ------------------------------------------------------------------
    # Background sweeping
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(
                self._sweep_loop(), name="ddc-session-sweeper"
            )

    async def stop(self) -> None:
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        self.clear()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                self.sweep()
            except Exception:
                logger.exception("session_sweep_failed")

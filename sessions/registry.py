"""Session registry: session id -> live transport.

A session is created by an ``initialize`` request that carries no session
id, reused by every later request carrying its id, and removed when its
transport closes. Closure can come from an explicit DELETE, the idle sweep,
application shutdown or the transport itself; all of them end in
``SessionRegistry._release``.
"""

import logging
import threading
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncContextManager, Callable, Optional, Protocol

import anyio

from oauth.clock import Clock, default_clock
from oauth.errors import InternalFault

logger = logging.getLogger(__name__)

OnClose = Callable[[str], None]


class SessionTransport(Protocol):
    """Duplex channel bound to one session id."""

    session_id: str

    async def handle_request(self, scope, receive, send) -> None: ...

    async def close(self) -> None: ...


class TransportFactory(Protocol):
    def run(self) -> AsyncContextManager[None]:
        """Context that owns the transports' background tasks."""
        ...

    async def __call__(self, session_id: str, on_close: OnClose) -> SessionTransport:
        """Create and start a transport; ``on_close`` must fire once it stops."""
        ...


def new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Session:
    session_id: str
    transport: SessionTransport
    created_at: float
    last_seen: float

    def touch(self, now: float) -> None:
        self.last_seen = now

    def idle_for(self, now: float) -> float:
        return now - self.last_seen


class SessionRegistry:
    """Maps session ids to transports.

    The maps are guarded by a ``threading.Lock`` that is never held across
    an ``await``. Ids are reserved under the lock before the transport is
    built, so two racing initialize requests always get distinct sessions.
    """

    def __init__(
        self,
        factory: TransportFactory,
        *,
        idle_timeout: float = 1800.0,
        close_timeout: float = 5.0,
        clock: Clock = default_clock,
        id_factory: Callable[[], str] = new_session_id,
    ):
        self.factory = factory
        self.idle_timeout = idle_timeout
        self.close_timeout = close_timeout
        self._clock = clock
        self._id_factory = id_factory
        self._sessions: dict[str, Session] = {}
        self._pending: set[str] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def _reserve_id(self) -> str:
        with self._lock:
            session_id = self._id_factory()
            while session_id in self._sessions or session_id in self._pending:
                session_id = self._id_factory()
            self._pending.add(session_id)
        return session_id

    async def open_session(self) -> Session:
        """Allocate an id, build its transport and register it (UNBOUND -> BOUND).

        Raises:
            InternalFault: the transport could not be started.
        """
        session_id = self._reserve_id()
        try:
            transport = await self.factory(session_id, self._release)
        except Exception as e:
            with self._lock:
                self._pending.discard(session_id)
            logger.exception(f"[SESSION] Failed to start transport for session {session_id}")
            raise InternalFault("Could not start session transport") from e

        now = self._clock()
        session = Session(session_id=session_id, transport=transport, created_at=now, last_seen=now)
        with self._lock:
            # on_close already fired while the transport was starting
            closed_early = session_id not in self._pending
            self._pending.discard(session_id)
            if not closed_early:
                self._sessions[session_id] = session
            live = len(self._sessions)
        if closed_early:
            logger.warning(f"[SESSION] Transport for session {session_id} closed during startup")
            raise InternalFault("Session transport closed during startup")

        logger.info(f"[SESSION] Opened session {session_id} ({live} live)")
        return session

    def get(self, session_id: str) -> Optional[Session]:
        """Look up a live session and mark it as active."""
        now = self._clock()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                session.touch(now)
        return session

    def _release(self, session_id: str) -> None:
        """Remove a session from the map (BOUND -> CLOSED). Idempotent."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
            self._pending.discard(session_id)
            live = len(self._sessions)
        if session is not None:
            logger.info(f"[SESSION] Closed session {session_id} ({live} live)")

    async def terminate(self, session_id: str) -> bool:
        """Shut a session's transport down and remove it.

        Waiting for the transport is bounded by ``close_timeout``; the
        mapping is removed even if the transport never finishes closing.
        Returns False when the id is not live.
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            return False

        try:
            with anyio.move_on_after(self.close_timeout) as scope:
                await session.transport.close()
            if scope.cancelled_caught:
                logger.warning(
                    f"[SESSION] Transport for session {session_id} did not close "
                    f"within {self.close_timeout}s"
                )
        except Exception:
            logger.exception(f"[SESSION] Error closing transport for session {session_id}")
        finally:
            self._release(session_id)
        return True

    async def evict_idle(self) -> int:
        """Terminate sessions with no request for ``idle_timeout`` seconds."""
        now = self._clock()
        with self._lock:
            idle = [
                session_id
                for session_id, session in self._sessions.items()
                if session.idle_for(now) >= self.idle_timeout
            ]
        for session_id in idle:
            logger.info(f"[MAINTENANCE] Evicting idle session {session_id}")
            await self.terminate(session_id)
        return len(idle)

    async def close_all(self) -> None:
        with self._lock:
            session_ids = list(self._sessions)
        for session_id in session_ids:
            await self.terminate(session_id)

    async def _sweep(self, interval: float) -> None:
        while True:
            await anyio.sleep(interval)
            await self.evict_idle()

    @asynccontextmanager
    async def run(self, sweep_interval: float = 60.0):
        """Run the transport factory and the idle sweep for the app's lifetime."""
        async with self.factory.run():
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._sweep, sweep_interval)
                try:
                    yield self
                finally:
                    with anyio.CancelScope(shield=True):
                        await self.close_all()
                    tg.cancel_scope.cancel()

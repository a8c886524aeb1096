"""
Session Store Service
In-memory registry of one conversation session per user, with a periodic
sweep that expires idle sessions
"""
import logging
import asyncio
import weakref
from typing import Dict, List, Optional, Callable, Any, Awaitable
from datetime import datetime

from ..core.config import settings
from ..flow.session import ConversationSession

logger = logging.getLogger(__name__)

ExpireCallback = Callable[[ConversationSession], Awaitable[None]]


class SessionStore:
    """
    Keyed by user identifier, so at most one session exists per user.

    Events of one user must be handled while holding `lock_for(user_id)`;
    events of different users may run concurrently.
    """

    def __init__(
        self,
        timeout_seconds: Optional[int] = None,
        sweep_interval: Optional[int] = None
    ):
        """
        Initialize the session store.

        Args:
            timeout_seconds: Idle time before a session expires (default: 30 minutes)
            sweep_interval: Seconds between sweeps (default: 5 minutes)
        """
        self.sessions: Dict[str, ConversationSession] = {}
        self.timeout_seconds = timeout_seconds or settings.SESSION_TIMEOUT_SECONDS
        self.sweep_interval = sweep_interval or settings.SESSION_SWEEP_INTERVAL_SECONDS
        # A lock lives as long as a handler holds or awaits it
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._on_expire: Optional[ExpireCallback] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None

    def __contains__(self, user_id: str) -> bool:
        return user_id in self.sessions

    def __len__(self) -> int:
        return len(self.sessions)

    def lock_for(self, user_id: str) -> asyncio.Lock:
        """Per-user lock serializing the events of one conversation"""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def get(self, user_id: str) -> Optional[ConversationSession]:
        return self.sessions.get(user_id)

    def create(
        self,
        user_id: str,
        flow_id: str,
        start_node_id: str,
        instance_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> ConversationSession:
        """
        Create a session at the given node.

        Any existing session of the same user is replaced.
        """
        if user_id in self.sessions:
            logger.info(f"Replacing existing session of {user_id}")

        session = ConversationSession(
            user_id=user_id,
            flow_id=flow_id,
            current_node_id=start_node_id,
            instance_name=instance_name,
            context=dict(context or {})
        )
        self.sessions[user_id] = session
        logger.info(f"Session created for {user_id} [flow: {flow_id}, node: {start_node_id}]")
        return session

    def delete(self, user_id: str) -> bool:
        """Remove a session. Returns True if one existed."""
        session = self.sessions.pop(user_id, None)
        if session is not None:
            logger.info(f"Session removed for {user_id} [flow: {session.flow_id}]")
            return True
        return False

    def list_sessions(self) -> List[ConversationSession]:
        return list(self.sessions.values())

    def collect_expired(self, now: Optional[datetime] = None) -> List[ConversationSession]:
        """
        Remove and return every session idle longer than the timeout.

        Sessions whose user is being handled right now are left alone.
        """
        now = now or datetime.now()
        expired = []

        for user_id, session in list(self.sessions.items()):
            lock = self._locks.get(user_id)
            if lock is not None and lock.locked():
                continue
            if session.is_expired(self.timeout_seconds, now):
                del self.sessions[user_id]
                expired.append(session)

        if expired:
            logger.info(f"Expired {len(expired)} idle session(s)")

        return expired

    async def sweep(
        self,
        now: Optional[datetime] = None,
        on_expire: Optional[ExpireCallback] = None
    ) -> int:
        """
        Expire idle sessions and notify each one once.

        Args:
            now: Reference time (default: now)
            on_expire: Callback overriding the one given to start_sweeper

        Returns:
            Number of sessions expired
        """
        callback = on_expire or self._on_expire
        expired = self.collect_expired(now)

        for session in expired:
            if callback is None:
                continue
            try:
                await callback(session)
            except Exception as e:
                logger.exception(f"Error notifying expired session of {session.user_id}: {e}")

        return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_sessions": len(self.sessions),
            "timeout_seconds": self.timeout_seconds,
            "sweep_interval": self.sweep_interval,
            "running": self._running,
        }

    async def start_sweeper(self, on_expire: Optional[ExpireCallback] = None) -> None:
        """Start the background sweep"""
        if on_expire is not None:
            self._on_expire = on_expire

        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._sweeper_loop())
        logger.info("Session sweeper started")

    async def stop_sweeper(self) -> None:
        """Stop the background sweep"""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Session sweeper stopped")

    async def _sweeper_loop(self) -> None:
        """Background loop that expires idle sessions"""
        while self._running:
            await asyncio.sleep(self.sweep_interval)
            try:
                expired = await self.sweep()
                if expired > 0:
                    logger.debug(f"Sweep expired {expired} session(s)")
            except Exception as e:
                logger.exception(f"Error in session sweeper loop: {e}")

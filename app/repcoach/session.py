"""Per-session coaching state: copy history and what-if ledger."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict

from app.repcoach.variety import CopyHistory
from app.repcoach.whatif import WhatIfLedger

logger = logging.getLogger(__name__)

DEFAULT_IDLE_HOURS = 48.0


@dataclass
class CoachSession:
    """State owned by one lifter session.

    Hold ``lock`` for the whole of a coaching turn that reads or writes
    the history or the ledger.
    """

    session_id: str
    copy_history: CopyHistory = field(default_factory=CopyHistory)
    whatif_ledger: WhatIfLedger = field(default_factory=WhatIfLedger)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    last_seen: float = 0.0


class SessionStore:
    """In-process map of session id to :class:`CoachSession`.

    A session not fetched for ``idle_hours`` is evicted on the next
    :meth:`get`, so the store only holds recently active lifters.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        idle_hours: float = DEFAULT_IDLE_HOURS,
    ):
        self._clock = clock
        self._idle_s = idle_hours * 3600.0
        self._sessions: Dict[str, CoachSession] = {}
        self._lock = threading.Lock()

    def _evict_idle(self, now: float) -> None:
        cutoff = now - self._idle_s
        stale = [sid for sid, s in self._sessions.items() if s.last_seen < cutoff]
        for sid in stale:
            del self._sessions[sid]
        if stale:
            logger.debug("Evicted %d idle coaching sessions", len(stale))

    def get(self, session_id: str) -> CoachSession:
        """Return the session, creating it on first use."""
        with self._lock:
            now = self._clock()
            self._evict_idle(now)
            session = self._sessions.get(session_id)
            if session is None:
                session = CoachSession(
                    session_id=session_id,
                    whatif_ledger=WhatIfLedger(clock=self._clock),
                )
                self._sessions[session_id] = session
            session.last_seen = now
            return session

    def drop(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

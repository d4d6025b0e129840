from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import SessionState
from ..core.exceptions import ValidationError
from .model import Session
from .repository import SessionRepository


class InMemorySessionRepository(SessionRepository):
    """Process-local session storage guarded by one lock per session."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, session_id: str) -> Optional[threading.Lock]:
        with self._registry_lock:
            return self._locks.get(session_id)

    def insert(self, session: Session) -> None:
        with self._registry_lock:
            if session.session_id in self._sessions:
                raise ValidationError("Session already exists")
            self._sessions[session.session_id] = session
            self._locks[session.session_id] = threading.Lock()

    def get_by_id(self, session_id: str) -> Optional[Session]:
        lock = self._lock_for(session_id)
        if lock is None:
            return None
        with lock:
            return self._sessions.get(session_id)

    def set_otp_if_active(self, session_id: str, *, otp: str, otp_expires_at: datetime) -> Optional[Session]:
        lock = self._lock_for(session_id)
        if lock is None:
            return None
        with lock:
            current = self._sessions[session_id]
            if current.state != SessionState.ACTIVE:
                return None
            updated = replace(current, otp=otp, otp_expires_at=otp_expires_at)
            self._sessions[session_id] = updated
            return updated

    def end_if_active(self, session_id: str, *, ended_at: datetime) -> Optional[Session]:
        lock = self._lock_for(session_id)
        if lock is None:
            return None
        with lock:
            current = self._sessions[session_id]
            if current.state != SessionState.ACTIVE:
                return None
            updated = replace(current, state=SessionState.ENDED, otp=None, otp_expires_at=None, ended_at=ended_at)
            self._sessions[session_id] = updated
            return updated

    def list_for_teacher(self, teacher_id: str) -> Sequence[Session]:
        with self._registry_lock:
            items = [s for s in self._sessions.values() if s.teacher_id == teacher_id]
        items.sort(key=lambda s: s.created_at, reverse=True)
        return items

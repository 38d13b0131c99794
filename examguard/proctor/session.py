"""
Session Store - Owns exam session records and their lifecycle transitions
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .clock import Clock, SystemClock, format_timestamp, generate_session_id
from .errors import SessionNotFoundError
from .utils.logging import log_session_start

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Session lifecycle states. A session that leaves ACTIVE never returns to it."""
    ACTIVE = "active"
    TERMINATED = "terminated"
    ENDED = "ended"


DEFAULT_END_REASON = "manual"


@dataclass
class Session:
    """One proctored exam attempt"""
    session_id: str
    student_id: Optional[Any]
    student_name: Optional[Any]
    exam_id: Optional[Any]
    start_time: datetime
    last_activity: datetime
    violation_count: int = 0
    status: SessionStatus = SessionStatus.ACTIVE
    end_time: Optional[datetime] = None
    last_violation: Optional[Any] = None
    end_reason: Optional[Any] = None
    
    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE
    
    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys)"""
        data = {
            "sessionId": self.session_id,
            "studentId": self.student_id,
            "studentName": self.student_name,
            "examId": self.exam_id,
            "startTime": format_timestamp(self.start_time),
            "violations": self.violation_count,
            "status": self.status.value,
            "lastActivity": format_timestamp(self.last_activity),
        }
        if self.last_violation is not None:
            data["lastViolation"] = self.last_violation
        if self.end_time is not None:
            data["endTime"] = format_timestamp(self.end_time)
        if self.end_reason is not None:
            data["endReason"] = self.end_reason
        return data


class SessionStore:
    """
    In-memory mapping of session id to Session.
    
    All mutations happen under `lock`, a re-entrant lock the ingestion
    path also holds so that counting a violation and applying the
    termination policy form one atomic step.
    """
    
    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()
        self.lock = threading.RLock()
        self._sessions: Dict[str, Session] = {}
    
    def create(
        self,
        student_id: Optional[Any],
        exam_id: Optional[Any],
        student_name: Optional[Any]
    ) -> Session:
        """
        Create a new active session.
        
        Identifiers are opaque and accepted as given, including empty
        or missing values.
        """
        with self.lock:
            session_id = generate_session_id(self.clock)
            while session_id in self._sessions:
                session_id = generate_session_id(self.clock)
            
            now = self.clock.now()
            session = Session(
                session_id=session_id,
                student_id=student_id,
                student_name=student_name,
                exam_id=exam_id,
                start_time=now,
                last_activity=now
            )
            self._sessions[session_id] = session
        
        log_session_start(session_id, exam_id, student_id)
        return session
    
    def find(self, session_id: Any) -> Optional[Session]:
        """Look up a session. Ids arrive from clients, so anything but a non-empty string is unknown."""
        if not session_id or not isinstance(session_id, str):
            return None
        return self._sessions.get(session_id)
    
    def get(self, session_id: str) -> Session:
        session = self.find(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session
    
    def record_violation(self, session_id: Any, timestamp: Any) -> Optional[Session]:
        """
        Count a violation against a session.
        
        Returns:
            The updated session, or None if the id is missing or unknown
        """
        with self.lock:
            session = self.find(session_id)
            if session is None:
                return None
            
            session.violation_count += 1
            session.last_violation = timestamp
            session.last_activity = self.clock.now()
            return session
    
    def terminate(self, session_id: str, now: Optional[datetime] = None) -> Session:
        with self.lock:
            session = self.get(session_id)
            session.status = SessionStatus.TERMINATED
            session.end_time = now or self.clock.now()
            logger.info(f"Session {session_id} terminated")
            return session
    
    def end(
        self,
        session_id: str,
        now: Optional[datetime] = None,
        reason: Optional[Any] = None
    ) -> Session:
        """End a session manually. Raises SessionNotFoundError for unknown ids."""
        with self.lock:
            session = self.get(session_id)
            session.status = SessionStatus.ENDED
            session.end_time = now or self.clock.now()
            session.end_reason = reason or DEFAULT_END_REASON
            logger.info(f"Session {session_id} ended: reason={session.end_reason}")
            return session
    
    def list_active(self) -> List[Session]:
        return self.list_by_status(SessionStatus.ACTIVE)
    
    def list_by_status(self, status: SessionStatus) -> List[Session]:
        status = SessionStatus(status)
        with self.lock:
            return [s for s in self._sessions.values() if s.status == status]
    
    def count(self) -> int:
        return len(self._sessions)

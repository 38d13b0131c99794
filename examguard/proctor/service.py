"""
Proctor Service - Orchestrates session lifecycle and violation ingestion

Ties together the Session Store, Violation Log, Policy Engine,
Broadcast Hub, Report Generator and Audit Sink.
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from .audit import AuditSink
from .broadcast import BroadcastHub
from .clock import Clock, format_timestamp
from .reports import ReportGenerator
from .scoring.policy import PolicyEngine, classify_risk
from .session import Session, SessionStatus, SessionStore
from .utils.logging import log_auto_termination, log_session_end, log_violation_recorded
from .violations import Violation, ViolationLog

logger = logging.getLogger(__name__)

SESSION_AUDIT_CATEGORY = "sessions"
VIOLATION_AUDIT_CATEGORY = "violations"


class ProctorService:
    """Application-level operations behind the HTTP surface"""
    
    def __init__(
        self,
        clock: Clock,
        store: SessionStore,
        violation_log: ViolationLog,
        policy: PolicyEngine,
        hub: BroadcastHub,
        reports: ReportGenerator,
        audit: AuditSink,
        recent_limit: int = 10
    ):
        self.clock = clock
        self.store = store
        self.violation_log = violation_log
        self.policy = policy
        self.hub = hub
        self.reports = reports
        self.audit = audit
        self.recent_limit = recent_limit
    
    def create_session(
        self,
        student_id: Optional[Any] = None,
        exam_id: Optional[Any] = None,
        student_name: Optional[Any] = None
    ) -> Session:
        session = self.store.create(student_id, exam_id, student_name)
        self.audit.append(SESSION_AUDIT_CATEGORY, session.to_dict())
        return session
    
    def log_violation(self, payload: Dict[str, Any]) -> Violation:
        """
        Record a violation reported by a client.
        
        The violation is always stored, even when it names no session or
        an unknown one. When it belongs to a known session the counter is
        bumped and the termination policy applied, all under the store
        lock so concurrent reports are each counted exactly once.
        
        Returns:
            The stored violation record
        """
        violation = copy.deepcopy(payload)
        if not violation.get("timestamp"):
            violation["timestamp"] = format_timestamp(self.clock.now())
        
        session_id = violation.get("sessionId")
        notice = None
        
        with self.store.lock:
            session = self.store.record_violation(session_id, violation["timestamp"])
            if session is not None and self.policy.should_terminate(session):
                self.store.terminate(session.session_id, self.clock.now())
                notice = self.policy.termination_notice(session)
                log_auto_termination(session.session_id, session.violation_count, self.policy.threshold)
            count = session.violation_count if session is not None else None
            stored = self.violation_log.append(violation)
        
        log_violation_recorded(session_id, violation.get("type"), count)
        
        if notice is not None:
            self.hub.notify(notice)
        
        self.audit.append(VIOLATION_AUDIT_CATEGORY, stored)
        return stored
    
    def session_status(self, session_id: str) -> Session:
        """Raises SessionNotFoundError for unknown ids"""
        return self.store.get(session_id)
    
    def end_session(self, session_id: str, reason: Optional[Any] = None) -> Dict[str, Any]:
        """
        End a session and return its report.
        
        Raises:
            SessionNotFoundError: If the session id is unknown
        """
        session = self.store.end(session_id, self.clock.now(), reason)
        report = self.reports.generate(session_id)
        log_session_end(
            session_id,
            session.end_reason,
            session.violation_count,
            classify_risk(session.violation_count).value
        )
        return report
    
    def violations(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        student_id: Optional[str] = None
    ) -> List[Violation]:
        return self.violation_log.query(start_date, end_date, student_id)
    
    def dashboard_stats(self) -> Dict[str, Any]:
        recent = self.violation_log.recent_tail(self.recent_limit)
        recent.reverse()
        
        return {
            "totalSessions": self.store.count(),
            "activeSessions": len(self.store.list_active()),
            "terminatedSessions": len(self.store.list_by_status(SessionStatus.TERMINATED)),
            "totalViolations": self.violation_log.count(),
            "recentViolations": recent
        }
    
    def monitor_snapshot(self) -> Dict[str, Any]:
        """Body of the init event sent to a new monitor"""
        return {
            "activeSessions": len(self.store.list_active()),
            "totalViolations": self.violation_log.count()
        }

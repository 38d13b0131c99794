"""
Report Generator - Terminal summary of a proctoring session
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from .clock import Clock, SystemClock, format_timestamp
from .scoring.policy import classify_risk
from .session import SessionStore
from .violations import ViolationLog

logger = logging.getLogger(__name__)


def format_duration(start: datetime, end: datetime) -> str:
    """
    Format the span between two datetimes as '<h>h <m>m <s>s'.
    
    Components are floored; a span where end precedes start is
    reported as zero.
    """
    total_seconds = int((end - start).total_seconds())
    total_seconds = max(0, total_seconds)
    
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}h {minutes}m {seconds}s"


class ReportGenerator:
    """Builds session reports from the Session Store and Violation Log"""
    
    def __init__(
        self,
        store: SessionStore,
        violation_log: ViolationLog,
        clock: Optional[Clock] = None
    ):
        self.store = store
        self.violation_log = violation_log
        self.clock = clock or SystemClock()
    
    def generate(self, session_id: str) -> Optional[Dict[str, Any]]:
        """
        Generate a report for a session.
        
        Returns:
            Report dict, or None if the session is unknown
        """
        with self.store.lock:
            session = self.store.find(session_id)
            if session is None:
                return None
            
            end_time = session.end_time or self.clock.now()
            report = {
                "sessionId": session.session_id,
                "studentId": session.student_id,
                "startTime": format_timestamp(session.start_time),
                "endTime": format_timestamp(end_time),
                "duration": format_duration(session.start_time, end_time),
                "totalViolations": session.violation_count,
                "status": session.status.value,
                "violations": self.violation_log.for_session(session.session_id),
                "riskLevel": classify_risk(session.violation_count).value
            }
            if session.end_reason is not None:
                report["endReason"] = session.end_reason
        
        return report

"""
Policy Engine - Auto-termination and risk classification from violation counts
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

from ..session import Session

logger = logging.getLogger(__name__)


class RiskLevel(str, Enum):
    """Risk classification for a session"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def classify_risk(violations: int) -> RiskLevel:
    """
    Map a violation count to a risk level.
    
    0 -> low, 1-2 -> medium, 3-4 -> high, 5+ -> critical
    """
    if violations <= 0:
        return RiskLevel.LOW
    if violations <= 2:
        return RiskLevel.MEDIUM
    if violations <= 4:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


class PolicyEngine:
    """
    Decides when a session is auto-terminated.
    
    Termination applies only to active sessions, so once a session has
    been terminated (or ended) further violations never re-trigger it.
    """
    
    # Violations at which an active session is terminated
    TERMINATION_THRESHOLD = 5
    
    NOTIFICATION_TYPE = "exam_terminated"
    
    def __init__(self, threshold: Optional[int] = None):
        self.threshold = threshold if threshold is not None else self.TERMINATION_THRESHOLD
        if self.threshold < 1:
            logger.warning(f"Termination threshold {self.threshold} < 1, every session terminates on first violation")
    
    def should_terminate(self, session: Session) -> bool:
        return session.is_active and session.violation_count >= self.threshold
    
    def risk_level(self, session: Session) -> RiskLevel:
        return classify_risk(session.violation_count)
    
    def termination_notice(self, session: Session) -> Dict[str, Any]:
        """Notification payload emitted when a session is auto-terminated"""
        return {
            "type": self.NOTIFICATION_TYPE,
            "sessionId": session.session_id,
            "studentId": session.student_id,
            "violations": session.violation_count
        }

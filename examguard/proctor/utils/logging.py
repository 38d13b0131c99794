"""
Proctoring Logger - Logs proctoring events and notifications
"""

import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


def log_proctor_event(
    session_id: Optional[str],
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Log a proctoring event.
    
    Args:
        session_id: Proctoring session ID (may be None for orphan violations)
        event_type: Type of event (session_start, violation, terminated, etc.)
        details: Optional event details
        level: Log level (debug, info, warning, error)
    """
    message = f"[PROCTOR] session={session_id or '-'} event={event_type}"
    
    if details:
        detail_str = " ".join(f"{k}={v}" for k, v in details.items())
        message += f" {detail_str}"
    
    if level == "debug":
        logger.debug(message)
    elif level == "warning":
        logger.warning(message)
    elif level == "error":
        logger.error(message)
    else:
        logger.info(message)


def log_session_start(session_id: str, exam_id: Optional[str], student_id: Optional[str]):
    """Log session start event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_start",
        details={
            "exam_id": exam_id,
            "student_id": student_id
        }
    )


def log_session_end(session_id: str, reason: str, violations: int, risk_level: str):
    """Log session end event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_end",
        details={
            "reason": reason,
            "violations": violations,
            "risk_level": risk_level
        }
    )


def log_violation_recorded(session_id: Optional[str], violation_type: Any, count: Optional[int]):
    """Log a recorded violation; count is None when the session is unknown"""
    log_proctor_event(
        session_id=session_id,
        event_type="violation",
        details={
            "type": violation_type,
            "count": count if count is not None else "untracked"
        },
        level="debug" if count is None else "info"
    )


def log_auto_termination(session_id: str, violations: int, threshold: int):
    """Log when the violation threshold terminates a session"""
    log_proctor_event(
        session_id=session_id,
        event_type="auto_terminated",
        details={
            "violations": violations,
            "threshold": threshold
        },
        level="warning"
    )


def log_admin_notification(notification: Dict[str, Any]):
    """Write an admin notification to the operational log"""
    logger.warning(f"ADMIN NOTIFICATION: {notification}")

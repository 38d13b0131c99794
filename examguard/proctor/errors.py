"""
Proctoring Errors
"""


class ProctorError(Exception):
    """Base class for proctoring errors"""


class SessionNotFoundError(ProctorError):
    """Raised when a session id is not known to the store"""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class ObserverDeliveryError(ProctorError):
    """Raised when an event cannot be pushed to a monitor connection"""


class AuditWriteError(ProctorError):
    """Raised when an audit entry cannot be persisted"""

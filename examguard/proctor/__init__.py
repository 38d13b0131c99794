"""
ExamGuard Proctoring Module

Tracks exam sessions and the integrity violations reported for them:
- Session lifecycle (active, terminated, ended)
- Violation ingestion and filtering
- Auto-termination after too many violations
- Live push of heartbeats and notifications to monitors
- End-of-session reports with a risk level
"""

from .api import router
from .context import ProctorContext, build_context

__all__ = ["router", "ProctorContext", "build_context"]

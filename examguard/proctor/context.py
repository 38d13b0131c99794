"""
Proctor Context - Composition root for all proctoring state

One context is built per application instance and handed to the API
through FastAPI dependencies, so every test can start from a clean one.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import Settings
from .audit import AuditSink, JsonFileAuditSink, NullAuditSink
from .broadcast import BroadcastHub
from .clock import Clock, SystemClock
from .reports import ReportGenerator
from .scoring.policy import PolicyEngine
from .service import ProctorService
from .session import SessionStore
from .violations import ViolationLog

logger = logging.getLogger(__name__)


@dataclass
class ProctorContext:
    """All proctoring components of one running application"""
    clock: Clock
    store: SessionStore
    violation_log: ViolationLog
    policy: PolicyEngine
    hub: BroadcastHub
    reports: ReportGenerator
    audit: AuditSink
    service: ProctorService
    
    def close(self):
        """Disconnect monitors and stop their heartbeats"""
        self.hub.close()


def build_context(
    settings: Settings,
    clock: Optional[Clock] = None,
    audit: Optional[AuditSink] = None
) -> ProctorContext:
    """
    Build a fully wired context from settings.
    
    Args:
        settings: Service settings
        clock: Optional clock override (tests)
        audit: Optional audit sink override
    """
    clock = clock or SystemClock()
    
    if audit is None:
        if settings.AUDIT_ENABLED:
            audit = JsonFileAuditSink(settings.AUDIT_LOG_DIR, clock)
        else:
            audit = NullAuditSink()
    
    store = SessionStore(clock)
    violation_log = ViolationLog()
    policy = PolicyEngine(settings.TERMINATION_THRESHOLD)
    reports = ReportGenerator(store, violation_log, clock)
    
    # The hub's init snapshot reads through the service, wired below
    hub = BroadcastHub(
        snapshot_provider=lambda: service.monitor_snapshot(),
        heartbeat_interval=settings.HEARTBEAT_INTERVAL,
        queue_size=settings.OBSERVER_QUEUE_SIZE
    )
    
    service = ProctorService(
        clock=clock,
        store=store,
        violation_log=violation_log,
        policy=policy,
        hub=hub,
        reports=reports,
        audit=audit,
        recent_limit=settings.RECENT_VIOLATIONS_LIMIT
    )
    
    logger.info(
        f"Proctor context ready: threshold={policy.threshold}, "
        f"heartbeat={settings.HEARTBEAT_INTERVAL}s, audit={type(audit).__name__}"
    )
    
    return ProctorContext(
        clock=clock,
        store=store,
        violation_log=violation_log,
        policy=policy,
        hub=hub,
        reports=reports,
        audit=audit,
        service=service
    )

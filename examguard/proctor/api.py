"""
Proctoring API - FastAPI endpoints for exam proctoring

Endpoints:
- POST /api/session/create - Create a proctoring session
- POST /api/violation/log - Report a violation
- GET /api/session/{session_id}/status - Get session status
- POST /api/session/{session_id}/end - End a session and get its report
- GET /api/admin/violations - Filter recorded violations
- GET /api/monitor/stream - Live monitor event stream (SSE)
- GET /api/dashboard/stats - Dashboard statistics
- GET /api/proctor/health - Module health
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field
from sse_starlette.sse import EventSourceResponse

from .broadcast import BroadcastHub
from .context import ProctorContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Proctoring"])


def get_context(request: Request) -> ProctorContext:
    """Proctor context of the running application"""
    return request.app.state.proctor


# ============== Request/Response Models ==============

class CreateSessionRequest(BaseModel):
    """Request to create a proctoring session"""
    studentId: Optional[Any] = Field(None, description="ID of the student (opaque, stored as given)")
    examId: Optional[Any] = Field(None, description="ID of the exam (opaque, stored as given)")
    studentName: Optional[Any] = Field(None, description="Display name of the student")


class CreateSessionResponse(BaseModel):
    """Response after creating a session"""
    success: bool
    sessionId: str
    message: str


class MessageResponse(BaseModel):
    """Generic success/failure response"""
    success: bool
    message: str


class SessionStatusResponse(BaseModel):
    """Current session record"""
    success: bool
    session: Dict[str, Any]


class EndSessionRequest(BaseModel):
    """Request to end a session"""
    reason: Optional[Any] = Field(None, description="Why the session ended (defaults to 'manual')")


class EndSessionResponse(BaseModel):
    """Response after ending a session"""
    success: bool
    message: str
    report: Optional[Dict[str, Any]] = None


class ViolationListResponse(BaseModel):
    """Filtered violations"""
    success: bool
    count: int
    violations: List[Dict[str, Any]]


class DashboardStats(BaseModel):
    totalSessions: int
    activeSessions: int
    terminatedSessions: int
    totalViolations: int
    recentViolations: List[Dict[str, Any]]


class DashboardStatsResponse(BaseModel):
    success: bool
    stats: DashboardStats


async def monitor_events(hub: BroadcastHub) -> AsyncIterator[Dict[str, str]]:
    """
    SSE messages for one monitor.
    
    The observer is registered on the first step and unsubscribed when the
    stream ends, so a client that leaves before streaming starts never
    leaves an observer behind.
    """
    observer = hub.subscribe()
    try:
        async for event in observer.events():
            yield {"data": json.dumps(event)}
    finally:
        # Runs on client disconnect as well as normal completion
        hub.unsubscribe(observer.id)


# ============== API Endpoints ==============

@router.post("/session/create", response_model=CreateSessionResponse)
async def create_session(
    request: Optional[CreateSessionRequest] = Body(None),
    ctx: ProctorContext = Depends(get_context)
):
    """
    Create a new proctoring session.
    
    Identifiers are not validated; missing values are stored as null.
    """
    request = request or CreateSessionRequest()
    # Audit writes touch disk, keep them off the event loop
    session = await run_in_threadpool(
        ctx.service.create_session,
        student_id=request.studentId,
        exam_id=request.examId,
        student_name=request.studentName
    )
    
    return CreateSessionResponse(
        success=True,
        sessionId=session.session_id,
        message="Session created successfully"
    )


async def _read_violation_payload(request: Request) -> Dict[str, Any]:
    """Best-effort parse of a violation body. A violation is never rejected."""
    try:
        body = await request.json()
    except ValueError as e:
        logger.warning(f"Unreadable violation body, logging empty record: {e}")
        return {}
    
    if isinstance(body, dict):
        return body
    return {"payload": body}


@router.post("/violation/log", response_model=MessageResponse)
async def log_violation(
    request: Request,
    ctx: ProctorContext = Depends(get_context)
):
    """
    Report a violation.
    
    Accepts any JSON object. `sessionId` and `timestamp` are optional;
    a missing timestamp is filled with the current time.
    """
    payload = await _read_violation_payload(request)
    await run_in_threadpool(ctx.service.log_violation, payload)
    
    return MessageResponse(success=True, message="Violation logged successfully")


@router.get("/session/{session_id}/status", response_model=SessionStatusResponse)
async def get_session_status(
    session_id: str,
    ctx: ProctorContext = Depends(get_context)
):
    """Get the current record of a session."""
    session = ctx.service.session_status(session_id)
    return SessionStatusResponse(success=True, session=session.to_dict())


@router.post("/session/{session_id}/end", response_model=EndSessionResponse)
async def end_session(
    session_id: str,
    request: Optional[EndSessionRequest] = Body(None),
    ctx: ProctorContext = Depends(get_context)
):
    """
    End a session and return its report.
    
    The request body is optional; without a reason the session ends
    with reason 'manual'.
    """
    reason = request.reason if request is not None else None
    report = ctx.service.end_session(session_id, reason)
    
    return EndSessionResponse(
        success=True,
        message="Session ended successfully",
        report=report
    )


@router.get("/admin/violations", response_model=ViolationListResponse)
async def list_violations(
    startDate: Optional[str] = Query(None, description="Inclusive lower bound (ISO-8601)"),
    endDate: Optional[str] = Query(None, description="Inclusive upper bound (ISO-8601)"),
    studentId: Optional[str] = Query(None, description="Exact student ID"),
    ctx: ProctorContext = Depends(get_context)
):
    """Get recorded violations matching every supplied filter, in arrival order."""
    violations = ctx.service.violations(startDate, endDate, studentId)
    
    return ViolationListResponse(
        success=True,
        count=len(violations),
        violations=violations
    )


@router.get("/monitor/stream")
async def monitor_stream(ctx: ProctorContext = Depends(get_context)):
    """
    Stream live monitoring events via Server-Sent Events.
    
    Sends an init event with current counts, a heartbeat every
    HEARTBEAT_INTERVAL seconds and a notification for each policy event.
    """
    return EventSourceResponse(
        monitor_events(ctx.hub),
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no"
        }
    )


@router.get("/dashboard/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(ctx: ProctorContext = Depends(get_context)):
    """Session and violation totals plus the 10 most recent violations, newest first."""
    stats = ctx.service.dashboard_stats()
    return DashboardStatsResponse(success=True, stats=DashboardStats(**stats))


# ============== Health Check ==============

@router.get("/proctor/health")
async def health_check(ctx: ProctorContext = Depends(get_context)):
    """Health check for proctoring module"""
    return {
        "status": "healthy",
        "active_sessions": len(ctx.store.list_active()),
        "connected_monitors": ctx.hub.count(),
        "module": "proctoring"
    }

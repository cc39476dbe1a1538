"""API routes for Apply Desk."""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, WebSocket
from fastapi.responses import FileResponse

from apply_desk import __version__
from apply_desk.api.auth import create_access_token, forbid_observer, get_current_user, require_manager
from apply_desk.api.models import (
    AnalyzeResponse,
    AssignmentRequest,
    AutofillResponse,
    CreateSessionRequest,
    GoResponse,
    HealthCheck,
    LoginRequest,
    LoginResponse,
    MetricsResponse,
    StopResponse,
    SubmittedResponse,
)
from apply_desk.core.errors import AuthError, ConflictError, InvalidRequestError, NotFoundError
from apply_desk.core.models import (
    ApplicationEvent,
    ApplicationSession,
    Assignment,
    EventType,
    User,
    UserRole,
)
from apply_desk.sessions.events import ADMIN_EVENT_SESSION_ID
from apply_desk.sessions.manager import SessionManager
from apply_desk.store.passwords import verify_password
from apply_desk.utils.logging import get_logger

logger = get_logger(__name__)

# Create routers
health_router = APIRouter(prefix="/health", tags=["health"])
auth_router = APIRouter(prefix="/auth", tags=["auth"])
sessions_router = APIRouter(prefix="/sessions", tags=["sessions"])
assignments_router = APIRouter(prefix="/assignments", tags=["assignments"])
resumes_router = APIRouter(prefix="/resumes", tags=["resumes"])
metrics_router = APIRouter(prefix="/metrics", tags=["metrics"])
stream_router = APIRouter(tags=["stream"])


def get_manager(request: Request) -> SessionManager:
    """Dependency returning the process-wide session manager."""
    return request.app.state.manager


# =============================================================================
# Health and auth
# =============================================================================

@health_router.get("", response_model=HealthCheck)
async def health_check(manager: SessionManager = Depends(get_manager)):
    """Health check endpoint."""
    return HealthCheck(
        status="ok",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        live_browsers=len(manager.registry),
    )


@auth_router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, manager: SessionManager = Depends(get_manager)):
    """Exchange email and password for a bearer token."""
    user = await manager.store.find_user_by_email(request.email)
    if user is None or not user.is_active:
        raise AuthError("Invalid credentials")
    if user.password_hash and not verify_password(request.password, user.password_hash):
        logger.info("Login rejected", user_id=user.id)
        raise AuthError("Invalid credentials")

    logger.info("User logged in", user_id=user.id, role=user.role.value)
    return LoginResponse(token=create_access_token(user), user=user)


# =============================================================================
# Sessions
# =============================================================================

@sessions_router.post("", response_model=ApplicationSession)
async def create_session(
    request: CreateSessionRequest,
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    """Open a new application session."""
    return await manager.controller.create(
        bidder_user_id=request.bidder_user_id,
        profile_id=request.profile_id,
        url=request.url,
        selected_resume_id=request.selected_resume_id,
    )


@sessions_router.get("", response_model=List[ApplicationSession])
async def list_sessions(
    bidder_user_id: Optional[str] = Query(None, alias="bidderUserId"),
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    """List sessions, most recent first."""
    return manager.controller.list_sessions(bidder_user_id)


@sessions_router.get("/{session_id}", response_model=ApplicationSession)
async def get_session(
    session_id: str,
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    return manager.controller.get(session_id)


@sessions_router.post("/{session_id}/go", response_model=GoResponse)
async def go(
    session_id: str,
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    """Start or reuse the session's browser at its URL."""
    result = await manager.controller.go(session_id)
    return GoResponse(**result.to_dict())


@sessions_router.post("/{session_id}/analyze", response_model=AnalyzeResponse)
async def analyze(
    session_id: str,
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    """Recommend a resume and attach job context."""
    analysis = await manager.controller.analyze(session_id)
    return AnalyzeResponse(
        recommended_resume_id=analysis.recommended_resume_id,
        alternatives=analysis.alternatives,
        job_context=analysis.job_context,
    )


@sessions_router.post("/{session_id}/autofill", response_model=AutofillResponse)
async def autofill(
    session_id: str,
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    """Compute the fill plan from the session's profile."""
    session = await manager.controller.autofill(session_id)
    return AutofillResponse(fill_plan=session.fill_plan)


@sessions_router.post("/{session_id}/mark-submitted", response_model=SubmittedResponse)
async def mark_submitted(
    session_id: str,
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    """Mark the application submitted and stop its browser."""
    session = await manager.controller.mark_submitted(session_id)
    return SubmittedResponse(status=session.status, ended_at=session.ended_at)


@sessions_router.post("/{session_id}/stop", response_model=StopResponse)
async def stop(
    session_id: str,
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    """Stop the session's browser, leaving its status unchanged."""
    return StopResponse(stopped=await manager.controller.stop(session_id))


@sessions_router.get("/{session_id}/events", response_model=List[ApplicationEvent])
async def session_events(
    session_id: str,
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    manager.controller.get(session_id)
    return manager.event_log.for_session(session_id)


# =============================================================================
# Metrics
# =============================================================================

@metrics_router.get("/my", response_model=MetricsResponse)
async def my_metrics(
    bidder_user_id: Optional[str] = Query(None, alias="bidderUserId"),
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    """Application metrics for one bidder, or for everyone when none is given."""
    if bidder_user_id is None and user is not None and user.role == UserRole.BIDDER:
        bidder_user_id = user.id
    return MetricsResponse(**manager.controller.metrics(bidder_user_id))


# =============================================================================
# Assignments
# =============================================================================

@assignments_router.get("", response_model=List[Assignment])
async def list_assignments(
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    return await manager.store.list_assignments()


@assignments_router.post("", response_model=Assignment)
async def assign_profile(
    request: AssignmentRequest,
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(require_manager),
):
    """Bind a profile exclusively to a bidder."""
    store = manager.store
    profile = await store.find_profile_by_id(request.profile_id)
    bidder = await store.find_user_by_id(request.bidder_user_id)
    if profile is None or bidder is None or bidder.role != UserRole.BIDDER:
        raise InvalidRequestError(
            "Invalid profile or bidder",
            {"profileId": request.profile_id, "bidderUserId": request.bidder_user_id},
        )

    existing = await store.find_active_assignment_by_profile(request.profile_id)
    if existing is not None:
        raise ConflictError("Profile already assigned", {"assignmentId": existing.id})

    if user is not None:
        assigned_by = user.id
    else:
        assigned_by = request.assigned_by or request.bidder_user_id

    assignment = await store.insert_assignment(
        Assignment(
            profile_id=request.profile_id,
            bidder_user_id=request.bidder_user_id,
            assigned_by=assigned_by,
        )
    )
    manager.event_log.append(
        ADMIN_EVENT_SESSION_ID,
        EventType.ASSIGNED,
        {"profileId": assignment.profile_id, "bidderUserId": assignment.bidder_user_id},
    )
    logger.info(
        "Profile assigned",
        assignment_id=assignment.id,
        profile_id=assignment.profile_id,
        bidder_user_id=assignment.bidder_user_id,
    )
    return assignment


@assignments_router.post("/{assignment_id}/unassign", response_model=Assignment)
async def unassign_profile(
    assignment_id: str,
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(forbid_observer),
):
    """Release an active assignment."""
    assignment = await manager.store.close_assignment(assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment not found", {"assignmentId": assignment_id})

    manager.event_log.append(
        ADMIN_EVENT_SESSION_ID,
        EventType.UNASSIGNED,
        {"profileId": assignment.profile_id, "bidderUserId": assignment.bidder_user_id},
    )
    logger.info("Profile unassigned", assignment_id=assignment_id)
    return assignment


# =============================================================================
# Resume files
# =============================================================================

@resumes_router.get("/{resume_id}/file")
async def resume_file(
    resume_id: str,
    manager: SessionManager = Depends(get_manager),
    user: Optional[User] = Depends(require_manager),
):
    """Serve a stored resume file."""
    resume = await manager.store.find_resume_by_id(resume_id)
    if resume is None or not resume.file_path:
        raise NotFoundError("Resume not found", {"resumeId": resume_id})

    path = manager.resume_files.resolve(resume.file_path)
    if path is None or not path.is_file():
        logger.warning("Resume file missing", resume_id=resume_id, file_path=resume.file_path)
        raise NotFoundError("File missing", {"resumeId": resume_id})

    return FileResponse(path, media_type="application/pdf", filename=path.name)


# =============================================================================
# Frame stream
# =============================================================================

@stream_router.websocket("/ws/browser/{session_id}")
async def browser_stream(websocket: WebSocket, session_id: str):
    """Push screenshots of the session's live browser to the viewer."""
    manager: SessionManager = websocket.app.state.manager
    await websocket.accept()
    channel = manager.open_channel(session_id, websocket)
    await channel.run()


# Export all routers
all_routers = [
    health_router,
    auth_router,
    sessions_router,
    assignments_router,
    resumes_router,
    metrics_router,
    stream_router,
]

"""Session lifecycle controller: the only writer of session status."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from apply_desk.browser.driver import BrowserDriver
from apply_desk.core.errors import ConflictError, InvalidTransitionError, NotFoundError, ProvisionError
from apply_desk.core.models import (
    STATUS_SEQUENCE,
    ApplicationSession,
    CamelModel,
    EventType,
    JobContext,
    SessionStatus,
    extract_domain,
    utcnow,
)
from apply_desk.sessions.events import EventLog
from apply_desk.sessions.fill_plan import build_fill_plan
from apply_desk.sessions.registry import SessionRegistry
from apply_desk.store.base import ProfileStore
from apply_desk.utils.logging import get_logger, log_error_context, log_session_transition

logger = get_logger(__name__)

PLACEHOLDER_JOB_CONTEXT = JobContext(
    title="Sample Job",
    company="Demo Corp",
    summary="Placeholder job context for MVP.",
)

SUBMITTED_DURING_LAUNCH = "Session was submitted while its browser was starting"


class SessionStateMachine:
    """
    Forward-only transitions over OPEN -> ANALYZED -> FILLED -> SUBMITTED.

    Re-applying the current state is allowed (analyze and autofill may be
    re-run) and skipping forward is allowed. Moving backward, or leaving
    SUBMITTED, is not.
    """

    @classmethod
    def rank(cls, status: SessionStatus) -> int:
        return STATUS_SEQUENCE.index(status)

    @classmethod
    def can_transition(cls, from_state: SessionStatus, to_state: SessionStatus) -> bool:
        if from_state == SessionStatus.SUBMITTED:
            return False
        return cls.rank(to_state) >= cls.rank(from_state)

    @classmethod
    def check(cls, session: ApplicationSession, to_state: SessionStatus) -> None:
        """Raise InvalidTransitionError unless ``session`` may move to ``to_state``."""
        from_state = session.status
        if not cls.can_transition(from_state, to_state):
            logger.warning(
                "Invalid transition",
                **log_session_transition(session.id, from_state.value, to_state.value),
            )
            raise InvalidTransitionError(
                f"Session {session.id} cannot move from {from_state.value} to {to_state.value}",
                {"sessionId": session.id, "from": from_state.value, "to": to_state.value},
            )

    @classmethod
    def transition(cls, session: ApplicationSession, to_state: SessionStatus) -> None:
        """Move ``session`` to ``to_state`` or raise InvalidTransitionError."""
        cls.check(session, to_state)
        from_state = session.status
        session.status = to_state
        logger.info(
            "Session transition",
            **log_session_transition(session.id, from_state.value, to_state.value),
        )


@dataclass
class GoResult:
    """Outcome of ``go``. Always ok; ``warning`` carries a swallowed failure."""
    ok: bool = True
    reused: bool = False
    warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "reused": self.reused, "warning": self.warning}


class ResumeOption(CamelModel):
    """A resume the bidder may pick instead of the recommended one."""
    id: str = Field(..., description="Resume identifier")
    label: str = Field(..., description="Human label")


class AnalysisResult(CamelModel):
    """Outcome of ``analyze``."""
    recommended_resume_id: Optional[str] = Field(None, description="Most recent resume of the profile")
    alternatives: List[ResumeOption] = Field(default_factory=list, description="All resumes of the profile")
    job_context: JobContext = Field(..., description="Job snapshot")


class SessionLifecycleController:
    """
    Validates and applies lifecycle transitions.

    Each transition updates the session, triggers browser side effects where
    the action calls for them, and appends an audit event. There is no
    per-session lock: two requests on the same session can interleave at
    await points. ``go`` re-checks for submission after launching so a
    browser is never registered for a submitted session.
    """

    def __init__(
        self,
        store: ProfileStore,
        registry: SessionRegistry,
        driver: BrowserDriver,
        event_log: EventLog,
    ):
        self.logger = logger.bind(component="lifecycle_controller")
        self.store = store
        self.registry = registry
        self.driver = driver
        self.event_log = event_log

        # Most-recent-first, process lifetime only
        self._sessions: List[ApplicationSession] = []

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, session_id: str) -> ApplicationSession:
        for session in self._sessions:
            if session.id == session_id:
                return session
        raise NotFoundError("Session not found", {"sessionId": session_id})

    def list_sessions(self, bidder_user_id: Optional[str] = None) -> List[ApplicationSession]:
        if bidder_user_id is None:
            return list(self._sessions)
        return [s for s in self._sessions if s.bidder_user_id == bidder_user_id]

    # =========================================================================
    # Transitions
    # =========================================================================

    async def create(
        self,
        bidder_user_id: str,
        profile_id: str,
        url: str,
        selected_resume_id: Optional[str] = None,
    ) -> ApplicationSession:
        """
        Open a new session for a bidder against a target URL.

        Raises:
            ConflictError: the profile is actively assigned to another bidder
        """
        assignment = await self.store.find_active_assignment_by_profile(profile_id)
        if assignment is not None and assignment.bidder_user_id != bidder_user_id:
            self.logger.warning(
                "Profile assigned to another bidder",
                profile_id=profile_id,
                bidder_user_id=bidder_user_id,
                assigned_bidder=assignment.bidder_user_id,
            )
            raise ConflictError(
                "Profile not assigned to bidder",
                {"profileId": profile_id, "assignmentId": assignment.id},
            )

        session = ApplicationSession(
            bidder_user_id=bidder_user_id,
            profile_id=profile_id,
            url=url,
            domain=extract_domain(url),
            status=SessionStatus.OPEN,
            selected_resume_id=selected_resume_id,
        )
        self._sessions.insert(0, session)
        self.event_log.append(session.id, EventType.SESSION_CREATED, {"url": url})

        self.logger.info(
            "Session created",
            **log_session_transition(session.id, None, session.status.value),
            domain=session.domain,
        )
        return session

    async def go(self, session_id: str) -> GoResult:
        """
        Provision or reuse the session's browser and bring the first field into view.

        Launch and navigation failures are logged and reported on the result
        rather than raised; the operator diagnoses through the frame stream.

        Raises:
            NotFoundError: unknown session
            InvalidTransitionError: session already submitted
        """
        session = self.get(session_id)
        if session.is_terminal:
            raise InvalidTransitionError(
                "Session already submitted",
                {"sessionId": session_id, "status": session.status.value},
            )

        result = GoResult()
        handle = self.registry.get(session_id)
        try:
            if handle is not None:
                result.reused = True
                await self.driver.navigate(handle.page, session.url)
            else:
                launched = await self.driver.launch(session.url)
                if session.is_terminal:
                    # Submitted while we launched
                    await self.driver.dispose(launched)
                    handle = None
                    result.warning = SUBMITTED_DURING_LAUNCH
                    self.logger.warning(SUBMITTED_DURING_LAUNCH, session_id=session_id)
                else:
                    handle = self.registry.put(session_id, launched)
                    if handle is not launched:
                        # Another request provisioned this session while we launched
                        result.reused = True
                        await self.driver.dispose(launched)
            if handle is not None:
                await self.driver.focus_first_field(handle.page)
        except ProvisionError as e:
            result.warning = e.message
            self.logger.error(
                "Failed to start browser session",
                **log_error_context(e, session_id=session_id, url=session.url),
            )

        self.event_log.append(session_id, EventType.GO_CLICKED, {"url": session.url})
        return result

    async def analyze(self, session_id: str) -> AnalysisResult:
        """
        Recommend the profile's most recent resume and attach a job context.

        Raises:
            NotFoundError: unknown session
            InvalidTransitionError: session already past ANALYZED
        """
        session = self.get(session_id)
        SessionStateMachine.check(session, SessionStatus.ANALYZED)

        resumes = await self.store.list_resumes_by_profile(session.profile_id)
        recommended = resumes[0] if resumes else None

        SessionStateMachine.transition(session, SessionStatus.ANALYZED)
        session.recommended_resume_id = recommended.id if recommended else None
        session.job_context = PLACEHOLDER_JOB_CONTEXT

        self.event_log.append(
            session_id,
            EventType.ANALYZE_DONE,
            {"recommendedResumeId": session.recommended_resume_id},
        )
        return AnalysisResult(
            recommended_resume_id=session.recommended_resume_id,
            alternatives=[ResumeOption(id=r.id, label=r.label) for r in resumes],
            job_context=session.job_context,
        )

    async def autofill(self, session_id: str) -> ApplicationSession:
        """
        Compute the fill plan from the profile's base info.

        Raises:
            NotFoundError: unknown session or profile
            InvalidTransitionError: session already submitted
        """
        session = self.get(session_id)
        SessionStateMachine.check(session, SessionStatus.FILLED)

        profile = await self.store.find_profile_by_id(session.profile_id)
        if profile is None:
            raise NotFoundError("Profile not found", {"profileId": session.profile_id})

        fill_plan = build_fill_plan(profile.base_info)
        SessionStateMachine.transition(session, SessionStatus.FILLED)
        session.fill_plan = fill_plan

        self.event_log.append(
            session_id,
            EventType.AUTOFILL_DONE,
            fill_plan.model_dump(mode="json", by_alias=True),
        )
        self.logger.info("Fill plan computed", session_id=session_id, fields=list(fill_plan.field_names()))
        return session

    async def mark_submitted(self, session_id: str) -> ApplicationSession:
        """
        Close out the session and tear down its browser.

        Raises:
            NotFoundError: unknown session
            InvalidTransitionError: session already submitted
        """
        session = self.get(session_id)
        SessionStateMachine.transition(session, SessionStatus.SUBMITTED)
        session.ended_at = utcnow()

        await self.stop_browser(session_id)

        self.event_log.append(session_id, EventType.SUBMITTED)
        return session

    async def stop(self, session_id: str) -> bool:
        """
        Explicitly stop the session's browser without changing its status.

        Raises:
            NotFoundError: unknown session
        """
        self.get(session_id)
        stopped = await self.stop_browser(session_id)
        if stopped:
            self.event_log.append(session_id, EventType.BROWSER_STOPPED)
        return stopped

    # =========================================================================
    # Teardown
    # =========================================================================

    async def stop_browser(self, session_id: str) -> bool:
        """Best-effort teardown: cancel capture, close page and browser, drop the entry."""
        handle = self.registry.pop(session_id)
        if handle is None:
            return False

        if handle.capture_task is not None and not handle.capture_task.done():
            handle.capture_task.cancel()

        try:
            await self.driver.dispose(handle)
        except Exception as e:
            self.logger.warning("Browser teardown failed", **log_error_context(e, session_id=session_id))

        self.logger.info("Browser session stopped", session_id=session_id)
        return True

    # =========================================================================
    # Metrics
    # =========================================================================

    def metrics(self, bidder_user_id: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Tried/submitted counts, submission percentage and this month's submissions."""
        sessions = self.list_sessions(bidder_user_id)
        now = now or utcnow()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        tried = len(sessions)
        submitted = [s for s in sessions if s.status == SessionStatus.SUBMITTED]
        percentage = 0 if tried == 0 else round(len(submitted) / tried * 100)
        monthly = [s for s in submitted if s.started_at >= month_start]

        return {
            "tried": tried,
            "submitted": len(submitted),
            "applied_percentage": percentage,
            "monthly_applied": len(monthly),
            "recent": sessions[:5],
        }

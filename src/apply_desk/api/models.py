"""API models for request/response schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from apply_desk.core.models import (
    ApplicationSession,
    CamelModel,
    FillPlan,
    JobContext,
    SessionStatus,
    User,
)
from apply_desk.sessions.controller import ResumeOption


class LoginRequest(CamelModel):
    """Credentials for the signed-claim login."""
    email: str = Field(..., description="Login email")
    password: str = Field(..., description="Plain password")


class LoginResponse(CamelModel):
    """Issued token and the user it belongs to."""
    token: str = Field(..., description="Bearer token")
    user: User = Field(..., description="Signed-in user")


class CreateSessionRequest(CamelModel):
    """Open a session for a bidder against a target URL."""
    bidder_user_id: str = Field(..., description="Bidder driving the session")
    profile_id: str = Field(..., description="Profile to apply with")
    url: str = Field(..., min_length=1, description="Target application URL")
    selected_resume_id: Optional[str] = Field(None, description="Resume chosen up front")


class GoResponse(CamelModel):
    """Outcome of provisioning the session browser."""
    ok: bool = Field(True, description="Always true; failures are reported as a warning")
    reused: bool = Field(False, description="An existing browser was navigated")
    warning: Optional[str] = Field(None, description="Swallowed launch or navigation failure")


class AnalyzeResponse(CamelModel):
    """Resume recommendation and job context."""
    recommended_resume_id: Optional[str] = Field(None, description="Most recent resume of the profile")
    alternatives: List[ResumeOption] = Field(default_factory=list, description="All resumes of the profile")
    job_context: JobContext = Field(..., description="Job snapshot")


class AutofillResponse(CamelModel):
    """Fill plan computed for the session."""
    fill_plan: FillPlan = Field(..., description="Fields to populate and the denylist")


class SubmittedResponse(CamelModel):
    """Terminal status of a submitted session."""
    status: SessionStatus = Field(..., description="Always SUBMITTED")
    ended_at: Optional[datetime] = Field(None, description="Submission time")


class StopResponse(CamelModel):
    """Outcome of an explicit browser stop."""
    stopped: bool = Field(..., description="A live browser was torn down")


class MetricsResponse(CamelModel):
    """Per-bidder application metrics."""
    tried: int = Field(..., description="Sessions opened")
    submitted: int = Field(..., description="Sessions submitted")
    applied_percentage: int = Field(..., description="Submitted as a rounded percentage of tried")
    monthly_applied: int = Field(..., description="Sessions submitted this calendar month")
    recent: List[ApplicationSession] = Field(default_factory=list, description="Five most recent sessions")


class AssignmentRequest(CamelModel):
    """Bind a profile to a bidder."""
    profile_id: str = Field(..., description="Profile to assign")
    bidder_user_id: str = Field(..., description="Bidder receiving the profile")
    assigned_by: Optional[str] = Field(None, description="Assigning user; defaults to the caller")


class HealthCheck(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Check timestamp")
    version: str = Field(..., description="Service version")
    live_browsers: int = Field(..., description="Sessions with a running browser")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(..., description="Error timestamp")

"""Core data models for Apply Desk."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid4())


def extract_domain(url: str) -> Optional[str]:
    """Hostname of ``url``, or None when it does not parse as an absolute URL."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    return hostname or None


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys on the wire."""
    
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionStatus(str, Enum):
    """Lifecycle states of an application session, in order."""
    OPEN = "OPEN"
    ANALYZED = "ANALYZED"
    FILLED = "FILLED"
    SUBMITTED = "SUBMITTED"


STATUS_SEQUENCE: Tuple[SessionStatus, ...] = (
    SessionStatus.OPEN,
    SessionStatus.ANALYZED,
    SessionStatus.FILLED,
    SessionStatus.SUBMITTED,
)


class UserRole(str, Enum):
    """Roles of the surrounding application."""
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    BIDDER = "BIDDER"
    OBSERVER = "OBSERVER"


class EventType(str, Enum):
    """Audit event types."""
    SESSION_CREATED = "SESSION_CREATED"
    GO_CLICKED = "GO_CLICKED"
    ANALYZE_DONE = "ANALYZE_DONE"
    AUTOFILL_DONE = "AUTOFILL_DONE"
    SUBMITTED = "SUBMITTED"
    BROWSER_STOPPED = "BROWSER_STOPPED"
    ASSIGNED = "ASSIGNED"
    UNASSIGNED = "UNASSIGNED"


# ---------------------------------------------------------------------------
# Store records
# ---------------------------------------------------------------------------

class User(CamelModel):
    """Application user."""
    id: str = Field(default_factory=new_id, description="User identifier")
    email: str = Field(..., description="Login email")
    name: str = Field(..., description="Display name")
    role: UserRole = Field(UserRole.OBSERVER, description="Role in the application")
    is_active: bool = Field(True, description="Whether the account may sign in")
    password_hash: Optional[str] = Field(None, exclude=True, description="Salted password hash")


class NameInfo(CamelModel):
    """Name block of a profile's base info."""
    first: Optional[str] = Field(None, description="Given name")
    last: Optional[str] = Field(None, description="Family name")


class ContactInfo(CamelModel):
    """Contact block of a profile's base info."""
    email: Optional[str] = Field(None, description="Contact email")
    phone: Optional[str] = Field(None, description="Contact phone")


class BaseInfo(CamelModel):
    """Free-form candidate data used to compute fill plans."""
    
    model_config = ConfigDict(extra="allow")
    
    name: NameInfo = Field(default_factory=NameInfo, description="Candidate name")
    contact: ContactInfo = Field(default_factory=ContactInfo, description="Contact details")
    location: Dict[str, Any] = Field(default_factory=dict, description="Location details")
    work_auth: Dict[str, Any] = Field(default_factory=dict, description="Work authorization answers")
    links: Dict[str, Any] = Field(default_factory=dict, description="Profile links")
    default_answers: Dict[str, Any] = Field(default_factory=dict, description="Canned form answers")


class Profile(CamelModel):
    """A job-application profile managed on behalf of a candidate."""
    id: str = Field(default_factory=new_id, description="Profile identifier")
    display_name: str = Field(..., description="Display name")
    base_info: BaseInfo = Field(default_factory=BaseInfo, description="Candidate base info")
    created_by: Optional[str] = Field(None, description="Creating user id")
    created_at: datetime = Field(default_factory=utcnow, description="Creation time")
    updated_at: datetime = Field(default_factory=utcnow, description="Last update time")


class Resume(CamelModel):
    """A resume attached to a profile."""
    id: str = Field(default_factory=new_id, description="Resume identifier")
    profile_id: str = Field(..., description="Owning profile id")
    label: str = Field(..., description="Human label")
    file_path: Optional[str] = Field(None, description="Stored file path")
    resume_text: Optional[str] = Field(None, description="Extracted text")
    created_at: datetime = Field(default_factory=utcnow, description="Creation time")


class Assignment(CamelModel):
    """Binding of a profile to a bidder."""
    id: str = Field(default_factory=new_id, description="Assignment identifier")
    profile_id: str = Field(..., description="Assigned profile id")
    bidder_user_id: str = Field(..., description="Bidder the profile is bound to")
    assigned_by: Optional[str] = Field(None, description="Assigning user id")
    assigned_at: datetime = Field(default_factory=utcnow, description="Assignment time")
    unassigned_at: Optional[datetime] = Field(None, description="Release time, None while active")
    
    @property
    def is_active(self) -> bool:
        return self.unassigned_at is None


# ---------------------------------------------------------------------------
# Session snapshots
# ---------------------------------------------------------------------------

class FilledField(CamelModel):
    """One auto-filled form field."""
    
    model_config = ConfigDict(frozen=True)
    
    field: str = Field(..., description="Canonical field name")
    value: str = Field(..., description="Value to fill")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Extraction certainty")


class FieldSuggestion(CamelModel):
    """A free-text field the operator should complete by hand."""
    
    model_config = ConfigDict(frozen=True)
    
    field: str = Field(..., description="Canonical field name")
    suggestion: str = Field(..., description="Hint for the operator")


class FillPlan(CamelModel):
    """Immutable snapshot of what autofill will populate."""
    
    model_config = ConfigDict(frozen=True)
    
    filled: Tuple[FilledField, ...] = Field(default=(), description="Fields with values")
    suggestions: Tuple[FieldSuggestion, ...] = Field(default=(), description="Hand-completion hints")
    blocked: Tuple[str, ...] = Field(default=(), description="Fields never auto-filled")
    
    def field_names(self) -> Tuple[str, ...]:
        return tuple(item.field for item in self.filled)


class JobContext(CamelModel):
    """Job details attached on analysis."""
    
    model_config = ConfigDict(frozen=True)
    
    title: str = Field(..., description="Job title")
    company: str = Field(..., description="Hiring company")
    summary: str = Field(..., description="Short summary")


class ApplicationSession(CamelModel):
    """One bidder's in-progress application attempt against a target URL."""
    id: str = Field(default_factory=new_id, description="Session identifier")
    bidder_user_id: str = Field(..., description="Owning bidder")
    profile_id: str = Field(..., description="Profile applied with")
    url: str = Field(..., description="Target application URL")
    domain: Optional[str] = Field(None, description="Hostname derived from url")
    status: SessionStatus = Field(SessionStatus.OPEN, description="Lifecycle status")
    selected_resume_id: Optional[str] = Field(None, description="Resume chosen by the bidder")
    recommended_resume_id: Optional[str] = Field(None, description="Resume recommended on analysis")
    job_context: Optional[JobContext] = Field(None, description="Job snapshot from analysis")
    fill_plan: Optional[FillPlan] = Field(None, description="Fill plan snapshot from autofill")
    started_at: datetime = Field(default_factory=utcnow, description="Creation time")
    ended_at: Optional[datetime] = Field(None, description="Time the session reached a terminal state")
    
    @property
    def is_terminal(self) -> bool:
        return self.status == SessionStatus.SUBMITTED


class ApplicationEvent(CamelModel):
    """Immutable audit record of a lifecycle transition."""
    
    model_config = ConfigDict(frozen=True)
    
    id: str = Field(default_factory=new_id, description="Event identifier")
    session_id: str = Field(..., description="Session the event belongs to")
    event_type: EventType = Field(..., description="What happened")
    payload: Optional[Dict[str, Any]] = Field(None, description="Event details")
    created_at: datetime = Field(default_factory=utcnow, description="Event time")

"""Error taxonomy for the session orchestrator.

Controller-level errors (``NotFoundError``, ``ConflictError``) always surface
to the caller and carry the HTTP status they map to. Driver and channel
errors (``ProvisionError``, ``TransientCaptureError``) are contained inside
the orchestrator and never reach a request handler as a failure.
"""

from typing import Any, Dict, Optional


class ApplyDeskError(Exception):
    """Base class for every error raised by Apply Desk."""
    
    status_code: int = 500
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidRequestError(ApplyDeskError):
    """Request references records that cannot be used together."""
    
    status_code = 400


class NotFoundError(ApplyDeskError):
    """Unknown session, profile, resume or assignment."""
    
    status_code = 404


class ConflictError(ApplyDeskError):
    """Profile already exclusively assigned to someone else."""
    
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Requested lifecycle transition would move a session backward."""


class AuthError(ApplyDeskError):
    """Missing or invalid credentials."""
    
    status_code = 401


class ForbiddenError(AuthError):
    """Authenticated, but the role may not perform the action."""
    
    status_code = 403


class ProvisionError(ApplyDeskError):
    """Browser launch or navigation failed while provisioning a session."""


class TransientCaptureError(ApplyDeskError):
    """A screenshot could not be taken (page mid-navigation, detached frame)."""

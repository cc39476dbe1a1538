"""Contract of the Profile/Resume Store consumed by the orchestrator."""

from typing import List, Optional, Protocol

from apply_desk.core.models import Assignment, Profile, Resume, User


class ProfileStore(Protocol):
    """Durable profiles, resumes, assignments and users.
    
    The orchestrator only reads profiles/resumes to resolve fill data and
    reads assignments to detect conflicts. Assignments are the only records
    written through this contract; users, profiles and resumes are loaded by
    the backend itself (``InMemoryStore.from_seed`` for the in-process one).
    """
    
    async def find_user_by_id(self, user_id: str) -> Optional[User]: ...
    
    async def find_user_by_email(self, email: str) -> Optional[User]: ...
    
    async def find_profile_by_id(self, profile_id: str) -> Optional[Profile]: ...
    
    async def list_resumes_by_profile(self, profile_id: str) -> List[Resume]: ...
    
    async def find_resume_by_id(self, resume_id: str) -> Optional[Resume]: ...
    
    async def find_active_assignment_by_profile(self, profile_id: str) -> Optional[Assignment]: ...
    
    async def list_assignments(self) -> List[Assignment]: ...
    
    async def insert_assignment(self, assignment: Assignment) -> Assignment: ...
    
    async def close_assignment(self, assignment_id: str) -> Optional[Assignment]: ...

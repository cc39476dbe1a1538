"""In-process implementation of the Profile/Resume Store."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from apply_desk.core.models import Assignment, Profile, Resume, User, utcnow
from apply_desk.store.passwords import hash_password
from apply_desk.utils.logging import get_logger

logger = get_logger(__name__)


class InMemoryStore:
    """Dictionary-backed store with the same ordering rules as the SQL one.
    
    Resumes are listed most-recent-first and the active assignment for a
    profile is the most recent one that has not been released.
    """
    
    def __init__(self):
        self.logger = logger.bind(component="memory_store")
        self._users: Dict[str, User] = {}
        self._profiles: Dict[str, Profile] = {}
        self._resumes: Dict[str, Resume] = {}
        self._assignments: Dict[str, Assignment] = {}
    
    # Users
    
    async def find_user_by_id(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)
    
    async def find_user_by_email(self, email: str) -> Optional[User]:
        return self._find_user_by_email(email)
    
    def _find_user_by_email(self, email: str) -> Optional[User]:
        needle = email.lower()
        for user in self._users.values():
            if user.email.lower() == needle:
                return user
        return None
    
    # Profiles
    
    async def find_profile_by_id(self, profile_id: str) -> Optional[Profile]:
        return self._profiles.get(profile_id)
    
    # Resumes
    
    async def list_resumes_by_profile(self, profile_id: str) -> List[Resume]:
        resumes = [r for r in self._resumes.values() if r.profile_id == profile_id]
        return sorted(resumes, key=lambda r: r.created_at, reverse=True)
    
    async def find_resume_by_id(self, resume_id: str) -> Optional[Resume]:
        return self._resumes.get(resume_id)
    
    # Assignments
    
    async def find_active_assignment_by_profile(self, profile_id: str) -> Optional[Assignment]:
        active = [
            a for a in self._assignments.values()
            if a.profile_id == profile_id and a.is_active
        ]
        if not active:
            return None
        return max(active, key=lambda a: a.assigned_at)
    
    async def list_assignments(self) -> List[Assignment]:
        return sorted(self._assignments.values(), key=lambda a: a.assigned_at, reverse=True)
    
    async def insert_assignment(self, assignment: Assignment) -> Assignment:
        self._assignments[assignment.id] = assignment
        return assignment
    
    async def close_assignment(self, assignment_id: str) -> Optional[Assignment]:
        assignment = self._assignments.get(assignment_id)
        if assignment is None or not assignment.is_active:
            return None
        closed = assignment.model_copy(update={"unassigned_at": utcnow()})
        self._assignments[assignment_id] = closed
        return closed
    
    # Seeding
    
    @classmethod
    def from_seed(cls, seed: Union[str, Path, Dict[str, Any]]) -> "InMemoryStore":
        """Build a store from a seed document.
        
        The document holds optional ``users``, ``profiles``, ``resumes`` and
        ``assignments`` lists in the wire (camelCase) format. A user entry may
        carry a plain ``password`` which is hashed on load.
        """
        if not isinstance(seed, dict):
            seed = json.loads(Path(seed).read_text(encoding="utf-8"))
        
        store = cls()
        for raw in seed.get("users", []):
            raw = dict(raw)
            password = raw.pop("password", None)
            user = User.model_validate(raw)
            if password:
                user = user.model_copy(update={"password_hash": hash_password(password)})
            # Email is unique: a repeated address updates the earlier user
            existing = store._find_user_by_email(user.email)
            if existing is not None:
                user = user.model_copy(update={"id": existing.id})
            store._users[user.id] = user
        for raw in seed.get("profiles", []):
            profile = Profile.model_validate(raw)
            store._profiles[profile.id] = profile
        for raw in seed.get("resumes", []):
            resume = Resume.model_validate(raw)
            store._resumes[resume.id] = resume
        for raw in seed.get("assignments", []):
            assignment = Assignment.model_validate(raw)
            store._assignments[assignment.id] = assignment
        
        store.logger.info("Store seeded", **store.counts())
        return store
    
    def counts(self) -> Dict[str, int]:
        return {
            "users": len(self._users),
            "profiles": len(self._profiles),
            "resumes": len(self._resumes),
            "assignments": len(self._assignments),
        }

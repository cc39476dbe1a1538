"""Profile/Resume Store: the durable records the orchestrator reads."""

from apply_desk.store.base import ProfileStore
from apply_desk.store.memory import InMemoryStore
from apply_desk.store.files import ResumeFiles

__all__ = ["ProfileStore", "InMemoryStore", "ResumeFiles"]

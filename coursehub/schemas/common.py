from typing import Optional

from pydantic import BaseModel

# Safe-delete refusal reasons
NOT_FOUND = "NOT_FOUND"
HAS_CHILDREN = "HAS_CHILDREN"
HAS_COURSES = "HAS_COURSES"
HAS_LESSON = "HAS_LESSON"


class DeleteResult(BaseModel):
    """Outcome of a safe delete: either done, or refused with a reason."""

    ok: bool
    reason: Optional[str] = None

    @classmethod
    def done(cls) -> "DeleteResult":
        return cls(ok=True)

    @classmethod
    def refused(cls, reason: str) -> "DeleteResult":
        return cls(ok=False, reason=reason)

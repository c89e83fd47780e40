# coursehub/schemas/actor.py
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["student", "instructor", "admin"]


class ActorContext(BaseModel):
    """
    Who is performing an operation.
    Built once per request from the bearer token and passed explicitly into
    every service call; it is frozen so nothing downstream can mutate it.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int = Field(..., description="Acting user ID")
    role: Role = Field(default="student")
    instructor_id: Optional[int] = Field(
        None, description="Instructor profile ID when the user teaches"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_instructor(self) -> bool:
        return self.instructor_id is not None

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from coursehub.core.database import Base


class User(Base):
    """
    Marketplace account as seen by the catalog.
    Credentials and sessions live with the auth service; only display
    columns are read here.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(
        String(20), default="student", nullable=False
    )  # student, instructor, admin

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}', role='{self.role}')>"


class Instructor(Base):
    __tablename__ = "instructors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True
    )
    bio = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Instructor(id={self.id}, user_id={self.user_id})>"

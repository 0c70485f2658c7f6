# eventlink/infrastructure/models.py
"""
SQLAlchemy ORM models for the matching engine.

Groups hold membership by attendee id only (group_members); profile data is
joined from `profiles` on read.
"""
import time
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean, ForeignKey, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship

from eventlink.infrastructure.db.session import Base


def now():
    return datetime.now(timezone.utc)


def new_group_id() -> str:
    # lexicographic order follows creation order
    return f"group_{time.time_ns():020d}_{uuid.uuid4().hex[:8]}"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(128), primary_key=True)
    display_name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    interests = Column(JSON, default=list)
    expertise_levels = Column(JSON, default=list)
    experience_level = Column(String(20), nullable=True)

    # owned by the matching engine
    is_mentor = Column(Boolean, default=False, nullable=False)
    group_id = Column(String(64), nullable=True, index=True)
    group_size = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=now)
    updated_at = Column(DateTime(timezone=True), default=now, onupdate=now)


class Group(Base):
    __tablename__ = "groups"

    id = Column(String(64), primary_key=True, default=new_group_id)
    name = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    interests = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    group_size = Column(Integer, default=0, nullable=False, index=True)
    origin = Column(String(20), default="matched")  # matched | split | merged
    parent_ids = Column(JSON, default=list)
    deactivated_reason = Column(String(80), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now)
    deactivated_at = Column(DateTime(timezone=True), nullable=True)

    members = relationship(
        "GroupMember",
        back_populates="group",
        order_by="GroupMember.position",
    )

    @property
    def member_ids(self):
        return [m.profile_id for m in self.members]

    @property
    def mentor_ids(self):
        return [m.profile_id for m in self.members if m.is_mentor]


class GroupMember(Base):
    __tablename__ = "group_members"

    id = Column(Integer, primary_key=True)
    group_id = Column(String(64), ForeignKey("groups.id"), index=True, nullable=False)
    profile_id = Column(String(128), ForeignKey("profiles.id"), index=True, nullable=False)
    position = Column(Integer, default=0, nullable=False)
    is_mentor = Column(Boolean, default=False, nullable=False)
    joined_at = Column(DateTime(timezone=True), default=now)
    left_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("group_id", "profile_id", name="uq_group_member"),
    )

    group = relationship("Group", back_populates="members")
    profile = relationship("Profile")


class MatchTask(Base):
    __tablename__ = "matching_tasks"

    id = Column(Integer, primary_key=True)
    profile_id = Column(String(128), index=True, nullable=False)
    reason = Column(String(50), default="manual")  # check_in | profile_completed | manual
    status = Column(String(20), default="pending", index=True)
    created_at = Column(DateTime(timezone=True), default=now)
    processed_at = Column(DateTime(timezone=True), nullable=True)

"""Closure table of the sponsor tree."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from mlm_commerce.database import Base
from mlm_commerce.db_types import UUIDType


class UserRelationship(Base):
    """
    One row per (member, ancestor) pair.

    relationship_level is the distance from user_id up to upline_id,
    1 being the direct sponsor. A member has at most one ancestor per level.
    """
    __tablename__ = "user_relationships"
    __table_args__ = (
        UniqueConstraint("user_id", "upline_id", name="uq_relationship_user_upline"),
        UniqueConstraint("user_id", "relationship_level", name="uq_relationship_user_level"),
        Index("ix_relationship_upline_level", "upline_id", "relationship_level"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    upline_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    relationship_level: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<UserRelationship(user={self.user_id}, upline={self.upline_id}, level={self.relationship_level})>"

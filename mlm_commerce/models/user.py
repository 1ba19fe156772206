import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from mlm_commerce.database import Base
from mlm_commerce.db_types import UUIDType


class UserRole(str, Enum):
    """Position of a member in the sales network."""
    ADMIN = "ADMIN"
    COMPANY = "COMPANY"         # Root account of the network
    MANAGER = "MANAGER"
    LEADER = "LEADER"
    SALES = "SALES"
    CUSTOMER = "CUSTOMER"


class User(Base):
    """
    Network member.

    upline_id points at the member's single sponsor. It is only ever set
    through RelationshipService.create_user_relationship, which keeps the
    user_relationships closure rows in step with it.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(
        String(50),
        default=UserRole.CUSTOMER.value,
        nullable=False,
        comment="ADMIN, COMPANY, MANAGER, LEADER, SALES, CUSTOMER"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Sponsor
    upline_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(email='{self.email}', role='{self.role}')>"

"""Profile and block SQLAlchemy models.

These tables are owned by the profile management service; this service
only reads them to check ownership and label analytics.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from biolink.core.database import Base, utcnow


class Profile(Base):
    """Public link-in-bio profile."""

    __tablename__ = "profiles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
        comment="Owner of the profile (user id from the auth service)",
    )
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    blocks: Mapped[list["ProfileBlock"]] = relationship(
        back_populates="profile",
        order_by="ProfileBlock.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Profile {self.slug}>"


class ProfileBlock(Base):
    """An ordered block on a profile page (link, text or header)."""

    __tablename__ = "profile_blocks"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    profile_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Block variant: 'link', 'text' or 'header'",
    )
    config: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        comment="Variant-specific configuration",
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    profile: Mapped[Profile] = relationship(back_populates="blocks")

    def __repr__(self) -> str:
        return f"<ProfileBlock {self.id} type={self.type} profile={self.profile_id}>"

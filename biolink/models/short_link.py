"""Short link SQLAlchemy model."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, ForeignKey, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from biolink.core.database import Base, utcnow


class ShortLink(Base):
    """A UTM-tagged link to a profile page, optionally reachable by short code.

    The click counter is only ever changed with a relative increment.
    """

    __tablename__ = "short_links"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    profile_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    short_code: Mapped[str | None] = mapped_column(
        String(16),
        unique=True,
        nullable=True,
        comment="Random base62 code; immutable once assigned",
    )
    full_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Destination URL including UTM query parameters",
    )
    utm_params: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )
    clicks: Mapped[int] = mapped_column(
        default=0,
        nullable=False,
        comment="Redirect count (source of truth; the cache copy is advisory)",
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ShortLink {self.short_code} -> {self.full_url[:50]}>"

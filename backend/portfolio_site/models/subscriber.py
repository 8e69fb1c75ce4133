"""
Portfolio Site Backend — Subscriber SQLAlchemy Model
=====================================================

What:  ORM description of the Supabase `subscribers` table.
How:   Read by Alembic for autogenerate; the application itself reaches the
       table through PostgREST (services/supabase_gateway.py), so column
       names here must match the keys the gateway sends.

Row lifecycle:
    insert            confirmed=false, active=true, both tokens set
    confirm(token)    confirmed=true, confirmed_at=now, confirmation_token=NULL
    unsubscribe(tok)  active=false, unsubscribed_at=now, unsubscribe_token=NULL

Tokens are single-use: the procedures in migration 001 null them out.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Index, String, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_site.database import Base

EMAIL_CHECK = r"email ~* '^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$'"


class Subscriber(Base):
    __tablename__ = "subscribers"
    __table_args__ = (
        CheckConstraint(EMAIL_CHECK, name="valid_email"),
        Index(
            "idx_subscribers_active",
            "active",
            postgresql_where=text("active = true"),
        ),
        Index(
            "idx_subscribers_confirmed",
            "confirmed",
            postgresql_where=text("confirmed = true"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    # Stored lowercased by SubscriptionService; uniqueness enforced here
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)

    confirmed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )

    confirmation_token: Mapped[Optional[str]] = mapped_column(String(200), unique=True)
    unsubscribe_token: Mapped[Optional[str]] = mapped_column(String(200), unique=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    unsubscribed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # Set by the mailer once the confirmation email went out
    email_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    def __repr__(self) -> str:
        return f"<Subscriber(id={self.id}, confirmed={self.confirmed}, active={self.active})>"

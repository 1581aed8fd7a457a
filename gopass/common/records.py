"""Platform records shared across services: users, organizers, events, tickets.

Each record is addressed by an opaque string id and written one row per
transaction; services never hold cross-request locks on them.
"""

import secrets
from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from gopass.common.db import Base, JSONDocument


class UserProfile(Base):
    """Account profile; `plan_id` is one of the plan catalog keys."""

    __tablename__ = "users"

    uid: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    plan_id: Mapped[str] = mapped_column(String, default="hobby")
    country_code: Mapped[str | None] = mapped_column(String(2), nullable=True)
    exchange_rates: Mapped[dict | None] = mapped_column(JSONDocument, nullable=True)
    upgrade_history: Mapped[list] = mapped_column(JSONDocument, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Organizer(Base):
    """Public organization page owned by a user."""

    __tablename__ = "organizers"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String, index=True)
    name: Mapped[str] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Event(Base):
    """Ticketed event. `price` is stored in `currency`."""

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    organizer_id: Mapped[str] = mapped_column(String, index=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    name: Mapped[str] = mapped_column(String)
    price: Mapped[float] = mapped_column(Float, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    tickets_issued: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Ticket(Base):
    """Ticket issued for an event.

    Online purchases start as a draft with `payment_status="pending"` and only
    become `completed` once the provider confirms the deposit.
    """

    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    event_id: Mapped[str] = mapped_column(ForeignKey("events.id"), index=True)
    holder_name: Mapped[str] = mapped_column(String)
    holder_email: Mapped[str] = mapped_column(String)
    holder_phone: Mapped[str | None] = mapped_column(String, nullable=True)
    ticket_type: Mapped[str] = mapped_column(String)
    pin: Mapped[str] = mapped_column(String)
    benefits: Mapped[list] = mapped_column(JSONDocument, default=list)
    status: Mapped[str] = mapped_column(String, default="active")
    payment_status: Mapped[str] = mapped_column(String, default="pending", index=True)
    total_paid: Mapped[float | None] = mapped_column(Float, nullable=True)
    deposit_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


def generate_pin() -> str:
    """Six-digit ticket verification PIN."""

    return str(100000 + secrets.randbelow(900000))
